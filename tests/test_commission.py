# tests/test_commission.py

import pytest

from app.models.product import AffiliateProductTier
from app.services.commission import calculate_commissions, calculate_withholding

RATES = {"branch_with_agent": 10, "branch_solo": 15, "sales": 5, "override": 0}


def assert_balanced(breakdown):
    """Доли партнеров, головного офиса и себестоимость в сумме дают цену продажи."""
    assert (
        breakdown.hq_share
        + breakdown.branch_commission
        + breakdown.sales_commission
        + breakdown.override_commission
        + breakdown.cost_amount
    ) == breakdown.sale_amount


def test_agent_sale_uses_percent_rates():
    breakdown = calculate_commissions(1_000_000, 600_000, has_agent=True, rates=RATES)

    assert breakdown.net_revenue == 400_000
    assert breakdown.branch_commission == 40_000
    assert breakdown.sales_commission == 20_000
    assert breakdown.override_commission == 0
    assert breakdown.hq_share == 340_000
    assert_balanced(breakdown)


def test_manager_solo_sale_gets_solo_rate():
    breakdown = calculate_commissions(1_000_000, 600_000, has_agent=False, rates=RATES)

    assert breakdown.branch_commission == 60_000
    assert breakdown.sales_commission == 0
    assert breakdown.hq_share == 340_000
    assert_balanced(breakdown)


def test_sale_without_manager_leaves_branch_share_to_hq():
    breakdown = calculate_commissions(1_000_000, 600_000, has_agent=True, rates=RATES, has_manager=False)

    assert breakdown.branch_commission == 0
    assert breakdown.override_commission == 0
    assert breakdown.sales_commission == 20_000
    assert breakdown.hq_share == 380_000
    assert_balanced(breakdown)


def test_percent_shares_are_floored():
    breakdown = calculate_commissions(100_007, 0, has_agent=True, rates={**RATES, "override": 1})

    assert breakdown.branch_commission == 10_000
    assert breakdown.sales_commission == 5_000
    assert breakdown.override_commission == 1_000
    assert breakdown.hq_share == 84_007
    assert_balanced(breakdown)


def test_tier_amounts_override_percent_rates():
    tier = AffiliateProductTier(
        cabin_type="BALCONY", branch_share_amount=50_000, sales_share_amount=30_000, override_amount=10_000
    )

    breakdown = calculate_commissions(1_500_000, 1_000_000, has_agent=True, tier=tier, rates=RATES)

    assert breakdown.branch_commission == 50_000
    assert breakdown.sales_commission == 30_000
    assert breakdown.override_commission == 10_000
    assert breakdown.hq_share == 410_000
    assert_balanced(breakdown)


def test_tier_without_agent_folds_sales_share_into_branch():
    tier = AffiliateProductTier(
        cabin_type="BALCONY", branch_share_amount=50_000, sales_share_amount=30_000, override_amount=10_000
    )

    breakdown = calculate_commissions(1_500_000, 1_000_000, has_agent=False, tier=tier, rates=RATES)

    assert breakdown.branch_commission == 80_000
    assert breakdown.sales_commission == 0
    assert breakdown.override_commission == 0
    assert_balanced(breakdown)


def test_cost_above_sale_amount_gives_zero_net():
    breakdown = calculate_commissions(500_000, 700_000, has_agent=True, rates=RATES)

    assert breakdown.net_revenue == 0
    assert breakdown.cost_amount == 500_000
    assert breakdown.branch_commission == 0
    assert breakdown.hq_share == 0
    assert_balanced(breakdown)


def test_tier_larger_than_net_makes_hq_share_negative():
    tier = AffiliateProductTier(
        cabin_type="SUITE", branch_share_amount=80_000, sales_share_amount=40_000, override_amount=0
    )

    breakdown = calculate_commissions(1_100_000, 1_000_000, has_agent=True, tier=tier, rates=RATES)

    assert breakdown.hq_share == -20_000
    assert_balanced(breakdown)


@pytest.mark.parametrize("amount, rate, expected", [
    (10_000, 3.3, 330),
    (12_345, 3.3, 407),
    (99, 3.3, 3),
    (0, 3.3, 0),
    (-5_000, 3.3, 0),
    (10_000, 8.8, 880),
])
def test_withholding_is_floored(amount, rate, expected):
    assert calculate_withholding(amount, rate) == expected


def test_withholding_default_rate_comes_from_settings():
    assert calculate_withholding(1_000_000) == 33_000
