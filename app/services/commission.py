# app/services/commission.py

import logging
from dataclasses import dataclass
from decimal import ROUND_FLOOR, Decimal

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.redis import invalidate_pattern
from app.crud import (
    affiliate as crud_affiliate,
    audit as crud_audit,
    notification as crud_notification,
    sale as crud_sale,
)
from app.models.affiliate import AffiliateProfile
from app.models.product import AffiliateProductTier
from app.models.sale import AffiliateSale, CommissionAdjustment, CommissionLedger
from app.models.user import User
from app.schemas.common import total_pages
from app.schemas.sale import AdjustmentCreate, AdjustmentDecision, LedgerRead, PaginatedLedgers
from app.utils.dates import utcnow

logger = logging.getLogger(__name__)

ENTRY_HQ = "HQ_NET"
ENTRY_BRANCH = "BRANCH_COMMISSION"
ENTRY_OVERRIDE = "OVERRIDE_COMMISSION"
ENTRY_SALES = "SALES_COMMISSION"

ADJUSTMENT_DECISIONS = ("APPROVED", "REJECTED")


@dataclass
class CommissionBreakdown:
    sale_amount: int
    cost_amount: int
    net_revenue: int
    branch_commission: int
    sales_commission: int
    override_commission: int
    hq_share: int


def _percent(amount: int, rate) -> int:
    """floor(amount * rate / 100) без погрешностей float."""
    value = Decimal(amount) * Decimal(str(rate)) / Decimal(100)
    return int(value.to_integral_value(rounding=ROUND_FLOOR))


def calculate_withholding(amount: int, rate: float | None = None) -> int:
    if amount <= 0:
        return 0
    return _percent(amount, settings.WITHHOLDING_RATE if rate is None else rate)


def calculate_commissions(
    sale_amount: int,
    cost_amount: int,
    has_agent: bool,
    tier: AffiliateProductTier | None = None,
    rates: dict | None = None,
    has_manager: bool = True,
) -> CommissionBreakdown:
    """
    Делит продажу между головным офисом и партнерами.
    Доля головного офиса считается остатком, поэтому
    hq + branch + sales + override + cost == sale_amount.
    """
    rates = rates or settings.COMMISSION_RATES
    net_revenue = max(sale_amount - cost_amount, 0)

    if tier is not None:
        branch = tier.branch_share_amount or 0
        sales = tier.sales_share_amount or 0
        override = tier.override_amount or 0
        if not has_agent:
            # Начальник филиала продал сам: доля продавца достается ему
            branch += sales
            sales = 0
            override = 0
    elif has_agent:
        branch = _percent(net_revenue, rates.get("branch_with_agent", 10))
        sales = _percent(net_revenue, rates.get("sales", 5))
        override = _percent(net_revenue, rates.get("override", 0))
    else:
        branch = _percent(net_revenue, rates.get("branch_solo", 15))
        sales = 0
        override = 0

    if not has_manager:
        # Без начальника филиала его доли остаются головному офису
        branch = 0
        override = 0

    hq_share = net_revenue - branch - sales - override
    if hq_share < 0:
        logger.warning(
            f"Partner shares ({branch}+{sales}+{override}) exceed net revenue {net_revenue}; HQ share is negative."
        )
    return CommissionBreakdown(
        sale_amount=sale_amount,
        cost_amount=sale_amount - net_revenue,
        net_revenue=net_revenue,
        branch_commission=branch,
        sales_commission=sales,
        override_commission=override,
        hq_share=hq_share,
    )


def apply_breakdown(db: Session, sale: AffiliateSale, breakdown: CommissionBreakdown) -> None:
    sale.cost_amount = breakdown.cost_amount
    sale.net_revenue = breakdown.net_revenue
    sale.branch_commission = breakdown.branch_commission
    sale.sales_commission = breakdown.sales_commission
    sale.override_commission = breakdown.override_commission
    sale.withholding_amount = (
        calculate_withholding(breakdown.branch_commission + breakdown.override_commission, _rate(db, sale.manager_id))
        + calculate_withholding(breakdown.sales_commission, _rate(db, sale.agent_id))
    )


def _rate(db: Session, profile_id: int | None) -> float:
    profile = crud_affiliate.get_profile(db, profile_id) if profile_id else None
    if profile is None or profile.withholding_rate is None:
        return settings.WITHHOLDING_RATE
    return profile.withholding_rate


def _upsert_entry(
    db: Session, sale: AffiliateSale, entry_type: str, profile_id: int | None, amount: int
) -> CommissionLedger:
    entry = crud_sale.get_ledger_entry(db, sale.id, entry_type)
    withholding = calculate_withholding(amount, _rate(db, profile_id)) if profile_id else 0
    if entry is None:
        entry = CommissionLedger(
            sale_id=sale.id,
            profile_id=profile_id,
            entry_type=entry_type,
            amount=amount,
            withholding_amount=withholding,
        )
        db.add(entry)
    elif not entry.is_settled:
        entry.profile_id = profile_id
        entry.amount = amount
        entry.withholding_amount = withholding
    return entry


def sync_ledgers(db: Session, sale: AffiliateSale) -> list[CommissionLedger]:
    """
    Записывает начисления по продаже: одна строка на тип.
    Повторный вызов ничего не дублирует (metadata.commissionProcessed).
    """
    if (sale.meta or {}).get("commissionProcessed"):
        logger.info(f"Ledgers for sale {sale.id} already processed, skipping.")
        return list(sale.ledgers)

    hq_share = sale.net_revenue - sale.branch_commission - sale.sales_commission - sale.override_commission
    entries = [_upsert_entry(db, sale, ENTRY_HQ, None, hq_share)]
    if sale.manager_id and sale.branch_commission:
        entries.append(_upsert_entry(db, sale, ENTRY_BRANCH, sale.manager_id, sale.branch_commission))
    if sale.manager_id and sale.agent_id and sale.override_commission:
        entries.append(_upsert_entry(db, sale, ENTRY_OVERRIDE, sale.manager_id, sale.override_commission))
    if sale.agent_id and sale.sales_commission:
        entries.append(_upsert_entry(db, sale, ENTRY_SALES, sale.agent_id, sale.sales_commission))

    sale.meta = {**(sale.meta or {}), "commissionProcessed": True, "commissionProcessedAt": utcnow().isoformat()}
    db.flush()
    logger.info(f"Synced {len(entries)} ledger entries for sale {sale.id}.")
    return entries


async def invalidate_partner_stats(*profile_ids: int | None) -> None:
    for profile_id in {pid for pid in profile_ids if pid}:
        await invalidate_pattern(f"partner_stats:{profile_id}:*")
    await invalidate_pattern("admin_dashboard:*")


# --- Журнал начислений ---

def get_paginated_ledgers(
    db: Session, page: int, size: int, profile_id: int | None = None, is_settled: bool | None = None
) -> PaginatedLedgers:
    skip = (page - 1) * size
    total = crud_sale.count_ledgers(db, profile_id=profile_id, is_settled=is_settled)
    ledgers = crud_sale.get_ledgers(db, skip=skip, limit=size, profile_id=profile_id, is_settled=is_settled)
    return PaginatedLedgers(
        total_items=total,
        total_pages=total_pages(total, size),
        current_page=page,
        size=size,
        items=[LedgerRead.model_validate(entry) for entry in ledgers],
    )


def settle_ledgers(db: Session, ids: list[int], admin: User) -> int:
    now = utcnow()
    settled = 0
    for entry in crud_sale.get_ledgers_by_ids(db, ids):
        if entry.is_settled:
            continue
        entry.is_settled = True
        entry.settled_at = now
        settled += 1
    crud_audit.log_action(
        db, admin.id, "affiliate.ledger.settled", target_type="ledger", details={"ids": ids, "settled": settled}
    )
    db.commit()
    logger.info(f"Admin {admin.id} settled {settled} ledger entries.")
    return settled


# --- Корректировки ---

def request_adjustment(
    db: Session, profile: AffiliateProfile, user: User, data: AdjustmentCreate
) -> CommissionAdjustment:
    ledger = crud_sale.get_ledger(db, data.ledger_id)
    if ledger is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="정산 내역을 찾을 수 없습니다.")
    if ledger.profile_id != profile.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="본인의 정산 내역만 조정 요청할 수 있습니다.")
    if data.amount == 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="조정 금액은 0이 될 수 없습니다.")

    adjustment = CommissionAdjustment(
        ledger_id=ledger.id,
        amount=data.amount,
        reason=data.reason,
        status="REQUESTED",
        requested_by_id=user.id,
        requested_at=utcnow(),
    )
    db.add(adjustment)
    db.commit()
    db.refresh(adjustment)
    logger.info(f"Adjustment {adjustment.id} requested by user {user.id} for ledger {ledger.id}: {data.amount}.")
    return adjustment


def get_adjustments(db: Session, status_filter: str | None, limit: int) -> list[CommissionAdjustment]:
    return crud_sale.get_adjustments(db, status=status_filter, limit=limit)


async def decide_adjustment(db: Session, data: AdjustmentDecision, admin: User) -> CommissionAdjustment:
    """
    Решение по корректировке. Одобренная сумма прибавляется к начислению,
    удержание пересчитывается по ставке профиля.
    """
    if data.status not in ADJUSTMENT_DECISIONS:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="status는 APPROVED 또는 REJECTED여야 합니다.")

    adjustment = crud_sale.get_adjustment(db, data.id)
    if adjustment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="조정 요청을 찾을 수 없습니다.")
    if adjustment.status != "REQUESTED":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="이미 처리된 조정 요청입니다.")

    adjustment.status = data.status
    adjustment.approved_by_id = admin.id
    adjustment.decided_at = utcnow()

    ledger = adjustment.ledger
    if data.status == "APPROVED":
        ledger.amount = ledger.amount + adjustment.amount
        if ledger.profile_id:
            ledger.withholding_amount = calculate_withholding(ledger.amount, _rate(db, ledger.profile_id))

    crud_audit.log_action(
        db, admin.id, f"affiliate.adjustment.{data.status.lower()}",
        target_type="adjustment", target_id=adjustment.id,
        details={"ledgerId": ledger.id, "amount": adjustment.amount},
    )
    if ledger.profile is not None:
        verdict = "승인" if data.status == "APPROVED" else "거절"
        crud_notification.create_notification(
            db,
            user_id=ledger.profile.user_id,
            type="commission_adjusted",
            title=f"수당 조정 요청이 {verdict}되었습니다",
            message=f"조정 금액: {adjustment.amount:,}원",
            related_entity_id=str(ledger.id),
        )
    db.commit()
    db.refresh(adjustment)
    logger.info(f"Adjustment {adjustment.id} {data.status} by admin {admin.id}.")
    await invalidate_partner_stats(ledger.profile_id)
    return adjustment
