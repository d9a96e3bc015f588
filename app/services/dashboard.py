# app/services/dashboard.py

import logging
from collections import defaultdict
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from app.core.redis import get_cached_model, set_cached_model
from app.crud import (
    affiliate as crud_affiliate,
    contract as crud_contract,
    lead as crud_lead,
    link as crud_link,
    sale as crud_sale,
    user as crud_user,
)
from app.models.affiliate import AffiliateProfile
from app.schemas.dashboard import (
    AdminDashboard,
    DashboardLead,
    DashboardSale,
    MonthlySales,
    PartnerDashboardStats,
)
from app.utils.dates import as_utc, current_month, month_range, utcnow

logger = logging.getLogger(__name__)

ADMIN_DASHBOARD_TTL = 300
PARTNER_STATS_TTL = 300
MONTHLY_SALES_MONTHS = 6


async def get_admin_dashboard(db: Session) -> AdminDashboard:
    """Сводка для админки. Кешируется на 5 минут в разрезе дня."""
    now = utcnow()
    cache_key = f"admin_dashboard:{now.date().isoformat()}"
    cached = await get_cached_model(cache_key, AdminDashboard)
    if cached:
        logger.debug(f"Admin dashboard served from cache ({cache_key}).")
        return cached

    month_start, month_end = month_range(current_month(now.date()))
    dashboard = AdminDashboard(
        total_users=crud_user.count_all_users(db),
        partners_by_type=crud_affiliate.count_profiles_by_type(db),
        contracts_by_status=crud_contract.count_contracts_by_status(db),
        leads_by_status=crud_lead.count_leads_by_status(db),
        sales_by_status=crud_sale.count_sales_by_status(db),
        confirmed_revenue_this_month=crud_sale.sum_confirmed_amount(db, month_start, month_end),
        open_adjustments=crud_sale.count_adjustments_by_status(db, "REQUESTED"),
        generated_at=now,
    )
    await set_cached_model(cache_key, dashboard, ADMIN_DASHBOARD_TTL)
    return dashboard


def _shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def last_months(period: str, count: int = MONTHLY_SALES_MONTHS) -> list[str]:
    """Последние count месяцев, заканчивая period, от старых к новым."""
    year, month = (int(part) for part in period.split("-"))
    months = []
    for delta in range(-(count - 1), 1):
        y, m = _shift_month(year, month, delta)
        months.append(f"{y}-{m:02d}")
    return months


def group_monthly_sales(sales, months: list[str]) -> list[MonthlySales]:
    buckets = defaultdict(lambda: {"count": 0, "total_amount": 0})
    for sale in sales:
        sale_date = as_utc(sale.sale_date)
        if sale_date is None or sale.status in ("REJECTED", "REFUNDED"):
            continue
        key = f"{sale_date.year}-{sale_date.month:02d}"
        buckets[key]["count"] += 1
        buckets[key]["total_amount"] += sale.sale_amount
    return [MonthlySales(month=month, **buckets[month]) for month in months]


def _to_dashboard_sale(sale) -> DashboardSale:
    item = DashboardSale.model_validate(sale)
    item.product_code = sale.product.product_code if sale.product else None
    return item


async def get_partner_stats(db: Session, profile: AffiliateProfile, month: str | None = None) -> PartnerDashboardStats:
    """
    Статистика кабинета партнера за выбранный месяц (по умолчанию текущий).
    Кеш по профилю и месяцу сбрасывается при изменении продаж.
    """
    this_month = current_month()
    selected = month or this_month
    month_start, month_end = month_range(selected)

    cache_key = f"partner_stats:{profile.id}:{selected}"
    cached = await get_cached_model(cache_key, PartnerDashboardStats)
    if cached:
        return cached

    months = last_months(selected)
    first_year, first_month = (int(part) for part in months[0].split("-"))
    history_from = datetime(first_year, first_month, 1, tzinfo=timezone.utc)
    history = [
        s for s in crud_sale.get_sales_since_for_profile(db, profile.id, history_from)
        if as_utc(s.sale_date) and as_utc(s.sale_date) < month_end
    ]

    team_members = len(crud_affiliate.get_team(db, profile.id)) if profile.type == "BRANCH_MANAGER" else 0
    stats = PartnerDashboardStats(
        total_links=crud_link.count_links_for_profile(db, profile.id, profile.user_id),
        total_leads=crud_lead.count_leads_for_profile(db, profile.id),
        total_sales=crud_sale.count_sales_for_profile(db, profile.id),
        team_members=team_members,
        recent_leads=[
            DashboardLead.model_validate(lead)
            for lead in crud_lead.get_recent_leads_for_profile(db, profile.id, month_start, month_end)
        ],
        recent_sales=[
            _to_dashboard_sale(sale)
            for sale in crud_sale.get_recent_sales_for_profile(db, profile.id, month_start, month_end)
        ],
        monthly_sales=group_monthly_sales(history, months),
        current_month=this_month,
        selected_month=selected,
    )
    await set_cached_model(cache_key, stats, PARTNER_STATS_TTL)
    return stats
