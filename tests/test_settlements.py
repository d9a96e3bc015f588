# tests/test_settlements.py

from datetime import datetime, timezone
from io import BytesIO

import openpyxl
import pytest
from httpx import AsyncClient

from app.models.sale import AffiliateSale
from app.services import commission as commission_service, settlement as settlement_service
from app.services.dashboard import group_monthly_sales, last_months

CONFIRMED_AT = datetime(2026, 3, 15, 9, 0, tzinfo=timezone.utc)


def make_confirmed_sale(db_session, manager_id, agent_id, sale_amount=1_000_000, cost=600_000, when=CONFIRMED_AT):
    breakdown = commission_service.calculate_commissions(
        sale_amount, cost, has_agent=bool(agent_id), has_manager=bool(manager_id)
    )
    sale = AffiliateSale(
        manager_id=manager_id, agent_id=agent_id, sale_amount=sale_amount,
        status="CONFIRMED", sale_date=when, confirmed_at=when,
    )
    commission_service.apply_breakdown(db_session, sale, breakdown)
    db_session.add(sale)
    db_session.flush()
    commission_service.sync_ledgers(db_session, sale)
    db_session.commit()
    return sale


@pytest.fixture
def march_sales(db_session, manager_profile, agent_profile):
    return [
        make_confirmed_sale(db_session, manager_profile.id, agent_profile.id),
        make_confirmed_sale(db_session, manager_profile.id, None, sale_amount=500_000, cost=300_000),
        # Другой месяц в отчет не попадает
        make_confirmed_sale(
            db_session, manager_profile.id, agent_profile.id, when=datetime(2026, 4, 2, tzinfo=timezone.utc)
        ),
    ]


def test_collect_rows_splits_sheets(db_session, march_sales):
    sheets = settlement_service.collect_rows(db_session, "2026-03")

    assert len(sheets[settlement_service.SHEET_HQ]) == 2
    assert len(sheets[settlement_service.SHEET_MANAGERS]) == 2
    assert len(sheets[settlement_service.SHEET_AGENTS]) == 1


def test_profile_filter_drops_hq_rows(db_session, march_sales, agent_profile):
    sheets = settlement_service.collect_rows(db_session, "2026-03", profile_id=agent_profile.id)

    assert sheets[settlement_service.SHEET_HQ] == []
    assert sheets[settlement_service.SHEET_MANAGERS] == []
    assert len(sheets[settlement_service.SHEET_AGENTS]) == 1


async def test_export_returns_workbook(client: AsyncClient, admin_auth_headers, march_sales):
    response = await client.get(
        "/api/admin/affiliate/settlements/export", params={"period": "2026-03"}, headers=admin_auth_headers
    )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith(
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    )
    assert 'filename="settlement_2026-03.xlsx"' in response.headers["content-disposition"]

    wb = openpyxl.load_workbook(BytesIO(response.content))
    assert wb.sheetnames == ["본사", "대리점장", "판매원"]
    agents = wb["판매원"]
    assert agents.cell(row=1, column=1).value == "판매 ID"
    # Одна строка продавца и строка итога
    assert agents.cell(row=2, column=6).value == 20_000
    assert agents.cell(row=2, column=7).value == 660
    assert agents.cell(row=2, column=8).value == 19_340
    assert agents.cell(row=3, column=1).value == "합계"


async def test_export_rejects_bad_period(client: AsyncClient, admin_auth_headers, db_session):
    response = await client.get(
        "/api/admin/affiliate/settlements/export", params={"period": "2026/03"}, headers=admin_auth_headers
    )

    assert response.status_code == 400


async def test_summary_totals_per_partner(client: AsyncClient, admin_auth_headers, march_sales, manager_profile):
    response = await client.get(
        "/api/admin/affiliate/settlements/summary", params={"period": "2026-03"}, headers=admin_auth_headers
    )

    assert response.status_code == 200
    data = response.json()
    assert data["hqTotal"] == 340_000 + 170_000
    manager = next(p for p in data["partners"] if p["profileId"] == manager_profile.id)
    assert manager["saleCount"] == 2
    assert manager["saleAmount"] == 1_500_000
    assert manager["commission"] == 40_000 + 30_000
    assert manager["withholding"] == 1_320 + 990
    assert manager["netPayout"] == 70_000 - 2_310


# --- Статистика кабинета ---

def test_last_months_crosses_year():
    assert last_months("2026-02", 4) == ["2025-11", "2025-12", "2026-01", "2026-02"]


def test_monthly_sales_skip_rejected(db_session):
    sales = [
        AffiliateSale(sale_amount=100, status="CONFIRMED", sale_date=datetime(2026, 3, 1, tzinfo=timezone.utc)),
        AffiliateSale(sale_amount=200, status="REJECTED", sale_date=datetime(2026, 3, 2, tzinfo=timezone.utc)),
        AffiliateSale(sale_amount=300, status="PENDING", sale_date=datetime(2026, 2, 2, tzinfo=timezone.utc)),
    ]

    result = group_monthly_sales(sales, ["2026-02", "2026-03"])

    assert [(m.month, m.count, m.total_amount) for m in result] == [("2026-02", 1, 300), ("2026-03", 1, 100)]


async def test_partner_dashboard_stats(
    client: AsyncClient, march_sales, manager_auth_headers, mock_redis
):
    response = await client.get(
        "/api/partner/dashboard/stats", params={"month": "2026-03"}, headers=manager_auth_headers
    )

    assert response.status_code == 200
    data = response.json()
    assert data["selectedMonth"] == "2026-03"
    assert data["totalSales"] == 3
    assert data["teamMembers"] == 1
    assert len(data["recentSales"]) == 2
    assert data["monthlySales"][-1] == {"month": "2026-03", "count": 2, "totalAmount": 1_500_000}
    mock_redis.set.assert_awaited_once()


async def test_admin_dashboard(client: AsyncClient, admin_auth_headers, march_sales):
    response = await client.get("/api/admin/dashboard", headers=admin_auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["salesByStatus"] == {"CONFIRMED": 3}
    assert data["partnersByType"] == {"BRANCH_MANAGER": 1, "SALES_AGENT": 1}
