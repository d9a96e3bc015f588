# tests/test_marketing.py

from datetime import timedelta

from httpx import AsyncClient

from app.models.marketing import MarketingCustomer
from app.utils.dates import utcnow


async def test_create_customer_normalizes_phone(client: AsyncClient, db_session, admin_auth_headers):
    response = await client.post(
        "/api/admin/marketing/customers",
        json={"name": "박고객", "phone": "010 7777 8888", "source": "event"},
        headers=admin_auth_headers,
    )

    assert response.status_code == 201
    customer = response.json()["customer"]
    assert customer["phone"] == "010-7777-8888"
    assert customer["status"] == "NEW"


async def test_duplicate_phone_returns_409(client: AsyncClient, db_session, admin_auth_headers):
    db_session.add(MarketingCustomer(name="기존", phone="010-7777-8888", status="NEW"))
    db_session.commit()

    response = await client.post(
        "/api/admin/marketing/customers", json={"phone": "01077778888"}, headers=admin_auth_headers
    )

    assert response.status_code == 409
    assert response.json() == {"ok": False, "message": "이미 등록된 전화번호입니다."}


async def test_day_search_limits_inflow_period(client: AsyncClient, db_session, admin_auth_headers):
    db_session.add_all([
        MarketingCustomer(name="최근", phone="010-1000-0001", status="NEW", created_at=utcnow() - timedelta(days=2)),
        MarketingCustomer(name="오래됨", phone="010-1000-0002", status="NEW", created_at=utcnow() - timedelta(days=30)),
    ])
    db_session.commit()

    response = await client.get(
        "/api/admin/marketing/customers", params={"daySearch": 7}, headers=admin_auth_headers
    )

    assert response.status_code == 200
    data = response.json()
    assert data["totalItems"] == 1
    assert data["items"][0]["name"] == "최근"


async def test_update_and_delete_customer(client: AsyncClient, db_session, admin_auth_headers):
    customer = MarketingCustomer(name="박고객", phone="010-7777-8888", status="NEW")
    db_session.add(customer)
    db_session.commit()

    patched = await client.patch(
        f"/api/admin/marketing/customers/{customer.id}",
        json={"status": "UNSUBSCRIBED", "notes": "수신 거부"},
        headers=admin_auth_headers,
    )
    deleted = await client.delete(f"/api/admin/marketing/customers/{customer.id}", headers=admin_auth_headers)

    assert patched.json()["customer"]["status"] == "UNSUBSCRIBED"
    assert deleted.status_code == 204
    assert db_session.query(MarketingCustomer).count() == 0
