# tests/test_products.py

import pytest
from httpx import AsyncClient

from app.models.link import AffiliateLink
from app.models.product import AffiliateProduct
from app.models.sale import AffiliateSale

PRODUCT = {
    "productCode": "MSC-BELLISSIMA-0601",
    "title": "MSC 벨리시마 6월 일본 일주",
    "effectiveFrom": "2026-06-01T00:00:00+09:00",
    "tiers": [
        {"cabinType": "발코니", "saleAmount": "1,890,000", "costAmount": 1_500_000, "branchShareAmount": 90_000},
        {"cabinType": "인사이드", "saleAmount": 1_290_000.4},
    ],
}


@pytest.fixture
async def created_product(client: AsyncClient, admin_auth_headers) -> dict:
    response = await client.post("/api/admin/affiliate/products", json=PRODUCT, headers=admin_auth_headers)
    assert response.status_code == 201
    return response.json()


async def test_create_product_issues_default_link(created_product, db_session):
    product = created_product["product"]
    assert created_product["defaultLinkCode"].startswith("LINK-")
    assert {t["cabinType"]: t["saleAmount"] for t in product["tiers"]} == {"발코니": 1_890_000, "인사이드": 1_290_000}
    assert product["stats"] == {
        "totalLinks": 1, "activeLinks": 1, "totalConfirmedSales": 0, "totalConfirmedAmount": 0,
    }
    link = db_session.query(AffiliateLink).one()
    assert link.product_id == product["id"]
    assert link.meta == {"autoCreated": True}


@pytest.mark.parametrize("missing, message", [
    ("productCode", "상품 코드를 입력해주세요."),
    ("title", "상품명을 입력해주세요."),
    ("effectiveFrom", "적용 시작일을 입력해주세요."),
])
async def test_create_product_requires_fields(client: AsyncClient, admin_auth_headers, missing, message):
    payload = {k: v for k, v in PRODUCT.items() if k != missing}

    response = await client.post("/api/admin/affiliate/products", json=payload, headers=admin_auth_headers)

    assert response.status_code == 400
    assert response.json()["message"] == message


async def test_duplicate_cabin_type_returns_400(client: AsyncClient, admin_auth_headers):
    payload = {**PRODUCT, "tiers": [{"cabinType": "발코니"}, {"cabinType": "발코니"}]}

    response = await client.post("/api/admin/affiliate/products", json=payload, headers=admin_auth_headers)

    assert response.status_code == 400


async def test_duplicate_product_code_returns_409(client: AsyncClient, admin_auth_headers, created_product):
    response = await client.post("/api/admin/affiliate/products", json=PRODUCT, headers=admin_auth_headers)

    assert response.status_code == 409


async def test_update_replaces_tiers(client: AsyncClient, admin_auth_headers, created_product):
    product_id = created_product["product"]["id"]

    response = await client.patch(
        f"/api/admin/affiliate/products/{product_id}",
        json={"title": "MSC 벨리시마 특가", "tiers": [{"cabinType": "스위트", "saleAmount": 3_000_000}]},
        headers=admin_auth_headers,
    )

    assert response.status_code == 200
    product = response.json()["product"]
    assert product["title"] == "MSC 벨리시마 특가"
    assert [t["cabinType"] for t in product["tiers"]] == ["스위트"]


async def test_delete_product_deactivates(client: AsyncClient, db_session, admin_auth_headers, created_product):
    product_id = created_product["product"]["id"]

    response = await client.delete(f"/api/admin/affiliate/products/{product_id}", headers=admin_auth_headers)

    assert response.status_code == 200
    assert response.json()["product"]["status"] == "inactive"
    assert db_session.get(AffiliateProduct, product_id) is not None


async def test_product_with_confirmed_sales_cannot_be_deleted(
    client: AsyncClient, db_session, admin_auth_headers, created_product
):
    product_id = created_product["product"]["id"]
    db_session.add(AffiliateSale(
        product_id=product_id, sale_amount=1_890_000, cost_amount=1_500_000, net_revenue=390_000,
        branch_commission=0, sales_commission=0, override_commission=0, status="CONFIRMED",
    ))
    db_session.commit()

    response = await client.delete(f"/api/admin/affiliate/products/{product_id}", headers=admin_auth_headers)

    assert response.status_code == 400
    assert response.json()["message"] == "확정된 판매가 있는 상품은 삭제할 수 없습니다."
    detail = await client.get(f"/api/admin/affiliate/products/{product_id}", headers=admin_auth_headers)
    assert detail.json()["product"]["status"] == "active"
    assert detail.json()["product"]["stats"]["totalConfirmedAmount"] == 1_890_000


async def test_unknown_product_returns_404(client: AsyncClient, admin_auth_headers):
    response = await client.get("/api/admin/affiliate/products/9999", headers=admin_auth_headers)

    assert response.status_code == 404
