# tests/test_links.py

from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient

from app.models.lead import AffiliateLead
from app.models.link import AffiliateLink, ShortLink
from app.services import link as link_service

NOW = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)


def make_link(db_session, code: str, **kwargs) -> AffiliateLink:
    kwargs.setdefault("status", "ACTIVE")
    kwargs.setdefault("created_at", NOW - timedelta(days=10))
    link = AffiliateLink(code=code, **kwargs)
    db_session.add(link)
    db_session.commit()
    return link


# --- Короткие ссылки ---

async def test_short_link_redirects_and_counts_click(client: AsyncClient, db_session, admin_auth_headers):
    created = await client.post(
        "/api/admin/shortlinks",
        json={"url": "https://mall.example.com/contract?type=SALES_AGENT", "contractType": "SALES_AGENT"},
        headers=admin_auth_headers,
    )
    assert created.status_code == 201
    code = created.json()["code"]
    assert len(code) == 6
    assert created.json()["shortUrl"].endswith(f"/p/{code}")

    response = await client.get(f"/p/{code}")

    assert response.status_code == 307
    assert response.headers["location"] == "https://mall.example.com/contract?type=SALES_AGENT"
    assert db_session.query(ShortLink).one().click_count == 1


async def test_same_url_and_type_reuses_code(client: AsyncClient, admin_auth_headers):
    payload = {"url": "https://mall.example.com/a", "contractType": "BRANCH_MANAGER"}
    first = await client.post("/api/admin/shortlinks", json=payload, headers=admin_auth_headers)
    second = await client.post("/api/admin/shortlinks", json=payload, headers=admin_auth_headers)
    other = await client.post(
        "/api/admin/shortlinks", json={**payload, "contractType": "SALES_AGENT"}, headers=admin_auth_headers
    )

    assert first.json()["code"] == second.json()["code"]
    assert other.json()["code"] != first.json()["code"]


async def test_expired_short_link_returns_404(client: AsyncClient, db_session):
    db_session.add(ShortLink(
        code="abc123", url="https://mall.example.com/old",
        expires_at=datetime.now(timezone.utc) - timedelta(days=1),
    ))
    db_session.commit()

    response = await client.get("/p/abc123")

    assert response.status_code == 404
    assert response.json() == {"ok": False, "message": "만료된 링크입니다."}


async def test_unknown_short_link_returns_404(client: AsyncClient, db_session):
    response = await client.get("/p/nothing")

    assert response.status_code == 404


async def test_expired_code_is_not_reused_for_same_url(client: AsyncClient, db_session, admin_auth_headers):
    db_session.add(ShortLink(
        code="old123", url="https://mall.example.com/pay", contract_type="SALES_AGENT",
        expires_at=datetime.now(timezone.utc) - timedelta(hours=1),
    ))
    db_session.commit()

    created = await client.post(
        "/api/admin/shortlinks",
        json={"url": "https://mall.example.com/pay", "contractType": "SALES_AGENT"},
        headers=admin_auth_headers,
    )

    code = created.json()["code"]
    assert code != "old123"
    response = await client.get(f"/p/{code}")
    assert response.status_code == 307


async def test_not_yet_expired_code_is_reused(client: AsyncClient, db_session, admin_auth_headers):
    db_session.add(ShortLink(
        code="live12", url="https://mall.example.com/pay",
        expires_at=datetime.now(timezone.utc) + timedelta(days=1),
    ))
    db_session.commit()

    created = await client.post(
        "/api/admin/shortlinks", json={"url": "https://mall.example.com/pay"}, headers=admin_auth_headers
    )

    assert created.json()["code"] == "live12"


async def test_admin_lists_short_links_newest_first(client: AsyncClient, admin_auth_headers):
    for path in ("a", "b", "c"):
        await client.post(
            "/api/admin/shortlinks", json={"url": f"https://mall.example.com/{path}"}, headers=admin_auth_headers
        )

    response = await client.get("/api/admin/shortlinks", params={"limit": 2}, headers=admin_auth_headers)

    assert response.status_code == 200
    assert [item["url"] for item in response.json()] == ["https://mall.example.com/c", "https://mall.example.com/b"]
    assert response.json()[0]["clickCount"] == 0


# --- Очистка партнерских ссылок ---

@pytest.mark.parametrize("fields, expected", [
    ({"expires_at": NOW - timedelta(days=1)}, ("expired", "EXPIRED")),
    ({"status": "INACTIVE", "created_at": NOW - timedelta(days=200)}, ("inactive", "REVOKED")),
    ({"created_at": NOW - timedelta(days=400)}, ("old", "REVOKED")),
    ({"created_at": NOW - timedelta(days=40), "campaign_name": "임시 테스트"}, ("test", "REVOKED")),
    ({"created_at": NOW - timedelta(days=400), "last_accessed_at": NOW - timedelta(days=3)}, None),
    ({"status": "REVOKED", "created_at": NOW - timedelta(days=400)}, None),
    ({}, None),
])
def test_classify_link(fields, expected):
    fields.setdefault("status", "ACTIVE")
    fields.setdefault("created_at", NOW - timedelta(days=10))
    link = AffiliateLink(code="X", **fields)

    assert link_service.classify_link(link, NOW) == expected


def test_cleanup_dry_run_changes_nothing(db_session):
    link = make_link(db_session, "EXP1", expires_at=NOW - timedelta(days=1))

    result = link_service.cleanup_links(db_session, dry_run=True, now=NOW)

    assert result.dry_run is True
    assert result.expired == 1
    assert result.total == 1
    db_session.refresh(link)
    assert link.status == "ACTIVE"


def test_cleanup_skips_links_with_leads(db_session):
    used = make_link(db_session, "USED", expires_at=NOW - timedelta(days=1))
    unused = make_link(db_session, "UNUSED", expires_at=NOW - timedelta(days=1))
    db_session.add(AffiliateLead(customer_name="고객", customer_phone="01012341234", link_id=used.id, status="NEW"))
    db_session.commit()

    result = link_service.cleanup_links(db_session, dry_run=False, now=NOW)

    assert result.total == 1
    db_session.refresh(used)
    db_session.refresh(unused)
    assert used.status == "ACTIVE"
    assert unused.status == "EXPIRED"
    assert unused.meta["cleanupCategory"] == "expired"


async def test_cleanup_endpoints(client: AsyncClient, db_session, admin_auth_headers):
    make_link(db_session, "OLD1", created_at=datetime.now(timezone.utc) - timedelta(days=500))

    preview = await client.get("/api/admin/affiliate/links/cleanup", headers=admin_auth_headers)
    run = await client.post("/api/admin/affiliate/links/cleanup", headers=admin_auth_headers)

    assert preview.status_code == 200
    assert preview.json()["dryRun"] is True
    assert preview.json()["old"] == 1
    assert run.json()["dryRun"] is False
    assert {"status": "REVOKED", "count": 1} in run.json()["statusCounts"]


async def test_admin_creates_link_for_agent(
    client: AsyncClient, admin_auth_headers, agent_profile, manager_profile
):
    response = await client.post(
        "/api/admin/affiliate/links",
        json={"title": "봄 프로모션", "agentId": agent_profile.id, "campaignName": "spring"},
        headers=admin_auth_headers,
    )

    assert response.status_code == 201
    link = response.json()["link"]
    assert link["status"] == "ACTIVE"
    assert link["agent"]["id"] == agent_profile.id
    assert link["manager"]["id"] == manager_profile.id


async def test_partner_links_include_share_urls(client: AsyncClient, manager_profile, manager_auth_headers):
    response = await client.get("/api/partner/links", headers=manager_auth_headers)

    assert response.status_code == 200
    share_urls = response.json()["shareUrls"]
    assert share_urls["shopUrl"].endswith("/boss1/shop")
    assert share_urls["storeUrl"].endswith("/store/BOSS1-CODE/boss1")
