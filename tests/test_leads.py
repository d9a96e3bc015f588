# tests/test_leads.py

import pytest
from httpx import AsyncClient

from app.models.lead import AffiliateInteraction, AffiliateLead
from app.services.lead import can_transition


def make_lead(db_session, name: str, phone: str, agent_id=None, manager_id=None) -> AffiliateLead:
    lead = AffiliateLead(
        customer_name=name, customer_phone=phone, agent_id=agent_id, manager_id=manager_id, status="NEW"
    )
    db_session.add(lead)
    db_session.commit()
    return lead


@pytest.mark.parametrize("current, new, allowed", [
    ("NEW", "CONTACTED", True),
    ("NEW", "PURCHASED", False),
    ("IN_PROGRESS", "PURCHASED", True),
    ("PASSPORT_REQUESTED", "PASSPORT_COMPLETED", True),
    ("PURCHASED", "REFUNDED", True),
    ("REFUNDED", "NEW", False),
    ("LOST", "CONTACTED", True),
])
def test_lead_transitions(current, new, allowed):
    assert can_transition(current, new) is allowed


async def test_agent_creates_customer_owned_by_agent(
    client: AsyncClient, db_session, agent_auth_headers, agent_profile, manager_profile
):
    response = await client.post(
        "/api/partner/customers",
        json={"customerName": "최고객", "customerPhone": "010-3333-4444"},
        headers=agent_auth_headers,
    )

    assert response.status_code == 201
    lead = response.json()["lead"]
    assert lead["customerPhone"] == "01033334444"
    assert lead["status"] == "NEW"
    assert lead["agent"]["id"] == agent_profile.id
    assert lead["manager"]["id"] == manager_profile.id


async def test_duplicate_customer_phone_returns_409(client: AsyncClient, agent_auth_headers, agent_profile):
    payload = {"customerName": "최고객", "customerPhone": "010-3333-4444"}
    await client.post("/api/partner/customers", json=payload, headers=agent_auth_headers)

    response = await client.post(
        "/api/partner/customers", json={**payload, "customerPhone": "01033334444"}, headers=agent_auth_headers
    )

    assert response.status_code == 409


async def test_manager_sees_team_leads_agent_sees_own(
    client: AsyncClient, db_session, manager_profile, agent_profile, manager_auth_headers, agent_auth_headers
):
    make_lead(db_session, "팀 고객", "01011112222", agent_id=agent_profile.id, manager_id=manager_profile.id)
    make_lead(db_session, "대리점 고객", "01033334444", manager_id=manager_profile.id)

    as_manager = await client.get("/api/partner/customers", headers=manager_auth_headers)
    as_agent = await client.get("/api/partner/customers", headers=agent_auth_headers)

    assert as_manager.json()["totalItems"] == 2
    assert [l["customerName"] for l in as_agent.json()["items"]] == ["팀 고객"]


async def test_agent_cannot_open_foreign_lead(
    client: AsyncClient, db_session, manager_profile, agent_profile, agent_auth_headers
):
    lead = make_lead(db_session, "대리점 고객", "01033334444", manager_id=manager_profile.id)

    response = await client.get(f"/api/partner/customers/{lead.id}", headers=agent_auth_headers)

    assert response.status_code == 403


async def test_status_change_is_logged(client: AsyncClient, db_session, agent_profile, agent_auth_headers):
    lead = make_lead(db_session, "고객", "01055556666", agent_id=agent_profile.id)

    response = await client.patch(
        f"/api/partner/customers/{lead.id}", json={"status": "CONTACTED"}, headers=agent_auth_headers
    )

    assert response.status_code == 200
    data = response.json()["lead"]
    assert data["status"] == "CONTACTED"
    assert data["lastContactedAt"] is not None
    assert data["interactions"][0]["interactionType"] == "STATUS_CHANGE"


async def test_invalid_status_jump_returns_400(client: AsyncClient, db_session, agent_profile, agent_auth_headers):
    lead = make_lead(db_session, "고객", "01055556666", agent_id=agent_profile.id)

    response = await client.patch(
        f"/api/partner/customers/{lead.id}", json={"status": "PURCHASED"}, headers=agent_auth_headers
    )

    assert response.status_code == 400
    db_session.refresh(lead)
    assert lead.status == "NEW"


async def test_add_call_interaction_updates_last_contact(
    client: AsyncClient, db_session, agent_profile, agent_auth_headers
):
    lead = make_lead(db_session, "고객", "01055556666", agent_id=agent_profile.id)

    response = await client.post(
        f"/api/partner/customers/{lead.id}/interactions",
        json={"interactionType": "CALL", "note": "여권 안내"},
        headers=agent_auth_headers,
    )

    assert response.status_code == 201
    assert response.json()["note"] == "여권 안내"
    db_session.refresh(lead)
    assert lead.last_contacted_at is not None
    assert db_session.query(AffiliateInteraction).count() == 1


async def test_admin_lead_search_by_phone(client: AsyncClient, db_session, admin_auth_headers, agent_profile):
    make_lead(db_session, "김고객", "01012345678", agent_id=agent_profile.id)
    make_lead(db_session, "박고객", "01098765432", agent_id=agent_profile.id)

    response = await client.get(
        "/api/admin/affiliate/leads", params={"customerPhone": "1234-5678"}, headers=admin_auth_headers
    )

    assert response.status_code == 200
    assert [l["customerName"] for l in response.json()["items"]] == ["김고객"]


async def test_suspended_partner_has_no_access(client: AsyncClient, db_session, agent_profile, agent_auth_headers):
    agent_profile.status = "SUSPENDED"
    db_session.commit()

    response = await client.get("/api/partner/customers", headers=agent_auth_headers)

    assert response.status_code == 403
    assert db_session.query(AffiliateLead).count() == 0
