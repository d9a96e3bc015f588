# tests/test_contract_lifecycle.py

from contextlib import contextmanager
from datetime import date, datetime, timedelta, timezone

import pytest
from httpx import AsyncClient

from app.models.affiliate import AffiliateProfile, AffiliateRelation
from app.models.contract import AffiliateContract
from app.models.lead import AffiliateLead
from app.services import contract as contract_service, recovery as recovery_service
from app.utils.dates import add_years, utcnow


def make_contract(db_session, profile=None, **kwargs) -> AffiliateContract:
    meta = kwargs.pop("meta", {})
    if profile is not None:
        meta = {"affiliateProfileId": profile.id, **meta}
        kwargs.setdefault("user_id", profile.user_id)
    kwargs.setdefault("status", "approved")
    contract = AffiliateContract(
        name=kwargs.pop("name", "계약자"),
        phone=kwargs.pop("phone", "010-9999-0000"),
        email=kwargs.pop("email", "partner@example.com"),
        meta=meta,
        **kwargs,
    )
    db_session.add(contract)
    db_session.commit()
    return contract


def make_lead(db_session, manager_id=None, agent_id=None) -> AffiliateLead:
    lead = AffiliateLead(
        customer_name="고객", customer_phone="01012341234",
        manager_id=manager_id, agent_id=agent_id, status="NEW",
    )
    db_session.add(lead)
    db_session.commit()
    return lead


@pytest.fixture
def patched_email(mocker):
    return mocker.patch(
        "app.services.contract.email_service.send_contract_completed_email", return_value=True
    )


# --- Завершение договора ---

SIGNED = {"signatures": {"main": {"url": "https://cdn.example.com/s.png"}}}


async def test_inviter_completes_contract_and_email_is_sent(
    client: AsyncClient, db_session, manager_profile, manager_auth_headers, patched_email
):
    contract = make_contract(db_session, invited_by_profile_id=manager_profile.id, meta=SIGNED)

    response = await client.post(
        f"/api/partner/contracts/{contract.id}/complete", headers=manager_auth_headers
    )

    assert response.status_code == 200
    assert response.json()["contract"]["status"] == "completed"
    sent_contract, recipient = patched_email.call_args.args
    assert sent_contract.id == contract.id
    assert recipient == "partner@example.com"


async def test_completion_email_falls_back_to_user_address(
    client: AsyncClient, db_session, agent_profile, admin_auth_headers, patched_email
):
    agent_profile.user.email = "agent@example.com"
    contract = make_contract(db_session, agent_profile, email=None, meta=SIGNED)

    response = await client.post(f"/api/partner/contracts/{contract.id}/complete", headers=admin_auth_headers)

    assert response.status_code == 200
    assert patched_email.call_args.args[1] == "agent@example.com"
    db_session.refresh(contract)
    # Адрес пользователя в договор не переписывается
    assert contract.email is None


async def test_non_inviter_cannot_complete(
    client: AsyncClient, db_session, manager_profile, agent_auth_headers, patched_email
):
    contract = make_contract(db_session, invited_by_profile_id=manager_profile.id, meta=SIGNED)

    response = await client.post(f"/api/partner/contracts/{contract.id}/complete", headers=agent_auth_headers)

    assert response.status_code == 403
    patched_email.assert_not_called()


@pytest.mark.parametrize("fields, message", [
    ({"status": "completed", "meta": SIGNED}, "이미 완료된 계약서입니다."),
    ({"meta": {}}, "서명이 완료되지 않은 계약서입니다."),
    ({"email": None, "meta": SIGNED}, "계약서에 이메일 주소가 없습니다. 이메일을 입력해주세요."),
])
async def test_complete_rejects_invalid_contract(
    client: AsyncClient, db_session, admin_auth_headers, patched_email, fields, message
):
    contract = make_contract(db_session, **fields)

    response = await client.post(f"/api/partner/contracts/{contract.id}/complete", headers=admin_auth_headers)

    assert response.status_code == 400
    assert response.json()["message"] == message


# --- Расторжение ---

async def test_terminating_manager_returns_team_leads_to_hq(
    client: AsyncClient, db_session, admin_auth_headers, manager_profile, agent_profile
):
    own = make_lead(db_session, manager_id=manager_profile.id)
    team = make_lead(db_session, manager_id=manager_profile.id, agent_id=agent_profile.id)
    contract = make_contract(db_session, manager_profile)

    response = await client.post(
        f"/api/admin/affiliate/contracts/{contract.id}/terminate",
        json={"reason": "계약 위반"},
        headers=admin_auth_headers,
    )

    assert response.status_code == 200
    meta = response.json()["contract"]["metadata"]
    assert meta["terminationReason"] == "계약 위반"
    assert meta["dbRecovered"] is True
    for lead in (own, team):
        db_session.refresh(lead)
        assert (lead.manager_id, lead.agent_id) == (None, None)
        assert lead.meta["recoveredFrom"]["reason"] == "BRANCH_MANAGER_TERMINATION"
    assert db_session.query(AffiliateRelation).one().status == "INACTIVE"
    db_session.refresh(manager_profile)
    assert manager_profile.status == "TERMINATED"


async def test_terminating_agent_schedules_recovery(
    client: AsyncClient, db_session, admin_auth_headers, manager_profile, agent_profile
):
    lead = make_lead(db_session, manager_id=manager_profile.id, agent_id=agent_profile.id)
    contract = make_contract(db_session, agent_profile)
    before = utcnow()

    response = await client.post(
        f"/api/admin/affiliate/contracts/{contract.id}/terminate", json={}, headers=admin_auth_headers
    )

    assert response.status_code == 200
    meta = response.json()["contract"]["metadata"]
    assert meta["dbRecovered"] is False
    scheduled = datetime.fromisoformat(meta["dbRecoveryScheduledAt"])
    assert timedelta(hours=23) < scheduled - before <= timedelta(days=1, minutes=1)
    # Лиды пока остаются у продавца
    db_session.refresh(lead)
    assert lead.agent_id == agent_profile.id


async def test_terminate_twice_returns_400(client: AsyncClient, db_session, admin_auth_headers):
    contract = make_contract(db_session, status="terminated")

    response = await client.post(
        f"/api/admin/affiliate/contracts/{contract.id}/terminate", json={}, headers=admin_auth_headers
    )

    assert response.status_code == 400


# --- Продление ---

@pytest.mark.parametrize("renewal_date, expected", [
    (date(2020, 1, 1), None),
    (date(2099, 5, 1), date(2100, 5, 1)),
])
async def test_renewal_approve_extends_from_later_date(
    client: AsyncClient, db_session, admin_auth_headers, renewal_date, expected
):
    contract = make_contract(
        db_session, meta={"renewalDate": renewal_date.isoformat(), "renewalRequestStatus": "PENDING"}
    )

    response = await client.post(
        f"/api/admin/affiliate/contracts/{contract.id}/renewal", json={"action": "approve"}, headers=admin_auth_headers
    )

    assert response.status_code == 200
    meta = response.json()["contract"]["metadata"]
    assert meta["renewalRequestStatus"] == "APPROVED"
    assert meta["renewalDate"] == (expected or add_years(utcnow().date(), 1)).isoformat()


async def test_renewal_reject_terminates(
    client: AsyncClient, db_session, admin_auth_headers, agent_profile
):
    contract = make_contract(
        db_session, agent_profile, meta={"renewalDate": "2026-01-01", "renewalRequestStatus": "PENDING"}
    )

    response = await client.post(
        f"/api/admin/affiliate/contracts/{contract.id}/renewal", json={"action": "reject"}, headers=admin_auth_headers
    )

    assert response.status_code == 200
    contract_data = response.json()["contract"]
    assert contract_data["status"] == "terminated"
    assert contract_data["metadata"]["renewalRequestStatus"] == "REJECTED"
    assert contract_data["metadata"]["terminationReason"] == "재계약 거부"


async def test_renewal_without_pending_request_returns_400(client: AsyncClient, db_session, admin_auth_headers):
    contract = make_contract(db_session, meta={"renewalDate": "2026-01-01"})

    response = await client.post(
        f"/api/admin/affiliate/contracts/{contract.id}/renewal", json={"action": "approve"}, headers=admin_auth_headers
    )

    assert response.status_code == 400


def test_renewal_scan_flags_once_per_date(db_session):
    today = date(2026, 6, 1)
    soon = make_contract(db_session, meta={"renewalDate": "2026-06-20"})
    later = make_contract(db_session, phone="010-9999-0001", meta={"renewalDate": "2026-09-01"})

    assert contract_service.scan_contract_renewals(db_session, today=today) == 1
    assert contract_service.scan_contract_renewals(db_session, today=today) == 0

    db_session.refresh(soon)
    db_session.refresh(later)
    assert soon.meta["renewalRequestStatus"] == "PENDING"
    assert soon.meta["renewalRequestedFor"] == "2026-06-20"
    assert "renewalRequestStatus" not in later.meta


# --- Повтор возврата лидов ---

async def test_retry_recovery_moves_agent_leads_to_manager(
    client: AsyncClient, db_session, admin_auth_headers, manager_profile, agent_profile
):
    lead = make_lead(db_session, manager_id=manager_profile.id, agent_id=agent_profile.id)
    contract = make_contract(
        db_session, agent_profile, status="terminated", meta={"dbRecovered": False, "recoveryRetryCount": 2}
    )

    response = await client.post(
        f"/api/admin/affiliate/contracts/{contract.id}/retry-recovery", headers=admin_auth_headers
    )

    assert response.status_code == 200
    assert response.json()["stats"]["leads"] == 1
    db_session.refresh(lead)
    assert (lead.manager_id, lead.agent_id) == (manager_profile.id, None)
    db_session.refresh(contract)
    assert contract.meta["dbRecovered"] is True
    assert contract.meta["recoveryRetryCount"] == 0


@pytest.mark.parametrize("status, meta, message", [
    ("approved", {"dbRecovered": False}, "해지된 계약서만 재시도할 수 있습니다."),
    ("terminated", {"dbRecovered": True}, "이미 DB가 회수된 계약서입니다."),
    ("terminated", {"dbRecovered": False}, "지원하지 않는 계약 타입입니다."),
])
async def test_retry_recovery_rejects(client: AsyncClient, db_session, admin_auth_headers, status, meta, message):
    contract = make_contract(db_session, status=status, meta=meta)

    response = await client.post(
        f"/api/admin/affiliate/contracts/{contract.id}/retry-recovery", headers=admin_auth_headers
    )

    assert response.status_code == 400
    assert response.json()["message"] == message


async def test_retry_recovery_for_hq_profile_returns_400(
    client: AsyncClient, db_session, admin_auth_headers, admin_user
):
    hq = AffiliateProfile(
        user_id=admin_user.id, type="HQ", affiliate_code="HQ-CODE", display_name="본사", status="ACTIVE"
    )
    db_session.add(hq)
    db_session.commit()
    contract = make_contract(db_session, hq, status="terminated", meta={"dbRecovered": False})

    response = await client.post(
        f"/api/admin/affiliate/contracts/{contract.id}/retry-recovery", headers=admin_auth_headers
    )

    assert response.status_code == 400
    assert response.json()["message"] == "지원하지 않는 계약 타입입니다."


# --- Плановый возврат ---

def test_recovery_due_respects_retry_cap():
    now = datetime(2026, 6, 2, tzinfo=timezone.utc)
    scheduled = (now - timedelta(hours=1)).isoformat()

    due = AffiliateContract(meta={"dbRecovered": False, "dbRecoveryScheduledAt": scheduled})
    capped = AffiliateContract(meta={
        "dbRecovered": False, "dbRecoveryScheduledAt": scheduled,
        "recoveryRetryCount": recovery_service.MAX_AUTO_RETRIES,
    })
    not_yet = AffiliateContract(meta={
        "dbRecovered": False, "dbRecoveryScheduledAt": (now + timedelta(hours=1)).isoformat(),
    })

    assert recovery_service.is_recovery_due(due, now) is True
    assert recovery_service.is_recovery_due(capped, now) is False
    assert recovery_service.is_recovery_due(not_yet, now) is False


async def test_due_recoveries_task_skips_capped_contracts(
    db_session, mocker, manager_profile, agent_profile
):
    @contextmanager
    def test_db_context():
        yield db_session

    mocker.patch("app.services.recovery.get_db_context", test_db_context)
    scheduled = (utcnow() - timedelta(hours=1)).isoformat()
    lead = make_lead(db_session, manager_id=manager_profile.id, agent_id=agent_profile.id)
    due = make_contract(
        db_session, agent_profile, status="terminated",
        meta={"dbRecovered": False, "dbRecoveryScheduledAt": scheduled},
    )
    capped = make_contract(
        db_session, manager_profile, phone="010-9999-0002", status="terminated",
        meta={
            "dbRecovered": False, "dbRecoveryScheduledAt": scheduled,
            "recoveryRetryCount": recovery_service.MAX_AUTO_RETRIES,
        },
    )

    await recovery_service.process_due_recoveries_task()

    db_session.refresh(due)
    db_session.refresh(capped)
    db_session.refresh(lead)
    assert due.meta["dbRecovered"] is True
    assert capped.meta["dbRecovered"] is False
    # Лид продавца ушел начальнику, а не в головной офис
    assert (lead.manager_id, lead.agent_id) == (manager_profile.id, None)
