# tests/test_contracts.py

import pytest
from httpx import AsyncClient

from app.models.affiliate import AffiliateRelation
from app.models.contract import AffiliateContract
from app.models.user import User
from app.services import contract as contract_service


def contract_form(**overrides) -> dict:
    form = {
        "name": "홍길동",
        "phone": "010-1234-5678",
        "email": "hong@example.com",
        "residentIdFront": "900101",
        "residentIdBack": "1234567",
        "address": "서울시 강남구",
        "bankName": "국민은행",
        "bankAccount": "123-456-789",
        "bankAccountHolder": "홍길동",
        "consentPrivacy": True,
        "consentCompliance": True,
        "consentImage": True,
        "consentCommission": True,
        "consentTax": True,
        "signatureUrl": "https://cdn.example.com/signatures/1.png",
    }
    form.update(overrides)
    return form


async def test_submit_contract_masks_resident_id(client: AsyncClient, db_session, mock_bot):
    response = await client.post("/api/public/affiliate/contracts", json=contract_form())

    assert response.status_code == 201
    data = response.json()
    assert data["ok"] is True
    assert data["contract"]["status"] == "submitted"
    assert data["contract"]["residentIdMasked"] == "900101-1******"
    assert data["contract"]["metadata"]["signatures"]["main"]["url"].endswith("1.png")
    # Полный номер нигде не хранится
    contract = db_session.query(AffiliateContract).one()
    assert "1234567" not in str(contract.meta)
    mock_bot.send_message.assert_awaited_once()


@pytest.mark.parametrize("overrides, message", [
    ({"name": "  "}, "이름을 입력해주세요."),
    ({"phone": "010-12"}, "연락처를 정확히 입력해주세요."),
    ({"email": "not-an-email"}, "올바른 이메일 주소를 입력해주세요."),
    ({"residentIdFront": "9001"}, "주민등록번호 앞 6자리를 입력해주세요."),
    ({"residentIdBack": "12345"}, "주민등록번호 뒤 7자리를 입력해주세요."),
    ({"bankAccount": ""}, "정산 계좌 정보를 모두 입력해주세요."),
    ({"consentTax": False}, "필수 동의 항목에 모두 동의해주세요."),
    ({"signatureUrl": None}, "서명이 필요합니다."),
])
async def test_submit_contract_validation(client: AsyncClient, db_session, overrides, message):
    response = await client.post("/api/public/affiliate/contracts", json=contract_form(**overrides))

    assert response.status_code == 400
    assert response.json() == {"ok": False, "message": message}
    assert db_session.query(AffiliateContract).count() == 0


async def test_submit_duplicate_open_contract_returns_409(client: AsyncClient, db_session):
    first = await client.post("/api/public/affiliate/contracts", json=contract_form())
    assert first.status_code == 201

    # Тот же номер в другой записи
    second = await client.post("/api/public/affiliate/contracts", json=contract_form(phone="01012345678"))

    assert second.status_code == 409


async def test_submit_with_unknown_invite_code_returns_400(client: AsyncClient, db_session):
    response = await client.post(
        "/api/public/affiliate/contracts", json=contract_form(inviteCode="NOPE-CODE")
    )

    assert response.status_code == 400
    assert response.json()["message"] == "유효하지 않은 초대 코드입니다."


async def test_approve_creates_branch_manager(client: AsyncClient, db_session, admin_auth_headers):
    created = await client.post("/api/public/affiliate/contracts", json=contract_form())
    contract_id = created.json()["contract"]["id"]

    response = await client.post(
        f"/api/admin/affiliate/contracts/{contract_id}/approve", headers=admin_auth_headers
    )

    assert response.status_code == 200
    data = response.json()
    assert data["partnerId"] == "boss1"
    assert data["profile"]["type"] == "BRANCH_MANAGER"
    assert data["profile"]["status"] == "ACTIVE"
    assert data["contract"]["status"] == "approved"
    assert data["contract"]["metadata"]["renewalDate"]

    user = db_session.query(User).filter(User.mall_user_id == "boss1").one()
    assert user.phone == "010-1234-5678"
    assert user.password_hash


async def test_approve_twice_returns_400(client: AsyncClient, db_session, admin_auth_headers):
    created = await client.post("/api/public/affiliate/contracts", json=contract_form())
    contract_id = created.json()["contract"]["id"]
    await client.post(f"/api/admin/affiliate/contracts/{contract_id}/approve", headers=admin_auth_headers)

    response = await client.post(
        f"/api/admin/affiliate/contracts/{contract_id}/approve", headers=admin_auth_headers
    )

    assert response.status_code == 400
    assert response.json()["message"] == "이미 승인된 계약서입니다."


async def test_invited_agent_is_attached_to_manager(
    client: AsyncClient, db_session, admin_auth_headers, manager_profile
):
    created = await client.post(
        "/api/public/affiliate/contracts",
        json=contract_form(phone="010-5555-6666", inviteCode=manager_profile.affiliate_code),
    )
    contract_id = created.json()["contract"]["id"]

    response = await client.post(
        f"/api/admin/affiliate/contracts/{contract_id}/approve", headers=admin_auth_headers
    )

    assert response.status_code == 200
    data = response.json()
    # user1 еще свободен: фикстура менеджера заняла только boss1
    assert data["partnerId"] == "user1"
    assert data["profile"]["type"] == "SALES_AGENT"
    relation = db_session.query(AffiliateRelation).filter(
        AffiliateRelation.agent_id == data["profile"]["id"]
    ).one()
    assert relation.manager_id == manager_profile.id
    assert relation.status == "ACTIVE"


async def test_reject_contract(client: AsyncClient, db_session, admin_auth_headers):
    created = await client.post("/api/public/affiliate/contracts", json=contract_form())
    contract_id = created.json()["contract"]["id"]

    response = await client.post(
        f"/api/admin/affiliate/contracts/{contract_id}/reject",
        json={"reason": "서류 미비"},
        headers=admin_auth_headers,
    )

    assert response.status_code == 200
    assert response.json()["contract"]["status"] == "rejected"
    assert response.json()["contract"]["metadata"]["rejectionReason"] == "서류 미비"


def test_partner_id_takes_lowest_free_number(db_session):
    for login in ("boss1", "boss2", "boss4-old", "bossy"):
        db_session.add(User(name=login, mall_user_id=login))
    db_session.commit()

    assert contract_service.generate_partner_id(db_session, "BRANCH_MANAGER") == "boss3"
    assert contract_service.generate_partner_id(db_session, "SALES_AGENT") == "user1"


@pytest.mark.parametrize("contract_type, invited, expected", [
    ("BRANCH_MANAGER", True, "BRANCH_MANAGER"),
    ("CRUISE_STAFF", False, "SALES_AGENT"),
    (None, False, "BRANCH_MANAGER"),
    (None, True, "SALES_AGENT"),
])
def test_resolve_partner_type(contract_type, invited, expected):
    contract = AffiliateContract(contract_type=contract_type, invited_by_profile_id=1 if invited else None)

    assert contract_service.resolve_partner_type(contract) == expected


@pytest.mark.parametrize("existing_login, contract_type, expected", [
    # Логин продавца не подходит начальнику филиала: выдается новый
    ("user7", "BRANCH_MANAGER", "boss1"),
    ("boss7", "SALES_AGENT", "user1"),
    ("boss7", "BRANCH_MANAGER", "boss7"),
])
async def test_approve_existing_user_login_follows_partner_type(
    client: AsyncClient, db_session, admin_auth_headers, existing_login, contract_type, expected
):
    db_session.add(User(name="홍길동", phone="010-1234-5678", mall_user_id=existing_login))
    db_session.commit()
    created = await client.post(
        "/api/public/affiliate/contracts", json=contract_form(contractType=contract_type)
    )

    response = await client.post(
        f"/api/admin/affiliate/contracts/{created.json()['contract']['id']}/approve", headers=admin_auth_headers
    )

    assert response.status_code == 200
    data = response.json()
    assert data["partnerId"] == expected
    assert data["profile"]["landingSlug"] == expected
    assert db_session.query(User).filter(User.phone == "010-1234-5678").one().mall_user_id == expected


# --- Ручной ввод договора ---

async def test_manual_contract_uses_submission_rules(client: AsyncClient, db_session, admin_auth_headers, mock_bot):
    response = await client.post(
        "/api/admin/affiliate/contracts/manual",
        json=contract_form(status="in_review", notes="종이 계약서"),
        headers=admin_auth_headers,
    )

    assert response.status_code == 201
    contract = response.json()["contract"]
    assert contract["status"] == "in_review"
    assert contract["residentIdMasked"] == "900101-1******"
    assert contract["metadata"]["manualEntry"] is True
    assert contract["metadata"]["notes"] == "종이 계약서"
    mock_bot.send_message.assert_not_awaited()


async def test_manual_subscription_contract_gets_one_month_period(
    client: AsyncClient, db_session, admin_auth_headers
):
    response = await client.post(
        "/api/admin/affiliate/contracts/manual",
        json=contract_form(contractType="SUBSCRIPTION_AGENT", contractStartDate="2026-01-31"),
        headers=admin_auth_headers,
    )

    meta = response.json()["contract"]["metadata"]
    assert meta["contractEndDate"] == "2026-02-28"
    assert meta["subscriptionPlan"] == "monthly"
    assert meta["nextBillingDate"] == "2026-02-28"


async def test_manual_contract_validation_and_duplicates(client: AsyncClient, db_session, admin_auth_headers):
    invalid = await client.post(
        "/api/admin/affiliate/contracts/manual", json=contract_form(address=""), headers=admin_auth_headers
    )
    await client.post("/api/public/affiliate/contracts", json=contract_form())
    duplicate = await client.post(
        "/api/admin/affiliate/contracts/manual", json=contract_form(), headers=admin_auth_headers
    )

    assert invalid.status_code == 400
    assert invalid.json()["message"] == "주소를 입력해주세요."
    assert duplicate.status_code == 409
