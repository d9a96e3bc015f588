# app/services/contract.py

import asyncio
import logging
import re
from datetime import date, datetime, timedelta

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.bot.services import notification as bot_notification_service
from app.core.config import settings
from app.core.security import get_password_hash
from app.dependencies import get_db_context
from app.crud import (
    affiliate as crud_affiliate,
    audit as crud_audit,
    contract as crud_contract,
    notification as crud_notification,
    user as crud_user,
)
from app.models.affiliate import AffiliateProfile
from app.models.contract import AffiliateContract
from app.models.user import User
from app.schemas.affiliate import AffiliateProfileRead
from app.schemas.common import total_pages
from app.schemas.contract import (
    ContractApproveResponse,
    ContractManualCreate,
    ContractRead,
    ContractSubmit,
    PaginatedContracts,
    PaymentLinkResponse,
)
from app.services import payment as payment_service
from app.services import recovery as recovery_service
from app.services import shortlink as shortlink_service
from app.services.email import email_service
from app.utils.codes import affiliate_code
from app.utils.dates import add_months, add_years, utcnow
from app.utils.phone import normalize_phone

logger = logging.getLogger(__name__)

# Типы договоров, которые оформляются как продавец
AGENT_CONTRACT_TYPES = ("SALES_AGENT", "CRUISE_STAFF", "PRIMARKETER", "SUBSCRIPTION_AGENT")

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MAX_PARTNER_NUMBER = 99999
RENEWAL_WINDOW_DAYS = 30


def _bad_request(message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


def _get_contract_or_404(db: Session, contract_id: int, for_update: bool = False) -> AffiliateContract:
    if for_update:
        contract = crud_contract.get_contract_for_update(db, contract_id)
    else:
        contract = crud_contract.get_contract(db, contract_id)
    if contract is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="계약서를 찾을 수 없습니다.")
    return contract


def _merge_meta(contract: AffiliateContract, **values) -> dict:
    contract.meta = {**(contract.meta or {}), **values}
    return contract.meta


def mask_resident_id(front: str, back: str) -> str:
    """900101 + 1234567 -> 900101-1******. Полный номер нигде не сохраняется."""
    return f"{front}-{back[0]}******"


def validate_submission(data: ContractSubmit) -> None:
    """Проверяет анкету по полям; первая ошибка -> 400 с понятным сообщением."""
    if not (data.name or "").strip():
        raise _bad_request("이름을 입력해주세요.")
    if len(re.sub(r"[^0-9]", "", data.phone or "")) < 9:
        raise _bad_request("연락처를 정확히 입력해주세요.")
    if not EMAIL_RE.match((data.email or "").strip()):
        raise _bad_request("올바른 이메일 주소를 입력해주세요.")
    if not re.fullmatch(r"\d{6}", data.resident_id_front or ""):
        raise _bad_request("주민등록번호 앞 6자리를 입력해주세요.")
    if not re.fullmatch(r"\d{7}", data.resident_id_back or ""):
        raise _bad_request("주민등록번호 뒤 7자리를 입력해주세요.")
    if not (data.address or "").strip():
        raise _bad_request("주소를 입력해주세요.")
    bank_fields = (data.bank_name, data.bank_account, data.bank_account_holder)
    if not all((field or "").strip() for field in bank_fields):
        raise _bad_request("정산 계좌 정보를 모두 입력해주세요.")
    consents = (
        data.consent_privacy, data.consent_compliance, data.consent_image,
        data.consent_commission, data.consent_tax,
    )
    if not all(consents):
        raise _bad_request("필수 동의 항목에 모두 동의해주세요.")
    if not (data.signature_url or "").strip():
        raise _bad_request("서명이 필요합니다.")


# --- Подача анкеты ---

def _build_contract(
    db: Session, data: ContractSubmit, user_id: int | None, now: datetime
) -> AffiliateContract:
    """Проверки анкеты, дубликат по телефону и код приглашения; договор еще не сохранен."""
    validate_submission(data)
    phone = normalize_phone(data.phone)

    if crud_contract.find_open_contract_by_phone(db, phone):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="이미 접수된 계약서가 있습니다.")

    inviter = None
    if data.invite_code:
        inviter = crud_affiliate.get_profile_by_code(db, data.invite_code.strip())
        if inviter is None or inviter.status != "ACTIVE":
            raise _bad_request("유효하지 않은 초대 코드입니다.")

    return AffiliateContract(
        user_id=user_id,
        invited_by_profile_id=inviter.id if inviter else None,
        name=data.name.strip(),
        phone=phone,
        email=data.email.strip(),
        address=data.address.strip(),
        resident_id_masked=mask_resident_id(data.resident_id_front, data.resident_id_back),
        bank_name=data.bank_name.strip(),
        bank_account=data.bank_account.strip(),
        bank_account_holder=data.bank_account_holder.strip(),
        consent_privacy=True,
        consent_compliance=True,
        consent_image=True,
        consent_commission=True,
        consent_tax=True,
        contract_type=data.contract_type,
        status="submitted",
        submitted_at=now,
        meta={"signatures": {"main": {"url": data.signature_url, "signedAt": now.isoformat()}}},
    )


async def submit_contract(db: Session, data: ContractSubmit, current_user: User | None = None) -> AffiliateContract:
    contract = _build_contract(db, data, current_user.id if current_user else None, utcnow())
    db.add(contract)
    db.commit()
    db.refresh(contract)
    logger.info(f"Contract {contract.id} submitted (type={contract.contract_type}, inviter={contract.invited_by_profile_id}).")

    await bot_notification_service.send_new_contract_to_admin(contract)
    return contract


def create_manual_contract(db: Session, data: ContractManualCreate, admin: User) -> AffiliateContract:
    """
    Договор, внесенный администратором с бумажного оригинала.
    Для SUBSCRIPTION_AGENT срок по умолчанию один месяц с сегодняшнего дня.
    """
    now = utcnow()
    contract = _build_contract(db, data, None, now)
    contract.status = data.status

    start_date, end_date = data.contract_start_date, data.contract_end_date
    if data.contract_type == "SUBSCRIPTION_AGENT":
        start_date = start_date or now.date()
        end_date = end_date or add_months(start_date, 1)

    extra = {"createdBy": "admin", "createdByUserId": admin.id, "manualEntry": True}
    if data.notes:
        extra["notes"] = data.notes
    if start_date:
        extra["contractStartDate"] = start_date.isoformat()
    if end_date:
        extra["contractEndDate"] = end_date.isoformat()
    if data.contract_type == "SUBSCRIPTION_AGENT":
        extra.update(subscriptionPlan="monthly", totalMonths=1, nextBillingDate=end_date.isoformat())
    _merge_meta(contract, **extra)

    db.add(contract)
    db.flush()
    crud_audit.log_action(
        db, admin.id, "affiliate.contract.created_manually",
        target_type="contract", target_id=contract.id, details={"contractType": contract.contract_type},
    )
    db.commit()
    db.refresh(contract)
    logger.info(f"Contract {contract.id} entered manually by admin {admin.id} (type={contract.contract_type}).")
    return contract


# --- Просмотр ---

def get_paginated_contracts(
    db: Session, page: int, size: int, status_filter: str | None = None, search: str | None = None
) -> PaginatedContracts:
    skip = (page - 1) * size
    total = crud_contract.count_contracts(db, status=status_filter, search=search)
    contracts = crud_contract.get_contracts(db, skip=skip, limit=size, status=status_filter, search=search)
    return PaginatedContracts(
        total_items=total,
        total_pages=total_pages(total, size),
        current_page=page,
        size=size,
        items=[ContractRead.model_validate(c) for c in contracts],
    )


def get_contract(db: Session, contract_id: int) -> AffiliateContract:
    return _get_contract_or_404(db, contract_id)


# --- Одобрение ---

def resolve_partner_type(contract: AffiliateContract) -> str:
    if contract.contract_type == "BRANCH_MANAGER":
        return "BRANCH_MANAGER"
    if contract.contract_type in AGENT_CONTRACT_TYPES:
        return "SALES_AGENT"
    if contract.contract_type is None and contract.invited_by_profile_id is None:
        return "BRANCH_MANAGER"
    return "SALES_AGENT"


def partner_prefix(partner_type: str) -> str:
    return "boss" if partner_type == "BRANCH_MANAGER" else "user"


def generate_partner_id(db: Session, partner_type: str) -> str:
    """
    boss{N} для начальников филиалов, user{N} для продавцов.
    Берется наименьший свободный номер в 1..99999.
    """
    prefix = partner_prefix(partner_type)
    used = crud_user.get_used_partner_numbers(db, prefix)
    for number in range(1, MAX_PARTNER_NUMBER + 1):
        if number not in used:
            return f"{prefix}{number}"
    title = "대리점장" if partner_type == "BRANCH_MANAGER" else "판매원"
    raise _bad_request(f"사용 가능한 {title} 아이디가 없습니다.")


def _resolve_user(db: Session, contract: AffiliateContract, partner_type: str) -> tuple[User, str]:
    """Находит или создает пользователя партнера и возвращает его вместе с логином."""
    user = crud_user.get_user_by_id(db, contract.user_id) if contract.user_id else None
    if user is None:
        user = crud_user.get_user_by_phone(db, contract.phone)

    if user is None:
        partner_id = generate_partner_id(db, partner_type)
        user = crud_user.create_user(
            db,
            name=contract.name,
            phone=contract.phone,
            email=contract.email,
            role="community",
            mall_user_id=partner_id,
            password_hash=get_password_hash(settings.PARTNER_INITIAL_PASSWORD),
        )
        logger.info(f"Created partner user {user.id} with login '{partner_id}'.")
        return user, partner_id

    # Логин сохраняется, только если он уже в формате нужного типа
    if user.mall_user_id and crud_user.partner_id_pattern(partner_prefix(partner_type)).match(user.mall_user_id):
        partner_id = user.mall_user_id
    else:
        partner_id = generate_partner_id(db, partner_type)
        user.mall_user_id = partner_id
    if not user.password_hash:
        user.password_hash = get_password_hash(settings.PARTNER_INITIAL_PASSWORD)
    if not user.email and contract.email:
        user.email = contract.email
    db.flush()
    return user, partner_id


def _upsert_profile(
    db: Session, user: User, contract: AffiliateContract, partner_type: str, partner_id: str
) -> AffiliateProfile:
    profile = crud_affiliate.get_profile_by_user_id(db, user.id)
    if profile is None:
        profile = AffiliateProfile(user_id=user.id, type=partner_type)
        db.add(profile)
    profile.type = partner_type
    if not profile.affiliate_code:
        profile.affiliate_code = affiliate_code(contract.name, user.id)
    profile.display_name = contract.name
    profile.status = "ACTIVE"
    profile.contract_status = "SIGNED"
    profile.withholding_rate = settings.WITHHOLDING_RATE
    profile.published = True
    profile.landing_slug = partner_id
    profile.contact_phone = contract.phone
    profile.contact_email = contract.email
    profile.bank_name = contract.bank_name
    profile.bank_account = contract.bank_account
    profile.bank_account_holder = contract.bank_account_holder
    db.flush()
    return profile


async def approve_contract(db: Session, contract_id: int, admin: User) -> ContractApproveResponse:
    """
    Одобряет договор одной транзакцией: пользователь, профиль, связь
    с пригласившим начальником, статус договора, аудит и уведомление.
    """
    contract = _get_contract_or_404(db, contract_id, for_update=True)
    if contract.status == "approved":
        raise _bad_request("이미 승인된 계약서입니다.")

    partner_type = resolve_partner_type(contract)
    user, partner_id = _resolve_user(db, contract, partner_type)
    profile = _upsert_profile(db, user, contract, partner_type, partner_id)

    inviter = contract.invited_by
    if inviter is not None and inviter.type == "BRANCH_MANAGER" and partner_type == "SALES_AGENT":
        crud_affiliate.upsert_active_relation(db, manager_id=inviter.id, agent_id=profile.id)

    now = utcnow()
    contract.user_id = user.id
    contract.status = "approved"
    contract.reviewer_id = admin.id
    contract.reviewed_at = now
    _merge_meta(
        contract,
        affiliateProfileId=profile.id,
        partnerId=partner_id,
        approvedAt=now.isoformat(),
        renewalDate=add_years(now.date(), 1).isoformat(),
    )

    crud_audit.log_action(
        db, admin.id, "affiliate.contract.approved",
        target_type="contract", target_id=contract.id,
        details={"profileId": profile.id, "partnerId": partner_id, "type": partner_type},
    )
    crud_notification.create_notification(
        db,
        user_id=user.id,
        type="contract_approved",
        title="계약이 승인되었습니다",
        message=f"파트너 아이디: {partner_id}",
        related_entity_id=str(contract.id),
        action_url="/partner/dashboard",
    )
    db.commit()
    db.refresh(contract)
    db.refresh(profile)
    logger.info(f"Contract {contract.id} approved by admin {admin.id}: profile {profile.id}, login '{partner_id}'.")

    await bot_notification_service.send_contract_approved_to_admin(contract, partner_id)
    return ContractApproveResponse(
        contract=ContractRead.model_validate(contract),
        profile=AffiliateProfileRead.model_validate(profile),
        partner_id=partner_id,
    )


def reject_contract(db: Session, contract_id: int, admin: User, reason: str | None) -> AffiliateContract:
    contract = _get_contract_or_404(db, contract_id)
    if contract.status not in ("submitted", "in_review"):
        raise _bad_request("심사 중인 계약서만 거절할 수 있습니다.")
    contract.status = "rejected"
    contract.reviewer_id = admin.id
    contract.reviewed_at = utcnow()
    _merge_meta(contract, rejectionReason=reason or "")
    crud_audit.log_action(
        db, admin.id, "affiliate.contract.rejected",
        target_type="contract", target_id=contract.id, details={"reason": reason},
    )
    db.commit()
    db.refresh(contract)
    logger.info(f"Contract {contract.id} rejected by admin {admin.id}.")
    return contract


# --- Завершение (отправка подписанного договора) ---

def _has_signature(contract: AffiliateContract) -> bool:
    signatures = (contract.meta or {}).get("signatures") or {}
    return any((signatures.get(kind) or {}).get("url") for kind in ("main", "education", "b2b"))


async def complete_contract(db: Session, contract_id: int, user: User) -> AffiliateContract:
    contract = _get_contract_or_404(db, contract_id)

    if user.role != "admin":
        profile = crud_affiliate.get_profile_by_user_id(db, user.id)
        if profile is None or profile.id != contract.invited_by_profile_id:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="계약서에 대한 권한이 없습니다.")

    if contract.status == "completed":
        raise _bad_request("이미 완료된 계약서입니다.")
    if not _has_signature(contract):
        raise _bad_request("서명이 완료되지 않은 계약서입니다.")
    if not contract.email and not (contract.user and contract.user.email):
        raise _bad_request("계약서에 이메일 주소가 없습니다. 이메일을 입력해주세요.")

    contract.status = "completed"
    _merge_meta(
        contract,
        completedBy=user.id,
        completedAt=utcnow().isoformat(),
        completedByAdmin=user.role == "admin",
    )
    db.commit()
    db.refresh(contract)
    logger.info(f"Contract {contract.id} completed by user {user.id}.")

    recipient = contract.email or contract.user.email
    # SMTP блокирующий, уводим в поток; неудача не отменяет завершение
    sent = await asyncio.to_thread(email_service.send_contract_completed_email, contract, recipient)
    if not sent:
        logger.warning(f"Contract {contract.id} completed, but the e-mail was not delivered.")
    return contract


# --- Расторжение и перезаключение ---

async def terminate_contract(db: Session, contract_id: int, admin_id: int | None, reason: str | None) -> dict:
    """
    Расторгает договор. Для начальника филиала лиды возвращаются сразу,
    для продавца возврат планируется через сутки. Неудачный возврат
    не отменяет расторжение: он фиксируется в metadata для повтора.
    """
    contract = _get_contract_or_404(db, contract_id)
    if contract.status == "terminated":
        raise _bad_request("이미 해지된 계약서입니다.")

    termination_reason = reason or "관리자에 의한 계약 해지"
    now = utcnow()
    profile = recovery_service.get_contract_profile(db, contract)
    profile_type = profile.type if profile else None

    if profile_type == "SALES_AGENT":
        scheduled_at = now + recovery_service.SALES_AGENT_RECOVERY_DELAY
    else:
        scheduled_at = now

    contract.status = "terminated"
    _merge_meta(
        contract,
        terminationReason=termination_reason,
        terminatedAt=now.isoformat(),
        terminatedBy=admin_id,
        terminatedByAdmin=admin_id is not None,
        dbRecovered=False,
        dbRecoveryScheduledAt=scheduled_at.isoformat(),
    )
    if profile is not None:
        profile.status = "TERMINATED"
        profile.contract_status = "TERMINATED"

    crud_audit.log_action(
        db, admin_id, "affiliate.contract.terminated",
        target_type="contract", target_id=contract.id,
        details={"contractType": profile_type, "reason": termination_reason, "terminatedAt": now.isoformat()},
    )
    db.commit()
    logger.info(f"Contract {contract.id} terminated (profile type {profile_type}).")

    if profile_type == "BRANCH_MANAGER":
        try:
            await recovery_service.attempt_recovery(db, contract)
            message = "계약이 해지되었습니다. DB가 즉시 본사로 회수되었습니다."
        except SQLAlchemyError:
            # Причина уже залогирована и записана в metadata, повторить можно вручную
            message = "계약이 해지되었습니다. DB 회수에 실패하여 재시도가 필요합니다."
    elif profile_type == "SALES_AGENT":
        message = "계약이 해지되었습니다. 1일 후 DB가 대리점장으로 회수됩니다."
    else:
        message = "계약이 해지되었습니다."

    db.refresh(contract)
    return {"contract": contract, "message": message}


async def handle_renewal(db: Session, contract_id: int, admin: User, action: str) -> dict:
    contract = _get_contract_or_404(db, contract_id)
    meta = contract.meta or {}
    if meta.get("renewalRequestStatus") != "PENDING":
        raise _bad_request("재계약 요청 대기 중인 계약서가 아닙니다.")

    if action == "reject":
        _merge_meta(contract, renewalRequestStatus="REJECTED", renewalDecidedAt=utcnow().isoformat())
        db.commit()
        return await terminate_contract(db, contract_id, admin.id, "재계약 거부")

    today = utcnow().date()
    current = date.fromisoformat(meta["renewalDate"]) if meta.get("renewalDate") else today
    new_date = add_years(max(current, today), 1)
    _merge_meta(
        contract,
        renewalDate=new_date.isoformat(),
        renewalRequestStatus="APPROVED",
        renewalDecidedAt=utcnow().isoformat(),
    )
    crud_audit.log_action(
        db, admin.id, "affiliate.contract.renewed",
        target_type="contract", target_id=contract.id, details={"renewalDate": new_date.isoformat()},
    )
    db.commit()
    db.refresh(contract)
    logger.info(f"Contract {contract.id} renewed until {new_date}.")
    return {"contract": contract, "message": f"재계약이 승인되었습니다. 다음 갱신일: {new_date.isoformat()}"}


def scan_contract_renewals(db: Session, today: date | None = None) -> int:
    """Помечает договоры, у которых дата продления наступает в ближайшие 30 дней."""
    today = today or utcnow().date()
    window_end = today + timedelta(days=RENEWAL_WINDOW_DAYS)
    flagged = 0
    for contract in crud_contract.get_active_contracts(db):
        meta = contract.meta or {}
        renewal_raw = meta.get("renewalDate")
        if not renewal_raw:
            continue
        renewal_date = date.fromisoformat(renewal_raw)
        if renewal_date > window_end:
            continue
        # Один запрос на каждую дату продления
        if meta.get("renewalRequestedFor") == renewal_raw:
            continue
        _merge_meta(
            contract,
            renewalRequestStatus="PENDING",
            renewalRequestedFor=renewal_raw,
            renewalRequestedAt=utcnow().isoformat(),
        )
        flagged += 1
    db.commit()
    return flagged


def scan_contract_renewals_task():
    """Фоновая задача планировщика."""
    logger.info("--- Starting scheduled task: scan contract renewals ---")
    with get_db_context() as db:
        flagged = scan_contract_renewals(db)
    logger.info(f"--- Finished task: scan contract renewals. Flagged: {flagged} ---")


# --- Ссылка на оплату договора ---

async def create_payment_link(db: Session, contract_id: int, admin: User) -> PaymentLinkResponse:
    contract = _get_contract_or_404(db, contract_id)
    payment = await payment_service.request_contract_payment(db, contract)
    short = shortlink_service.create_short_link(
        db, url=payment.pay_url, contract_type=contract.contract_type, created_by_id=admin.id
    )
    return PaymentLinkResponse(pay_url=payment.pay_url, short_url=short.short_url, amount=payment.amount)
