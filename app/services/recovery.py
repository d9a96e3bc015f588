# app/services/recovery.py

import logging
from datetime import datetime, timedelta

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.bot.services import notification as bot_notification_service
from app.crud import affiliate as crud_affiliate, audit as crud_audit, contract as crud_contract, lead as crud_lead
from app.dependencies import get_db_context
from app.models.affiliate import AffiliateProfile
from app.models.contract import AffiliateContract
from app.utils.dates import as_utc, utcnow

logger = logging.getLogger(__name__)

# Продавец теряет лиды не сразу, а через сутки после расторжения
SALES_AGENT_RECOVERY_DELAY = timedelta(days=1)
# После стольких неудач планировщик перестает пробовать, остается ручной повтор
MAX_AUTO_RETRIES = 3


def _merge_meta(contract: AffiliateContract, **values) -> dict:
    # JSON-колонку надо переприсваивать целиком, иначе ORM не увидит изменения
    contract.meta = {**(contract.meta or {}), **values}
    return contract.meta


def recover_branch_manager_db(db: Session, profile: AffiliateProfile, now: datetime) -> dict:
    """
    Лиды начальника филиала и всех его продавцов возвращаются в головной офис.
    Связи с продавцами разрываются.
    """
    agent_ids = crud_affiliate.get_active_agent_ids(db, profile.id)
    leads = crud_lead.get_leads_by_owner_ids(db, profile.id, agent_ids)
    for lead in leads:
        lead.meta = {
            **(lead.meta or {}),
            "recoveredFrom": {
                "managerId": lead.manager_id,
                "agentId": lead.agent_id,
                "reason": "BRANCH_MANAGER_TERMINATION",
                "recoveredAt": now.isoformat(),
            },
        }
        lead.manager_id = None
        lead.agent_id = None
    relations = crud_affiliate.deactivate_relations(db, profile.id)
    db.flush()
    logger.info(f"Recovered {len(leads)} leads of branch manager profile {profile.id} to HQ.")
    return {"leads": len(leads), "relations": relations}


def recover_sales_agent_db(db: Session, profile: AffiliateProfile, now: datetime) -> dict:
    """Лиды продавца остаются у его начальника филиала (или уходят в головной офис)."""
    manager_id = crud_affiliate.get_active_manager_id(db, profile.id)
    leads = crud_lead.get_leads_by_agent(db, profile.id)
    for lead in leads:
        lead.meta = {
            **(lead.meta or {}),
            "recoveredFrom": {
                "managerId": lead.manager_id,
                "agentId": lead.agent_id,
                "reason": "SALES_AGENT_TERMINATION",
                "recoveredAt": now.isoformat(),
            },
        }
        lead.agent_id = None
        lead.manager_id = manager_id
    relations = crud_affiliate.deactivate_relations(db, profile.id)
    db.flush()
    logger.info(f"Recovered {len(leads)} leads of sales agent profile {profile.id} to manager {manager_id}.")
    return {"leads": len(leads), "relations": relations}


def run_recovery(db: Session, profile: AffiliateProfile | None, now: datetime) -> dict:
    if profile is not None and profile.type == "BRANCH_MANAGER":
        return recover_branch_manager_db(db, profile, now)
    if profile is not None and profile.type == "SALES_AGENT":
        return recover_sales_agent_db(db, profile, now)
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="지원하지 않는 계약 타입입니다.")


def get_contract_profile(db: Session, contract: AffiliateContract) -> AffiliateProfile | None:
    profile_id = (contract.meta or {}).get("affiliateProfileId")
    if profile_id:
        profile = crud_affiliate.get_profile(db, profile_id)
        if profile is not None:
            return profile
    if contract.user_id:
        return crud_affiliate.get_profile_by_user_id(db, contract.user_id)
    return None


def mark_recovered(contract: AffiliateContract, now: datetime, stats: dict) -> None:
    _merge_meta(
        contract,
        dbRecovered=True,
        dbRecoveredAt=now.isoformat(),
        recoveryStats=stats,
        recoveryRetryCount=0,
    )


def record_failure(contract: AffiliateContract, now: datetime, error: str, manual: bool = False) -> int:
    meta = contract.meta or {}
    retry_count = int(meta.get("recoveryRetryCount") or 0) + 1
    errors = list(meta.get("recoveryErrors") or [])
    errors.append({
        "attempt": retry_count,
        "error": error,
        "timestamp": now.isoformat(),
        "manualRetry": manual,
    })
    _merge_meta(contract, recoveryRetryCount=retry_count, lastRetryAt=now.isoformat(), recoveryErrors=errors)
    return retry_count


async def attempt_recovery(db: Session, contract: AffiliateContract, manual: bool = False) -> dict:
    """
    Выполняет возврат лидов по уже закоммиченному расторжению.
    При ошибке БД откатывает только изменения возврата, пишет неудачу
    в metadata договора, уведомляет админов и пробрасывает исключение.
    """
    now = utcnow()
    profile = get_contract_profile(db, contract)
    try:
        stats = run_recovery(db, profile, now)
        mark_recovered(contract, now, stats)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        retry_count = record_failure(contract, now, str(e), manual=manual)
        db.commit()
        logger.error(f"DB recovery failed for contract {contract.id} (attempt {retry_count}).", exc_info=True)
        await bot_notification_service.send_recovery_failed_to_admin(contract.id, str(e), retry_count)
        raise
    return stats


async def retry_recovery(db: Session, contract_id: int, admin_id: int) -> dict:
    contract = crud_contract.get_contract(db, contract_id)
    if contract is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="계약서를 찾을 수 없습니다.")
    if contract.status != "terminated":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="해지된 계약서만 재시도할 수 있습니다.")
    if (contract.meta or {}).get("dbRecovered"):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="이미 DB가 회수된 계약서입니다.")

    try:
        stats = await attempt_recovery(db, contract, manual=True)
    except SQLAlchemyError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"DB 회수 재시도 실패: {e}"
        )

    crud_audit.log_action(
        db, admin_id, "affiliate.contract.recovery_retried",
        target_type="contract", target_id=contract.id, details=stats,
    )
    db.commit()
    return stats


def is_recovery_due(contract: AffiliateContract, now: datetime) -> bool:
    meta = contract.meta or {}
    if meta.get("dbRecovered") is not False:
        return False
    if int(meta.get("recoveryRetryCount") or 0) >= MAX_AUTO_RETRIES:
        return False
    scheduled = meta.get("dbRecoveryScheduledAt")
    if not scheduled:
        return False
    return as_utc(datetime.fromisoformat(scheduled)) <= now


async def process_due_recoveries_task():
    """
    Фоновая задача: возвращает лиды по расторжениям, у которых наступило
    dbRecoveryScheduledAt (продавцы: через сутки после расторжения).
    """
    logger.info("--- Starting scheduled task: process due DB recoveries ---")
    processed, failed = 0, 0
    with get_db_context() as db:
        now = utcnow()
        for contract in crud_contract.get_contracts_with_pending_recovery(db):
            if not is_recovery_due(contract, now):
                continue
            try:
                await attempt_recovery(db, contract)
                processed += 1
            except SQLAlchemyError:
                failed += 1
            except HTTPException as e:
                # Профиль не найден или неизвестный тип: повторять бессмысленно
                logger.warning(f"Skipping recovery for contract {contract.id}: {e.detail}")
                _merge_meta(contract, recoveryRetryCount=MAX_AUTO_RETRIES, recoverySkipped=e.detail)
                db.commit()
    logger.info(f"--- Finished task: process due DB recoveries. Processed: {processed}, failed: {failed} ---")
