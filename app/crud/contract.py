# app/crud/contract.py
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.models.contract import AffiliateContract
from app.utils.phone import phone_variants

OPEN_CONTRACT_STATUSES = ("submitted", "in_review", "approved")


def get_contract(db: Session, contract_id: int) -> AffiliateContract | None:
    return db.query(AffiliateContract).filter(AffiliateContract.id == contract_id).first()

def get_contract_for_update(db: Session, contract_id: int) -> AffiliateContract | None:
    """Блокирует строку договора до конца транзакции (на SQLite игнорируется)."""
    return db.query(AffiliateContract).filter(
        AffiliateContract.id == contract_id
    ).with_for_update().first()

def find_open_contract_by_phone(db: Session, phone: str) -> AffiliateContract | None:
    return db.query(AffiliateContract).filter(
        AffiliateContract.phone.in_(phone_variants(phone)),
        AffiliateContract.status.in_(OPEN_CONTRACT_STATUSES)
    ).first()

def get_latest_contract_for_user(db: Session, user_id: int) -> AffiliateContract | None:
    return db.query(AffiliateContract).filter(
        AffiliateContract.user_id == user_id
    ).order_by(AffiliateContract.id.desc()).first()

def _apply_filters(query, status: str | None, search: str | None):
    if status:
        query = query.filter(AffiliateContract.status == status)
    if search:
        like = f"%{search}%"
        query = query.filter(or_(
            AffiliateContract.name.ilike(like),
            AffiliateContract.phone.ilike(like),
            AffiliateContract.email.ilike(like),
        ))
    return query

def get_contracts(
    db: Session, skip: int = 0, limit: int = 20, status: str | None = None, search: str | None = None
) -> list[AffiliateContract]:
    query = _apply_filters(db.query(AffiliateContract), status, search)
    return query.order_by(AffiliateContract.id.desc()).offset(skip).limit(limit).all()

def count_contracts(db: Session, status: str | None = None, search: str | None = None) -> int:
    return _apply_filters(db.query(func.count(AffiliateContract.id)), status, search).scalar()

def count_contracts_by_status(db: Session) -> dict[str, int]:
    rows = db.query(AffiliateContract.status, func.count(AffiliateContract.id)).group_by(
        AffiliateContract.status
    ).all()
    return {status: count for status, count in rows}

def get_contracts_with_pending_recovery(db: Session) -> list[AffiliateContract]:
    """Расторгнутые договоры; фильтр по metadata делается в Python (JSON-поле)."""
    return db.query(AffiliateContract).filter(AffiliateContract.status == "terminated").all()

def get_active_contracts(db: Session) -> list[AffiliateContract]:
    return db.query(AffiliateContract).filter(
        AffiliateContract.status.in_(("approved", "completed"))
    ).all()
