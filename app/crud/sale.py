# app/crud/sale.py
from datetime import datetime

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.models.sale import AffiliateSale, CommissionAdjustment, CommissionLedger


def get_sale(db: Session, sale_id: int) -> AffiliateSale | None:
    return db.query(AffiliateSale).filter(AffiliateSale.id == sale_id).first()

def get_sale_for_update(db: Session, sale_id: int) -> AffiliateSale | None:
    return db.query(AffiliateSale).filter(AffiliateSale.id == sale_id).with_for_update().first()

def _apply_sale_filters(query, status, manager_id, agent_id):
    if status:
        query = query.filter(AffiliateSale.status == status)
    if manager_id:
        query = query.filter(AffiliateSale.manager_id == manager_id)
    if agent_id:
        query = query.filter(AffiliateSale.agent_id == agent_id)
    return query

def get_sales(
    db: Session, skip: int = 0, limit: int = 20,
    status: str | None = None, manager_id: int | None = None, agent_id: int | None = None
) -> list[AffiliateSale]:
    query = _apply_sale_filters(db.query(AffiliateSale), status, manager_id, agent_id)
    return query.order_by(AffiliateSale.created_at.desc(), AffiliateSale.id.desc()).offset(skip).limit(limit).all()

def count_sales(
    db: Session, status: str | None = None, manager_id: int | None = None, agent_id: int | None = None
) -> int:
    return _apply_sale_filters(db.query(func.count(AffiliateSale.id)), status, manager_id, agent_id).scalar()

def get_partner_sales(db: Session, profile_id: int, status: str | None = None) -> list[AffiliateSale]:
    query = db.query(AffiliateSale).filter(
        or_(AffiliateSale.manager_id == profile_id, AffiliateSale.agent_id == profile_id)
    )
    if status:
        query = query.filter(AffiliateSale.status == status)
    return query.order_by(AffiliateSale.created_at.desc(), AffiliateSale.id.desc()).all()

def count_sales_by_status(db: Session) -> dict[str, int]:
    rows = db.query(AffiliateSale.status, func.count(AffiliateSale.id)).group_by(AffiliateSale.status).all()
    return {status: count for status, count in rows}

def sum_confirmed_amount(db: Session, date_from: datetime, date_to: datetime) -> int:
    total = db.query(func.coalesce(func.sum(AffiliateSale.sale_amount), 0)).filter(
        AffiliateSale.status == "CONFIRMED",
        AffiliateSale.confirmed_at >= date_from,
        AffiliateSale.confirmed_at < date_to,
    ).scalar()
    return int(total or 0)

def count_sales_for_profile(db: Session, profile_id: int) -> int:
    return db.query(func.count(AffiliateSale.id)).filter(
        or_(AffiliateSale.manager_id == profile_id, AffiliateSale.agent_id == profile_id)
    ).scalar()

def get_recent_sales_for_profile(
    db: Session, profile_id: int, date_from: datetime, date_to: datetime, limit: int = 5
) -> list[AffiliateSale]:
    return db.query(AffiliateSale).filter(
        or_(AffiliateSale.manager_id == profile_id, AffiliateSale.agent_id == profile_id),
        AffiliateSale.sale_date >= date_from,
        AffiliateSale.sale_date < date_to,
    ).order_by(AffiliateSale.created_at.desc(), AffiliateSale.id.desc()).limit(limit).all()

def get_sales_since_for_profile(db: Session, profile_id: int, date_from: datetime) -> list[AffiliateSale]:
    return db.query(AffiliateSale).filter(
        or_(AffiliateSale.manager_id == profile_id, AffiliateSale.agent_id == profile_id),
        AffiliateSale.sale_date >= date_from,
    ).all()

def get_confirmed_sales_in_range(db: Session, date_from: datetime, date_to: datetime) -> list[AffiliateSale]:
    return db.query(AffiliateSale).filter(
        AffiliateSale.status == "CONFIRMED",
        AffiliateSale.confirmed_at >= date_from,
        AffiliateSale.confirmed_at < date_to,
    ).order_by(AffiliateSale.confirmed_at, AffiliateSale.id).all()

def link_ids_with_sales(db: Session) -> set[int]:
    rows = db.query(AffiliateSale.link_id).filter(AffiliateSale.link_id.isnot(None)).distinct().all()
    return {link_id for link_id, in rows}

# --- Журнал начислений ---

def get_ledger(db: Session, ledger_id: int) -> CommissionLedger | None:
    return db.query(CommissionLedger).filter(CommissionLedger.id == ledger_id).first()

def get_ledger_entry(db: Session, sale_id: int, entry_type: str) -> CommissionLedger | None:
    return db.query(CommissionLedger).filter(
        CommissionLedger.sale_id == sale_id,
        CommissionLedger.entry_type == entry_type
    ).first()

def get_ledgers(
    db: Session, skip: int = 0, limit: int = 20,
    profile_id: int | None = None, is_settled: bool | None = None
) -> list[CommissionLedger]:
    query = db.query(CommissionLedger)
    if profile_id:
        query = query.filter(CommissionLedger.profile_id == profile_id)
    if is_settled is not None:
        query = query.filter(CommissionLedger.is_settled == is_settled)
    return query.order_by(CommissionLedger.id.desc()).offset(skip).limit(limit).all()

def count_ledgers(db: Session, profile_id: int | None = None, is_settled: bool | None = None) -> int:
    query = db.query(func.count(CommissionLedger.id))
    if profile_id:
        query = query.filter(CommissionLedger.profile_id == profile_id)
    if is_settled is not None:
        query = query.filter(CommissionLedger.is_settled == is_settled)
    return query.scalar()

def get_ledgers_by_ids(db: Session, ids: list[int]) -> list[CommissionLedger]:
    return db.query(CommissionLedger).filter(CommissionLedger.id.in_(ids)).all()

# --- Корректировки начислений ---

def get_adjustment(db: Session, adjustment_id: int) -> CommissionAdjustment | None:
    return db.query(CommissionAdjustment).filter(CommissionAdjustment.id == adjustment_id).first()

def get_adjustments(db: Session, status: str | None = None, limit: int = 50) -> list[CommissionAdjustment]:
    query = db.query(CommissionAdjustment)
    if status:
        query = query.filter(CommissionAdjustment.status == status)
    return query.order_by(CommissionAdjustment.requested_at.desc(), CommissionAdjustment.id.desc()).limit(limit).all()

def count_adjustments_by_status(db: Session, status: str) -> int:
    return db.query(func.count(CommissionAdjustment.id)).filter(CommissionAdjustment.status == status).scalar()
