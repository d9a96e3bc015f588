# app/crud/marketing.py
from datetime import datetime

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.models.marketing import MarketingCustomer


def get_customer(db: Session, customer_id: int) -> MarketingCustomer | None:
    return db.query(MarketingCustomer).filter(MarketingCustomer.id == customer_id).first()

def get_customer_by_phone(db: Session, phone: str) -> MarketingCustomer | None:
    return db.query(MarketingCustomer).filter(MarketingCustomer.phone == phone).first()

def _apply_filters(query, status, search, created_from, created_to):
    if status and status != "ALL":
        query = query.filter(MarketingCustomer.status == status)
    if search:
        like = f"%{search}%"
        query = query.filter(or_(
            MarketingCustomer.name.ilike(like),
            MarketingCustomer.email.ilike(like),
            MarketingCustomer.phone.ilike(like),
        ))
    if created_from:
        query = query.filter(MarketingCustomer.created_at >= created_from)
    if created_to:
        query = query.filter(MarketingCustomer.created_at <= created_to)
    return query

def get_customers(
    db: Session, skip: int = 0, limit: int = 50, status: str | None = None, search: str | None = None,
    created_from: datetime | None = None, created_to: datetime | None = None,
) -> list[MarketingCustomer]:
    query = _apply_filters(db.query(MarketingCustomer), status, search, created_from, created_to)
    return query.order_by(MarketingCustomer.created_at.desc(), MarketingCustomer.id.desc()).offset(skip).limit(limit).all()

def count_customers(
    db: Session, status: str | None = None, search: str | None = None,
    created_from: datetime | None = None, created_to: datetime | None = None,
) -> int:
    query = _apply_filters(db.query(func.count(MarketingCustomer.id)), status, search, created_from, created_to)
    return query.scalar()
