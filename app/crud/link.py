# app/crud/link.py
from datetime import datetime

from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Session

from app.models.link import AffiliateLink, ShortLink


def get_link(db: Session, link_id: int) -> AffiliateLink | None:
    return db.query(AffiliateLink).filter(AffiliateLink.id == link_id).first()

def get_link_by_code(db: Session, code: str) -> AffiliateLink | None:
    return db.query(AffiliateLink).filter(AffiliateLink.code == code).first()

def get_links(db: Session, status: str | None = None) -> list[AffiliateLink]:
    query = db.query(AffiliateLink)
    if status and status != "all":
        query = query.filter(AffiliateLink.status == status)
    return query.order_by(AffiliateLink.created_at.desc(), AffiliateLink.id.desc()).all()

def get_partner_links(db: Session, profile_id: int, user_id: int, status: str | None = None) -> list[AffiliateLink]:
    """
    Ссылки партнера плюс общие ссылки головного офиса (без владельца, но с товаром).
    """
    query = db.query(AffiliateLink).filter(or_(
        AffiliateLink.manager_id == profile_id,
        AffiliateLink.agent_id == profile_id,
        AffiliateLink.issued_by_id == user_id,
        and_(
            AffiliateLink.manager_id.is_(None),
            AffiliateLink.agent_id.is_(None),
            AffiliateLink.product_code.isnot(None),
        ),
    ))
    if status and status != "all":
        query = query.filter(AffiliateLink.status == status)
    return query.order_by(AffiliateLink.created_at.desc(), AffiliateLink.id.desc()).all()

def count_links_for_profile(db: Session, profile_id: int, user_id: int) -> int:
    return db.query(func.count(AffiliateLink.id)).filter(or_(
        AffiliateLink.manager_id == profile_id,
        AffiliateLink.agent_id == profile_id,
        AffiliateLink.issued_by_id == user_id,
    )).scalar()

def count_links_by_status(db: Session) -> list[dict]:
    rows = db.query(AffiliateLink.status, func.count(AffiliateLink.id)).group_by(AffiliateLink.status).all()
    return [{"status": status, "count": count} for status, count in rows]

# --- Короткие ссылки ---

def get_short_link_by_code(db: Session, code: str) -> ShortLink | None:
    return db.query(ShortLink).filter(ShortLink.code == code).first()

def get_short_links(db: Session, limit: int = 100) -> list[ShortLink]:
    return db.query(ShortLink).order_by(ShortLink.id.desc()).limit(limit).all()

def find_short_link(db: Session, url: str, contract_type: str | None, now: datetime) -> ShortLink | None:
    """Живая ссылка на тот же адрес; просроченные повторно не выдаются."""
    query = db.query(ShortLink).filter(
        ShortLink.url == url,
        or_(ShortLink.expires_at.is_(None), ShortLink.expires_at > now),
    )
    if contract_type is None:
        query = query.filter(ShortLink.contract_type.is_(None))
    else:
        query = query.filter(ShortLink.contract_type == contract_type)
    return query.first()
