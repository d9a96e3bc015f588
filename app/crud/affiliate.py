# app/crud/affiliate.py
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.models.affiliate import AffiliateProfile, AffiliateRelation
from app.utils.dates import utcnow


def get_profile(db: Session, profile_id: int) -> AffiliateProfile | None:
    return db.query(AffiliateProfile).filter(AffiliateProfile.id == profile_id).first()

def get_profile_by_user_id(db: Session, user_id: int) -> AffiliateProfile | None:
    return db.query(AffiliateProfile).filter(AffiliateProfile.user_id == user_id).first()

def get_profile_by_code(db: Session, code: str) -> AffiliateProfile | None:
    return db.query(AffiliateProfile).filter(func.upper(AffiliateProfile.affiliate_code) == code.upper()).first()

def _apply_profile_filters(query, type: str | None, status: str | None, search: str | None):
    if type:
        query = query.filter(AffiliateProfile.type == type)
    if status:
        query = query.filter(AffiliateProfile.status == status)
    if search:
        like = f"%{search}%"
        query = query.filter(or_(
            AffiliateProfile.display_name.ilike(like),
            AffiliateProfile.affiliate_code.ilike(like),
            AffiliateProfile.contact_phone.ilike(like),
        ))
    return query

def get_profiles(
    db: Session, skip: int = 0, limit: int = 20,
    type: str | None = None, status: str | None = None, search: str | None = None
) -> list[AffiliateProfile]:
    query = _apply_profile_filters(db.query(AffiliateProfile), type, status, search)
    return query.order_by(AffiliateProfile.id.desc()).offset(skip).limit(limit).all()

def count_profiles(
    db: Session, type: str | None = None, status: str | None = None, search: str | None = None
) -> int:
    query = _apply_profile_filters(db.query(func.count(AffiliateProfile.id)), type, status, search)
    return query.scalar()

def count_profiles_by_type(db: Session) -> dict[str, int]:
    rows = db.query(AffiliateProfile.type, func.count(AffiliateProfile.id)).filter(
        AffiliateProfile.status == "ACTIVE"
    ).group_by(AffiliateProfile.type).all()
    return {type_: count for type_, count in rows}

# --- Связи начальник филиала -> продавец ---

def get_relation(db: Session, manager_id: int, agent_id: int) -> AffiliateRelation | None:
    return db.query(AffiliateRelation).filter(
        AffiliateRelation.manager_id == manager_id,
        AffiliateRelation.agent_id == agent_id
    ).first()

def upsert_active_relation(db: Session, manager_id: int, agent_id: int) -> AffiliateRelation:
    relation = get_relation(db, manager_id, agent_id)
    if relation is None:
        relation = AffiliateRelation(manager_id=manager_id, agent_id=agent_id, status="ACTIVE")
        db.add(relation)
    else:
        relation.status = "ACTIVE"
        relation.connected_at = utcnow()
        relation.disconnected_at = None
    db.flush()
    return relation

def get_active_manager_id(db: Session, agent_id: int) -> int | None:
    relation = db.query(AffiliateRelation).filter(
        AffiliateRelation.agent_id == agent_id,
        AffiliateRelation.status == "ACTIVE"
    ).order_by(AffiliateRelation.connected_at.desc()).first()
    return relation.manager_id if relation else None

def get_active_agent_ids(db: Session, manager_id: int) -> list[int]:
    rows = db.query(AffiliateRelation.agent_id).filter(
        AffiliateRelation.manager_id == manager_id,
        AffiliateRelation.status == "ACTIVE"
    ).all()
    return [agent_id for agent_id, in rows]

def get_team(db: Session, manager_id: int) -> list[AffiliateProfile]:
    return db.query(AffiliateProfile).join(
        AffiliateRelation, AffiliateRelation.agent_id == AffiliateProfile.id
    ).filter(
        AffiliateRelation.manager_id == manager_id,
        AffiliateRelation.status == "ACTIVE"
    ).order_by(AffiliateProfile.id).all()

def deactivate_relations(db: Session, profile_id: int) -> int:
    """Разрывает все активные связи профиля в обе стороны."""
    relations = db.query(AffiliateRelation).filter(
        or_(AffiliateRelation.manager_id == profile_id, AffiliateRelation.agent_id == profile_id),
        AffiliateRelation.status == "ACTIVE"
    ).all()
    now = utcnow()
    for relation in relations:
        relation.status = "INACTIVE"
        relation.disconnected_at = now
    return len(relations)
