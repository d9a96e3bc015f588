# app/crud/lead.py
from datetime import datetime

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.models.lead import AffiliateInteraction, AffiliateLead
from app.utils.phone import digits_only

MALL_SOURCES = ("product-inquiry", "phone-consultation")


def get_lead(db: Session, lead_id: int) -> AffiliateLead | None:
    return db.query(AffiliateLead).filter(AffiliateLead.id == lead_id).first()

def create_lead(
    db: Session,
    customer_name: str | None,
    customer_phone: str | None,
    manager_id: int | None = None,
    agent_id: int | None = None,
    link_id: int | None = None,
    source: str | None = None,
    notes: str | None = None,
    meta: dict | None = None,
) -> AffiliateLead:
    lead = AffiliateLead(
        customer_name=customer_name,
        customer_phone=digits_only(customer_phone) or None,
        manager_id=manager_id,
        agent_id=agent_id,
        link_id=link_id,
        source=source,
        notes=notes,
        status="NEW",
        meta=meta,
    )
    db.add(lead)
    db.flush()
    return lead

def find_owned_lead_by_phone(
    db: Session, phone: str, manager_id: int | None, agent_id: int | None
) -> AffiliateLead | None:
    return db.query(AffiliateLead).filter(
        AffiliateLead.customer_phone == digits_only(phone),
        AffiliateLead.manager_id == manager_id,
        AffiliateLead.agent_id == agent_id,
    ).first()

def build_admin_query(
    db: Session,
    customer_name: str | None = None,
    customer_phone: str | None = None,
    status: str | None = None,
    manager_id: int | None = None,
    agent_id: int | None = None,
    source: str | None = None,
):
    query = db.query(AffiliateLead)
    if source == "mall":
        query = query.filter(or_(
            AffiliateLead.source.like("mall-%"),
            AffiliateLead.source.in_(MALL_SOURCES),
        ))
    search_conditions = []
    if customer_name:
        search_conditions.append(AffiliateLead.customer_name.ilike(f"%{customer_name}%"))
    if customer_phone and digits_only(customer_phone):
        search_conditions.append(AffiliateLead.customer_phone.like(f"%{digits_only(customer_phone)}%"))
    if search_conditions:
        query = query.filter(or_(*search_conditions))
    if status:
        query = query.filter(AffiliateLead.status == status)
    if manager_id:
        query = query.filter(AffiliateLead.manager_id == manager_id)
    if agent_id:
        query = query.filter(AffiliateLead.agent_id == agent_id)
    return query

def build_partner_query(
    db: Session,
    manager_scope_ids: list[int] | None,
    agent_scope_ids: list[int],
    status: str | None = None,
    q: str | None = None,
):
    """
    manager_scope_ids задан для начальника филиала (его ID),
    agent_scope_ids - продавцы, чьи лиды видны вызывающему.
    """
    scope = [AffiliateLead.agent_id.in_(agent_scope_ids)]
    if manager_scope_ids:
        scope.append(AffiliateLead.manager_id.in_(manager_scope_ids))
    query = db.query(AffiliateLead).filter(or_(*scope))
    if status:
        query = query.filter(AffiliateLead.status == status)
    if q:
        conditions = [AffiliateLead.customer_name.ilike(f"%{q}%")]
        if digits_only(q):
            conditions.append(AffiliateLead.customer_phone.like(f"%{digits_only(q)}%"))
        query = query.filter(or_(*conditions))
    return query

def order_leads(query, sort: str | None = None):
    if sort == "nextAction":
        return query.order_by(AffiliateLead.next_action_at.asc(), AffiliateLead.created_at.desc())
    if sort == "lastContacted":
        return query.order_by(AffiliateLead.last_contacted_at.desc(), AffiliateLead.updated_at.desc())
    return query.order_by(AffiliateLead.updated_at.desc(), AffiliateLead.created_at.desc(), AffiliateLead.id.desc())

def count_leads_by_status(db: Session) -> dict[str, int]:
    rows = db.query(AffiliateLead.status, func.count(AffiliateLead.id)).group_by(AffiliateLead.status).all()
    return {status: count for status, count in rows}

def count_leads_for_profile(db: Session, profile_id: int) -> int:
    return db.query(func.count(AffiliateLead.id)).filter(
        or_(AffiliateLead.manager_id == profile_id, AffiliateLead.agent_id == profile_id)
    ).scalar()

def get_recent_leads_for_profile(
    db: Session, profile_id: int, date_from: datetime, date_to: datetime, limit: int = 5
) -> list[AffiliateLead]:
    return db.query(AffiliateLead).filter(
        or_(AffiliateLead.manager_id == profile_id, AffiliateLead.agent_id == profile_id),
        AffiliateLead.created_at >= date_from,
        AffiliateLead.created_at < date_to,
    ).order_by(AffiliateLead.created_at.desc(), AffiliateLead.id.desc()).limit(limit).all()

def get_leads_by_agent(db: Session, agent_id: int) -> list[AffiliateLead]:
    return db.query(AffiliateLead).filter(AffiliateLead.agent_id == agent_id).all()

def get_leads_by_owner_ids(db: Session, manager_id: int, agent_ids: list[int]) -> list[AffiliateLead]:
    conditions = [AffiliateLead.manager_id == manager_id]
    if agent_ids:
        conditions.append(AffiliateLead.agent_id.in_(agent_ids))
    return db.query(AffiliateLead).filter(or_(*conditions)).all()

def link_ids_with_activity(db: Session) -> set[int]:
    rows = db.query(AffiliateLead.link_id).filter(AffiliateLead.link_id.isnot(None)).distinct().all()
    return {link_id for link_id, in rows}

def add_interaction(
    db: Session, lead_id: int, interaction_type: str, note: str | None, created_by_id: int | None
) -> AffiliateInteraction:
    interaction = AffiliateInteraction(
        lead_id=lead_id,
        interaction_type=interaction_type,
        note=note,
        created_by_id=created_by_id,
    )
    db.add(interaction)
    db.flush()
    return interaction
