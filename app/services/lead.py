# app/services/lead.py

import logging

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.crud import affiliate as crud_affiliate, lead as crud_lead, link as crud_link
from app.models.affiliate import AffiliateProfile
from app.models.lead import AffiliateInteraction, AffiliateLead
from app.models.user import User
from app.schemas.common import total_pages
from app.schemas.lead import InteractionCreate, LeadCreate, LeadRead, LeadUpdate, PaginatedLeads
from app.utils.dates import utcnow
from app.utils.phone import digits_only

logger = logging.getLogger(__name__)

MAX_PAGE_LIMIT = 100

# Разрешенные переходы статуса лида
ALLOWED_TRANSITIONS = {
    "NEW": {"CONTACTED", "LOST"},
    "CONTACTED": {"IN_PROGRESS", "LOST"},
    "IN_PROGRESS": {"PASSPORT_REQUESTED", "PURCHASED", "LOST"},
    "PASSPORT_REQUESTED": {"PASSPORT_COMPLETED", "LOST"},
    "PASSPORT_COMPLETED": {"PURCHASED", "LOST"},
    "PURCHASED": {"REFUNDED"},
    "REFUNDED": set(),
    "LOST": {"CONTACTED"},
}


def can_transition(current: str, new: str) -> bool:
    return new in ALLOWED_TRANSITIONS.get(current, set())


def _paginate(query, page: int, limit: int) -> PaginatedLeads:
    limit = max(1, min(limit, MAX_PAGE_LIMIT))
    total = query.count()
    leads = query.offset((page - 1) * limit).limit(limit).all()
    return PaginatedLeads(
        total_items=total,
        total_pages=total_pages(total, limit),
        current_page=page,
        size=limit,
        items=[LeadRead.model_validate(lead) for lead in leads],
    )


def _get_lead_or_404(db: Session, lead_id: int) -> AffiliateLead:
    lead = crud_lead.get_lead(db, lead_id)
    if lead is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="고객을 찾을 수 없습니다.")
    return lead


def apply_update(db: Session, lead: AffiliateLead, data: LeadUpdate, user: User) -> AffiliateLead:
    """
    Применяет изменения к лиду. Смена статуса проверяется по таблице переходов
    и записывается в историю взаимодействий.
    """
    update_data = data.model_dump(exclude_unset=True)
    new_status = update_data.get("status")
    if new_status and new_status != lead.status:
        if not can_transition(lead.status, new_status):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"'{lead.status}' 상태에서 '{new_status}' 상태로 변경할 수 없습니다."
            )
        now = utcnow()
        if new_status == "CONTACTED":
            lead.last_contacted_at = now
        elif new_status == "PASSPORT_REQUESTED":
            lead.passport_requested_at = now
        elif new_status == "PASSPORT_COMPLETED":
            lead.passport_completed_at = now
        crud_lead.add_interaction(
            db, lead.id, "STATUS_CHANGE", f"{lead.status} → {new_status}", user.id
        )
        logger.info(f"Lead {lead.id} status {lead.status} -> {new_status} by user {user.id}.")
        lead.status = new_status

    if "notes" in update_data:
        lead.notes = update_data["notes"]
    if "next_action_at" in update_data:
        lead.next_action_at = update_data["next_action_at"]

    db.commit()
    db.refresh(lead)
    return lead


# --- Админка ---

def get_admin_leads(
    db: Session,
    page: int,
    limit: int,
    customer_name: str | None = None,
    customer_phone: str | None = None,
    status_filter: str | None = None,
    manager_id: int | None = None,
    agent_id: int | None = None,
    source: str | None = None,
) -> PaginatedLeads:
    query = crud_lead.build_admin_query(
        db,
        customer_name=customer_name,
        customer_phone=customer_phone,
        status=status_filter,
        manager_id=manager_id,
        agent_id=agent_id,
        source=source,
    )
    return _paginate(crud_lead.order_leads(query), page, limit)


def get_lead_details(db: Session, lead_id: int) -> AffiliateLead:
    return _get_lead_or_404(db, lead_id)


def update_lead_admin(db: Session, lead_id: int, data: LeadUpdate, admin: User) -> AffiliateLead:
    return apply_update(db, _get_lead_or_404(db, lead_id), data, admin)


# --- Кабинет партнера ---

def partner_scope(db: Session, profile: AffiliateProfile) -> tuple[list[int] | None, list[int]]:
    """Начальник филиала видит свои лиды и лиды своих продавцов, продавец только свои."""
    if profile.type == "BRANCH_MANAGER":
        return [profile.id], [profile.id, *crud_affiliate.get_active_agent_ids(db, profile.id)]
    return None, [profile.id]


def ensure_lead_access(db: Session, lead: AffiliateLead, profile: AffiliateProfile) -> None:
    manager_ids, agent_ids = partner_scope(db, profile)
    in_scope = lead.agent_id in agent_ids or (manager_ids is not None and lead.manager_id in manager_ids)
    if not in_scope:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="접근 권한이 없는 고객입니다.")


def get_partner_leads(
    db: Session,
    profile: AffiliateProfile,
    page: int,
    limit: int,
    status_filter: str | None = None,
    q: str | None = None,
    sort: str | None = None,
) -> PaginatedLeads:
    manager_ids, agent_ids = partner_scope(db, profile)
    query = crud_lead.build_partner_query(db, manager_ids, agent_ids, status=status_filter, q=q)
    return _paginate(crud_lead.order_leads(query, sort), page, limit)


def get_partner_lead(db: Session, lead_id: int, profile: AffiliateProfile) -> AffiliateLead:
    lead = _get_lead_or_404(db, lead_id)
    ensure_lead_access(db, lead, profile)
    return lead


def create_partner_lead(db: Session, profile: AffiliateProfile, data: LeadCreate) -> AffiliateLead:
    """Партнер сам заводит клиента. Лид принадлежит вызывающему."""
    if profile.type == "BRANCH_MANAGER":
        manager_id, agent_id = profile.id, None
    else:
        manager_id, agent_id = crud_affiliate.get_active_manager_id(db, profile.id), profile.id

    if len(digits_only(data.customer_phone)) < 9:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="올바른 전화번호를 입력해주세요.")
    if crud_lead.find_owned_lead_by_phone(db, data.customer_phone, manager_id, agent_id):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="이미 등록된 고객입니다.")

    link_id = None
    if data.link_id:
        link = crud_link.get_link(db, data.link_id)
        if link is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="링크를 찾을 수 없습니다.")
        link_id = link.id

    lead = crud_lead.create_lead(
        db,
        customer_name=data.customer_name.strip(),
        customer_phone=data.customer_phone,
        manager_id=manager_id,
        agent_id=agent_id,
        link_id=link_id,
        source="partner",
        notes=data.notes,
    )
    db.commit()
    db.refresh(lead)
    logger.info(f"Partner profile {profile.id} created lead {lead.id}.")
    return lead


def update_partner_lead(
    db: Session, lead_id: int, profile: AffiliateProfile, user: User, data: LeadUpdate
) -> AffiliateLead:
    lead = get_partner_lead(db, lead_id, profile)
    return apply_update(db, lead, data, user)


def add_partner_interaction(
    db: Session, lead_id: int, profile: AffiliateProfile, user: User, data: InteractionCreate
) -> AffiliateInteraction:
    lead = get_partner_lead(db, lead_id, profile)
    interaction = crud_lead.add_interaction(db, lead.id, data.interaction_type, data.note, user.id)
    if data.interaction_type in ("CALL", "MEETING", "MESSAGE"):
        lead.last_contacted_at = utcnow()
    db.commit()
    db.refresh(interaction)
    return interaction
