# app/routers/admin/leads.py

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.dependencies import get_admin_user, get_db
from app.models.user import User
from app.schemas.lead import LeadDetailsResponse, LeadStatus, LeadUpdate, PaginatedLeads
from app.services import lead as lead_service

router = APIRouter()


@router.get("", response_model=PaginatedLeads)
def get_leads(
    customer_name: Optional[str] = Query(None, alias="customerName"),
    customer_phone: Optional[str] = Query(None, alias="customerPhone"),
    status_filter: Optional[LeadStatus] = Query(None, alias="status"),
    manager_id: Optional[int] = Query(None, alias="managerId"),
    agent_id: Optional[int] = Query(None, alias="agentId"),
    source: Optional[str] = Query(None, description="mall = все лиды из магазина"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    db: Session = Depends(get_db)
):
    return lead_service.get_admin_leads(
        db, page, limit,
        customer_name=customer_name,
        customer_phone=customer_phone,
        status_filter=status_filter,
        manager_id=manager_id,
        agent_id=agent_id,
        source=source,
    )


@router.get("/{lead_id}", response_model=LeadDetailsResponse)
def get_lead(lead_id: int, db: Session = Depends(get_db)):
    return LeadDetailsResponse(lead=lead_service.get_lead_details(db, lead_id))


@router.patch("/{lead_id}", response_model=LeadDetailsResponse)
def update_lead(
    lead_id: int,
    data: LeadUpdate,
    admin: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    return LeadDetailsResponse(lead=lead_service.update_lead_admin(db, lead_id, data, admin))
