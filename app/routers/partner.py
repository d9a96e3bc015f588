# app/routers/partner.py

from typing import Literal, Optional

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile, status
from sqlalchemy.orm import Session

from app.dependencies import get_current_user, get_db, get_partner_profile
from app.models.affiliate import AffiliateProfile
from app.models.user import User
from app.schemas.affiliate import AffiliateProfileBrief, TeamResponse
from app.schemas.common import OkResponse
from app.schemas.contract import ContractResponse
from app.schemas.dashboard import PartnerDashboardStats
from app.schemas.lead import (
    InteractionCreate,
    InteractionRead,
    LeadCreate,
    LeadDetailsResponse,
    LeadStatus,
    LeadUpdate,
    PaginatedLeads,
)
from app.schemas.link import LinkRead, PartnerLinksResponse
from app.schemas.notification import PaginatedNotifications
from app.schemas.sale import (
    AdjustmentCreate,
    AdjustmentResponse,
    PaginatedLedgers,
    SaleListResponse,
    SaleRead,
    SaleResponse,
)
from app.schemas.user import PasswordChangeRequest
from app.services import (
    affiliate as affiliate_service,
    auth as auth_service,
    commission as commission_service,
    contract as contract_service,
    dashboard as dashboard_service,
    lead as lead_service,
    link as link_service,
    notification_api as notification_service_api,
    sale as sale_service,
)

router = APIRouter(prefix="/partner", tags=["Partner"])


# --- Аккаунт ---

@router.patch("/password", response_model=OkResponse)
def change_password(
    data: PasswordChangeRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    auth_service.change_password(db, current_user, data)
    return OkResponse(message="비밀번호가 변경되었습니다.")


@router.get("/team", response_model=TeamResponse)
def get_team(profile: AffiliateProfile = Depends(get_partner_profile), db: Session = Depends(get_db)):
    """Продавцы начальника филиала. Продавцу - 403."""
    members = affiliate_service.get_team(db, profile)
    return TeamResponse(members=[AffiliateProfileBrief.model_validate(m) for m in members])


@router.get("/dashboard/stats", response_model=PartnerDashboardStats)
async def get_dashboard_stats(
    month: Optional[str] = Query(None, pattern=r"^\d{4}-\d{2}$", description="YYYY-MM, по умолчанию текущий"),
    profile: AffiliateProfile = Depends(get_partner_profile),
    db: Session = Depends(get_db)
):
    return await dashboard_service.get_partner_stats(db, profile, month)


# --- Договоры ---

@router.post("/contracts/{contract_id}/complete", response_model=ContractResponse)
async def complete_contract(
    contract_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Завершение договора: администратор или начальник филиала, пригласивший партнера.
    """
    contract = await contract_service.complete_contract(db, contract_id, current_user)
    return ContractResponse(contract=contract, message="계약서가 완료 처리되었습니다.")


# --- Клиенты (лиды) ---

@router.get("/customers", response_model=PaginatedLeads)
def get_customers(
    status_filter: Optional[LeadStatus] = Query(None, alias="status"),
    q: Optional[str] = Query(None, description="Поиск по имени или телефону"),
    sort: Literal["recent", "nextAction", "lastContacted"] = Query("recent"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    profile: AffiliateProfile = Depends(get_partner_profile),
    db: Session = Depends(get_db)
):
    return lead_service.get_partner_leads(db, profile, page, limit, status_filter=status_filter, q=q, sort=sort)


@router.post("/customers", response_model=LeadDetailsResponse, status_code=status.HTTP_201_CREATED)
def create_customer(
    data: LeadCreate,
    profile: AffiliateProfile = Depends(get_partner_profile),
    db: Session = Depends(get_db)
):
    lead = lead_service.create_partner_lead(db, profile, data)
    return LeadDetailsResponse(lead=lead)


@router.get("/customers/{lead_id}", response_model=LeadDetailsResponse)
def get_customer(
    lead_id: int,
    profile: AffiliateProfile = Depends(get_partner_profile),
    db: Session = Depends(get_db)
):
    return LeadDetailsResponse(lead=lead_service.get_partner_lead(db, lead_id, profile))


@router.patch("/customers/{lead_id}", response_model=LeadDetailsResponse)
def update_customer(
    lead_id: int,
    data: LeadUpdate,
    current_user: User = Depends(get_current_user),
    profile: AffiliateProfile = Depends(get_partner_profile),
    db: Session = Depends(get_db)
):
    lead = lead_service.update_partner_lead(db, lead_id, profile, current_user, data)
    return LeadDetailsResponse(lead=lead)


@router.post(
    "/customers/{lead_id}/interactions", response_model=InteractionRead, status_code=status.HTTP_201_CREATED
)
def add_interaction(
    lead_id: int,
    data: InteractionCreate,
    current_user: User = Depends(get_current_user),
    profile: AffiliateProfile = Depends(get_partner_profile),
    db: Session = Depends(get_db)
):
    return lead_service.add_partner_interaction(db, lead_id, profile, current_user, data)


# --- Ссылки ---

@router.get("/links", response_model=PartnerLinksResponse)
def get_links(
    status_filter: Optional[str] = Query(None, alias="status"),
    profile: AffiliateProfile = Depends(get_partner_profile),
    db: Session = Depends(get_db)
):
    """Свои ссылки, общие ссылки головного офиса и адреса личного магазина."""
    links, share_urls = link_service.get_partner_links(db, profile, status_filter)
    return PartnerLinksResponse(links=[LinkRead.model_validate(l) for l in links], share_urls=share_urls)


# --- Продажи ---

@router.get("/sales", response_model=SaleListResponse)
def get_sales(
    status_filter: Optional[str] = Query(None, alias="status"),
    profile: AffiliateProfile = Depends(get_partner_profile),
    db: Session = Depends(get_db)
):
    sales = sale_service.get_partner_sales(db, profile, status_filter)
    return SaleListResponse(sales=[SaleRead.model_validate(s) for s in sales])


@router.post("/sales/{sale_id}/submit-confirmation", response_model=SaleResponse)
async def submit_sale_confirmation(
    sale_id: int,
    audio_type: str = Form(..., alias="audioType"),
    audio: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    profile: AffiliateProfile = Depends(get_partner_profile),
    db: Session = Depends(get_db)
):
    """Прикладывает запись звонка (FIRST_CALL / PASSPORT_GUIDE) и отправляет продажу на проверку."""
    sale = await sale_service.submit_confirmation(db, sale_id, profile, current_user, audio_type, audio)
    return SaleResponse(sale=sale, message="판매 확인 요청이 접수되었습니다.")


@router.post("/sales/{sale_id}/cancel-confirmation", response_model=SaleResponse)
def cancel_sale_confirmation(
    sale_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    sale = sale_service.cancel_confirmation(db, sale_id, current_user)
    return SaleResponse(sale=sale, message="판매 확인 요청이 취소되었습니다.")


# --- Начисления и корректировки ---

@router.get("/ledgers", response_model=PaginatedLedgers)
def get_my_ledgers(
    is_settled: Optional[bool] = Query(None, alias="isSettled"),
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    profile: AffiliateProfile = Depends(get_partner_profile),
    db: Session = Depends(get_db)
):
    return commission_service.get_paginated_ledgers(db, page, size, profile_id=profile.id, is_settled=is_settled)


@router.post("/adjustments", response_model=AdjustmentResponse, status_code=status.HTTP_201_CREATED)
def request_adjustment(
    data: AdjustmentCreate,
    current_user: User = Depends(get_current_user),
    profile: AffiliateProfile = Depends(get_partner_profile),
    db: Session = Depends(get_db)
):
    adjustment = commission_service.request_adjustment(db, profile, current_user, data)
    return AdjustmentResponse(adjustment=adjustment)


# --- Уведомления ---

@router.get("/notifications", response_model=PaginatedNotifications)
def get_notifications(
    unread_only: bool = Query(False, alias="unreadOnly"),
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return notification_service_api.get_paginated(db, current_user, page, size, unread_only)


@router.post("/notifications/{notification_id}/read", status_code=204)
def read_notification(
    notification_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    notification_service_api.mark_as_read(db, current_user, notification_id)
    return Response(status_code=204)
