# app/routers/admin/sales.py

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.dependencies import get_admin_user, get_db
from app.models.user import User
from app.schemas.sale import (
    AdjustmentDecision,
    AdjustmentListResponse,
    AdjustmentRead,
    AdjustmentResponse,
    LedgerSettleRequest,
    LedgerSettleResponse,
    PaginatedLedgers,
    PaginatedSales,
    SaleCreate,
    SaleRejectRequest,
    SaleResponse,
)
from app.services import commission as commission_service, sale as sale_service

SaleStatus = Literal["PENDING", "PENDING_APPROVAL", "APPROVED", "CONFIRMED", "REJECTED", "REFUNDED"]

# Продажи: /admin/affiliate/sales
router = APIRouter()

# Журнал начислений и корректировки: /admin/affiliate/ledgers, /admin/affiliate/adjustments
commission_router = APIRouter()


@router.post("", response_model=SaleResponse, status_code=status.HTTP_201_CREATED)
async def create_sale(
    data: SaleCreate,
    admin: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    """Регистрирует продажу в статусе PENDING и сразу раскладывает комиссии."""
    sale = await sale_service.create_sale(db, data, admin)
    return SaleResponse(sale=sale)


@router.get("", response_model=PaginatedSales)
def get_sales(
    status_filter: Optional[SaleStatus] = Query(None, alias="status"),
    manager_id: Optional[int] = Query(None, alias="managerId"),
    agent_id: Optional[int] = Query(None, alias="agentId"),
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db)
):
    return sale_service.get_paginated_sales(db, page, size, status_filter, manager_id, agent_id)


@router.post("/{sale_id}/approve", response_model=SaleResponse)
async def approve_sale(
    sale_id: int,
    admin: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    sale = await sale_service.approve_sale(db, sale_id, admin)
    return SaleResponse(sale=sale, message="판매가 승인되었습니다.")


@router.post("/{sale_id}/approve-commission", response_model=SaleResponse)
async def approve_commission(
    sale_id: int,
    admin: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    sale = await sale_service.approve_commission(db, sale_id, admin)
    return SaleResponse(sale=sale, message="수당이 확정되었습니다.")


@router.post("/{sale_id}/reject", response_model=SaleResponse)
async def reject_sale(
    sale_id: int,
    data: SaleRejectRequest,
    admin: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    sale = await sale_service.reject_sale(db, sale_id, admin, data.reason)
    return SaleResponse(sale=sale, message="판매가 거절되었습니다.")


@commission_router.get("/ledgers", response_model=PaginatedLedgers)
def get_ledgers(
    profile_id: Optional[int] = Query(None, alias="profileId"),
    is_settled: Optional[bool] = Query(None, alias="isSettled"),
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db)
):
    return commission_service.get_paginated_ledgers(db, page, size, profile_id, is_settled)


@commission_router.post("/ledgers/settle", response_model=LedgerSettleResponse)
def settle_ledgers(
    data: LedgerSettleRequest,
    admin: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    return LedgerSettleResponse(settled=commission_service.settle_ledgers(db, data.ids, admin))


@commission_router.get("/adjustments", response_model=AdjustmentListResponse)
def get_adjustments(
    status_filter: Optional[Literal["REQUESTED", "APPROVED", "REJECTED"]] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db)
):
    adjustments = commission_service.get_adjustments(db, status_filter, limit)
    return AdjustmentListResponse(adjustments=[AdjustmentRead.model_validate(a) for a in adjustments])


@commission_router.patch("/adjustments", response_model=AdjustmentResponse)
async def decide_adjustment(
    data: AdjustmentDecision,
    admin: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    """APPROVED прибавляет сумму к начислению, REJECTED только закрывает запрос."""
    adjustment = await commission_service.decide_adjustment(db, data, admin)
    return AdjustmentResponse(adjustment=adjustment)
