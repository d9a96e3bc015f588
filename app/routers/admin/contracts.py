# app/routers/admin/contracts.py

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.dependencies import get_admin_user, get_db
from app.models.user import User
from app.schemas.contract import (
    ContractApproveResponse,
    ContractManualCreate,
    ContractRejectRequest,
    ContractRenewalRequest,
    ContractResponse,
    ContractTerminateRequest,
    PaginatedContracts,
    PaymentLinkResponse,
)
from app.services import contract as contract_service, recovery as recovery_service

router = APIRouter()

ContractStatus = Literal["submitted", "in_review", "approved", "rejected", "completed", "terminated"]


@router.get("", response_model=PaginatedContracts)
def get_contracts(
    status_filter: Optional[ContractStatus] = Query(None, alias="status"),
    search: Optional[str] = Query(None, description="Имя, телефон или e-mail"),
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db)
):
    return contract_service.get_paginated_contracts(db, page, size, status_filter, search)


@router.post("/manual", response_model=ContractResponse, status_code=status.HTTP_201_CREATED)
def create_manual_contract(
    data: ContractManualCreate,
    admin: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    """Ручной ввод договора администратором, те же проверки, что и у анкеты."""
    contract = contract_service.create_manual_contract(db, data, admin)
    return ContractResponse(contract=contract, message="계약서가 성공적으로 생성되었습니다.")


@router.get("/{contract_id}", response_model=ContractResponse)
def get_contract(contract_id: int, db: Session = Depends(get_db)):
    return ContractResponse(contract=contract_service.get_contract(db, contract_id))


@router.post("/{contract_id}/approve", response_model=ContractApproveResponse)
async def approve_contract(
    contract_id: int,
    admin: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    """
    Одобрение договора: создает пользователя и партнерский профиль,
    присваивает partnerId (bossN / userN) и связывает продавца с начальником.
    """
    return await contract_service.approve_contract(db, contract_id, admin)


@router.post("/{contract_id}/reject", response_model=ContractResponse)
def reject_contract(
    contract_id: int,
    data: ContractRejectRequest,
    admin: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    contract = contract_service.reject_contract(db, contract_id, admin, data.reason)
    return ContractResponse(contract=contract, message="계약서가 반려되었습니다.")


@router.post("/{contract_id}/terminate", response_model=ContractResponse)
async def terminate_contract(
    contract_id: int,
    data: ContractTerminateRequest,
    admin: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    result = await contract_service.terminate_contract(db, contract_id, admin.id, data.reason)
    return ContractResponse(**result)


@router.post("/{contract_id}/renewal", response_model=ContractResponse)
async def decide_renewal(
    contract_id: int,
    data: ContractRenewalRequest,
    admin: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    """Решение по запросу на продление. Отказ расторгает договор."""
    result = await contract_service.handle_renewal(db, contract_id, admin, data.action)
    return ContractResponse(**result)


@router.post("/{contract_id}/retry-recovery")
async def retry_recovery(
    contract_id: int,
    admin: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    stats = await recovery_service.retry_recovery(db, contract_id, admin.id)
    return {"ok": True, "message": "DB 회수가 완료되었습니다.", "stats": stats}


@router.post("/{contract_id}/payment-link", response_model=PaymentLinkResponse)
async def create_payment_link(
    contract_id: int,
    admin: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    return await contract_service.create_payment_link(db, contract_id, admin)
