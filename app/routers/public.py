# app/routers/public.py

from typing import Optional

from fastapi import APIRouter, Cookie, Depends, Request, status
from sqlalchemy.orm import Session

from app.core.limiter import PUBLIC_FORM_LIMIT, limiter
from app.dependencies import get_db, get_optional_current_user
from app.models.user import User
from app.schemas.contract import ContractResponse, ContractSubmit
from app.schemas.landing import (
    LandingPageRead,
    LandingPageResponse,
    LandingPaymentRequest,
    LandingPaymentResponse,
    RegistrationCreate,
    RegistrationResponse,
)
from app.services import contract as contract_service, landing as landing_service

router = APIRouter(prefix="/public", tags=["Public"])

AFFILIATE_COOKIE = "affiliate_code"


@router.post("/affiliate/contracts", response_model=ContractResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(PUBLIC_FORM_LIMIT)
async def submit_contract(
    request: Request,
    data: ContractSubmit,
    current_user: Optional[User] = Depends(get_optional_current_user),
    db: Session = Depends(get_db)
):
    """
    Подача партнерского договора. Доступна без авторизации,
    приглашение передается кодом начальника филиала (inviteCode).
    """
    contract = await contract_service.submit_contract(db, data, current_user)
    return ContractResponse(contract=contract, message="계약서가 접수되었습니다.")


@router.get("/landing-pages/{slug}", response_model=LandingPageResponse)
def get_landing_page(slug: str, db: Session = Depends(get_db)):
    page = landing_service.view_public_page(db, slug)
    return LandingPageResponse(page=LandingPageRead.model_validate(page))


@router.post(
    "/landing-pages/{slug}/register", response_model=RegistrationResponse, status_code=status.HTTP_201_CREATED
)
@limiter.limit(PUBLIC_FORM_LIMIT)
def register_on_landing_page(
    request: Request,
    slug: str,
    data: RegistrationCreate,
    affiliate_code: Optional[str] = Cookie(None, alias=AFFILIATE_COOKIE),
    current_user: Optional[User] = Depends(get_optional_current_user),
    db: Session = Depends(get_db)
):
    registration = landing_service.register(db, slug, data, current_user, affiliate_code)
    return RegistrationResponse(registration=registration, message="신청이 완료되었습니다.")


@router.post("/landing-pages/{slug}/payment", response_model=LandingPaymentResponse)
@limiter.limit(PUBLIC_FORM_LIMIT)
async def pay_on_landing_page(
    request: Request,
    slug: str,
    data: LandingPaymentRequest,
    affiliate_code: Optional[str] = Cookie(None, alias=AFFILIATE_COOKIE),
    db: Session = Depends(get_db)
):
    payment = await landing_service.create_payment(db, slug, data, affiliate_code)
    return LandingPaymentResponse(order_id=payment.order_id, pay_url=payment.pay_url, amount=payment.amount)
