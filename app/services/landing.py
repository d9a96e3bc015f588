# app/services/landing.py

import logging
import secrets
import string
import time

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.crud import (
    affiliate as crud_affiliate,
    landing as crud_landing,
    lead as crud_lead,
    marketing as crud_marketing,
    payment as crud_payment,
)
from app.models.landing import LandingPage, LandingPageRegistration
from app.models.marketing import MarketingCustomer
from app.models.payment import Payment
from app.models.user import User
from app.schemas.common import total_pages
from app.schemas.landing import (
    LandingPageCreate,
    LandingPageStats,
    LandingPageUpdate,
    LandingPaymentRequest,
    PaginatedRegistrations,
    RegistrationCreate,
    RegistrationRead,
)
from app.services import payment as payment_service
from app.utils.dates import utcnow
from app.utils.phone import digits_only, normalize_phone

logger = logging.getLogger(__name__)

ORDER_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits


def _get_page_or_404(db: Session, page_id: int) -> LandingPage:
    page = crud_landing.get_page(db, page_id)
    if page is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="랜딩페이지를 찾을 수 없습니다.")
    return page


def _get_public_page_or_404(db: Session, slug: str) -> LandingPage:
    page = crud_landing.get_public_page(db, slug)
    if page is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="랜딩페이지를 찾을 수 없습니다.")
    return page


# --- Админка ---

def get_pages(db: Session) -> list[LandingPage]:
    return crud_landing.get_pages(db)


def get_page(db: Session, page_id: int) -> LandingPage:
    return _get_page_or_404(db, page_id)


def create_page(db: Session, data: LandingPageCreate) -> LandingPage:
    if crud_landing.get_page_by_slug(db, data.slug):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="이미 사용 중인 슬러그입니다.")
    page = LandingPage(**data.model_dump())
    db.add(page)
    db.commit()
    db.refresh(page)
    logger.info(f"Landing page '{page.slug}' created (id={page.id}).")
    return page


def update_page(db: Session, page_id: int, data: LandingPageUpdate) -> LandingPage:
    page = _get_page_or_404(db, page_id)
    for key, value in data.model_dump(exclude_unset=True).items():
        if key in ("title", "is_active", "is_public") and value is None:
            continue
        setattr(page, key, value)
    db.commit()
    db.refresh(page)
    return page


def delete_page(db: Session, page_id: int) -> None:
    """Страница с регистрациями не удаляется физически, а выключается."""
    page = _get_page_or_404(db, page_id)
    # Мягко удаленные регистрации тоже держат страницу: у них NOT NULL landing_page_id
    if crud_landing.count_registrations(db, page.id, include_deleted=True) > 0:
        page.is_active = False
        page.is_public = False
        logger.info(f"Landing page {page.id} has registrations, deactivated instead of deleted.")
    else:
        db.delete(page)
        logger.info(f"Landing page {page_id} deleted.")
    db.commit()


def delete_registration(db: Session, page_id: int, registration_id: int) -> None:
    """Мягкое удаление: запись скрывается из списков и статистики."""
    _get_page_or_404(db, page_id)
    registration = crud_landing.get_registration(db, page_id, registration_id)
    if registration is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="신청 내역을 찾을 수 없습니다.")
    registration.deleted_at = utcnow()
    db.commit()
    logger.info(f"Registration {registration_id} on landing page {page_id} soft-deleted.")


def get_registrations(db: Session, page_id: int, page: int, size: int) -> PaginatedRegistrations:
    landing = _get_page_or_404(db, page_id)
    total = crud_landing.count_registrations(db, landing.id)
    items = crud_landing.get_registrations(db, landing.id, skip=(page - 1) * size, limit=size)
    return PaginatedRegistrations(
        total_items=total,
        total_pages=total_pages(total, size),
        current_page=page,
        size=size,
        items=[RegistrationRead.model_validate(r) for r in items],
    )


def get_stats(db: Session, page_id: int) -> LandingPageStats:
    page = _get_page_or_404(db, page_id)
    registrations = crud_landing.count_registrations(db, page.id)
    views = page.view_count or 0
    conversion = round(registrations / views * 100, 2) if views else 0.0
    return LandingPageStats(view_count=views, registration_count=registrations, conversion_rate=conversion)


# --- Публичная часть ---

def view_public_page(db: Session, slug: str) -> LandingPage:
    page = _get_public_page_or_404(db, slug)
    page.view_count = (page.view_count or 0) + 1
    db.commit()
    db.refresh(page)
    return page


def _upsert_marketing_customer(db: Session, name: str, phone: str, email: str | None, source: str) -> MarketingCustomer:
    customer = crud_marketing.get_customer_by_phone(db, phone)
    if customer is None:
        customer = MarketingCustomer(name=name, phone=phone, email=email, source=source, status="NEW")
        db.add(customer)
    else:
        customer.name = customer.name or name
        customer.email = customer.email or email
    db.flush()
    return customer


def _create_affiliate_lead(db: Session, affiliate_code: str, page: LandingPage, name: str, phone: str) -> None:
    """Регистрация пришла по партнерской ссылке: лид закрепляется за партнером."""
    profile = crud_affiliate.get_profile_by_code(db, affiliate_code)
    if profile is None or profile.status != "ACTIVE":
        logger.warning(f"Landing registration with unknown affiliate code '{affiliate_code}'.")
        return
    if profile.type == "BRANCH_MANAGER":
        manager_id, agent_id = profile.id, None
    else:
        manager_id, agent_id = crud_affiliate.get_active_manager_id(db, profile.id), profile.id
    if crud_lead.find_owned_lead_by_phone(db, phone, manager_id, agent_id):
        return
    crud_lead.create_lead(
        db,
        customer_name=name,
        customer_phone=phone,
        manager_id=manager_id,
        agent_id=agent_id,
        source=f"landing-{page.slug}",
        meta={"landingPageId": page.id, "affiliateCode": profile.affiliate_code},
    )
    logger.info(f"Lead created for affiliate {profile.id} from landing '{page.slug}'.")


def register(
    db: Session,
    slug: str,
    data: RegistrationCreate,
    user: User | None = None,
    affiliate_code: str | None = None,
) -> LandingPageRegistration:
    page = _get_public_page_or_404(db, slug)
    name = (data.name or "").strip()
    phone = normalize_phone(data.phone)
    if not name:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="이름을 입력해주세요.")
    if len(digits_only(phone)) < 9:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="연락처를 입력해주세요.")

    registration = LandingPageRegistration(
        landing_page_id=page.id,
        user_id=user.id if user else None,
        name=name,
        phone=phone,
        email=data.email,
        meta={"affiliateCode": affiliate_code} if affiliate_code else None,
    )
    db.add(registration)
    _upsert_marketing_customer(db, name, phone, data.email, source=f"landing-{page.slug}")
    if affiliate_code:
        _create_affiliate_lead(db, affiliate_code, page, name, phone)
    db.commit()
    db.refresh(registration)
    logger.info(f"Registration {registration.id} on landing '{page.slug}'.")
    return registration


def generate_order_id(page_id: int) -> str:
    suffix = "".join(secrets.choice(ORDER_SUFFIX_ALPHABET) for _ in range(9))
    return f"LP_{page_id}_{int(time.time() * 1000)}_{suffix}"


async def create_payment(
    db: Session, slug: str, data: LandingPaymentRequest, affiliate_code: str | None = None
) -> Payment:
    """
    Оплата товара со страницы: цена и название берутся из
    business_info.productPurchase.
    """
    page = _get_public_page_or_404(db, slug)
    purchase = (page.business_info or {}).get("productPurchase") or {}
    if not purchase.get("enabled"):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="이 페이지는 결제를 지원하지 않습니다.")
    try:
        price = int(purchase.get("sellingPrice") or 0)
    except (TypeError, ValueError):
        price = 0
    if price <= 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="판매 가격이 설정되지 않았습니다.")

    meta = {"landingPageId": page.id, "slug": page.slug}
    if affiliate_code:
        meta["affiliateCode"] = affiliate_code

    payment = crud_payment.create_payment(
        db,
        order_id=generate_order_id(page.id),
        product_code=f"LP-{page.slug}",
        product_name=purchase.get("productName") or page.title,
        amount=price,
        buyer_name=data.buyer_name,
        buyer_phone=normalize_phone(data.buyer_phone),
        buyer_email=data.buyer_email,
        meta=meta,
    )
    result = await payment_service.send_pay_request(payment, var1=payment.order_id, var2=f"LP_{page.id}")
    payment.pay_url = result["payurl"]
    payment.pg_transaction_id = result["mul_no"]
    db.commit()
    db.refresh(payment)
    logger.info(f"Landing payment {payment.order_id} requested for {price} KRW.")
    return payment
