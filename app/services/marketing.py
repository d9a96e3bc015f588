# app/services/marketing.py

import logging
from datetime import date, datetime, time, timedelta, timezone

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.crud import marketing as crud_marketing
from app.models.marketing import MarketingCustomer
from app.schemas.common import total_pages
from app.schemas.marketing import (
    MarketingCustomerCreate,
    MarketingCustomerRead,
    MarketingCustomerUpdate,
    PaginatedMarketingCustomers,
)
from app.utils.dates import utcnow
from app.utils.phone import digits_only, normalize_phone

logger = logging.getLogger(__name__)


def _inflow_range(
    start: date | None, end: date | None, day_search: int | None
) -> tuple[datetime | None, datetime | None]:
    """
    Период притока: конечная дата включается целиком,
    daySearch = N означает «за последние N дней» и перекрывает начало.
    """
    created_from = datetime.combine(start, time.min, tzinfo=timezone.utc) if start else None
    created_to = datetime.combine(end, time.max, tzinfo=timezone.utc) if end else None
    if day_search is not None:
        created_from = utcnow() - timedelta(days=day_search)
    return created_from, created_to


def get_customers(
    db: Session,
    page: int,
    limit: int,
    status_filter: str | None = None,
    search: str | None = None,
    inflow_start: date | None = None,
    inflow_end: date | None = None,
    day_search: int | None = None,
) -> PaginatedMarketingCustomers:
    created_from, created_to = _inflow_range(inflow_start, inflow_end, day_search)
    filters = dict(status=status_filter, search=search, created_from=created_from, created_to=created_to)
    total = crud_marketing.count_customers(db, **filters)
    customers = crud_marketing.get_customers(db, skip=(page - 1) * limit, limit=limit, **filters)
    return PaginatedMarketingCustomers(
        total_items=total,
        total_pages=total_pages(total, limit),
        current_page=page,
        size=limit,
        items=[MarketingCustomerRead.model_validate(c) for c in customers],
    )


def _get_customer_or_404(db: Session, customer_id: int) -> MarketingCustomer:
    customer = crud_marketing.get_customer(db, customer_id)
    if customer is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="고객을 찾을 수 없습니다.")
    return customer


def create_customer(db: Session, data: MarketingCustomerCreate) -> MarketingCustomer:
    if len(digits_only(data.phone)) < 9:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="올바른 전화번호를 입력해주세요.")
    phone = normalize_phone(data.phone)
    if crud_marketing.get_customer_by_phone(db, phone):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="이미 등록된 전화번호입니다.")

    customer = MarketingCustomer(**data.model_dump(exclude={"phone"}), phone=phone)
    db.add(customer)
    db.commit()
    db.refresh(customer)
    logger.info(f"Marketing customer {customer.id} created (source={customer.source}).")
    return customer


def update_customer(db: Session, customer_id: int, data: MarketingCustomerUpdate) -> MarketingCustomer:
    customer = _get_customer_or_404(db, customer_id)
    for key, value in data.model_dump(exclude_unset=True).items():
        if key == "status" and value is None:
            continue
        setattr(customer, key, value)
    db.commit()
    db.refresh(customer)
    return customer


def delete_customer(db: Session, customer_id: int) -> None:
    customer = _get_customer_or_404(db, customer_id)
    db.delete(customer)
    db.commit()
    logger.info(f"Marketing customer {customer_id} deleted.")
