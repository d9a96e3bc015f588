# app/routers/admin/marketing.py

from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from app.dependencies import get_db
from app.schemas.marketing import (
    MarketingCustomerCreate,
    MarketingCustomerResponse,
    MarketingCustomerUpdate,
    PaginatedMarketingCustomers,
)
from app.services import marketing as marketing_service

router = APIRouter()


@router.get("", response_model=PaginatedMarketingCustomers)
def get_customers(
    status_filter: Optional[Literal["NEW", "ACTIVE", "UNSUBSCRIBED"]] = Query(None, alias="status"),
    search: Optional[str] = Query(None),
    inflow_start: Optional[date] = Query(None, alias="inflowDateStart"),
    inflow_end: Optional[date] = Query(None, alias="inflowDateEnd"),
    day_search: Optional[int] = Query(None, alias="daySearch", ge=1),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    db: Session = Depends(get_db)
):
    return marketing_service.get_customers(
        db, page, limit,
        status_filter=status_filter,
        search=search,
        inflow_start=inflow_start,
        inflow_end=inflow_end,
        day_search=day_search,
    )


@router.post("", response_model=MarketingCustomerResponse, status_code=status.HTTP_201_CREATED)
def create_customer(data: MarketingCustomerCreate, db: Session = Depends(get_db)):
    return MarketingCustomerResponse(customer=marketing_service.create_customer(db, data))


@router.patch("/{customer_id}", response_model=MarketingCustomerResponse)
def update_customer(customer_id: int, data: MarketingCustomerUpdate, db: Session = Depends(get_db)):
    return MarketingCustomerResponse(customer=marketing_service.update_customer(db, customer_id, data))


@router.delete("/{customer_id}", status_code=204)
def delete_customer(customer_id: int, db: Session = Depends(get_db)):
    marketing_service.delete_customer(db, customer_id)
    return Response(status_code=204)
