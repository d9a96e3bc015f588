# app/schemas/marketing.py
from datetime import datetime
from typing import Literal, Optional

from pydantic import Field

from app.schemas.common import CamelModel, PaginatedResponse

CustomerStatus = Literal["NEW", "ACTIVE", "UNSUBSCRIBED"]


class MarketingCustomerCreate(CamelModel):
    name: Optional[str] = None
    phone: str = Field(..., min_length=9)
    email: Optional[str] = None
    source: Optional[str] = None
    status: CustomerStatus = "NEW"
    notes: Optional[str] = None


class MarketingCustomerUpdate(CamelModel):
    name: Optional[str] = None
    email: Optional[str] = None
    source: Optional[str] = None
    status: Optional[CustomerStatus] = None
    notes: Optional[str] = None


class MarketingCustomerRead(CamelModel):
    id: int
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    source: Optional[str] = None
    status: str
    notes: Optional[str] = None
    created_at: datetime


class MarketingCustomerResponse(CamelModel):
    ok: bool = True
    customer: MarketingCustomerRead


class PaginatedMarketingCustomers(PaginatedResponse[MarketingCustomerRead]):
    pass
