# app/schemas/landing.py
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from app.schemas.common import CamelModel, JsonDict, PaginatedResponse, metadata_field


class LandingPageCreate(CamelModel):
    slug: str = Field(..., min_length=1, pattern=r"^[a-zA-Z0-9_-]+$")
    title: str = Field(..., min_length=1)
    html_content: Optional[str] = None
    is_active: bool = True
    is_public: bool = True
    business_info: Optional[JsonDict] = None


class LandingPageUpdate(CamelModel):
    title: Optional[str] = None
    html_content: Optional[str] = None
    is_active: Optional[bool] = None
    is_public: Optional[bool] = None
    business_info: Optional[JsonDict] = None


class LandingPageRead(CamelModel):
    id: int
    slug: str
    title: str
    html_content: Optional[str] = None
    is_active: bool
    is_public: bool
    business_info: Optional[JsonDict] = None
    view_count: int
    created_at: datetime


class LandingPageResponse(CamelModel):
    ok: bool = True
    page: LandingPageRead


class LandingPageListResponse(CamelModel):
    ok: bool = True
    pages: List[LandingPageRead]


class RegistrationCreate(CamelModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None


class RegistrationRead(CamelModel):
    id: int
    landing_page_id: int
    user_id: Optional[int] = None
    name: str
    phone: str
    email: Optional[str] = None
    registered_at: datetime
    metadata: Optional[JsonDict] = metadata_field()


class RegistrationResponse(CamelModel):
    ok: bool = True
    registration: RegistrationRead
    message: Optional[str] = None


class PaginatedRegistrations(PaginatedResponse[RegistrationRead]):
    pass


class LandingPageStats(CamelModel):
    ok: bool = True
    view_count: int
    registration_count: int
    conversion_rate: float


class LandingPaymentRequest(CamelModel):
    buyer_name: str = Field(..., min_length=1)
    buyer_phone: str = Field(..., min_length=9)
    buyer_email: Optional[str] = None


class LandingPaymentResponse(CamelModel):
    ok: bool = True
    order_id: str
    pay_url: str
    amount: int
