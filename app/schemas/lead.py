# app/schemas/lead.py
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field

from app.schemas.affiliate import AffiliateProfileBrief
from app.schemas.common import CamelModel, JsonDict, PaginatedResponse, metadata_field

LeadStatus = Literal[
    "NEW", "CONTACTED", "IN_PROGRESS", "PASSPORT_REQUESTED",
    "PASSPORT_COMPLETED", "PURCHASED", "REFUNDED", "LOST",
]


class InteractionRead(CamelModel):
    id: int
    interaction_type: str
    note: Optional[str] = None
    created_by_id: Optional[int] = None
    occurred_at: datetime


class LeadRead(CamelModel):
    id: int
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    status: str
    source: Optional[str] = None
    passport_requested_at: Optional[datetime] = None
    passport_completed_at: Optional[datetime] = None
    last_contacted_at: Optional[datetime] = None
    next_action_at: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    manager: Optional[AffiliateProfileBrief] = None
    agent: Optional[AffiliateProfileBrief] = None
    metadata: Optional[JsonDict] = metadata_field()


class LeadSaleBrief(CamelModel):
    id: int
    sale_amount: int
    status: str
    sale_date: Optional[datetime] = None


class LeadDetails(LeadRead):
    link_id: Optional[int] = None
    interactions: List[InteractionRead] = []
    sales: List[LeadSaleBrief] = []


class LeadDetailsResponse(CamelModel):
    ok: bool = True
    lead: LeadDetails


class PaginatedLeads(PaginatedResponse[LeadRead]):
    pass


class LeadUpdate(CamelModel):
    status: Optional[LeadStatus] = None
    notes: Optional[str] = None
    next_action_at: Optional[datetime] = None


class LeadCreate(CamelModel):
    customer_name: str = Field(..., min_length=1)
    customer_phone: str = Field(..., min_length=9)
    notes: Optional[str] = None
    link_id: Optional[int] = None


class InteractionCreate(CamelModel):
    interaction_type: Literal["CALL", "MESSAGE", "MEETING", "NOTE"] = "NOTE"
    note: Optional[str] = None
