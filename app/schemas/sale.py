# app/schemas/sale.py
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field

from app.schemas.affiliate import AffiliateProfileBrief
from app.schemas.common import CamelModel, JsonDict, PaginatedResponse, metadata_field


class SaleCreate(CamelModel):
    product_code: Optional[str] = None
    link_code: Optional[str] = None
    lead_id: Optional[int] = None
    manager_id: Optional[int] = None
    agent_id: Optional[int] = None
    external_order_code: Optional[str] = None
    cabin_type: Optional[str] = None
    sale_amount: int = Field(..., ge=0)
    cost_amount: Optional[int] = Field(None, ge=0)
    sale_date: Optional[datetime] = None


class SaleRead(CamelModel):
    id: int
    product_id: Optional[int] = None
    link_id: Optional[int] = None
    lead_id: Optional[int] = None
    external_order_code: Optional[str] = None
    cabin_type: Optional[str] = None
    sale_amount: int
    cost_amount: int
    net_revenue: int
    branch_commission: int
    sales_commission: int
    override_commission: int
    withholding_amount: int
    status: str
    sale_date: Optional[datetime] = None
    confirmed_at: Optional[datetime] = None
    submitted_at: Optional[datetime] = None
    submitted_by_id: Optional[int] = None
    approved_by_id: Optional[int] = None
    rejection_reason: Optional[str] = None
    audio_file_type: Optional[str] = None
    created_at: datetime
    manager: Optional[AffiliateProfileBrief] = None
    agent: Optional[AffiliateProfileBrief] = None
    metadata: Optional[JsonDict] = metadata_field()


class SaleResponse(CamelModel):
    ok: bool = True
    sale: SaleRead
    message: Optional[str] = None


class SaleListResponse(CamelModel):
    ok: bool = True
    sales: List[SaleRead]


class PaginatedSales(PaginatedResponse[SaleRead]):
    pass


class SaleRejectRequest(CamelModel):
    reason: Optional[str] = None


# --- Журнал начислений ---

class LedgerRead(CamelModel):
    id: int
    sale_id: int
    profile_id: Optional[int] = None
    entry_type: str
    amount: int
    withholding_amount: int
    is_settled: bool
    settled_at: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: datetime
    metadata: Optional[JsonDict] = metadata_field()


class PaginatedLedgers(PaginatedResponse[LedgerRead]):
    pass


class LedgerSettleRequest(CamelModel):
    ids: List[int] = Field(..., min_length=1)


class LedgerSettleResponse(CamelModel):
    ok: bool = True
    settled: int


# --- Корректировки ---

class AdjustmentCreate(CamelModel):
    ledger_id: int
    amount: int
    reason: Optional[str] = None


class AdjustmentDecision(CamelModel):
    id: int
    status: str


class AdjustmentRead(CamelModel):
    id: int
    ledger_id: int
    amount: int
    reason: Optional[str] = None
    status: str
    requested_by_id: Optional[int] = None
    approved_by_id: Optional[int] = None
    requested_at: datetime
    decided_at: Optional[datetime] = None
    metadata: Optional[JsonDict] = metadata_field()


class AdjustmentResponse(CamelModel):
    ok: bool = True
    adjustment: AdjustmentRead


class AdjustmentListResponse(CamelModel):
    ok: bool = True
    adjustments: List[AdjustmentRead]
