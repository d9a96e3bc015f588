# app/schemas/settlement.py
from typing import List, Optional

from app.schemas.common import CamelModel


class SettlementProfileTotal(CamelModel):
    profile_id: Optional[int] = None
    profile_type: str
    display_name: Optional[str] = None
    affiliate_code: Optional[str] = None
    sale_count: int
    sale_amount: int
    commission: int
    withholding: int
    net_payout: int


class SettlementSummary(CamelModel):
    ok: bool = True
    period: str
    hq_total: int
    partners: List[SettlementProfileTotal]
