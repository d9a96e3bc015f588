# app/schemas/affiliate.py
from datetime import datetime
from typing import List, Optional

from app.schemas.common import CamelModel, JsonDict, PaginatedResponse, metadata_field


class AffiliateProfileRead(CamelModel):
    id: int
    user_id: int
    type: str
    affiliate_code: str
    display_name: Optional[str] = None
    branch_label: Optional[str] = None
    status: str
    contract_status: str
    contact_phone: Optional[str] = None
    contact_email: Optional[str] = None
    withholding_rate: float
    landing_slug: Optional[str] = None
    published: bool
    created_at: datetime
    metadata: Optional[JsonDict] = metadata_field()


class AffiliateProfileBrief(CamelModel):
    id: int
    affiliate_code: str
    display_name: Optional[str] = None
    type: str


class AffiliateProfileDetails(AffiliateProfileRead):
    bank_name: Optional[str] = None
    bank_account: Optional[str] = None
    bank_account_holder: Optional[str] = None
    manager: Optional[AffiliateProfileBrief] = None
    team: List[AffiliateProfileBrief] = []


class AffiliateProfileDetailsResponse(CamelModel):
    ok: bool = True
    profile: AffiliateProfileDetails


class PaginatedAffiliateProfiles(PaginatedResponse[AffiliateProfileRead]):
    pass


class TeamResponse(CamelModel):
    ok: bool = True
    members: List[AffiliateProfileBrief]
