# app/schemas/link.py
from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import Field

from app.schemas.affiliate import AffiliateProfileBrief
from app.schemas.common import CamelModel, JsonDict, StatusCount, metadata_field

LinkStatus = Literal["ACTIVE", "INACTIVE", "EXPIRED", "REVOKED"]


class LinkRead(CamelModel):
    id: int
    code: str
    title: Optional[str] = None
    product_code: Optional[str] = None
    product_id: Optional[int] = None
    campaign_name: Optional[str] = None
    status: str
    expires_at: Optional[datetime] = None
    last_accessed_at: Optional[datetime] = None
    click_count: int = 0
    created_at: datetime
    manager: Optional[AffiliateProfileBrief] = None
    agent: Optional[AffiliateProfileBrief] = None
    metadata: Optional[JsonDict] = metadata_field()


class LinkListResponse(CamelModel):
    ok: bool = True
    links: List[LinkRead]


class LinkResponse(CamelModel):
    ok: bool = True
    link: LinkRead


class LinkCreate(CamelModel):
    title: Optional[str] = None
    product_code: Optional[str] = None
    manager_id: Optional[int] = None
    agent_id: Optional[int] = None
    campaign_name: Optional[str] = None
    expires_at: Optional[datetime] = None


class LinkUpdate(CamelModel):
    status: Optional[LinkStatus] = None
    expires_at: Optional[datetime] = None
    title: Optional[str] = None


class PartnerShareUrls(CamelModel):
    shop_url: Optional[str] = None
    store_url: Optional[str] = None


class PartnerLinksResponse(CamelModel):
    ok: bool = True
    links: List[LinkRead]
    share_urls: PartnerShareUrls


class LinkCleanupResult(CamelModel):
    ok: bool = True
    dry_run: bool
    expired: int = 0
    inactive: int = 0
    old: int = 0
    test: int = 0
    total: int = 0
    status_counts: List[StatusCount] = []


# --- Короткие ссылки ---

class ShortLinkCreate(CamelModel):
    url: Optional[str] = None
    contract_type: Optional[str] = None
    expires_at: Optional[datetime] = None


class ShortLinkResponse(CamelModel):
    ok: bool = True
    code: str
    short_url: str
    url: str


class ShortLinkRead(CamelModel):
    id: int
    code: str
    url: str
    contract_type: Optional[str] = None
    click_count: int
    expires_at: Optional[datetime] = None
    created_at: datetime
    last_accessed_at: Optional[datetime] = None
