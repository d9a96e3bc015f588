# app/schemas/contract.py
from datetime import date, datetime
from typing import Literal, Optional

from pydantic import Field

from app.schemas.affiliate import AffiliateProfileRead
from app.schemas.common import CamelModel, JsonDict, PaginatedResponse, metadata_field

ContractType = Literal["SALES_AGENT", "BRANCH_MANAGER", "CRUISE_STAFF", "PRIMARKETER", "SUBSCRIPTION_AGENT"]


class ContractSubmit(CamelModel):
    """
    Анкета партнера. Поля не обязательны на уровне схемы:
    сервис проверяет их сам и отвечает понятным сообщением по каждому полю.
    """
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    resident_id_front: Optional[str] = None
    resident_id_back: Optional[str] = None
    address: Optional[str] = None
    bank_name: Optional[str] = None
    bank_account: Optional[str] = None
    bank_account_holder: Optional[str] = None
    consent_privacy: bool = False
    consent_compliance: bool = False
    consent_image: bool = False
    consent_commission: bool = False
    consent_tax: bool = False
    signature_url: Optional[str] = None
    contract_type: Optional[ContractType] = None
    invite_code: Optional[str] = None


class ContractManualCreate(ContractSubmit):
    """Договор, который администратор вносит вручную (бумажный оригинал)."""
    status: Literal["submitted", "in_review"] = "submitted"
    notes: Optional[str] = None
    contract_start_date: Optional[date] = None
    contract_end_date: Optional[date] = None


class ContractRead(CamelModel):
    id: int
    user_id: Optional[int] = None
    invited_by_profile_id: Optional[int] = None
    name: str
    phone: str
    email: Optional[str] = None
    address: Optional[str] = None
    resident_id_masked: Optional[str] = None
    bank_name: Optional[str] = None
    bank_account: Optional[str] = None
    bank_account_holder: Optional[str] = None
    contract_type: Optional[str] = None
    status: str
    reviewer_id: Optional[int] = None
    reviewed_at: Optional[datetime] = None
    submitted_at: Optional[datetime] = None
    created_at: datetime
    metadata: Optional[JsonDict] = metadata_field()


class ContractResponse(CamelModel):
    ok: bool = True
    contract: ContractRead
    message: Optional[str] = None


class ContractApproveResponse(CamelModel):
    ok: bool = True
    contract: ContractRead
    profile: AffiliateProfileRead
    partner_id: str


class PaginatedContracts(PaginatedResponse[ContractRead]):
    pass


class ContractRejectRequest(CamelModel):
    reason: Optional[str] = None


class ContractTerminateRequest(CamelModel):
    reason: Optional[str] = Field(None, max_length=500)


class ContractRenewalRequest(CamelModel):
    action: Literal["approve", "reject"]


class PaymentLinkResponse(CamelModel):
    ok: bool = True
    pay_url: str
    short_url: str
    amount: int
