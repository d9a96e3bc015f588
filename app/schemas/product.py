# app/schemas/product.py
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field, field_validator

from app.schemas.common import CamelModel, JsonDict, PaginatedResponse, metadata_field


def to_safe_int(value) -> int:
    """Суммы приходят из таблиц как 1234.5 или "1,234": округляем до целых вон."""
    if value is None or value == "":
        return 0
    if isinstance(value, str):
        value = value.replace(",", "").strip()
    try:
        return int(round(float(value)))
    except (TypeError, ValueError):
        return 0


class ProductTierIn(CamelModel):
    cabin_type: str = Field(..., min_length=1)
    sale_amount: int = 0
    cost_amount: int = 0
    hq_share_amount: int = 0
    branch_share_amount: int = 0
    sales_share_amount: int = 0
    override_amount: int = 0

    @field_validator(
        "sale_amount", "cost_amount", "hq_share_amount", "branch_share_amount",
        "sales_share_amount", "override_amount", mode="before"
    )
    def round_amounts(cls, v):
        return to_safe_int(v)


class ProductTierRead(ProductTierIn):
    id: int


class ProductCreate(CamelModel):
    # Обязательность проверяет сервис, чтобы вернуть 400 с понятным текстом
    product_code: Optional[str] = None
    title: Optional[str] = None
    effective_from: Optional[datetime] = None
    effective_to: Optional[datetime] = None
    status: Literal["active", "inactive"] = "active"
    currency: str = "KRW"
    is_published: bool = True
    cruise_product_id: Optional[int] = None
    default_sale_amount: Optional[int] = None
    default_cost_amount: Optional[int] = None
    tiers: List[ProductTierIn] = []
    metadata: Optional[JsonDict] = None


class ProductUpdate(CamelModel):
    title: Optional[str] = None
    effective_from: Optional[datetime] = None
    effective_to: Optional[datetime] = None
    status: Optional[Literal["active", "inactive"]] = None
    is_published: Optional[bool] = None
    default_sale_amount: Optional[int] = None
    default_cost_amount: Optional[int] = None
    tiers: Optional[List[ProductTierIn]] = None


class ProductStats(CamelModel):
    total_links: int = 0
    active_links: int = 0
    total_confirmed_sales: int = 0
    total_confirmed_amount: int = 0


class ProductRead(CamelModel):
    id: int
    product_code: str
    title: str
    status: str
    currency: str
    is_published: bool
    effective_from: datetime
    effective_to: Optional[datetime] = None
    cruise_product_id: Optional[int] = None
    default_sale_amount: Optional[int] = None
    default_cost_amount: Optional[int] = None
    tiers: List[ProductTierRead] = []
    stats: ProductStats = ProductStats()
    created_at: datetime
    metadata: Optional[JsonDict] = metadata_field()


class ProductResponse(CamelModel):
    ok: bool = True
    product: ProductRead
    default_link_code: Optional[str] = None


class PaginatedProducts(PaginatedResponse[ProductRead]):
    pass
