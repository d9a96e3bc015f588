# app/services/product.py

import logging

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.crud import audit as crud_audit, link as crud_link, product as crud_product
from app.models.link import AffiliateLink
from app.models.product import AffiliateProduct, AffiliateProductTier
from app.models.user import User
from app.schemas.common import total_pages
from app.schemas.product import (
    PaginatedProducts,
    ProductCreate,
    ProductRead,
    ProductStats,
    ProductTierIn,
    ProductUpdate,
)
from app.utils.codes import link_code

logger = logging.getLogger(__name__)

MAX_LINK_CODE_ATTEMPTS = 10


def serialize_product(db: Session, product: AffiliateProduct) -> ProductRead:
    """Товар вместе со статистикой ссылок и подтвержденных продаж."""
    data = ProductRead.model_validate(product)
    data.stats = ProductStats(**crud_product.get_product_stats(db, product.id))
    return data


def _get_product_or_404(db: Session, product_id: int) -> AffiliateProduct:
    product = crud_product.get_product(db, product_id)
    if product is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="상품을 찾을 수 없습니다.")
    return product


def _build_tiers(tiers: list[ProductTierIn]) -> list[AffiliateProductTier]:
    seen = set()
    result = []
    for tier in tiers:
        if tier.cabin_type in seen:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"객실 타입 '{tier.cabin_type}'이(가) 중복되었습니다."
            )
        seen.add(tier.cabin_type)
        result.append(AffiliateProductTier(**tier.model_dump()))
    return result


def generate_unique_link_code(db: Session) -> str:
    for _ in range(MAX_LINK_CODE_ATTEMPTS):
        code = link_code()
        if crud_link.get_link_by_code(db, code) is None:
            return code
    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="링크 코드를 생성하지 못했습니다. 다시 시도해주세요."
    )


def get_paginated_products(
    db: Session, page: int, size: int, status_filter: str | None = None, search: str | None = None
) -> PaginatedProducts:
    skip = (page - 1) * size
    total = crud_product.count_products(db, status=status_filter, search=search)
    products = crud_product.get_products(db, skip=skip, limit=size, status=status_filter, search=search)
    return PaginatedProducts(
        total_items=total,
        total_pages=total_pages(total, size),
        current_page=page,
        size=size,
        items=[serialize_product(db, p) for p in products],
    )


def get_product(db: Session, product_id: int) -> ProductRead:
    return serialize_product(db, _get_product_or_404(db, product_id))


def create_product(db: Session, data: ProductCreate, admin: User) -> tuple[ProductRead, str]:
    """
    Создает товар и сразу выпускает для него общую ссылку головного офиса.
    Возвращает товар и код этой ссылки.
    """
    product_code = (data.product_code or "").strip()
    title = (data.title or "").strip()
    if not product_code:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="상품 코드를 입력해주세요.")
    if not title:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="상품명을 입력해주세요.")
    if data.effective_from is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="적용 시작일을 입력해주세요.")
    if data.effective_to and data.effective_to < data.effective_from:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="적용 종료일이 시작일보다 빠릅니다.")
    if crud_product.get_product_by_code(db, product_code):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="이미 존재하는 상품 코드입니다.")

    cruise_product_id = data.cruise_product_id
    if cruise_product_id is None:
        cruise = crud_product.get_cruise_product_by_code(db, product_code)
        cruise_product_id = cruise.id if cruise else None

    product = AffiliateProduct(
        product_code=product_code,
        title=title,
        cruise_product_id=cruise_product_id,
        status=data.status,
        currency=data.currency or "KRW",
        is_published=data.is_published,
        effective_from=data.effective_from,
        effective_to=data.effective_to,
        default_sale_amount=data.default_sale_amount,
        default_cost_amount=data.default_cost_amount,
        meta=data.metadata,
        tiers=_build_tiers(data.tiers),
    )
    db.add(product)
    db.flush()

    link = AffiliateLink(
        code=generate_unique_link_code(db),
        title=title,
        product_code=product_code,
        product_id=product.id,
        issued_by_id=admin.id,
        status="ACTIVE",
        meta={"autoCreated": True},
    )
    db.add(link)
    crud_audit.log_action(
        db, admin.id, "affiliate.product.created", target_type="product", target_id=product.id,
        details={"productCode": product_code, "linkCode": link.code},
    )
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="이미 존재하는 상품 코드입니다.")
    db.refresh(product)
    logger.info(f"Admin {admin.id} created product {product_code} with default link {link.code}.")
    return serialize_product(db, product), link.code


def update_product(db: Session, product_id: int, data: ProductUpdate, admin: User) -> ProductRead:
    product = _get_product_or_404(db, product_id)
    update_data = data.model_dump(exclude_unset=True, exclude={"tiers"})
    for key, value in update_data.items():
        if key in ("status", "is_published") and value is None:
            continue
        setattr(product, key, value)

    if data.tiers is not None:
        # Набор тарифов заменяется целиком
        product.tiers.clear()
        db.flush()
        product.tiers.extend(_build_tiers(data.tiers))

    crud_audit.log_action(
        db, admin.id, "affiliate.product.updated", target_type="product", target_id=product.id,
        details={"fields": sorted(data.model_dump(exclude_unset=True).keys())},
    )
    db.commit()
    db.refresh(product)
    return serialize_product(db, product)


def delete_product(db: Session, product_id: int, admin: User) -> ProductRead:
    """Товар с подтвержденными продажами удалить нельзя; удаление = перевод в inactive."""
    product = _get_product_or_404(db, product_id)
    stats = crud_product.get_product_stats(db, product.id)
    if stats["total_confirmed_sales"] > 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="확정된 판매가 있는 상품은 삭제할 수 없습니다."
        )
    product.status = "inactive"
    crud_audit.log_action(db, admin.id, "affiliate.product.deleted", target_type="product", target_id=product.id)
    db.commit()
    db.refresh(product)
    logger.info(f"Admin {admin.id} deactivated product {product.product_code}.")
    return serialize_product(db, product)
