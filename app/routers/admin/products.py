# app/routers/admin/products.py

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.dependencies import get_admin_user, get_db
from app.models.user import User
from app.schemas.product import PaginatedProducts, ProductCreate, ProductResponse, ProductUpdate
from app.services import product as product_service

router = APIRouter()


@router.get("", response_model=PaginatedProducts)
def get_products(
    status_filter: Optional[Literal["active", "inactive"]] = Query(None, alias="status"),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db)
):
    return product_service.get_paginated_products(db, page, size, status_filter, search)


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
def create_product(
    data: ProductCreate,
    admin: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    """Создает товар с тарифами по типам кают и ссылку по умолчанию."""
    product, link_code = product_service.create_product(db, data, admin)
    return ProductResponse(product=product, default_link_code=link_code)


@router.get("/{product_id}", response_model=ProductResponse)
def get_product(product_id: int, db: Session = Depends(get_db)):
    return ProductResponse(product=product_service.get_product(db, product_id))


@router.patch("/{product_id}", response_model=ProductResponse)
def update_product(
    product_id: int,
    data: ProductUpdate,
    admin: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    return ProductResponse(product=product_service.update_product(db, product_id, data, admin))


@router.delete("/{product_id}", response_model=ProductResponse)
def delete_product(
    product_id: int,
    admin: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    """Товар с подтвержденными продажами удалить нельзя, остальные деактивируются."""
    return ProductResponse(product=product_service.delete_product(db, product_id, admin))
