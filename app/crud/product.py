# app/crud/product.py
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.link import AffiliateLink
from app.models.product import AffiliateProduct, AffiliateProductTier, CruiseProduct
from app.models.sale import AffiliateSale


def get_product(db: Session, product_id: int) -> AffiliateProduct | None:
    return db.query(AffiliateProduct).filter(AffiliateProduct.id == product_id).first()

def get_product_by_code(db: Session, product_code: str) -> AffiliateProduct | None:
    return db.query(AffiliateProduct).filter(AffiliateProduct.product_code == product_code).first()

def get_products(
    db: Session, skip: int = 0, limit: int = 20, status: str | None = None, search: str | None = None
) -> list[AffiliateProduct]:
    query = db.query(AffiliateProduct)
    if status:
        query = query.filter(AffiliateProduct.status == status)
    if search:
        query = query.filter(AffiliateProduct.title.ilike(f"%{search}%") | AffiliateProduct.product_code.ilike(f"%{search}%"))
    return query.order_by(AffiliateProduct.id.desc()).offset(skip).limit(limit).all()

def count_products(db: Session, status: str | None = None, search: str | None = None) -> int:
    query = db.query(func.count(AffiliateProduct.id))
    if status:
        query = query.filter(AffiliateProduct.status == status)
    if search:
        query = query.filter(AffiliateProduct.title.ilike(f"%{search}%") | AffiliateProduct.product_code.ilike(f"%{search}%"))
    return query.scalar()

def get_tier(db: Session, product_id: int, cabin_type: str | None) -> AffiliateProductTier | None:
    if not cabin_type:
        return None
    return db.query(AffiliateProductTier).filter(
        AffiliateProductTier.product_id == product_id,
        AffiliateProductTier.cabin_type == cabin_type
    ).first()

def get_product_stats(db: Session, product_id: int) -> dict:
    """Статистика для карточки товара в админке."""
    total_links = db.query(func.count(AffiliateLink.id)).filter(AffiliateLink.product_id == product_id).scalar()
    active_links = db.query(func.count(AffiliateLink.id)).filter(
        AffiliateLink.product_id == product_id, AffiliateLink.status == "ACTIVE"
    ).scalar()
    confirmed_count, confirmed_amount = db.query(
        func.count(AffiliateSale.id), func.coalesce(func.sum(AffiliateSale.sale_amount), 0)
    ).filter(
        AffiliateSale.product_id == product_id, AffiliateSale.status == "CONFIRMED"
    ).one()
    return {
        "total_links": total_links or 0,
        "active_links": active_links or 0,
        "total_confirmed_sales": confirmed_count or 0,
        "total_confirmed_amount": int(confirmed_amount or 0),
    }

# --- Каталог круизов ---

def get_cruise_product_by_code(db: Session, product_code: str) -> CruiseProduct | None:
    return db.query(CruiseProduct).filter(CruiseProduct.product_code == product_code).first()
