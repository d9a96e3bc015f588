# app/models/product.py
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, JSON, String, UniqueConstraint, func
from sqlalchemy.orm import relationship

from app.db.session import Base


class CruiseProduct(Base):
    """Круизный пакет из каталога мола. Используется чат-ботом для подстановки в тексты."""
    __tablename__ = "cruise_products"

    id = Column(Integer, primary_key=True, index=True)
    product_code = Column(String, unique=True, index=True, nullable=False)
    package_name = Column(String, nullable=False)
    cruise_line = Column(String, nullable=True)
    ship_name = Column(String, nullable=True)
    nights = Column(Integer, nullable=True)
    days = Column(Integer, nullable=True)
    base_price = Column(Integer, nullable=True)
    itinerary_pattern = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class AffiliateProduct(Base):
    __tablename__ = "affiliate_products"

    id = Column(Integer, primary_key=True, index=True)
    product_code = Column(String, unique=True, index=True, nullable=False)
    cruise_product_id = Column(Integer, ForeignKey("cruise_products.id"), nullable=True)
    title = Column(String, nullable=False)

    # 'active', 'inactive'
    status = Column(String, default="active", nullable=False)
    currency = Column(String, default="KRW", nullable=False)
    is_published = Column(Boolean, default=True, nullable=False)
    effective_from = Column(DateTime(timezone=True), nullable=False)
    effective_to = Column(DateTime(timezone=True), nullable=True)

    default_sale_amount = Column(Integer, nullable=True)
    default_cost_amount = Column(Integer, nullable=True)

    meta = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    cruise_product = relationship("CruiseProduct")
    tiers = relationship("AffiliateProductTier", back_populates="product", cascade="all, delete-orphan")
    links = relationship("AffiliateLink", back_populates="product")


class AffiliateProductTier(Base):
    """Фиксированное распределение суммы продажи для типа каюты."""
    __tablename__ = "affiliate_product_tiers"
    __table_args__ = (UniqueConstraint("product_id", "cabin_type", name="uq_product_tier_cabin"),)

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("affiliate_products.id", ondelete="CASCADE"), nullable=False)
    cabin_type = Column(String, nullable=False)

    sale_amount = Column(Integer, nullable=False, default=0)
    cost_amount = Column(Integer, nullable=False, default=0)
    hq_share_amount = Column(Integer, nullable=False, default=0)
    branch_share_amount = Column(Integer, nullable=False, default=0)
    sales_share_amount = Column(Integer, nullable=False, default=0)
    override_amount = Column(Integer, nullable=False, default=0)

    product = relationship("AffiliateProduct", back_populates="tiers")
