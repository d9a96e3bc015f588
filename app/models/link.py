# app/models/link.py
from sqlalchemy import Column, DateTime, ForeignKey, Integer, JSON, String, func
from sqlalchemy.orm import relationship

from app.db.session import Base


class AffiliateLink(Base):
    __tablename__ = "affiliate_links"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, unique=True, index=True, nullable=False)
    title = Column(String, nullable=True)
    product_code = Column(String, nullable=True, index=True)
    product_id = Column(Integer, ForeignKey("affiliate_products.id"), nullable=True)
    manager_id = Column(Integer, ForeignKey("affiliate_profiles.id"), nullable=True, index=True)
    agent_id = Column(Integer, ForeignKey("affiliate_profiles.id"), nullable=True, index=True)
    issued_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    campaign_name = Column(String, nullable=True)

    # 'ACTIVE', 'INACTIVE', 'EXPIRED', 'REVOKED'
    status = Column(String, default="ACTIVE", nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    last_accessed_at = Column(DateTime(timezone=True), nullable=True)
    click_count = Column(Integer, default=0, nullable=False)

    meta = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    product = relationship("AffiliateProduct", back_populates="links")
    manager = relationship("AffiliateProfile", foreign_keys=[manager_id])
    agent = relationship("AffiliateProfile", foreign_keys=[agent_id])


class ShortLink(Base):
    __tablename__ = "short_links"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, unique=True, index=True, nullable=False)
    url = Column(String, nullable=False)
    contract_type = Column(String, nullable=True)
    click_count = Column(Integer, default=0, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    last_accessed_at = Column(DateTime(timezone=True), nullable=True)
