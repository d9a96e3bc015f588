# app/models/affiliate.py
from sqlalchemy import (
    Boolean, Column, DateTime, Float, ForeignKey, Integer, JSON, String, UniqueConstraint, func
)
from sqlalchemy.orm import relationship

from app.db.session import Base


class AffiliateProfile(Base):
    """Партнерский профиль: начальник филиала (BRANCH_MANAGER) или продавец (SALES_AGENT)."""
    __tablename__ = "affiliate_profiles"

    id = Column(Integer, primary_key=True, index=True)
    # Один профиль на пользователя
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)

    # 'BRANCH_MANAGER', 'SALES_AGENT', 'HQ'
    type = Column(String, nullable=False, index=True)
    affiliate_code = Column(String, unique=True, index=True, nullable=False)
    display_name = Column(String, nullable=True)
    branch_label = Column(String, nullable=True)

    # 'DRAFT', 'ACTIVE', 'SUSPENDED', 'TERMINATED'
    status = Column(String, default="DRAFT", nullable=False, index=True)
    # 'PENDING', 'SIGNED', 'TERMINATED'
    contract_status = Column(String, default="PENDING", nullable=False)

    contact_phone = Column(String, nullable=True)
    contact_email = Column(String, nullable=True)
    withholding_rate = Column(Float, default=3.3, nullable=False)
    landing_slug = Column(String, nullable=True)
    published = Column(Boolean, default=False, nullable=False)

    bank_name = Column(String, nullable=True)
    bank_account = Column(String, nullable=True)
    bank_account_holder = Column(String, nullable=True)

    meta = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="affiliate_profile")
    # Продавцы, закрепленные за начальником филиала
    agent_relations = relationship(
        "AffiliateRelation", foreign_keys="AffiliateRelation.manager_id", back_populates="manager"
    )
    # Начальник филиала, за которым закреплен продавец
    manager_relations = relationship(
        "AffiliateRelation", foreign_keys="AffiliateRelation.agent_id", back_populates="agent"
    )


class AffiliateRelation(Base):
    __tablename__ = "affiliate_relations"
    __table_args__ = (UniqueConstraint("manager_id", "agent_id", name="uq_affiliate_relation_pair"),)

    id = Column(Integer, primary_key=True, index=True)
    manager_id = Column(Integer, ForeignKey("affiliate_profiles.id"), nullable=False, index=True)
    agent_id = Column(Integer, ForeignKey("affiliate_profiles.id"), nullable=False, index=True)

    # 'ACTIVE', 'INACTIVE'
    status = Column(String, default="ACTIVE", nullable=False)
    connected_at = Column(DateTime(timezone=True), server_default=func.now())
    disconnected_at = Column(DateTime(timezone=True), nullable=True)

    manager = relationship("AffiliateProfile", foreign_keys=[manager_id], back_populates="agent_relations")
    agent = relationship("AffiliateProfile", foreign_keys=[agent_id], back_populates="manager_relations")
