# app/models/sale.py
from sqlalchemy import (
    Boolean, Column, DateTime, ForeignKey, Integer, JSON, String, Text, UniqueConstraint, func
)
from sqlalchemy.orm import relationship

from app.db.session import Base


class AffiliateSale(Base):
    __tablename__ = "affiliate_sales"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("affiliate_products.id"), nullable=True)
    link_id = Column(Integer, ForeignKey("affiliate_links.id"), nullable=True)
    lead_id = Column(Integer, ForeignKey("affiliate_leads.id"), nullable=True)
    manager_id = Column(Integer, ForeignKey("affiliate_profiles.id"), nullable=True, index=True)
    agent_id = Column(Integer, ForeignKey("affiliate_profiles.id"), nullable=True, index=True)

    external_order_code = Column(String, nullable=True)
    cabin_type = Column(String, nullable=True)

    # Все суммы в вонах, целые
    sale_amount = Column(Integer, nullable=False)
    cost_amount = Column(Integer, nullable=False, default=0)
    net_revenue = Column(Integer, nullable=False, default=0)
    branch_commission = Column(Integer, nullable=False, default=0)
    sales_commission = Column(Integer, nullable=False, default=0)
    override_commission = Column(Integer, nullable=False, default=0)
    withholding_amount = Column(Integer, nullable=False, default=0)

    # 'PENDING', 'PENDING_APPROVAL', 'APPROVED', 'CONFIRMED', 'REJECTED', 'REFUNDED'
    status = Column(String, default="PENDING", nullable=False, index=True)
    sale_date = Column(DateTime(timezone=True), server_default=func.now())
    confirmed_at = Column(DateTime(timezone=True), nullable=True)

    # Подтверждение продажи аудиозаписью звонка
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    submitted_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    approved_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    rejection_reason = Column(Text, nullable=True)
    audio_file_path = Column(String, nullable=True)
    audio_file_type = Column(String, nullable=True)

    meta = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    product = relationship("AffiliateProduct")
    lead = relationship("AffiliateLead", back_populates="sales")
    manager = relationship("AffiliateProfile", foreign_keys=[manager_id])
    agent = relationship("AffiliateProfile", foreign_keys=[agent_id])
    ledgers = relationship("CommissionLedger", back_populates="sale")


class CommissionLedger(Base):
    """Начисление по продаже. Для доли головного офиса profile_id пустой."""
    __tablename__ = "commission_ledgers"
    __table_args__ = (UniqueConstraint("sale_id", "entry_type", name="uq_ledger_sale_entry"),)

    id = Column(Integer, primary_key=True, index=True)
    sale_id = Column(Integer, ForeignKey("affiliate_sales.id"), nullable=False, index=True)
    profile_id = Column(Integer, ForeignKey("affiliate_profiles.id"), nullable=True, index=True)

    # 'HQ_NET', 'BRANCH_COMMISSION', 'OVERRIDE_COMMISSION', 'SALES_COMMISSION'
    entry_type = Column(String, nullable=False)
    amount = Column(Integer, nullable=False)
    withholding_amount = Column(Integer, nullable=False, default=0)

    is_settled = Column(Boolean, default=False, nullable=False)
    settled_at = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)

    meta = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    sale = relationship("AffiliateSale", back_populates="ledgers")
    profile = relationship("AffiliateProfile")
    adjustments = relationship("CommissionAdjustment", back_populates="ledger")


class CommissionAdjustment(Base):
    __tablename__ = "commission_adjustments"

    id = Column(Integer, primary_key=True, index=True)
    ledger_id = Column(Integer, ForeignKey("commission_ledgers.id"), nullable=False, index=True)
    # Со знаком: плюс увеличивает начисление, минус уменьшает
    amount = Column(Integer, nullable=False)
    reason = Column(Text, nullable=True)

    # 'REQUESTED', 'APPROVED', 'REJECTED'
    status = Column(String, default="REQUESTED", nullable=False, index=True)
    requested_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    approved_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    requested_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    decided_at = Column(DateTime(timezone=True), nullable=True)

    meta = Column("metadata", JSON, nullable=True)

    ledger = relationship("CommissionLedger", back_populates="adjustments")
