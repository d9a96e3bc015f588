# app/models/lead.py
from sqlalchemy import Column, DateTime, ForeignKey, Integer, JSON, String, Text, func
from sqlalchemy.orm import relationship

from app.db.session import Base


class AffiliateLead(Base):
    __tablename__ = "affiliate_leads"

    id = Column(Integer, primary_key=True, index=True)
    manager_id = Column(Integer, ForeignKey("affiliate_profiles.id"), nullable=True, index=True)
    agent_id = Column(Integer, ForeignKey("affiliate_profiles.id"), nullable=True, index=True)
    link_id = Column(Integer, ForeignKey("affiliate_links.id"), nullable=True, index=True)

    customer_name = Column(String, nullable=True)
    # Только цифры, без дефисов
    customer_phone = Column(String, nullable=True, index=True)

    # NEW -> CONTACTED -> IN_PROGRESS -> PASSPORT_REQUESTED -> PASSPORT_COMPLETED -> PURCHASED
    status = Column(String, default="NEW", nullable=False, index=True)
    # 'mall-*', 'product-inquiry', 'phone-consultation', 'landing-*', 'partner'
    source = Column(String, nullable=True)

    passport_requested_at = Column(DateTime(timezone=True), nullable=True)
    passport_completed_at = Column(DateTime(timezone=True), nullable=True)
    last_contacted_at = Column(DateTime(timezone=True), nullable=True)
    next_action_at = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)

    meta = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    manager = relationship("AffiliateProfile", foreign_keys=[manager_id])
    agent = relationship("AffiliateProfile", foreign_keys=[agent_id])
    link = relationship("AffiliateLink")
    interactions = relationship(
        "AffiliateInteraction", back_populates="lead", order_by="AffiliateInteraction.occurred_at.desc()"
    )
    sales = relationship("AffiliateSale", back_populates="lead")


class AffiliateInteraction(Base):
    __tablename__ = "affiliate_interactions"

    id = Column(Integer, primary_key=True, index=True)
    lead_id = Column(Integer, ForeignKey("affiliate_leads.id", ondelete="CASCADE"), nullable=False, index=True)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    # 'CALL', 'MESSAGE', 'MEETING', 'NOTE', 'STATUS_CHANGE'
    interaction_type = Column(String, nullable=False)
    note = Column(Text, nullable=True)
    occurred_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    lead = relationship("AffiliateLead", back_populates="interactions")
