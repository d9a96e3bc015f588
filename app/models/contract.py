# app/models/contract.py
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, JSON, String, func
from sqlalchemy.orm import relationship

from app.db.session import Base


class AffiliateContract(Base):
    __tablename__ = "affiliate_contracts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    invited_by_profile_id = Column(Integer, ForeignKey("affiliate_profiles.id"), nullable=True)

    name = Column(String, nullable=False)
    phone = Column(String, nullable=False, index=True)
    email = Column(String, nullable=True)
    address = Column(String, nullable=True)
    # Хранится только в маскированном виде: 900101-1******
    resident_id_masked = Column(String, nullable=True)

    bank_name = Column(String, nullable=True)
    bank_account = Column(String, nullable=True)
    bank_account_holder = Column(String, nullable=True)

    consent_privacy = Column(Boolean, default=False, nullable=False)
    consent_compliance = Column(Boolean, default=False, nullable=False)
    consent_image = Column(Boolean, default=False, nullable=False)
    consent_commission = Column(Boolean, default=False, nullable=False)
    consent_tax = Column(Boolean, default=False, nullable=False)

    # 'SALES_AGENT', 'BRANCH_MANAGER', 'CRUISE_STAFF', 'PRIMARKETER', 'SUBSCRIPTION_AGENT' или NULL
    contract_type = Column(String, nullable=True)
    # 'submitted', 'in_review', 'approved', 'rejected', 'completed', 'terminated'
    status = Column(String, default="submitted", nullable=False, index=True)

    reviewer_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    submitted_at = Column(DateTime(timezone=True), server_default=func.now())

    # signatures, renewalDate, renewalRequestStatus, dbRecovered, paymentStatus ...
    meta = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", foreign_keys=[user_id])
    invited_by = relationship("AffiliateProfile", foreign_keys=[invited_by_profile_id])
