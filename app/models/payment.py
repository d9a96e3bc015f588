# app/models/payment.py
from sqlalchemy import Column, DateTime, ForeignKey, Integer, JSON, String, func

from app.db.session import Base


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    # LP_{pageId}_{ms}_{rand} для лендингов, CT_{contractId}_{ms} для договоров
    order_id = Column(String, unique=True, index=True, nullable=False)
    product_code = Column(String, nullable=True)
    product_name = Column(String, nullable=True)
    amount = Column(Integer, nullable=False)
    currency = Column(String, default="KRW", nullable=False)

    # 'pending', 'completed', 'cancelled', 'failed'
    status = Column(String, default="pending", nullable=False, index=True)
    buyer_name = Column(String, nullable=True)
    buyer_phone = Column(String, nullable=True)
    buyer_email = Column(String, nullable=True)

    contract_id = Column(Integer, ForeignKey("affiliate_contracts.id"), nullable=True)
    pg_transaction_id = Column(String, nullable=True)
    pay_url = Column(String, nullable=True)

    meta = Column("metadata", JSON, nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
