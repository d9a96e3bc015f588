# app/models/marketing.py
from sqlalchemy import Column, DateTime, Integer, String, Text, func

from app.db.session import Base


class MarketingCustomer(Base):
    __tablename__ = "marketing_customers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=True)
    phone = Column(String, unique=True, index=True, nullable=True)
    email = Column(String, nullable=True)
    source = Column(String, nullable=True)
    # 'NEW', 'ACTIVE', 'UNSUBSCRIBED'
    status = Column(String, default="NEW", nullable=False, index=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
