# app/models/notification.py
from sqlalchemy import Column, Integer, String, Text, ForeignKey, DateTime, func, Boolean
from app.db.session import Base
from sqlalchemy.orm import relationship

class Notification(Base):
    """Уведомление в кабинете партнера."""
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    # 'contract_approved', 'sale_approved', 'sale_rejected', 'commission_adjusted', ...
    type = Column(String, nullable=False, index=True)
    title = Column(String, nullable=False)
    message = Column(Text, nullable=True)

    # ID связанной сущности (договора, продажи, начисления)
    related_entity_id = Column(String, nullable=True)
    action_url = Column(String, nullable=True)

    is_read = Column(Boolean, default=False, nullable=False, server_default='false')
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User")
