# app/models/user.py

from sqlalchemy import Column, Integer, String, Boolean, DateTime, func
from sqlalchemy.orm import relationship
from app.db.session import Base

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=True)
    phone = Column(String, index=True, nullable=True)
    email = Column(String, nullable=True)

    # Логин партнера вида boss3 / user12, выдается при одобрении договора
    mall_user_id = Column(String, unique=True, index=True, nullable=True)
    mall_nickname = Column(String, nullable=True)
    password_hash = Column(String, nullable=True)

    # 'admin', 'community' (партнеры и клиенты мола), 'user'
    role = Column(String, default="community", nullable=False, server_default='community')
    is_blocked = Column(Boolean, default=False, nullable=False, server_default='false')

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    affiliate_profile = relationship("AffiliateProfile", back_populates="user", uselist=False)
