# app/models/landing.py
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, JSON, String, Text, func
from sqlalchemy.orm import relationship

from app.db.session import Base


class LandingPage(Base):
    __tablename__ = "landing_pages"

    id = Column(Integer, primary_key=True, index=True)
    slug = Column(String, unique=True, index=True, nullable=False)
    title = Column(String, nullable=False)
    html_content = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    is_public = Column(Boolean, default=True, nullable=False)
    # {"productPurchase": {"enabled": true, "sellingPrice": 990000, "productName": "..."}}
    business_info = Column(JSON, nullable=True)
    view_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    registrations = relationship("LandingPageRegistration", back_populates="landing_page")


class LandingPageRegistration(Base):
    __tablename__ = "landing_page_registrations"

    id = Column(Integer, primary_key=True, index=True)
    landing_page_id = Column(Integer, ForeignKey("landing_pages.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    name = Column(String, nullable=False)
    phone = Column(String, nullable=False)
    email = Column(String, nullable=True)
    registered_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    # Мягкое удаление
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    meta = Column("metadata", JSON, nullable=True)

    landing_page = relationship("LandingPage", back_populates="registrations")
