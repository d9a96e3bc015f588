# app/schemas/user.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.schemas.common import CamelModel


class LoginRequest(CamelModel):
    login: str = Field(..., min_length=1, description="Логин партнера (boss3) или телефон")
    password: str = Field(..., min_length=1)


class Token(BaseModel):
    ok: bool = True
    access_token: str
    token_type: str = "bearer"


class PasswordChangeRequest(CamelModel):
    current_password: str
    new_password: str


class ProfileSummary(CamelModel):
    id: int
    type: str
    affiliate_code: str
    display_name: Optional[str] = None
    status: str
    landing_slug: Optional[str] = None


class UserMe(CamelModel):
    ok: bool = True
    id: int
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    mall_user_id: Optional[str] = None
    role: str
    created_at: datetime
    affiliate_profile: Optional[ProfileSummary] = None
