# app/routers/auth.py
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.core.limiter import PUBLIC_FORM_LIMIT, limiter
from app.dependencies import get_current_user, get_db
from app.models.user import User
from app.schemas.user import LoginRequest, Token, UserMe
from app.services import auth as auth_service

router = APIRouter(prefix="/auth")


@router.post("/login", response_model=Token)
@limiter.limit(PUBLIC_FORM_LIMIT)
def login(
    request: Request,
    login_data: LoginRequest,
    db: Session = Depends(get_db)
):
    """
    Вход партнера или администратора по логину (boss3 / user12) или телефону.
    Защищено лимитом запросов с одного IP.
    """
    return auth_service.login(db, login_data.login, login_data.password)


@router.get("/me", response_model=UserMe)
def read_me(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Текущий пользователь и краткие данные его партнерского профиля."""
    return auth_service.get_me(db, current_user)
