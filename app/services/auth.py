# app/services/auth.py

import logging

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.core.security import create_access_token, get_password_hash, verify_password
from app.crud import affiliate as crud_affiliate, user as crud_user
from app.models.user import User
from app.schemas.user import PasswordChangeRequest, ProfileSummary, Token, UserMe

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 4


def login(db: Session, login: str, password: str) -> Token:
    """
    Вход по логину партнера (boss3) или телефону.
    Неверная пара логин/пароль -> 401, заблокированный пользователь -> 403.
    """
    user = crud_user.get_user_by_login(db, login)
    if user is None or not user.password_hash or not verify_password(password, user.password_hash):
        logger.info(f"Failed login attempt for '{login}'.")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="아이디 또는 비밀번호가 올바르지 않습니다."
        )
    if user.is_blocked:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="차단된 계정입니다.")

    token = create_access_token(data={"sub": str(user.id)})
    logger.info(f"User {user.id} logged in.")
    return Token(access_token=token)


def get_me(db: Session, user: User) -> UserMe:
    profile = crud_affiliate.get_profile_by_user_id(db, user.id)
    me = UserMe.model_validate(user)
    me.affiliate_profile = ProfileSummary.model_validate(profile) if profile else None
    return me


def change_password(db: Session, user: User, data: PasswordChangeRequest) -> None:
    if not user.password_hash or not verify_password(data.current_password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="현재 비밀번호가 올바르지 않습니다.")
    if len(data.new_password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"새 비밀번호는 {MIN_PASSWORD_LENGTH}자 이상이어야 합니다."
        )
    user.password_hash = get_password_hash(data.new_password)
    db.commit()
    logger.info(f"User {user.id} changed password.")
