# app/dependencies.py

import logging
from typing import Optional, Iterator
from contextlib import contextmanager

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from jose import JWTError, jwt
from fastapi import Request
from app.core.config import settings
from app.db.session import SessionLocal
from app.models.affiliate import AffiliateProfile
from app.models.user import User

# --- Инициализация логгера ---
logger = logging.getLogger(__name__)

# --- Схемы аутентификации ---
# auto_error=False: отсутствие токена превращаем в 401 сами, а не в 403 FastAPI
strict_bearer_scheme = HTTPBearer(auto_error=False)
optional_bearer_scheme = HTTPBearer(auto_error=False)

# --- Управление сессией БД ---
def get_db_session_instance() -> Session:
    """Создает и возвращает экземпляр сессии БД."""
    return SessionLocal()

def get_db() -> Iterator[Session]:
    """
    Основная зависимость FastAPI для получения сессии БД.
    Это генератор, который корректно работает с `Depends`.
    """
    db = get_db_session_instance()
    try:
        yield db
    finally:
        db.close()

@contextmanager
def get_db_context() -> Iterator[Session]:
    """
    Контекстный менеджер для получения сессии БД вне FastAPI (для фоновых задач).
    """
    db = get_db_session_instance()
    try:
        yield db
    finally:
        db.close()

# --- Зависимости аутентификации и авторизации ---

def _user_id_from_token(token: str) -> Optional[int]:
    payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    user_id = payload.get("sub")
    if user_id is None:
        return None
    return int(user_id)


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(strict_bearer_scheme),
    db: Session = Depends(get_db)
) -> User:
    """
    ОБЯЗАТЕЛЬНАЯ зависимость.
    Требует валидный токен. Если его нет или он невалиден - вызывает ошибку 401.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="로그인이 필요합니다.",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if not credentials:
        raise credentials_exception

    try:
        user_id = _user_id_from_token(credentials.credentials)
    except (JWTError, ValueError) as e:
        logger.warning(f"JWT Error during token decoding: {e}")
        raise credentials_exception
    if user_id is None:
        logger.warning("Token payload is missing 'sub' (user_id).")
        raise credentials_exception

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        logger.warning(f"User with ID {user_id} from token not found in DB.")
        raise credentials_exception
    if user.is_blocked:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="차단된 계정입니다.")
    request.state.user = user
    logger.debug(f"Authenticated user ID: {user.id} (role: {user.role})")
    return user


def get_optional_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_bearer_scheme),
    db: Session = Depends(get_db)
) -> Optional[User]:
    """
    ОПЦИОНАЛЬНАЯ зависимость.
    Если токен предоставлен и валиден - возвращает пользователя, иначе None.
    """
    if not credentials:
        return None

    try:
        user_id = _user_id_from_token(credentials.credentials)
    except (JWTError, ValueError):
        logger.warning("Optional token is invalid.")
        return None
    if user_id is None:
        return None

    user = db.query(User).filter(User.id == user_id).first()
    request.state.user = user
    return user


def get_admin_user(current_user: User = Depends(get_current_user)) -> User:
    """
    Зависимость для защиты админских эндпоинтов.
    Проверяет, является ли текущий аутентифицированный пользователь администратором.
    """
    if current_user.role != "admin":
        logger.warning(f"Permission denied for user {current_user.id} with role '{current_user.role}'.")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="관리자 권한이 필요합니다."
        )
    return current_user


def get_partner_profile(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> AffiliateProfile:
    """
    Зависимость для кабинета партнера: нужен активный партнерский профиль.
    """
    profile = db.query(AffiliateProfile).filter(AffiliateProfile.user_id == current_user.id).first()
    if profile is None or profile.status != "ACTIVE":
        logger.warning(f"User {current_user.id} has no active affiliate profile.")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="파트너 권한이 필요합니다."
        )
    return profile
