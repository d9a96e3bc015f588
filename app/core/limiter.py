# app/core/limiter.py

import logging
from typing import Optional

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.core.config import settings
from app.models.user import User

logger = logging.getLogger(__name__)

# Лимиты для публичных эндпоинтов
PUBLIC_FORM_LIMIT = "10/minute"
CHATBOT_LIMIT = "60/minute"


def key_func(request: Request) -> str:
    """
    Определяет, как идентифицировать запрос для применения лимита.
    Приоритет: ID пользователя (если авторизован) -> IP-адрес.
    Прокси передает реальный адрес клиента в X-Forwarded-For.
    """
    user: Optional[User] = getattr(request.state, "user", None)
    if user and user.id:
        return f"user:{user.id}"

    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return get_remote_address(request)


# Счетчики храним в Redis, чтобы лимиты были общими для всех воркеров.
# В тестах лимитер выключается через RATE_LIMIT_ENABLED=false
limiter = Limiter(
    key_func=key_func,
    storage_uri=settings.REDIS_URL,
    strategy="moving-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)
