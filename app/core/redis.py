# app/core/redis.py
import logging
from typing import Optional, Type, TypeVar

import redis.asyncio as redis
from pydantic import BaseModel

from app.core.config import settings

logger = logging.getLogger(__name__)

ModelType = TypeVar("ModelType", bound=BaseModel)

# decode_responses=True автоматически декодирует ответы из байтов в строки
redis_client = redis.Redis.from_url(settings.REDIS_URL, decode_responses=True)


async def get_redis_client():
    """
    Зависимость для получения клиента Redis в эндпоинтах.
    """
    return redis_client


async def get_cached_model(key: str, model: Type[ModelType]) -> Optional[ModelType]:
    """Читает pydantic-модель из кеша. Недоступный Redis означает промах, а не ошибку."""
    try:
        cached = await redis_client.get(key)
    except redis.RedisError:
        logger.warning(f"Redis unavailable while reading '{key}'.", exc_info=True)
        return None
    if not cached:
        return None
    return model.model_validate_json(cached)


async def set_cached_model(key: str, value: BaseModel, ttl_seconds: int) -> None:
    try:
        await redis_client.set(key, value.model_dump_json(), ex=ttl_seconds)
    except redis.RedisError:
        logger.warning(f"Redis unavailable while writing '{key}'.", exc_info=True)


async def invalidate_pattern(pattern: str) -> int:
    """Удаляет все ключи по маске (SCAN, без блокирующего KEYS)."""
    deleted = 0
    try:
        async for key in redis_client.scan_iter(match=pattern):
            deleted += await redis_client.delete(key)
    except redis.RedisError:
        logger.warning(f"Redis unavailable while invalidating '{pattern}'.", exc_info=True)
    return deleted
