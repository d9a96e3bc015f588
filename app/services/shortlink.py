# app/services/shortlink.py

import logging
from dataclasses import dataclass
from datetime import datetime

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.core.config import settings
from app.crud import link as crud_link
from app.models.link import ShortLink
from app.utils.codes import random_code
from app.utils.dates import as_utc, utcnow

logger = logging.getLogger(__name__)

SHORT_CODE_LENGTH = 6
LONG_CODE_LENGTH = 8
# После стольких коллизий подряд переходим на длинный код
MAX_SHORT_ATTEMPTS = 10


@dataclass
class CreatedShortLink:
    code: str
    url: str
    short_url: str


def build_short_url(code: str) -> str:
    return f"{settings.SHORTLINK_BASE}/p/{code}"


def _generate_unique_code(db: Session) -> str:
    attempts = 0
    while True:
        length = SHORT_CODE_LENGTH if attempts < MAX_SHORT_ATTEMPTS else LONG_CODE_LENGTH
        code = random_code(length)
        if crud_link.get_short_link_by_code(db, code) is None:
            return code
        attempts += 1
        logger.debug(f"Short link code collision #{attempts} for '{code}'.")


def create_short_link(
    db: Session,
    url: str | None,
    contract_type: str | None = None,
    expires_at: datetime | None = None,
    created_by_id: int | None = None,
) -> CreatedShortLink:
    """
    Возвращает действующий код для той же пары (url, contract_type)
    или создает новый.
    """
    url = (url or "").strip()
    if not url:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="URL이 필요합니다.")

    existing = crud_link.find_short_link(db, url, contract_type, now=utcnow())
    if existing is not None:
        return CreatedShortLink(code=existing.code, url=existing.url, short_url=build_short_url(existing.code))

    short_link = ShortLink(
        code=_generate_unique_code(db),
        url=url,
        contract_type=contract_type,
        expires_at=expires_at,
        created_by_id=created_by_id,
    )
    db.add(short_link)
    db.commit()
    db.refresh(short_link)
    logger.info(f"Short link '{short_link.code}' created for {url}.")
    return CreatedShortLink(code=short_link.code, url=short_link.url, short_url=build_short_url(short_link.code))


def resolve_short_link(db: Session, code: str) -> str:
    """Находит ссылку, считает переход и возвращает целевой URL. Просроченная = не найдена."""
    short_link = crud_link.get_short_link_by_code(db, code)
    if short_link is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="링크를 찾을 수 없습니다.")
    now = utcnow()
    if short_link.expires_at is not None and as_utc(short_link.expires_at) < now:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="만료된 링크입니다.")

    short_link.click_count = (short_link.click_count or 0) + 1
    short_link.last_accessed_at = now
    db.commit()
    return short_link.url
