# app/routers/admin/shortlinks.py

from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.crud import link as crud_link
from app.dependencies import get_admin_user, get_db
from app.models.user import User
from app.schemas.link import ShortLinkCreate, ShortLinkRead, ShortLinkResponse
from app.services import shortlink as shortlink_service

router = APIRouter()


@router.post("", response_model=ShortLinkResponse, status_code=status.HTTP_201_CREATED)
def create_short_link(
    data: ShortLinkCreate,
    admin: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    """Для той же пары (url, contractType) возвращается уже выданный код."""
    created = shortlink_service.create_short_link(
        db, data.url, data.contract_type, data.expires_at, created_by_id=admin.id
    )
    return ShortLinkResponse(code=created.code, short_url=created.short_url, url=created.url)


@router.get("", response_model=List[ShortLinkRead])
def get_short_links(limit: int = Query(100, ge=1, le=500), db: Session = Depends(get_db)):
    return crud_link.get_short_links(db, limit)
