# app/routers/admin/links.py

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.dependencies import get_admin_user, get_db
from app.models.user import User
from app.schemas.link import (
    LinkCleanupResult,
    LinkCreate,
    LinkListResponse,
    LinkRead,
    LinkResponse,
    LinkStatus,
    LinkUpdate,
)
from app.services import link as link_service

router = APIRouter()


@router.get("", response_model=LinkListResponse)
def get_links(
    status_filter: Optional[LinkStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db)
):
    links = link_service.get_links(db, status_filter)
    return LinkListResponse(links=[LinkRead.model_validate(l) for l in links])


@router.post("", response_model=LinkResponse, status_code=status.HTTP_201_CREATED)
def create_link(
    data: LinkCreate,
    admin: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    return LinkResponse(link=link_service.create_link(db, data, admin))


# /cleanup объявлен раньше /{link_id}
@router.get("/cleanup", response_model=LinkCleanupResult)
def preview_cleanup(db: Session = Depends(get_db)):
    """Что будет очищено, без изменений в базе."""
    return link_service.cleanup_links(db, dry_run=True)


@router.post("/cleanup", response_model=LinkCleanupResult)
def run_cleanup(db: Session = Depends(get_db)):
    return link_service.cleanup_links(db, dry_run=False)


@router.patch("/{link_id}", response_model=LinkResponse)
def update_link(
    link_id: int,
    data: LinkUpdate,
    admin: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    return LinkResponse(link=link_service.update_link(db, link_id, data, admin))
