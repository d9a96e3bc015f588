# app/routers/admin/landing.py

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from app.dependencies import get_db
from app.schemas.landing import (
    LandingPageCreate,
    LandingPageListResponse,
    LandingPageRead,
    LandingPageResponse,
    LandingPageStats,
    LandingPageUpdate,
    PaginatedRegistrations,
)
from app.services import landing as landing_service

router = APIRouter()


@router.get("", response_model=LandingPageListResponse)
def get_pages(db: Session = Depends(get_db)):
    return LandingPageListResponse(pages=[LandingPageRead.model_validate(p) for p in landing_service.get_pages(db)])


@router.post("", response_model=LandingPageResponse, status_code=status.HTTP_201_CREATED)
def create_page(data: LandingPageCreate, db: Session = Depends(get_db)):
    return LandingPageResponse(page=landing_service.create_page(db, data))


@router.get("/{page_id}", response_model=LandingPageResponse)
def get_page(page_id: int, db: Session = Depends(get_db)):
    return LandingPageResponse(page=landing_service.get_page(db, page_id))


@router.patch("/{page_id}", response_model=LandingPageResponse)
def update_page(page_id: int, data: LandingPageUpdate, db: Session = Depends(get_db)):
    return LandingPageResponse(page=landing_service.update_page(db, page_id, data))


@router.delete("/{page_id}", status_code=204)
def delete_page(page_id: int, db: Session = Depends(get_db)):
    """Страница с регистрациями не удаляется, а выключается."""
    landing_service.delete_page(db, page_id)
    return Response(status_code=204)


@router.get("/{page_id}/registrations", response_model=PaginatedRegistrations)
def get_registrations(
    page_id: int,
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db)
):
    return landing_service.get_registrations(db, page_id, page, size)


@router.delete("/{page_id}/registrations/{registration_id}", status_code=204)
def delete_registration(page_id: int, registration_id: int, db: Session = Depends(get_db)):
    landing_service.delete_registration(db, page_id, registration_id)
    return Response(status_code=204)


@router.get("/{page_id}/stats", response_model=LandingPageStats)
def get_page_stats(page_id: int, db: Session = Depends(get_db)):
    return landing_service.get_stats(db, page_id)
