# app/routers/admin/profiles.py

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.dependencies import get_db
from app.schemas.affiliate import AffiliateProfileDetailsResponse, PaginatedAffiliateProfiles
from app.services import affiliate as affiliate_service

router = APIRouter()


@router.get("", response_model=PaginatedAffiliateProfiles)
def get_profiles(
    type_filter: Optional[Literal["HQ", "BRANCH_MANAGER", "SALES_AGENT"]] = Query(None, alias="type"),
    status_filter: Optional[str] = Query(None, alias="status"),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db)
):
    return affiliate_service.get_paginated_profiles(db, page, size, type_filter, status_filter, search)


@router.get("/{profile_id}", response_model=AffiliateProfileDetailsResponse)
def get_profile(profile_id: int, db: Session = Depends(get_db)):
    return AffiliateProfileDetailsResponse(profile=affiliate_service.get_profile_details(db, profile_id))
