# app/services/affiliate.py

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.crud import affiliate as crud_affiliate
from app.models.affiliate import AffiliateProfile
from app.schemas.affiliate import (
    AffiliateProfileBrief,
    AffiliateProfileDetails,
    AffiliateProfileRead,
    PaginatedAffiliateProfiles,
)
from app.schemas.common import total_pages


def get_paginated_profiles(
    db: Session,
    page: int,
    size: int,
    type_filter: str | None = None,
    status_filter: str | None = None,
    search: str | None = None,
) -> PaginatedAffiliateProfiles:
    skip = (page - 1) * size
    total = crud_affiliate.count_profiles(db, type=type_filter, status=status_filter, search=search)
    profiles = crud_affiliate.get_profiles(
        db, skip=skip, limit=size, type=type_filter, status=status_filter, search=search
    )
    return PaginatedAffiliateProfiles(
        total_items=total,
        total_pages=total_pages(total, size),
        current_page=page,
        size=size,
        items=[AffiliateProfileRead.model_validate(p) for p in profiles],
    )


def get_profile_details(db: Session, profile_id: int) -> AffiliateProfileDetails:
    """Профиль с банковскими данными, начальником (для продавца) и командой (для начальника)."""
    profile = crud_affiliate.get_profile(db, profile_id)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="파트너를 찾을 수 없습니다.")

    details = AffiliateProfileDetails.model_validate(profile)
    if profile.type == "BRANCH_MANAGER":
        details.team = [AffiliateProfileBrief.model_validate(a) for a in crud_affiliate.get_team(db, profile.id)]
    elif profile.type == "SALES_AGENT":
        manager_id = crud_affiliate.get_active_manager_id(db, profile.id)
        manager = crud_affiliate.get_profile(db, manager_id) if manager_id else None
        if manager is not None:
            details.manager = AffiliateProfileBrief.model_validate(manager)
    return details


def get_team(db: Session, profile: AffiliateProfile) -> list[AffiliateProfile]:
    if profile.type != "BRANCH_MANAGER":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="대리점장만 팀을 조회할 수 있습니다.")
    return crud_affiliate.get_team(db, profile.id)
