# app/crud/landing.py
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.landing import LandingPage, LandingPageRegistration


def get_page(db: Session, page_id: int) -> LandingPage | None:
    return db.query(LandingPage).filter(LandingPage.id == page_id).first()

def get_page_by_slug(db: Session, slug: str) -> LandingPage | None:
    return db.query(LandingPage).filter(LandingPage.slug == slug).first()

def get_public_page(db: Session, slug: str) -> LandingPage | None:
    return db.query(LandingPage).filter(
        LandingPage.slug == slug,
        LandingPage.is_active == True,
        LandingPage.is_public == True,
    ).first()

def get_pages(db: Session) -> list[LandingPage]:
    return db.query(LandingPage).order_by(LandingPage.id.desc()).all()

def get_registrations(db: Session, page_id: int, skip: int = 0, limit: int = 50) -> list[LandingPageRegistration]:
    return db.query(LandingPageRegistration).filter(
        LandingPageRegistration.landing_page_id == page_id,
        LandingPageRegistration.deleted_at.is_(None),
    ).order_by(LandingPageRegistration.registered_at.desc(), LandingPageRegistration.id.desc()).offset(skip).limit(limit).all()

def get_registration(db: Session, page_id: int, registration_id: int) -> LandingPageRegistration | None:
    return db.query(LandingPageRegistration).filter(
        LandingPageRegistration.id == registration_id,
        LandingPageRegistration.landing_page_id == page_id,
        LandingPageRegistration.deleted_at.is_(None),
    ).first()

def count_registrations(db: Session, page_id: int, include_deleted: bool = False) -> int:
    query = db.query(func.count(LandingPageRegistration.id)).filter(
        LandingPageRegistration.landing_page_id == page_id,
    )
    if not include_deleted:
        query = query.filter(LandingPageRegistration.deleted_at.is_(None))
    return query.scalar()
