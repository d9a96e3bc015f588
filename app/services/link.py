# app/services/link.py

import logging
import re
from datetime import datetime, timedelta

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.core.config import settings
from app.crud import (
    affiliate as crud_affiliate,
    audit as crud_audit,
    lead as crud_lead,
    link as crud_link,
    product as crud_product,
    sale as crud_sale,
)
from app.dependencies import get_db_context
from app.models.affiliate import AffiliateProfile
from app.models.link import AffiliateLink
from app.models.user import User
from app.schemas.common import StatusCount
from app.schemas.link import LinkCleanupResult, LinkCreate, LinkUpdate, PartnerShareUrls
from app.services.product import generate_unique_link_code
from app.utils.dates import as_utc, utcnow

logger = logging.getLogger(__name__)

INACTIVE_UNUSED_DAYS = 180
OLD_LINK_DAYS = 365
TEST_LINK_DAYS = 30
TEST_CAMPAIGN_RE = re.compile(r"test|temp|임시", re.IGNORECASE)


def _get_link_or_404(db: Session, link_id: int) -> AffiliateLink:
    link = crud_link.get_link(db, link_id)
    if link is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="링크를 찾을 수 없습니다.")
    return link


def get_links(db: Session, status_filter: str | None = None) -> list[AffiliateLink]:
    return crud_link.get_links(db, status=status_filter)


def create_link(db: Session, data: LinkCreate, admin: User) -> AffiliateLink:
    """Выдает ссылку начальнику филиала, продавцу или на товар."""
    product = None
    if data.product_code:
        product = crud_product.get_product_by_code(db, data.product_code)
        if product is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="상품을 찾을 수 없습니다.")

    manager_id = data.manager_id
    if data.agent_id:
        agent = crud_affiliate.get_profile(db, data.agent_id)
        if agent is None or agent.type != "SALES_AGENT":
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="판매원을 찾을 수 없습니다.")
        manager_id = manager_id or crud_affiliate.get_active_manager_id(db, agent.id)
    if manager_id:
        manager = crud_affiliate.get_profile(db, manager_id)
        if manager is None or manager.type != "BRANCH_MANAGER":
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="대리점장을 찾을 수 없습니다.")

    link = AffiliateLink(
        code=generate_unique_link_code(db),
        title=data.title or (product.title if product else None),
        product_code=product.product_code if product else None,
        product_id=product.id if product else None,
        manager_id=manager_id,
        agent_id=data.agent_id,
        issued_by_id=admin.id,
        campaign_name=data.campaign_name,
        expires_at=data.expires_at,
        status="ACTIVE",
    )
    db.add(link)
    db.flush()
    crud_audit.log_action(
        db, admin.id, "affiliate.link.created", target_type="link", target_id=link.id, details={"code": link.code}
    )
    db.commit()
    db.refresh(link)
    logger.info(f"Admin {admin.id} issued link {link.code} (manager={manager_id}, agent={data.agent_id}).")
    return link


def update_link(db: Session, link_id: int, data: LinkUpdate, admin: User) -> AffiliateLink:
    link = _get_link_or_404(db, link_id)
    update_data = data.model_dump(exclude_unset=True)
    for key, value in update_data.items():
        if key == "status" and value is None:
            continue
        setattr(link, key, value)
    crud_audit.log_action(
        db, admin.id, "affiliate.link.updated", target_type="link", target_id=link.id,
        details={k: str(v) for k, v in update_data.items()},
    )
    db.commit()
    db.refresh(link)
    return link


# --- Кабинет партнера ---

def build_share_urls(profile: AffiliateProfile) -> PartnerShareUrls:
    base = settings.BASE_URL.rstrip("/")
    user = profile.user
    shop_url = f"{base}/{user.mall_user_id}/shop" if user and user.mall_user_id else None
    store_url = None
    if profile.affiliate_code and profile.landing_slug:
        store_url = f"{base}/store/{profile.affiliate_code}/{profile.landing_slug}"
    return PartnerShareUrls(shop_url=shop_url, store_url=store_url)


def get_partner_links(
    db: Session, profile: AffiliateProfile, status_filter: str | None = None
) -> tuple[list[AffiliateLink], PartnerShareUrls]:
    links = crud_link.get_partner_links(db, profile.id, profile.user_id, status=status_filter)
    return links, build_share_urls(profile)


# --- Очистка ---

def classify_link(link: AffiliateLink, now: datetime) -> tuple[str, str] | None:
    """
    Категория очистки и новый статус ссылки, либо None, если ссылку не трогаем.
    """
    expires_at = as_utc(link.expires_at)
    created_at = as_utc(link.created_at) or now
    last_used = as_utc(link.last_accessed_at) or created_at
    unused_for = now - last_used

    if link.status == "ACTIVE" and expires_at and expires_at < now:
        return "expired", "EXPIRED"
    if link.status in ("EXPIRED", "REVOKED"):
        return None
    if link.status == "INACTIVE" and unused_for > timedelta(days=INACTIVE_UNUSED_DAYS):
        return "inactive", "REVOKED"
    if now - created_at > timedelta(days=OLD_LINK_DAYS) and unused_for > timedelta(days=INACTIVE_UNUSED_DAYS):
        return "old", "REVOKED"
    if (
        now - created_at > timedelta(days=TEST_LINK_DAYS)
        and link.campaign_name
        and TEST_CAMPAIGN_RE.search(link.campaign_name)
    ):
        return "test", "REVOKED"
    return None


def cleanup_links(db: Session, dry_run: bool = True, now: datetime | None = None) -> LinkCleanupResult:
    """
    Просроченные, заброшенные и тестовые ссылки. Ссылки, по которым
    есть лиды или продажи, не трогаются никогда.
    """
    now = now or utcnow()
    protected = crud_lead.link_ids_with_activity(db) | crud_sale.link_ids_with_sales(db)
    counts = {"expired": 0, "inactive": 0, "old": 0, "test": 0}

    for link in crud_link.get_links(db):
        if link.id in protected:
            continue
        verdict = classify_link(link, now)
        if verdict is None:
            continue
        category, new_status = verdict
        counts[category] += 1
        if not dry_run:
            link.status = new_status
            link.meta = {**(link.meta or {}), "cleanupCategory": category, "cleanedAt": now.isoformat()}

    if not dry_run:
        db.commit()
    total = sum(counts.values())
    logger.info(f"Link cleanup ({'preview' if dry_run else 'run'}): {counts}, total {total}.")
    return LinkCleanupResult(
        dry_run=dry_run,
        total=total,
        status_counts=[StatusCount(**row) for row in crud_link.count_links_by_status(db)],
        **counts,
    )


def cleanup_affiliate_links_task():
    """Ежедневная задача планировщика: очистка партнерских ссылок."""
    logger.info("--- Starting scheduled task: affiliate link cleanup ---")
    with get_db_context() as db:
        result = cleanup_links(db, dry_run=False)
    logger.info(f"--- Finished task: affiliate link cleanup. Updated {result.total} links ---")
