# app/services/sale.py

import logging

from fastapi import HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from app.crud import (
    affiliate as crud_affiliate,
    audit as crud_audit,
    lead as crud_lead,
    link as crud_link,
    notification as crud_notification,
    product as crud_product,
    sale as crud_sale,
)
from app.models.affiliate import AffiliateProfile
from app.models.sale import AffiliateSale
from app.models.user import User
from app.schemas.common import total_pages
from app.schemas.sale import PaginatedSales, SaleCreate, SaleRead
from app.services import commission as commission_service
from app.services import storage as storage_service
from app.utils.dates import utcnow

logger = logging.getLogger(__name__)

AUDIO_TYPES = ("FIRST_CALL", "PASSPORT_GUIDE")


def _get_sale_or_404(db: Session, sale_id: int, for_update: bool = False) -> AffiliateSale:
    sale = crud_sale.get_sale_for_update(db, sale_id) if for_update else crud_sale.get_sale(db, sale_id)
    if sale is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="판매 내역을 찾을 수 없습니다.")
    return sale


def _notify_partners(db: Session, sale: AffiliateSale, type: str, title: str, message: str) -> None:
    for profile in (sale.manager, sale.agent):
        if profile is not None:
            crud_notification.create_notification(
                db, user_id=profile.user_id, type=type, title=title, message=message,
                related_entity_id=str(sale.id), action_url="/partner/sales",
            )


# --- Регистрация продажи ---

async def create_sale(db: Session, data: SaleCreate, admin: User) -> AffiliateSale:
    """
    Регистрирует продажу в статусе PENDING и сразу считает комиссии.
    Партнеры берутся из запроса, иначе из ссылки или лида.
    """
    product = None
    if data.product_code:
        product = crud_product.get_product_by_code(db, data.product_code)
        if product is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="상품을 찾을 수 없습니다.")

    link = None
    if data.link_code:
        link = crud_link.get_link_by_code(db, data.link_code)
        if link is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="링크를 찾을 수 없습니다.")
        if product is None and link.product_id:
            product = link.product

    lead = None
    if data.lead_id:
        lead = crud_lead.get_lead(db, data.lead_id)
        if lead is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="고객을 찾을 수 없습니다.")

    manager_id = data.manager_id or (link.manager_id if link else None) or (lead.manager_id if lead else None)
    agent_id = data.agent_id or (link.agent_id if link else None) or (lead.agent_id if lead else None)
    if agent_id and not manager_id:
        manager_id = crud_affiliate.get_active_manager_id(db, agent_id)
    for profile_id in (manager_id, agent_id):
        if profile_id and crud_affiliate.get_profile(db, profile_id) is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="파트너를 찾을 수 없습니다.")

    tier = crud_product.get_tier(db, product.id, data.cabin_type) if product else None
    if data.cost_amount is not None:
        cost_amount = data.cost_amount
    elif tier is not None:
        cost_amount = tier.cost_amount
    elif product is not None and product.default_cost_amount is not None:
        cost_amount = product.default_cost_amount
    else:
        cost_amount = 0

    sale = AffiliateSale(
        product_id=product.id if product else None,
        link_id=link.id if link else None,
        lead_id=lead.id if lead else None,
        manager_id=manager_id,
        agent_id=agent_id,
        external_order_code=data.external_order_code,
        cabin_type=data.cabin_type,
        sale_amount=data.sale_amount,
        status="PENDING",
        sale_date=data.sale_date or utcnow(),
    )
    breakdown = commission_service.calculate_commissions(
        data.sale_amount, cost_amount, has_agent=bool(agent_id), tier=tier, has_manager=bool(manager_id)
    )
    commission_service.apply_breakdown(db, sale, breakdown)
    db.add(sale)
    db.flush()
    crud_audit.log_action(
        db, admin.id, "affiliate.sale.created", target_type="sale", target_id=sale.id,
        details={"saleAmount": sale.sale_amount, "managerId": manager_id, "agentId": agent_id},
    )
    db.commit()
    db.refresh(sale)
    logger.info(f"Sale {sale.id} recorded: {sale.sale_amount} KRW, manager={manager_id}, agent={agent_id}.")
    await commission_service.invalidate_partner_stats(manager_id, agent_id)
    return sale


# --- Списки ---

def get_paginated_sales(
    db: Session, page: int, size: int,
    status_filter: str | None = None, manager_id: int | None = None, agent_id: int | None = None
) -> PaginatedSales:
    skip = (page - 1) * size
    total = crud_sale.count_sales(db, status=status_filter, manager_id=manager_id, agent_id=agent_id)
    sales = crud_sale.get_sales(
        db, skip=skip, limit=size, status=status_filter, manager_id=manager_id, agent_id=agent_id
    )
    return PaginatedSales(
        total_items=total,
        total_pages=total_pages(total, size),
        current_page=page,
        size=size,
        items=[SaleRead.model_validate(s) for s in sales],
    )


def get_partner_sales(db: Session, profile: AffiliateProfile, status_filter: str | None = None) -> list[AffiliateSale]:
    return crud_sale.get_partner_sales(db, profile.id, status=status_filter)


# --- Решения администратора ---

async def approve_sale(db: Session, sale_id: int, admin: User) -> AffiliateSale:
    """PENDING_APPROVAL -> APPROVED после проверки записи звонка."""
    sale = _get_sale_or_404(db, sale_id, for_update=True)
    if sale.status != "PENDING_APPROVAL":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="승인 대기 중인 판매만 승인할 수 있습니다.")

    sale.status = "APPROVED"
    sale.approved_by_id = admin.id
    commission_service.sync_ledgers(db, sale)
    crud_audit.log_action(db, admin.id, "affiliate.sale.approved", target_type="sale", target_id=sale.id)
    _notify_partners(db, sale, "sale_approved", "판매가 승인되었습니다", f"판매 #{sale.id} ({sale.sale_amount:,}원)")
    db.commit()
    db.refresh(sale)
    logger.info(f"Sale {sale.id} approved by admin {admin.id}.")
    await commission_service.invalidate_partner_stats(sale.manager_id, sale.agent_id)
    return sale


async def approve_commission(db: Session, sale_id: int, admin: User) -> AffiliateSale:
    """Подтверждает продажу (CONFIRMED): начисления попадают в журнал, лид считается купившим."""
    sale = _get_sale_or_404(db, sale_id, for_update=True)
    if sale.status in ("CONFIRMED", "APPROVED"):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="이미 승인된 판매입니다.")
    if sale.status not in ("PENDING", "PENDING_APPROVAL"):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="승인할 수 없는 상태입니다.")

    now = utcnow()
    sale.status = "CONFIRMED"
    sale.confirmed_at = now
    sale.approved_by_id = admin.id
    commission_service.sync_ledgers(db, sale)

    if sale.lead is not None and sale.lead.status != "PURCHASED":
        sale.lead.status = "PURCHASED"
        crud_lead.add_interaction(
            db, sale.lead.id, "STATUS_CHANGE", f"판매 #{sale.id} 확정으로 구매 완료 처리", admin.id
        )

    crud_audit.log_action(db, admin.id, "affiliate.sale.confirmed", target_type="sale", target_id=sale.id)
    _notify_partners(db, sale, "sale_approved", "판매가 확정되었습니다", f"판매 #{sale.id} ({sale.sale_amount:,}원)")
    db.commit()
    db.refresh(sale)
    logger.info(f"Sale {sale.id} confirmed by admin {admin.id}.")
    await commission_service.invalidate_partner_stats(sale.manager_id, sale.agent_id)
    return sale


async def reject_sale(db: Session, sale_id: int, admin: User, reason: str | None) -> AffiliateSale:
    if not (reason or "").strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="거절 사유를 입력해주세요.")
    sale = _get_sale_or_404(db, sale_id, for_update=True)
    if sale.status != "PENDING_APPROVAL":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="승인 대기 중인 판매만 거절할 수 있습니다.")

    sale.status = "REJECTED"
    sale.rejection_reason = reason.strip()
    sale.submitted_at = None
    sale.submitted_by_id = None
    crud_audit.log_action(
        db, admin.id, "affiliate.sale.rejected", target_type="sale", target_id=sale.id, details={"reason": reason}
    )
    _notify_partners(db, sale, "sale_rejected", "판매 확인이 거절되었습니다", reason.strip())
    db.commit()
    db.refresh(sale)
    logger.info(f"Sale {sale.id} rejected by admin {admin.id}.")
    await commission_service.invalidate_partner_stats(sale.manager_id, sale.agent_id)
    return sale


# --- Подтверждение продажи партнером ---

async def submit_confirmation(
    db: Session, sale_id: int, profile: AffiliateProfile, user: User, audio_type: str, audio: UploadFile
) -> AffiliateSale:
    """
    Партнер прикладывает запись звонка, продажа уходит на проверку (PENDING_APPROVAL).
    """
    sale = _get_sale_or_404(db, sale_id)
    if profile.id not in (sale.agent_id, sale.manager_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="본인의 판매만 확인 요청할 수 있습니다.")
    if sale.status in ("PENDING_APPROVAL", "APPROVED"):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="이미 확인 요청되었거나 승인된 판매입니다.")
    if audio_type not in AUDIO_TYPES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="녹음 유형은 FIRST_CALL 또는 PASSPORT_GUIDE여야 합니다.")

    file_path = await storage_service.save_audio_file(audio, sale.id)
    previous_path = sale.audio_file_path

    sale.status = "PENDING_APPROVAL"
    sale.submitted_at = utcnow()
    sale.submitted_by_id = user.id
    sale.audio_file_path = file_path
    sale.audio_file_type = audio_type
    sale.rejection_reason = None
    db.commit()
    db.refresh(sale)
    logger.info(f"Sale {sale.id} submitted for confirmation by user {user.id} ({audio_type}).")

    if previous_path and previous_path != file_path:
        await storage_service.remove_file(previous_path)
    return sale


def cancel_confirmation(db: Session, sale_id: int, user: User) -> AffiliateSale:
    sale = _get_sale_or_404(db, sale_id)
    if sale.submitted_by_id != user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="요청한 사람만 취소할 수 있습니다.")
    if sale.status != "PENDING_APPROVAL":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="승인 대기 중인 요청만 취소할 수 있습니다.")

    sale.status = "PENDING"
    sale.submitted_at = None
    sale.submitted_by_id = None
    db.commit()
    db.refresh(sale)
    logger.info(f"Sale {sale.id} confirmation cancelled by user {user.id}.")
    return sale
