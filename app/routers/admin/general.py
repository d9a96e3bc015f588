# app/routers/admin/general.py

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.redis import invalidate_pattern
from app.dependencies import get_db
from app.schemas.admin import PaginatedAuditLogs
from app.schemas.common import OkResponse
from app.schemas.dashboard import AdminDashboard
from app.services import audit as audit_service, dashboard as dashboard_service

logger = logging.getLogger(__name__)

# Префикс не указываем: /admin/dashboard, /admin/audit-logs, /admin/cache/clear
router = APIRouter()


@router.get("/dashboard", response_model=AdminDashboard)
async def get_admin_dashboard(db: Session = Depends(get_db)):
    """
    [АДМИН] Сводные счетчики для главного экрана админки.
    """
    return await dashboard_service.get_admin_dashboard(db)


@router.get("/audit-logs", response_model=PaginatedAuditLogs)
def get_audit_logs(
    action: Optional[str] = Query(None, description="Например affiliate.contract.approved"),
    page: int = Query(1, ge=1),
    size: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db)
):
    return audit_service.get_paginated_logs(db, page, size, action)


@router.post("/cache/clear", response_model=OkResponse)
async def clear_dashboard_cache():
    """Сбрасывает кеш дашбордов (админского и партнерских)."""
    deleted = await invalidate_pattern("admin_dashboard:*")
    deleted += await invalidate_pattern("partner_stats:*")
    logger.info(f"Dashboard cache cleared by admin ({deleted} keys).")
    return OkResponse(message=f"{deleted}개의 캐시가 삭제되었습니다.")
