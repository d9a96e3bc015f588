# app/services/audit.py
from sqlalchemy.orm import Session

from app.crud import audit as crud_audit
from app.schemas.admin import AuditLogRead, PaginatedAuditLogs
from app.schemas.common import total_pages


def get_paginated_logs(db: Session, page: int, size: int, action: str | None = None) -> PaginatedAuditLogs:
    skip = (page - 1) * size
    total = crud_audit.count_logs(db, action=action)
    logs = crud_audit.get_logs(db, skip=skip, limit=size, action=action)
    return PaginatedAuditLogs(
        total_items=total,
        total_pages=total_pages(total, size),
        current_page=page,
        size=size,
        items=[AuditLogRead.model_validate(log) for log in logs],
    )
