# app/crud/audit.py
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.audit import AdminActionLog


def log_action(
    db: Session,
    admin_id: int | None,
    action: str,
    target_type: str | None = None,
    target_id: int | None = None,
    details: dict | None = None,
) -> AdminActionLog:
    """Пишет запись аудита в текущую транзакцию."""
    entry = AdminActionLog(
        admin_id=admin_id,
        action=action,
        target_type=target_type,
        target_id=target_id,
        details=details,
    )
    db.add(entry)
    db.flush()
    return entry

def get_logs(db: Session, skip: int = 0, limit: int = 20, action: str | None = None) -> list[AdminActionLog]:
    query = db.query(AdminActionLog)
    if action:
        query = query.filter(AdminActionLog.action == action)
    return query.order_by(AdminActionLog.id.desc()).offset(skip).limit(limit).all()

def count_logs(db: Session, action: str | None = None) -> int:
    query = db.query(func.count(AdminActionLog.id))
    if action:
        query = query.filter(AdminActionLog.action == action)
    return query.scalar()
