# app/schemas/admin.py
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel

from app.schemas.common import CamelModel, JsonDict, PaginatedResponse


class TaskInfo(BaseModel):
    """Описание одной фоновой задачи."""
    task_name: str
    description: str


class TaskRunRequest(BaseModel):
    """Схема для запроса на запуск задачи."""
    task_name: Literal[
        "all",
        "cleanup_affiliate_links",
        "scan_contract_renewals",
        "process_due_recoveries",
    ]


class AuditLogRead(CamelModel):
    id: int
    admin_id: Optional[int] = None
    action: str
    target_type: Optional[str] = None
    target_id: Optional[int] = None
    details: Optional[JsonDict] = None
    created_at: datetime


class PaginatedAuditLogs(PaginatedResponse[AuditLogRead]):
    pass
