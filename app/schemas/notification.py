# app/schemas/notification.py
from datetime import datetime
from typing import Optional

from app.schemas.common import CamelModel, PaginatedResponse


class Notification(CamelModel):
    id: int
    type: str
    title: str
    message: Optional[str] = None
    created_at: datetime
    is_read: bool
    action_url: Optional[str] = None
    related_entity_id: Optional[str] = None


class PaginatedNotifications(PaginatedResponse[Notification]):
    unread_count: int = 0
