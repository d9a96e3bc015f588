# app/services/notification_api.py
from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.crud import notification as crud_notification
from app.models.notification import Notification
from app.models.user import User
from app.schemas.common import total_pages
from app.schemas.notification import Notification as NotificationSchema, PaginatedNotifications


def get_paginated(db: Session, user: User, page: int, size: int, unread_only: bool) -> PaginatedNotifications:
    """Уведомления партнера: о договоре, продажах, корректировках."""
    skip = (page - 1) * size
    notifications = crud_notification.get_notifications(
        db, user_id=user.id, skip=skip, limit=size, unread_only=unread_only
    )
    total_items = crud_notification.count_notifications(db, user_id=user.id, unread_only=unread_only)
    return PaginatedNotifications(
        total_items=total_items,
        total_pages=total_pages(total_items, size),
        current_page=page,
        size=size,
        items=[NotificationSchema.model_validate(n) for n in notifications],
        unread_count=crud_notification.count_notifications(db, user_id=user.id, unread_only=True),
    )


def mark_as_read(db: Session, user: User, notification_id: int) -> Notification:
    notification = crud_notification.mark_notification_as_read(db, user_id=user.id, notification_id=notification_id)
    if notification is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="알림을 찾을 수 없습니다.")
    return notification
