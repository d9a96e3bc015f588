# app/crud/notification.py
from sqlalchemy.orm import Session
from app.models.notification import Notification
from typing import List

def create_notification(
    db: Session,
    user_id: int,
    type: str,
    title: str,
    message: str | None = None,
    related_entity_id: str | None = None,
    action_url: str | None = None,
) -> Notification:
    """
    Добавляет уведомление в текущую транзакцию.
    Коммит остается за вызывающим кодом: уведомление сохраняется вместе с бизнес-изменением.
    """
    db_notification = Notification(
        user_id=user_id,
        type=type,
        title=title,
        message=message,
        related_entity_id=related_entity_id,
        action_url=action_url,
    )
    db.add(db_notification)
    db.flush()
    return db_notification

def get_notifications(
    db: Session,
    user_id: int,
    skip: int = 0,
    limit: int = 20,
    unread_only: bool = False
) -> List[Notification]:
    """Получает пагинированный список уведомлений."""
    query = db.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        query = query.filter(Notification.is_read == False)
    return query.order_by(Notification.created_at.desc(), Notification.id.desc()).offset(skip).limit(limit).all()

def count_notifications(db: Session, user_id: int, unread_only: bool = False) -> int:
    query = db.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        query = query.filter(Notification.is_read == False)
    return query.count()

def mark_notification_as_read(db: Session, user_id: int, notification_id: int) -> Notification | None:
    """Помечает уведомление прочитанным. Чужое уведомление не найдется."""
    notification = db.query(Notification).filter(
        Notification.id == notification_id,
        Notification.user_id == user_id
    ).first()
    if notification is None:
        return None
    notification.is_read = True
    db.commit()
    db.refresh(notification)
    return notification
