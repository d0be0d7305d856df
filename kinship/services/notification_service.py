"""Notification helper logic for the relational store."""
from __future__ import annotations

import logging
from enum import StrEnum
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import Notification, User

logger = logging.getLogger(__name__)


class NotificationType(StrEnum):
    GENERIC = "generic"
    REPORT = "report"
    FRIEND_REQUEST = "friend_request"
    FRIEND_ACCEPTED = "friend_accepted"
    NEW_FOLLOWER = "follow"
    POST_COMMENT = "comment"
    VERIFICATION = "verification"


def list_notifications(db: Session, user_id: UUID, *, limit: int = 50) -> list[Notification]:
    """Return notifications for the supplied recipient ordered newest first."""

    stmt = (
        select(Notification)
        .where(Notification.recipient_id == user_id)
        .order_by(Notification.created_at.desc())
        .limit(max(1, min(limit, 200)))
    )
    return list(db.scalars(stmt))


def count_unread_notifications(db: Session, user_id: UUID) -> int:
    stmt = (
        select(func.count())
        .select_from(Notification)
        .where(Notification.recipient_id == user_id, Notification.read.is_(False))
    )
    return int(db.scalar(stmt) or 0)


def add_notification(
    db: Session,
    *,
    recipient_id: UUID,
    title: str,
    message: str,
    type_: NotificationType | str = NotificationType.GENERIC,
    sender_id: UUID | None = None,
    related_id: UUID | None = None,
) -> Notification:
    """Persist a new notification for the given recipient."""

    if db.get(User, recipient_id) is None:
        raise ValueError("Recipient does not exist")

    notification = Notification(
        recipient_id=recipient_id,
        sender_id=sender_id,
        type=str(type_),
        title=title,
        message=message,
        related_id=related_id,
    )
    db.add(notification)
    db.commit()
    db.refresh(notification)
    return notification


def notify_best_effort(db: Session, **kwargs) -> Notification | None:
    """Like :func:`add_notification` but logs failures instead of raising."""

    try:
        return add_notification(db, **kwargs)
    except (SQLAlchemyError, ValueError):
        db.rollback()
        logger.warning("Skipped %s notification for %s", kwargs.get("type_"), kwargs.get("recipient_id"))
        return None


def mark_read(db: Session, *, notification_id: UUID, recipient_id: UUID) -> Notification:
    notification = db.get(Notification, notification_id)
    if notification is None or notification.recipient_id != recipient_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    if notification.read:
        return notification
    notification.read = True
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Unable to update notification") from exc
    db.refresh(notification)
    return notification


def mark_all_read(db: Session, recipient_id: UUID) -> int:
    """Mark all notifications for the given recipient as read."""

    stmt = (
        update(Notification)
        .where(Notification.recipient_id == recipient_id, Notification.read.is_(False))
        .values(read=True)
    )
    try:
        result = db.execute(stmt)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Unable to update notifications") from exc
    return int(result.rowcount or 0)


__all__ = [
    "NotificationType",
    "list_notifications",
    "count_unread_notifications",
    "add_notification",
    "notify_best_effort",
    "mark_read",
    "mark_all_read",
]
