"""Notification inbox routes."""
from __future__ import annotations

from typing import cast
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..database import get_session
from ..models import User
from ..schemas import NotificationListResponse, NotificationResponse, NotificationSummaryResponse
from ..services import count_unread_notifications, get_current_user, list_notifications, mark_all_read, mark_read

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/", response_model=NotificationListResponse)
async def list_notifications_endpoint(
    limit: int = Query(50, ge=1, le=200),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> NotificationListResponse:
    user_id = cast(UUID, current_user.id)
    items = list_notifications(db, user_id, limit=limit)
    return NotificationListResponse(
        items=[NotificationResponse.model_validate(item) for item in items],
        unread_count=count_unread_notifications(db, user_id),
    )


@router.get("/summary", response_model=NotificationSummaryResponse)
async def notification_summary_endpoint(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> NotificationSummaryResponse:
    return NotificationSummaryResponse(unread_count=count_unread_notifications(db, cast(UUID, current_user.id)))


@router.post("/read-all", response_model=NotificationSummaryResponse)
async def mark_all_read_endpoint(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> NotificationSummaryResponse:
    user_id = cast(UUID, current_user.id)
    mark_all_read(db, user_id)
    return NotificationSummaryResponse(unread_count=count_unread_notifications(db, user_id))


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read_endpoint(
    notification_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> NotificationResponse:
    notification = mark_read(db, notification_id=notification_id, recipient_id=cast(UUID, current_user.id))
    return NotificationResponse.model_validate(notification)


__all__ = ["router"]
