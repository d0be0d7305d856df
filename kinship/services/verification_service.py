"""Verification badge requests and their review."""
from __future__ import annotations

import logging
from typing import Sequence, cast
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..constants import BadgeTier, VerificationStatus
from ..models import User, VerificationRequest
from ..models.base import utcnow
from .composite import CompositeWrite, CompositeWriteError
from .notification_service import NotificationType, notify_best_effort

logger = logging.getLogger(__name__)


def request_verification(
    db: Session,
    *,
    user: User,
    reason: str | None,
    badge_type: BadgeTier | str | None = None,
) -> VerificationRequest:
    if user.verified:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Account is already verified")

    pending = db.scalar(
        select(VerificationRequest).where(
            VerificationRequest.user_id == user.id,
            VerificationRequest.status == VerificationStatus.PENDING.value,
        )
    )
    if pending is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="A verification request is already pending")

    request = VerificationRequest(
        user_id=user.id,
        reason=(reason or "").strip() or None,
        badge_type=BadgeTier(badge_type).value if badge_type else None,
    )
    try:
        db.add(request)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Unable to submit request") from exc
    db.refresh(request)
    return request


def list_pending_requests(db: Session) -> list[VerificationRequest]:
    stmt = (
        select(VerificationRequest)
        .where(VerificationRequest.status == VerificationStatus.PENDING.value)
        .order_by(VerificationRequest.created_at.asc())
    )
    return list(db.scalars(stmt))


def _pending_request(db: Session, request_id: UUID) -> VerificationRequest:
    request = db.get(VerificationRequest, request_id)
    if request is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Verification request not found")
    if request.status != VerificationStatus.PENDING.value:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Verification request already reviewed")
    return request


def approve_verification(
    db: Session,
    *,
    request_id: UUID,
    reviewer: User,
    badge: BadgeTier | str,
    retry_delays: Sequence[float] | None = None,
) -> VerificationRequest:
    """Approve the request, then mark the account verified with ``badge``.

    If the account update keeps failing, the request is put back to pending.
    """

    tier = BadgeTier(badge)
    request = _pending_request(db, request_id)
    account = db.get(User, request.user_id)
    if account is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    def _approve() -> VerificationRequest:
        request.status = VerificationStatus.APPROVED.value
        request.badge_type = tier.value
        request.reviewed_at = utcnow()
        request.reviewed_by = reviewer.id
        return request

    def _restore(row: VerificationRequest) -> None:
        row.status = VerificationStatus.PENDING.value
        row.reviewed_at = None
        row.reviewed_by = None

    def _verify_account() -> User:
        account.verified = True
        account.badge_type = tier.value
        return account

    write = CompositeWrite(db, "Verification approval", retry_delays=retry_delays)
    try:
        write.step("approve_request", _approve, compensate=_restore)
        write.step("verify_account", _verify_account)
    except CompositeWriteError as exc:
        raise exc.as_http_exception() from exc
    except SQLAlchemyError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Unable to approve request") from exc

    logger.info("Verification request %s approved with %s badge", request_id, tier.value)
    notify_best_effort(
        db,
        recipient_id=cast(UUID, account.id),
        sender_id=cast(UUID, reviewer.id),
        type_=NotificationType.VERIFICATION,
        title="You're verified",
        message=f"Your account now carries the {tier.value} badge",
        related_id=request.id,
    )
    db.refresh(request)
    return request


def reject_verification(db: Session, *, request_id: UUID, reviewer: User) -> VerificationRequest:
    request = _pending_request(db, request_id)
    request.status = VerificationStatus.REJECTED.value
    request.reviewed_at = utcnow()
    request.reviewed_by = reviewer.id
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Unable to reject request") from exc
    db.refresh(request)
    return request


__all__ = [
    "request_verification",
    "list_pending_requests",
    "approve_verification",
    "reject_verification",
]
