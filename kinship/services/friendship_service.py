"""Business logic for friend requests and friendships."""
from __future__ import annotations

import logging
from typing import Literal, Sequence, cast
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import and_, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..constants import FriendRequestStatus
from ..models import FriendRequest, Friendship, User
from ..models.base import utcnow
from .composite import CompositeWrite, CompositeWriteError
from .notification_service import NotificationType, notify_best_effort

logger = logging.getLogger(__name__)

FriendStatus = Literal["self", "friend", "incoming", "outgoing", "none"]


def ordered_pair(a: UUID, b: UUID) -> tuple[UUID, UUID]:
    return (a, b) if str(a) < str(b) else (b, a)


def get_friendship(db: Session, user_id: UUID, friend_id: UUID) -> Friendship | None:
    first, second = ordered_pair(user_id, friend_id)
    stmt = select(Friendship).where(and_(Friendship.user_a_id == first, Friendship.user_b_id == second))
    return db.scalars(stmt).first()


def are_friends(db: Session, user_id: UUID, friend_id: UUID) -> bool:
    return get_friendship(db, user_id, friend_id) is not None


def friend_ids(db: Session, user_id: UUID) -> set[UUID]:
    rows = db.execute(
        select(Friendship.user_a_id, Friendship.user_b_id).where(
            or_(Friendship.user_a_id == user_id, Friendship.user_b_id == user_id)
        )
    )
    return {b if a == user_id else a for a, b in rows}


def list_friends(db: Session, *, user: User) -> list[User]:
    ids = friend_ids(db, cast(UUID, user.id))
    if not ids:
        return []
    return list(db.scalars(select(User).where(User.id.in_(ids)).order_by(User.username.asc())))


def list_friend_requests(db: Session, *, user: User) -> tuple[list[FriendRequest], list[FriendRequest]]:
    user_id = cast(UUID, user.id)
    pending = FriendRequestStatus.PENDING.value
    incoming_stmt = (
        select(FriendRequest)
        .where(FriendRequest.receiver_id == user_id, FriendRequest.status == pending)
        .order_by(FriendRequest.created_at.desc())
    )
    outgoing_stmt = (
        select(FriendRequest)
        .where(FriendRequest.sender_id == user_id, FriendRequest.status == pending)
        .order_by(FriendRequest.created_at.desc())
    )
    return list(db.scalars(incoming_stmt)), list(db.scalars(outgoing_stmt))


def _pending_between(db: Session, sender_id: UUID, receiver_id: UUID) -> FriendRequest | None:
    return db.scalar(
        select(FriendRequest).where(
            FriendRequest.sender_id == sender_id,
            FriendRequest.receiver_id == receiver_id,
            FriendRequest.status == FriendRequestStatus.PENDING.value,
        )
    )


def friend_status(db: Session, *, viewer_id: UUID, other_id: UUID) -> FriendStatus:
    if viewer_id == other_id:
        return "self"
    if are_friends(db, viewer_id, other_id):
        return "friend"
    if _pending_between(db, other_id, viewer_id) is not None:
        return "incoming"
    if _pending_between(db, viewer_id, other_id) is not None:
        return "outgoing"
    return "none"


def send_friend_request(db: Session, *, sender: User, receiver_id: UUID) -> FriendRequest:
    sender_id = cast(UUID, sender.id)
    if receiver_id == sender_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot befriend yourself")

    receiver = db.get(User, receiver_id)
    if receiver is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    if are_friends(db, sender_id, receiver_id):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Already friends")

    # A pending request in the opposite direction does not block this one.
    if _pending_between(db, sender_id, receiver_id) is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Pending request already exists")

    request = FriendRequest(sender_id=sender_id, receiver_id=receiver_id)
    try:
        db.add(request)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to send request") from exc
    db.refresh(request)

    notify_best_effort(
        db,
        recipient_id=receiver_id,
        sender_id=sender_id,
        type_=NotificationType.FRIEND_REQUEST,
        title="New friend request",
        message=f"{sender.display_name or sender.username} sent you a friend request",
        related_id=request.id,
    )
    return request


def _get_request_for(db: Session, request_id: UUID, *, receiver_id: UUID) -> FriendRequest:
    request = db.get(FriendRequest, request_id)
    if request is None or request.receiver_id != receiver_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Request not found")
    return request


def ensure_friendship(db: Session, first: UUID, second: UUID) -> Friendship:
    """Return the canonical friendship row for the pair, creating it when absent."""

    existing = get_friendship(db, first, second)
    if existing is not None:
        return existing
    user_a_id, user_b_id = ordered_pair(first, second)
    friendship = Friendship(user_a_id=user_a_id, user_b_id=user_b_id)
    db.add(friendship)
    try:
        db.flush()
    except IntegrityError:
        # Another writer created the edge between our read and insert.
        db.rollback()
        existing = get_friendship(db, first, second)
        if existing is None:
            raise
        return existing
    return friendship


def accept_friend_request(
    db: Session,
    *,
    request_id: UUID,
    recipient: User,
    retry_delays: Sequence[float] | None = None,
) -> Friendship:
    """Mark the request accepted and create the friendship edge.

    Accepting an already accepted request is a no-op that re-asserts the edge,
    so repeated accepts never produce a second friendship row.
    """

    recipient_id = cast(UUID, recipient.id)
    request = _get_request_for(db, request_id, receiver_id=recipient_id)
    sender_id = cast(UUID, request.sender_id)

    if request.status == FriendRequestStatus.REJECTED.value:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Request already rejected")

    if request.status == FriendRequestStatus.ACCEPTED.value:
        try:
            friendship = ensure_friendship(db, sender_id, recipient_id)
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to create friendship") from exc
        return friendship

    def _mark_accepted() -> FriendRequest:
        request.status = FriendRequestStatus.ACCEPTED.value
        request.responded_at = utcnow()
        return request

    def _restore_pending(row: FriendRequest) -> None:
        row.status = FriendRequestStatus.PENDING.value
        row.responded_at = None

    write = CompositeWrite(db, "Friend request acceptance", retry_delays=retry_delays)
    try:
        write.step("mark_accepted", _mark_accepted, compensate=_restore_pending)
        friendship = write.step("create_friendship", lambda: ensure_friendship(db, sender_id, recipient_id))
    except CompositeWriteError as exc:
        raise exc.as_http_exception() from exc
    except SQLAlchemyError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to accept request") from exc

    logger.info("Friend request %s accepted; friendship %s", request_id, friendship.id)
    notify_best_effort(
        db,
        recipient_id=sender_id,
        sender_id=recipient_id,
        type_=NotificationType.FRIEND_ACCEPTED,
        title="Friend request accepted",
        message=f"{recipient.display_name or recipient.username} accepted your friend request",
        related_id=request_id,
    )
    return friendship


def reject_friend_request(db: Session, *, request_id: UUID, recipient: User) -> FriendRequest:
    request = _get_request_for(db, request_id, receiver_id=cast(UUID, recipient.id))
    if request.status != FriendRequestStatus.PENDING.value:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Request already processed")

    request.status = FriendRequestStatus.REJECTED.value
    request.responded_at = utcnow()
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to update request") from exc
    db.refresh(request)
    return request


def cancel_friend_request(db: Session, *, request_id: UUID, sender: User) -> None:
    request = db.get(FriendRequest, request_id)
    if request is None or request.sender_id != sender.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Request not found")
    if request.status != FriendRequestStatus.PENDING.value:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Request already processed")
    try:
        db.delete(request)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to cancel request") from exc


def remove_friend(db: Session, *, user: User, friend_id: UUID) -> bool:
    friendship = get_friendship(db, cast(UUID, user.id), friend_id)
    if friendship is None:
        return False
    try:
        db.delete(friendship)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to remove friend") from exc
    return True


__all__ = [
    "FriendStatus",
    "ordered_pair",
    "get_friendship",
    "are_friends",
    "friend_ids",
    "list_friends",
    "list_friend_requests",
    "friend_status",
    "send_friend_request",
    "ensure_friendship",
    "accept_friend_request",
    "reject_friend_request",
    "cancel_friend_request",
    "remove_friend",
]
