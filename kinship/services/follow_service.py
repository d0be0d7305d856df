"""Business logic for follower relationships."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import cast
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import Follow, User
from .friendship_service import friend_ids
from .notification_service import NotificationType, notify_best_effort

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class FollowStats:
    user_id: UUID
    followers_count: int
    following_count: int
    friends_count: int
    is_following: bool
    follows_you: bool


def _get_user_or_404(db: Session, user_id: UUID) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


def _edge(db: Session, follower_id: UUID, following_id: UUID) -> Follow | None:
    return db.get(Follow, (follower_id, following_id))


def is_following(db: Session, follower_id: UUID, following_id: UUID) -> bool:
    return (
        db.scalar(
            select(Follow.follower_id).where(Follow.follower_id == follower_id, Follow.following_id == following_id)
        )
        is not None
    )


def following_ids(db: Session, follower_id: UUID) -> set[UUID]:
    return set(db.scalars(select(Follow.following_id).where(Follow.follower_id == follower_id)))


def follow_user(db: Session, *, follower: User, target_id: UUID) -> bool:
    """Create the follow edge; returns ``False`` when it already existed."""

    follower_id = cast(UUID, follower.id)
    if follower_id == target_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot follow yourself")

    _get_user_or_404(db, target_id)

    if _edge(db, follower_id, target_id) is not None:
        return False

    db.add(Follow(follower_id=follower_id, following_id=target_id))
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        return False
    except SQLAlchemyError as exc:  # pragma: no cover - database errors
        db.rollback()
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Unable to follow user") from exc

    notify_best_effort(
        db,
        recipient_id=target_id,
        sender_id=follower_id,
        type_=NotificationType.NEW_FOLLOWER,
        title="New follower",
        message=f"{follower.display_name or follower.username} started following you",
        related_id=follower_id,
    )
    return True


def unfollow_user(db: Session, *, follower: User, target_id: UUID) -> bool:
    record = _edge(db, cast(UUID, follower.id), target_id)
    if record is None:
        return False
    try:
        db.delete(record)
        db.commit()
        return True
    except SQLAlchemyError as exc:  # pragma: no cover - database errors
        db.rollback()
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Unable to unfollow user") from exc


def get_follow_stats(db: Session, *, user_id: UUID, viewer_id: UUID | None = None) -> FollowStats:
    _get_user_or_404(db, user_id)

    followers_count = db.scalar(
        select(func.count()).select_from(Follow).where(Follow.following_id == user_id)
    ) or 0
    following_count = db.scalar(
        select(func.count()).select_from(Follow).where(Follow.follower_id == user_id)
    ) or 0

    viewing_other = viewer_id is not None and viewer_id != user_id
    return FollowStats(
        user_id=user_id,
        followers_count=int(followers_count),
        following_count=int(following_count),
        friends_count=len(friend_ids(db, user_id)),
        is_following=viewing_other and is_following(db, cast(UUID, viewer_id), user_id),
        follows_you=viewing_other and is_following(db, user_id, cast(UUID, viewer_id)),
    )


def list_followers(db: Session, *, user_id: UUID) -> list[User]:
    _get_user_or_404(db, user_id)
    stmt = (
        select(User)
        .join(Follow, Follow.follower_id == User.id)
        .where(Follow.following_id == user_id)
        .order_by(Follow.created_at.desc())
    )
    return list(db.scalars(stmt))


def list_following(db: Session, *, user_id: UUID) -> list[User]:
    _get_user_or_404(db, user_id)
    stmt = (
        select(User)
        .join(Follow, Follow.following_id == User.id)
        .where(Follow.follower_id == user_id)
        .order_by(Follow.created_at.desc())
    )
    return list(db.scalars(stmt))


__all__ = [
    "FollowStats",
    "is_following",
    "following_ids",
    "follow_user",
    "unfollow_user",
    "get_follow_stats",
    "list_followers",
    "list_following",
]
