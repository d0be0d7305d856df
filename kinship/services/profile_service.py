"""Profile reads and edits."""
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, cast
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import User
from .auth_service import normalize_username, username_taken
from .follow_service import FollowStats, get_follow_stats
from .friendship_service import FriendStatus, friend_status

if TYPE_CHECKING:
    from ..schemas import ProfileUpdateRequest
    from .presence import OnlineTracker


@dataclass(slots=True)
class ProfileView:
    user: User
    stats: FollowStats
    friend_status: FriendStatus | None
    online: bool


def get_profile(
    db: Session,
    *,
    user_id: UUID,
    viewer_id: UUID | None = None,
    tracker: "OnlineTracker | None" = None,
) -> ProfileView:
    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    stats = get_follow_stats(db, user_id=user_id, viewer_id=viewer_id)
    relation = friend_status(db, viewer_id=viewer_id, other_id=user_id) if viewer_id is not None else None
    online = tracker.is_online(user_id) if tracker is not None else False
    return ProfileView(user=user, stats=stats, friend_status=relation, online=online)


def update_profile(db: Session, *, user_id: UUID, payload: "ProfileUpdateRequest") -> User:
    """Apply profile updates for the supplied ``user_id``.

    Only fields sent by the client are touched. An empty avatar or banner clears
    the reference.
    """

    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    update_data = payload.model_dump(exclude_unset=True)

    if "username" in update_data:
        if update_data["username"] is None:
            update_data.pop("username")
        else:
            candidate = normalize_username(update_data["username"])
            if username_taken(db, candidate, exclude_id=cast(UUID, user.id)):
                raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Username already taken")
            update_data["username"] = candidate

    for field in ("avatar_url", "banner_url", "bio", "display_name"):
        if field in update_data:
            value = update_data[field]
            update_data[field] = (value or "").strip() or None

    if update_data.get("is_public") is None:
        update_data.pop("is_public", None)

    for field, value in update_data.items():
        setattr(user, field, value)

    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update profile",
        ) from exc

    db.refresh(user)
    return user


__all__ = ["ProfileView", "get_profile", "update_profile"]
