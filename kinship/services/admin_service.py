"""Administrative actions on accounts: badges and blocking."""
from __future__ import annotations

import logging
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..constants import BadgeTier
from ..models import User
from ..models.base import utcnow

logger = logging.getLogger(__name__)


def _get_user(db: Session, user_id: UUID) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


def _save(db: Session, user: User, detail: str) -> User:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail) from exc
    db.refresh(user)
    return user


def grant_badge(db: Session, *, user_id: UUID, badge: BadgeTier | str) -> User:
    user = _get_user(db, user_id)
    user.verified = True
    user.badge_type = BadgeTier(badge).value
    return _save(db, user, "Unable to grant badge")


def revoke_badge(db: Session, *, user_id: UUID) -> User:
    user = _get_user(db, user_id)
    user.verified = False
    user.badge_type = None
    return _save(db, user, "Unable to revoke badge")


def block_user(db: Session, *, user_id: UUID, actor: User, reason: str | None = None) -> User:
    if user_id == actor.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot block yourself")
    user = _get_user(db, user_id)
    user.blocked_at = utcnow()
    user.blocked_by = actor.id
    user.block_reason = (reason or "").strip() or None
    logger.info("User %s blocked by %s", user_id, actor.id)
    return _save(db, user, "Unable to block user")


def unblock_user(db: Session, *, user_id: UUID) -> User:
    user = _get_user(db, user_id)
    user.blocked_at = None
    user.blocked_by = None
    user.block_reason = None
    return _save(db, user, "Unable to unblock user")


__all__ = ["grant_badge", "revoke_badge", "block_user", "unblock_user"]
