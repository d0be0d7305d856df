"""Like toggling for posts, comments and videos.

A like is a unique (subject, account) row and its existence is the only state.
Toggling reads membership and then inserts or deletes; two toggles racing from
the same account can therefore hit the unique constraint or delete a row that
is already gone. Both outcomes are treated as idempotent and resolved by
re-reading the stored state.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ..constants import LikeSubject
from ..models import Comment, CommentLike, Post, PostLike, Video, VideoLike

logger = logging.getLogger(__name__)

# subject -> (target model, like model, like column pointing at the target)
_SUBJECTS: dict[LikeSubject, tuple[Any, Any, Any]] = {
    LikeSubject.POST: (Post, PostLike, PostLike.post_id),
    LikeSubject.COMMENT: (Comment, CommentLike, CommentLike.comment_id),
    LikeSubject.VIDEO: (Video, VideoLike, VideoLike.video_id),
}


@dataclass(frozen=True, slots=True)
class LikeState:
    liked: bool
    like_count: int


def _resolve(subject: LikeSubject | str) -> tuple[Any, Any, Any]:
    try:
        return _SUBJECTS[LikeSubject(subject)]
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Unknown like subject") from exc


def _find_like(db: Session, like_model: Any, column: Any, subject_id: UUID, account_id: UUID) -> Any | None:
    return db.scalar(select(like_model).where(column == subject_id, like_model.user_id == account_id))


def count_likes(db: Session, subject: LikeSubject | str, subject_ids: list[UUID]) -> dict[UUID, int]:
    """Return like totals keyed by subject id; missing ids count as zero."""

    if not subject_ids:
        return {}
    _, like_model, column = _resolve(subject)
    stmt = select(column, func.count()).where(column.in_(subject_ids)).group_by(column)
    return {row[0]: int(row[1]) for row in db.execute(stmt)}


def liked_by(db: Session, subject: LikeSubject | str, subject_ids: list[UUID], account_id: UUID | None) -> set[UUID]:
    if not subject_ids or account_id is None:
        return set()
    _, like_model, column = _resolve(subject)
    stmt = select(column).where(column.in_(subject_ids), like_model.user_id == account_id)
    return set(db.scalars(stmt))


def get_like_state(db: Session, *, subject: LikeSubject | str, subject_id: UUID, account_id: UUID) -> LikeState:
    _, like_model, column = _resolve(subject)
    liked = _find_like(db, like_model, column, subject_id, account_id) is not None
    count = db.scalar(select(func.count()).select_from(like_model).where(column == subject_id)) or 0
    return LikeState(liked=liked, like_count=int(count))


def set_like_state(
    db: Session,
    *,
    subject: LikeSubject | str,
    subject_id: UUID,
    account_id: UUID,
    liked: bool,
) -> LikeState:
    """Make the stored like state equal ``liked`` and return the observed state."""

    target_model, like_model, column = _resolve(subject)
    if db.get(target_model, subject_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{LikeSubject(subject).value.title()} not found")

    existing = _find_like(db, like_model, column, subject_id, account_id)
    try:
        if liked and existing is None:
            db.add(like_model(**{column.key: subject_id, "user_id": account_id}))
            db.commit()
        elif not liked and existing is not None:
            db.delete(existing)
            db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning("Duplicate like on %s %s by %s ignored", subject, subject_id, account_id)
    except StaleDataError:
        db.rollback()
        logger.warning("Like on %s %s by %s was already removed", subject, subject_id, account_id)
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Unable to update like") from exc

    return get_like_state(db, subject=subject, subject_id=subject_id, account_id=account_id)


def toggle_like(db: Session, *, subject: LikeSubject | str, subject_id: UUID, account_id: UUID) -> LikeState:
    """Flip the like state for ``account_id`` on the given subject."""

    _, like_model, column = _resolve(subject)
    currently_liked = _find_like(db, like_model, column, subject_id, account_id) is not None
    return set_like_state(db, subject=subject, subject_id=subject_id, account_id=account_id, liked=not currently_liked)


__all__ = ["LikeState", "count_likes", "liked_by", "get_like_state", "set_like_state", "toggle_like"]
