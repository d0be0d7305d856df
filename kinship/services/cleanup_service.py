"""Pruning of expired stories and stale password reset tokens."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import PasswordResetToken, Story, StoryView
from ..models.base import utcnow

logger = logging.getLogger(__name__)


class CleanupError(RuntimeError):
    """Raised when the cleanup task cannot complete successfully."""


@dataclass(frozen=True, slots=True)
class CleanupSummary:
    """Number of rows removed during a cleanup run."""

    stories: int
    story_views: int
    reset_tokens: int

    @property
    def total(self) -> int:
        return self.stories + self.story_views + self.reset_tokens


def perform_cleanup(session: Session, *, reference: datetime | None = None) -> CleanupSummary:
    """Delete expired stories (with their views) and spent reset tokens.

    Everything runs in one transaction. On failure the session is rolled back
    and :class:`CleanupError` is raised.
    """

    cutoff = reference or utcnow()
    try:
        expired_ids = list(session.scalars(select(Story.id).where(Story.expires_at <= cutoff)))
        views_deleted = 0
        stories_deleted = 0
        if expired_ids:
            views_deleted = _execute_delete(
                session, delete(StoryView).where(StoryView.story_id.in_(expired_ids)).returning(StoryView.id)
            )
            stories_deleted = _execute_delete(session, delete(Story).where(Story.id.in_(expired_ids)).returning(Story.id))
        tokens_deleted = _execute_delete(
            session,
            delete(PasswordResetToken)
            .where(or_(PasswordResetToken.expires_at <= cutoff, PasswordResetToken.used_at.is_not(None)))
            .returning(PasswordResetToken.id),
        )
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception("Cleanup failed; transaction rolled back")
        raise CleanupError("database cleanup failed") from exc

    summary = CleanupSummary(stories=stories_deleted, story_views=views_deleted, reset_tokens=tokens_deleted)
    logger.info(
        "Cleanup finished (stories=%d, story_views=%d, reset_tokens=%d, total=%d)",
        summary.stories,
        summary.story_views,
        summary.reset_tokens,
        summary.total,
    )
    return summary


def run_cleanup(session_factory: Callable[[], Session], *, reference: datetime | None = None) -> CleanupSummary:
    """Run :func:`perform_cleanup` in a fresh session from ``session_factory``."""

    session = session_factory()
    try:
        return perform_cleanup(session, reference=reference)
    finally:
        session.close()


def _execute_delete(session: Session, statement) -> int:
    result = session.execute(statement)
    return len(result.scalars().all())


__all__ = ["CleanupError", "CleanupSummary", "perform_cleanup", "run_cleanup"]
