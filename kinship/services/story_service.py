"""Business logic for ephemeral stories."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Sequence
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import get_settings
from ..models import Follow, Friendship, Story, StoryView, User
from ..models.base import as_utc, utcnow
from .storage_service import StorageBackend, StorageUploadError, unique_key, upload_bytes

logger = logging.getLogger(__name__)

_MEDIA_TYPES = {"image", "video"}


@dataclass(slots=True)
class StoryUploadResult:
    created: list[Story] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    @property
    def partial(self) -> bool:
        return bool(self.created) and bool(self.failed)


def _expiry(now: datetime) -> datetime:
    return now + timedelta(hours=max(1, get_settings().story_lifetime_hours))


def _media_type_for(content_type: str | None) -> str:
    kind = (content_type or "").split("/", 1)[0].lower()
    return kind if kind in _MEDIA_TYPES else "image"


def create_story(
    db: Session,
    *,
    author: User,
    media_url: str | None = None,
    media_type: str | None = None,
    text_content: str | None = None,
) -> Story:
    url = (media_url or "").strip() or None
    text = (text_content or "").strip() or None
    if url is None and text is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Story needs media or text")
    kind = (media_type or "").strip().lower() or None
    if url is not None and kind not in _MEDIA_TYPES:
        kind = "image"

    now = utcnow()
    story = Story(
        user_id=author.id,
        media_url=url,
        media_type=kind if url else None,
        text_content=text,
        created_at=now,
        expires_at=_expiry(now),
    )
    try:
        db.add(story)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Unable to create story") from exc
    db.refresh(story)
    return story


def upload_stories(
    db: Session,
    *,
    author: User,
    files: Sequence[tuple[str, bytes, str | None]],
    text_content: str | None = None,
    backend: StorageBackend | None = None,
) -> StoryUploadResult:
    """Store each ``(filename, data, content_type)`` as its own story.

    Files are independent: a failed upload or insert is recorded in
    ``failed`` and the remaining files are still attempted.
    """

    result = StoryUploadResult()
    for filename, data, content_type in files:
        try:
            stored = upload_bytes(
                "stories",
                unique_key(str(author.id), filename),
                data,
                content_type,
                backend=backend,
            )
            story = create_story(
                db,
                author=author,
                media_url=stored.url,
                media_type=_media_type_for(stored.content_type),
                text_content=text_content,
            )
        except (StorageUploadError, HTTPException) as exc:
            logger.warning("Story upload of %s failed: %s", filename, exc)
            result.failed.append(filename)
            continue
        result.created.append(story)
    return result


def _visible_author_ids(viewer_id: UUID):
    followed = select(Follow.following_id).where(Follow.follower_id == viewer_id)
    friends_low = select(Friendship.user_b_id).where(Friendship.user_a_id == viewer_id)
    friends_high = select(Friendship.user_a_id).where(Friendship.user_b_id == viewer_id)
    return or_(
        Story.user_id == viewer_id,
        Story.user_id.in_(followed),
        Story.user_id.in_(friends_low),
        Story.user_id.in_(friends_high),
    )


def list_active_stories(db: Session, *, viewer_id: UUID, reference: datetime | None = None) -> list[dict[str, Any]]:
    """Group unexpired stories of the viewer and the accounts they follow or befriended.

    Groups are ordered by each author's newest story; stories inside a group
    are newest first.
    """

    cutoff = reference or utcnow()
    statement = (
        select(Story, User)
        .join(User, Story.user_id == User.id)
        .where(Story.expires_at > cutoff, _visible_author_ids(viewer_id))
        .order_by(Story.created_at.desc())
    )

    grouped: dict[UUID, dict[str, Any]] = {}
    for story, author in db.execute(statement).all():
        bucket = grouped.get(author.id)
        if bucket is None:
            bucket = {"user": author, "stories": []}
            grouped[author.id] = bucket
        bucket["stories"].append(story)

    return sorted(grouped.values(), key=lambda item: as_utc(item["stories"][0].created_at), reverse=True)


def _active_story(db: Session, story_id: UUID) -> Story:
    story = db.get(Story, story_id)
    if story is None or not story.is_active():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Story not found")
    return story


def record_view(db: Session, *, story_id: UUID, viewer: User) -> bool:
    """Record that ``viewer`` opened the story; owners and repeats are no-ops."""

    story = _active_story(db, story_id)
    if story.user_id == viewer.id:
        return False
    existing = db.scalar(select(StoryView).where(StoryView.story_id == story_id, StoryView.user_id == viewer.id))
    if existing is not None:
        return False
    db.add(StoryView(story_id=story_id, user_id=viewer.id))
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        return False
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Unable to record view") from exc
    return True


def list_viewers(db: Session, *, story_id: UUID, owner: User) -> list[tuple[User, datetime]]:
    story = db.get(Story, story_id)
    if story is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Story not found")
    if story.user_id != owner.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only the author can see viewers")
    stmt = (
        select(User, StoryView.created_at)
        .join(StoryView, StoryView.user_id == User.id)
        .where(StoryView.story_id == story_id)
        .order_by(StoryView.created_at.desc())
    )
    return [(user, viewed_at) for user, viewed_at in db.execute(stmt).all()]


def delete_story(db: Session, *, story_id: UUID, owner: User) -> None:
    story = db.get(Story, story_id)
    if story is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Story not found")
    if story.user_id != owner.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only the author can delete this story")
    try:
        db.delete(story)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Unable to delete story") from exc


__all__ = [
    "StoryUploadResult",
    "create_story",
    "upload_stories",
    "list_active_stories",
    "record_view",
    "list_viewers",
    "delete_story",
]
