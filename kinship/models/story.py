"""SQLAlchemy ORM models for ephemeral stories."""
from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from kinship.database import Base
from .base import as_utc, utcnow


class Story(Base):
    __tablename__ = "stories"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    media_url = Column(String(2048), nullable=True)
    media_type = Column(String(16), nullable=True)
    text_content = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)

    author = relationship("User", back_populates="stories")
    views = relationship("StoryView", back_populates="story", cascade="all, delete-orphan")

    def is_active(self, *, reference: datetime | None = None) -> bool:
        return (reference or utcnow()) < as_utc(self.expires_at)


class StoryView(Base):
    __tablename__ = "story_views"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    story_id = Column(Uuid(as_uuid=True), ForeignKey("stories.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    story = relationship("Story", back_populates="views")
    viewer = relationship("User")

    __table_args__ = (UniqueConstraint("story_id", "user_id", name="uq_story_views_story_user"),)


__all__ = ["Story", "StoryView"]
