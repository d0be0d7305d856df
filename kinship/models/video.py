"""SQLAlchemy ORM models for short videos and their engagement."""
from __future__ import annotations

import secrets
import uuid

from sqlalchemy import Column, DateTime, ForeignKey, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from kinship.database import Base
from .base import utcnow


def _generate_share_code() -> str:
    return secrets.token_urlsafe(8)


class Video(Base):
    __tablename__ = "videos"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    video_url = Column(String(1024), nullable=False)
    caption = Column(Text, nullable=True)
    share_code = Column(String(32), unique=True, nullable=False, default=_generate_share_code)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    author = relationship("User")
    likes = relationship("VideoLike", back_populates="video", cascade="all, delete-orphan")
    comments = relationship("VideoComment", back_populates="video", cascade="all, delete-orphan")


class VideoLike(Base):
    __tablename__ = "video_likes"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    video_id = Column(Uuid(as_uuid=True), ForeignKey("videos.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    video = relationship("Video", back_populates="likes")

    __table_args__ = (UniqueConstraint("video_id", "user_id", name="uq_video_likes_video_user"),)


class VideoComment(Base):
    __tablename__ = "video_comments"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    video_id = Column(Uuid(as_uuid=True), ForeignKey("videos.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    audio_url = Column(String(1024), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    video = relationship("Video", back_populates="comments")
    author = relationship("User")


__all__ = ["Video", "VideoLike", "VideoComment"]
