"""SQLAlchemy ORM models for live stream sessions and their viewers."""
from __future__ import annotations

import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import expression

from kinship.database import Base
from .base import utcnow


class LiveStream(Base):
    __tablename__ = "live_streams"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    is_active = Column(Boolean, nullable=False, server_default=expression.true(), default=True, index=True)
    started_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    ended_at = Column(DateTime(timezone=True), nullable=True)

    host = relationship("User")
    viewers = relationship("StreamViewer", back_populates="stream", cascade="all, delete-orphan")


class StreamViewer(Base):
    __tablename__ = "stream_viewers"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    stream_id = Column(Uuid(as_uuid=True), ForeignKey("live_streams.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    joined_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    stream = relationship("LiveStream", back_populates="viewers")

    __table_args__ = (UniqueConstraint("stream_id", "user_id", name="uq_stream_viewers_stream_user"),)


__all__ = ["LiveStream", "StreamViewer"]
