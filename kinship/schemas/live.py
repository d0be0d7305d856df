"""Schemas for live stream sessions."""
from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from .profiles import UserSummary


class StreamStart(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)


class StreamResponse(BaseModel):
    id: UUID
    user_id: UUID
    title: str
    is_active: bool
    started_at: datetime
    ended_at: datetime | None = None
    host: UserSummary | None = None
    viewer_count: int = 0


class StreamListResponse(BaseModel):
    items: list[StreamResponse]


class ViewerCountResponse(BaseModel):
    stream_id: UUID
    viewer_count: int


__all__ = ["StreamStart", "StreamResponse", "StreamListResponse", "ViewerCountResponse"]
