"""Schemas for short videos and their comments."""
from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .profiles import UserSummary


class VideoCreate(BaseModel):
    video_url: str = Field(..., min_length=1, max_length=1024)
    caption: str | None = Field(default=None, max_length=2000)


class VideoResponse(BaseModel):
    id: UUID
    user_id: UUID
    video_url: str
    caption: str | None = None
    share_code: str
    created_at: datetime
    author: UserSummary | None = None
    like_count: int = 0
    comment_count: int = 0
    viewer_liked: bool = False


class VideoFeedResponse(BaseModel):
    items: list[VideoResponse]


class VideoCommentCreate(BaseModel):
    content: str = Field(default="", max_length=2000)
    audio_url: str | None = Field(default=None, max_length=1024)


class VideoCommentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    video_id: UUID
    user_id: UUID
    content: str
    audio_url: str | None = None
    created_at: datetime
    author: UserSummary | None = None


__all__ = ["VideoCreate", "VideoResponse", "VideoFeedResponse", "VideoCommentCreate", "VideoCommentResponse"]
