"""Schemas for ephemeral stories."""
from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .profiles import UserSummary


class StoryCreate(BaseModel):
    media_url: str | None = Field(default=None, max_length=2048)
    media_type: str | None = Field(default=None, max_length=16)
    text_content: str | None = Field(default=None, max_length=500)


class StoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    media_url: str | None = None
    media_type: str | None = None
    text_content: str | None = None
    created_at: datetime
    expires_at: datetime


class StoryGroupResponse(BaseModel):
    user: UserSummary
    stories: list[StoryResponse]


class StoryFeedResponse(BaseModel):
    items: list[StoryGroupResponse]


class StoryUploadResponse(BaseModel):
    created: list[StoryResponse]
    failed: list[str]
    partial: bool


class StoryViewerResponse(BaseModel):
    user: UserSummary
    viewed_at: datetime


class StoryViewResponse(BaseModel):
    story_id: UUID
    recorded: bool


__all__ = [
    "StoryCreate",
    "StoryResponse",
    "StoryGroupResponse",
    "StoryFeedResponse",
    "StoryUploadResponse",
    "StoryViewerResponse",
    "StoryViewResponse",
]
