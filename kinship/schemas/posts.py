"""Pydantic schemas for posts, comments and likes."""
from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..constants import LikeSubject, Visibility
from .profiles import UserSummary


class MediaCellResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    url: str
    row: int
    column: int
    row_span: int = 1
    column_span: int = 1
    overlay: str | None = None


class MediaGridResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    layout: str
    columns: int
    rows: int
    hidden_count: int = 0
    cells: list[MediaCellResponse]


class PostCreate(BaseModel):
    """Payload used by API clients when constructing a post."""

    content: str = Field(default="", max_length=5000)
    media_urls: list[str] = Field(default_factory=list, max_length=20)
    visibility: Visibility = Visibility.PUBLIC


class PostUpdate(BaseModel):
    content: str = Field(..., max_length=5000)


class PostVisibilityUpdate(BaseModel):
    visibility: Visibility


class RepostRequest(BaseModel):
    visibility: Visibility = Visibility.PUBLIC


class PostResponse(BaseModel):
    """Serialized representation of a persisted post with engagement counters."""

    id: UUID
    user_id: UUID
    content: str
    media_urls: list[str]
    visibility: Visibility
    original_post_id: UUID | None = None
    created_at: datetime
    updated_at: datetime
    author: UserSummary | None = None
    like_count: int = 0
    comment_count: int = 0
    viewer_liked: bool = False
    media_grid: MediaGridResponse | None = None


class PostFeedResponse(BaseModel):
    """Envelope used when returning a collection of posts."""

    items: list[PostResponse]


class LikeStateResponse(BaseModel):
    subject: LikeSubject
    subject_id: UUID
    liked: bool
    like_count: int


class LikeRequest(BaseModel):
    liked: bool


class PostCommentCreate(BaseModel):
    content: str = Field(default="", max_length=2000)
    audio_url: str | None = Field(default=None, max_length=1024)
    parent_comment_id: UUID | None = None


class PostCommentResponse(BaseModel):
    id: UUID
    post_id: UUID
    user_id: UUID
    author: UserSummary | None = None
    content: str
    audio_url: str | None = None
    parent_comment_id: UUID | None = None
    created_at: datetime
    like_count: int = 0
    viewer_liked: bool = False
    replies: list["PostCommentResponse"] = Field(default_factory=list)


class PostCommentListResponse(BaseModel):
    items: list[PostCommentResponse]


PostCommentResponse.model_rebuild()


__all__ = [
    "MediaCellResponse",
    "MediaGridResponse",
    "PostCreate",
    "PostUpdate",
    "PostVisibilityUpdate",
    "RepostRequest",
    "PostResponse",
    "PostFeedResponse",
    "LikeStateResponse",
    "LikeRequest",
    "PostCommentCreate",
    "PostCommentResponse",
    "PostCommentListResponse",
]
