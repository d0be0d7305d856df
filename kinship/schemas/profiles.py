"""Schemas for profile endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class UserSummary(BaseModel):
    """Compact author/partner representation embedded in other responses."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    username: str
    display_name: str | None = None
    avatar_url: str | None = None
    verified: bool = False
    badge_type: str | None = None


class ProfileResponse(UserSummary):
    bio: str | None = None
    banner_url: str | None = None
    is_public: bool = True
    created_at: datetime
    followers_count: int = 0
    following_count: int = 0
    friends_count: int = 0
    is_following: bool = False
    follows_you: bool = False
    friend_status: Literal["self", "friend", "incoming", "outgoing", "none"] | None = None
    online: bool = False


class AccountResponse(UserSummary):
    """The signed-in account, including private fields."""

    email: str
    bio: str | None = None
    banner_url: str | None = None
    is_public: bool = True
    is_admin: bool = False
    created_at: datetime


class ProfileUpdateRequest(BaseModel):
    username: str | None = Field(default=None, min_length=3, max_length=30)
    display_name: str | None = Field(default=None, max_length=150)
    bio: str | None = Field(default=None, max_length=500)
    avatar_url: str | None = Field(default=None, max_length=1024)
    banner_url: str | None = Field(default=None, max_length=1024)
    is_public: bool | None = None


__all__ = ["UserSummary", "ProfileResponse", "AccountResponse", "ProfileUpdateRequest"]
