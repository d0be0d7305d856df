"""Schemas supporting follower APIs."""
from __future__ import annotations

from typing import Literal
from uuid import UUID

from pydantic import BaseModel

from .profiles import UserSummary


class FollowStatsResponse(BaseModel):
    user_id: UUID
    followers_count: int
    following_count: int
    friends_count: int
    is_following: bool
    follows_you: bool


class FollowActionResponse(FollowStatsResponse):
    status: Literal["followed", "unfollowed", "noop"]


class FollowListResponse(BaseModel):
    items: list[UserSummary]


__all__ = ["FollowStatsResponse", "FollowActionResponse", "FollowListResponse"]
