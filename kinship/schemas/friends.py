"""Schemas for friend requests and friend listings."""
from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from .profiles import UserSummary


class FriendRequestPayload(BaseModel):
    receiver_id: UUID


class FriendRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    sender_id: UUID
    receiver_id: UUID
    status: str
    created_at: datetime
    responded_at: datetime | None = None
    sender: UserSummary | None = None
    receiver: UserSummary | None = None


class FriendsOverviewResponse(BaseModel):
    friends: list[UserSummary]
    incoming_requests: list[FriendRequestResponse]
    outgoing_requests: list[FriendRequestResponse]


class FriendStatusResponse(BaseModel):
    user_id: UUID
    status: Literal["self", "friend", "incoming", "outgoing", "none"]


__all__ = [
    "FriendRequestPayload",
    "FriendRequestResponse",
    "FriendsOverviewResponse",
    "FriendStatusResponse",
]
