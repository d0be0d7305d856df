"""Schemas for direct messages and group chats."""
from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .profiles import UserSummary


class MessageSendRequest(BaseModel):
    content: str = Field(default="", max_length=4000)
    audio_url: str | None = Field(default=None, max_length=1024)


class MessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    sender_id: UUID
    receiver_id: UUID
    content: str
    audio_url: str | None = None
    read: bool
    created_at: datetime


class MessageThreadResponse(BaseModel):
    partner: UserSummary
    items: list[MessageResponse]


class ConversationSummaryResponse(BaseModel):
    partner: UserSummary
    last_message: MessageResponse
    unread_count: int


class InboxResponse(BaseModel):
    items: list[ConversationSummaryResponse]
    unread_total: int


class GroupChatCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    member_ids: list[UUID] = Field(default_factory=list)


class GroupMemberAdd(BaseModel):
    user_id: UUID


class GroupMemberResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: UUID
    is_admin: bool
    joined_at: datetime
    user: UserSummary | None = None


class GroupChatResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    created_by: UUID
    avatar_url: str | None = None
    created_at: datetime
    updated_at: datetime
    members: list[GroupMemberResponse] = Field(default_factory=list)


class GroupMessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    group_id: UUID
    sender_id: UUID
    content: str
    audio_url: str | None = None
    read_by: list[str] = Field(default_factory=list)
    created_at: datetime


class GroupLeaveResponse(BaseModel):
    group_id: UUID
    group_deleted: bool


__all__ = [
    "MessageSendRequest",
    "MessageResponse",
    "MessageThreadResponse",
    "ConversationSummaryResponse",
    "InboxResponse",
    "GroupChatCreate",
    "GroupMemberAdd",
    "GroupMemberResponse",
    "GroupChatResponse",
    "GroupMessageResponse",
    "GroupLeaveResponse",
]
