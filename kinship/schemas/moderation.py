"""Schemas for verification requests and admin account actions."""
from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..constants import BadgeTier, VerificationStatus


class VerificationRequestCreate(BaseModel):
    reason: str | None = Field(default=None, max_length=2000)
    badge_type: BadgeTier | None = None


class VerificationRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    reason: str | None = None
    badge_type: BadgeTier | None = None
    status: VerificationStatus
    created_at: datetime
    reviewed_at: datetime | None = None
    reviewed_by: UUID | None = None


class VerificationApproval(BaseModel):
    badge: BadgeTier = BadgeTier.BLUE


class BadgeGrantRequest(BaseModel):
    badge: BadgeTier


class BlockRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=255)


class AdminUserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    username: str
    email: str
    verified: bool
    badge_type: BadgeTier | None = None
    blocked_at: datetime | None = None
    block_reason: str | None = None


__all__ = [
    "VerificationRequestCreate",
    "VerificationRequestResponse",
    "VerificationApproval",
    "BadgeGrantRequest",
    "BlockRequest",
    "AdminUserResponse",
]
