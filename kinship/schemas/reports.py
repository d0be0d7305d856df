"""Schemas for content reports."""
from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..constants import ReportContentType, ReportStatus


class ReportCreate(BaseModel):
    content_id: UUID
    content_type: ReportContentType
    reason: str = Field(..., min_length=2, max_length=2000)


class ReportResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    reporter_id: UUID
    reported_content_id: UUID
    content_type: ReportContentType
    reason: str
    status: ReportStatus
    created_at: datetime
    reviewed_at: datetime | None = None
    reviewed_by: UUID | None = None


class ReportReview(BaseModel):
    outcome: ReportStatus


__all__ = ["ReportCreate", "ReportResponse", "ReportReview"]
