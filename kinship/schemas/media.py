"""Schemas for uploaded files."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class MediaUploadResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    bucket: str
    key: str
    url: str
    content_type: str


__all__ = ["MediaUploadResponse"]
