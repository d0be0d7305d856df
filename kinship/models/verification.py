"""SQLAlchemy ORM model for verification badge requests."""
from __future__ import annotations

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import relationship

from kinship.constants import VerificationStatus
from kinship.database import Base
from .base import TimestampMixin


class VerificationRequest(TimestampMixin, Base):
    __tablename__ = "verification_requests"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    reason = Column(Text, nullable=True)
    badge_type = Column(String(16), nullable=True)
    status = Column(String(16), nullable=False, default=VerificationStatus.PENDING.value, index=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    reviewed_by = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    account = relationship("User", foreign_keys=[user_id])


__all__ = ["VerificationRequest"]
