"""ORM model for directed friend invitations."""
from __future__ import annotations

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, String, Uuid
from sqlalchemy.orm import relationship

from kinship.constants import FriendRequestStatus
from kinship.database import Base
from .base import utcnow


class FriendRequest(Base):
    __tablename__ = "friend_requests"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    sender_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    receiver_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    # Rows stay after a response; an accepted row is the audit trail of the friendship.
    status = Column(String(16), nullable=False, default=FriendRequestStatus.PENDING.value, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    responded_at = Column(DateTime(timezone=True), nullable=True)

    sender = relationship("User", foreign_keys=[sender_id])
    receiver = relationship("User", foreign_keys=[receiver_id])


__all__ = ["FriendRequest"]
