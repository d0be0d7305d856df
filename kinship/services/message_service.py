"""Direct messages between two accounts."""
from __future__ import annotations

from dataclasses import dataclass
from typing import cast
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import Message, User


@dataclass(slots=True)
class ConversationSummary:
    partner: User
    last_message: Message
    unread_count: int


def _validate_body(content: str | None, audio_url: str | None) -> tuple[str, str | None]:
    text = (content or "").strip()
    audio = (audio_url or "").strip() or None
    if not text and not audio:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Message needs text or audio")
    return text, audio


def send_message(
    db: Session,
    *,
    sender: User,
    receiver_id: UUID,
    content: str | None,
    audio_url: str | None = None,
) -> Message:
    if receiver_id == sender.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot message yourself")
    if db.get(User, receiver_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Recipient not found")
    text, audio = _validate_body(content, audio_url)

    message = Message(sender_id=sender.id, receiver_id=receiver_id, content=text, audio_url=audio)
    try:
        db.add(message)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Unable to send message") from exc
    db.refresh(message)
    return message


def _between(user_id: UUID, partner_id: UUID):
    return or_(
        and_(Message.sender_id == user_id, Message.receiver_id == partner_id),
        and_(Message.sender_id == partner_id, Message.receiver_id == user_id),
    )


def list_conversation(db: Session, *, user: User, partner_id: UUID, limit: int = 200) -> list[Message]:
    """Return the conversation oldest first and mark the partner's messages read."""

    user_id = cast(UUID, user.id)
    if db.get(User, partner_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    unread = list(
        db.scalars(
            select(Message).where(
                Message.sender_id == partner_id,
                Message.receiver_id == user_id,
                Message.read.is_(False),
            )
        )
    )
    if unread:
        for message in unread:
            message.read = True
        try:
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Unable to mark messages read") from exc

    recent = (
        select(Message)
        .where(_between(user_id, partner_id))
        .order_by(Message.created_at.desc())
        .limit(max(1, min(limit, 500)))
    )
    return sorted(db.scalars(recent), key=lambda message: message.created_at)


def list_inbox(db: Session, *, user: User) -> list[ConversationSummary]:
    """One entry per conversation partner with the latest message, newest first."""

    user_id = cast(UUID, user.id)
    stmt = (
        select(Message)
        .where(or_(Message.sender_id == user_id, Message.receiver_id == user_id))
        .order_by(Message.created_at.desc())
    )
    latest: dict[UUID, Message] = {}
    unread: dict[UUID, int] = {}
    for message in db.scalars(stmt):
        partner_id = message.receiver_id if message.sender_id == user_id else message.sender_id
        latest.setdefault(partner_id, message)
        if message.receiver_id == user_id and not message.read:
            unread[partner_id] = unread.get(partner_id, 0) + 1

    partners = {}
    if latest:
        partners = {partner.id: partner for partner in db.scalars(select(User).where(User.id.in_(list(latest))))}
    return [
        ConversationSummary(partner=partners[partner_id], last_message=message, unread_count=unread.get(partner_id, 0))
        for partner_id, message in latest.items()
        if partner_id in partners
    ]


def count_unread_messages(db: Session, *, user_id: UUID) -> int:
    stmt = select(func.count()).select_from(Message).where(Message.receiver_id == user_id, Message.read.is_(False))
    return int(db.scalar(stmt) or 0)


__all__ = [
    "ConversationSummary",
    "send_message",
    "list_conversation",
    "list_inbox",
    "count_unread_messages",
]
