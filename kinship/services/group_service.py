"""Group chats: membership with per-member admin flag and group messages."""
from __future__ import annotations

import logging
from typing import Sequence, cast
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import GroupChat, GroupMember, GroupMessage, User
from ..models.base import utcnow

logger = logging.getLogger(__name__)


def _commit(db: Session, detail: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail) from exc


def _get_group(db: Session, group_id: UUID) -> GroupChat:
    group = db.get(GroupChat, group_id)
    if group is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Group not found")
    return group


def _membership(db: Session, group_id: UUID, user_id: UUID) -> GroupMember | None:
    return db.scalar(select(GroupMember).where(GroupMember.group_id == group_id, GroupMember.user_id == user_id))


def _require_member(db: Session, group_id: UUID, user_id: UUID) -> GroupMember:
    member = _membership(db, group_id, user_id)
    if member is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not a member of this group")
    return member


def create_group(db: Session, *, creator: User, name: str, member_ids: Sequence[UUID] = ()) -> GroupChat:
    title = (name or "").strip()
    if not title:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Group name is required")

    creator_id = cast(UUID, creator.id)
    invited = [member_id for member_id in dict.fromkeys(member_ids) if member_id != creator_id]
    if invited:
        found = set(db.scalars(select(User.id).where(User.id.in_(invited))))
        missing = [str(member_id) for member_id in invited if member_id not in found]
        if missing:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown members: {', '.join(missing)}")

    group = GroupChat(name=title, created_by=creator_id)
    group.members.append(GroupMember(user_id=creator_id, is_admin=True))
    for member_id in invited:
        group.members.append(GroupMember(user_id=member_id))
    db.add(group)
    _commit(db, "Unable to create group")
    db.refresh(group)
    return group


def add_member(db: Session, *, group_id: UUID, actor: User, user_id: UUID) -> GroupMember:
    _get_group(db, group_id)
    if not _require_member(db, group_id, cast(UUID, actor.id)).is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only group admins can add members")
    if db.get(User, user_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    if _membership(db, group_id, user_id) is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Already a member")

    member = GroupMember(group_id=group_id, user_id=user_id)
    db.add(member)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Already a member") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Unable to add member") from exc
    db.refresh(member)
    return member


def leave_group(db: Session, *, group_id: UUID, user: User) -> bool:
    """Remove ``user`` from the group; returns ``True`` when the group was deleted.

    The last member leaving deletes the group. When the last admin leaves, the
    longest-standing remaining member becomes admin.
    """

    group = _get_group(db, group_id)
    member = _require_member(db, group_id, cast(UUID, user.id))
    remaining = [other for other in group.members if other.id != member.id]

    if not remaining:
        db.delete(group)
        _commit(db, "Unable to leave group")
        return True

    group.members.remove(member)
    if member.is_admin and not any(other.is_admin for other in remaining):
        successor = min(remaining, key=lambda other: other.joined_at)
        successor.is_admin = True
        logger.info("Group %s admin passed to %s", group_id, successor.user_id)
    _commit(db, "Unable to leave group")
    return False


def list_groups(db: Session, *, user: User) -> list[GroupChat]:
    stmt = (
        select(GroupChat)
        .join(GroupMember, GroupMember.group_id == GroupChat.id)
        .where(GroupMember.user_id == user.id)
        .order_by(GroupChat.updated_at.desc())
    )
    return list(db.scalars(stmt))


def get_group(db: Session, *, group_id: UUID, user: User) -> GroupChat:
    group = _get_group(db, group_id)
    _require_member(db, group_id, cast(UUID, user.id))
    return group


def send_group_message(
    db: Session,
    *,
    group_id: UUID,
    sender: User,
    content: str | None,
    audio_url: str | None = None,
) -> GroupMessage:
    group = _get_group(db, group_id)
    sender_id = cast(UUID, sender.id)
    _require_member(db, group_id, sender_id)
    text = (content or "").strip()
    audio = (audio_url or "").strip() or None
    if not text and not audio:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Message needs text or audio")

    message = GroupMessage(group_id=group_id, sender_id=sender_id, content=text, audio_url=audio, read_by=[str(sender_id)])
    db.add(message)
    group.updated_at = utcnow()
    _commit(db, "Unable to send message")
    db.refresh(message)
    return message


def list_group_messages(db: Session, *, group_id: UUID, user: User, limit: int = 200) -> list[GroupMessage]:
    """Return messages oldest first and add the reader to each ``read_by`` list."""

    _get_group(db, group_id)
    reader = str(user.id)
    _require_member(db, group_id, cast(UUID, user.id))

    stmt = (
        select(GroupMessage)
        .where(GroupMessage.group_id == group_id)
        .order_by(GroupMessage.created_at.desc())
        .limit(max(1, min(limit, 500)))
    )
    messages = sorted(db.scalars(stmt), key=lambda message: message.created_at)
    changed = False
    for message in messages:
        readers = list(message.read_by or [])
        if reader not in readers:
            # assign a new list so the JSON column is flagged dirty
            message.read_by = readers + [reader]
            changed = True
    if changed:
        _commit(db, "Unable to update read receipts")
    return messages


__all__ = [
    "create_group",
    "add_member",
    "leave_group",
    "list_groups",
    "get_group",
    "send_group_message",
    "list_group_messages",
]
