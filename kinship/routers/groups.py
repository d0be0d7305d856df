"""Group chat routes."""
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..database import get_session
from ..models import GroupChat, User
from ..schemas import (
    GroupChatCreate,
    GroupChatResponse,
    GroupLeaveResponse,
    GroupMemberAdd,
    GroupMemberResponse,
    GroupMessageResponse,
    MessageSendRequest,
)
from ..services import (
    add_member,
    create_group,
    get_current_user,
    get_group,
    leave_group,
    list_group_messages,
    list_groups,
    send_group_message,
)

router = APIRouter(prefix="/groups", tags=["groups"])


def _group_response(group: GroupChat) -> GroupChatResponse:
    return GroupChatResponse.model_validate(group)


@router.get("/", response_model=list[GroupChatResponse])
async def my_groups_endpoint(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> list[GroupChatResponse]:
    return [_group_response(group) for group in list_groups(db, user=current_user)]


@router.post("/", response_model=GroupChatResponse, status_code=status.HTTP_201_CREATED)
async def create_group_endpoint(
    payload: GroupChatCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> GroupChatResponse:
    group = create_group(db, creator=current_user, name=payload.name, member_ids=payload.member_ids)
    return _group_response(group)


@router.get("/{group_id}", response_model=GroupChatResponse)
async def group_detail_endpoint(
    group_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> GroupChatResponse:
    return _group_response(get_group(db, group_id=group_id, user=current_user))


@router.post("/{group_id}/members", response_model=GroupMemberResponse, status_code=status.HTTP_201_CREATED)
async def add_member_endpoint(
    group_id: UUID,
    payload: GroupMemberAdd,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> GroupMemberResponse:
    member = add_member(db, group_id=group_id, actor=current_user, user_id=payload.user_id)
    return GroupMemberResponse.model_validate(member)


@router.delete("/{group_id}/members/me", response_model=GroupLeaveResponse)
async def leave_group_endpoint(
    group_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> GroupLeaveResponse:
    deleted = leave_group(db, group_id=group_id, user=current_user)
    return GroupLeaveResponse(group_id=group_id, group_deleted=deleted)


@router.get("/{group_id}/messages", response_model=list[GroupMessageResponse])
async def group_messages_endpoint(
    group_id: UUID,
    limit: int = Query(200, ge=1, le=500),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> list[GroupMessageResponse]:
    messages = list_group_messages(db, group_id=group_id, user=current_user, limit=limit)
    return [GroupMessageResponse.model_validate(message) for message in messages]


@router.post("/{group_id}/messages", response_model=GroupMessageResponse, status_code=status.HTTP_201_CREATED)
async def send_group_message_endpoint(
    group_id: UUID,
    payload: MessageSendRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> GroupMessageResponse:
    message = send_group_message(
        db,
        group_id=group_id,
        sender=current_user,
        content=payload.content,
        audio_url=payload.audio_url,
    )
    return GroupMessageResponse.model_validate(message)


__all__ = ["router"]
