"""Direct message routes."""
from __future__ import annotations

from typing import cast
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from ..database import get_session
from ..models import User
from ..schemas import (
    ConversationSummaryResponse,
    InboxResponse,
    MessageResponse,
    MessageSendRequest,
    MessageThreadResponse,
    UserSummary,
)
from ..services import count_unread_messages, get_current_user, list_conversation, list_inbox, send_message

router = APIRouter(prefix="/messages", tags=["messages"])


@router.get("/", response_model=InboxResponse)
async def inbox_endpoint(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> InboxResponse:
    summaries = list_inbox(db, user=current_user)
    return InboxResponse(
        items=[
            ConversationSummaryResponse(
                partner=UserSummary.model_validate(summary.partner),
                last_message=MessageResponse.model_validate(summary.last_message),
                unread_count=summary.unread_count,
            )
            for summary in summaries
        ],
        unread_total=count_unread_messages(db, user_id=cast(UUID, current_user.id)),
    )


@router.get("/unread-count", response_model=dict)
async def unread_count_endpoint(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> dict[str, int]:
    return {"unread_count": count_unread_messages(db, user_id=cast(UUID, current_user.id))}


@router.get("/{partner_id}", response_model=MessageThreadResponse)
async def conversation_endpoint(
    partner_id: UUID,
    limit: int = Query(200, ge=1, le=500),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> MessageThreadResponse:
    messages = list_conversation(db, user=current_user, partner_id=partner_id, limit=limit)
    partner = db.get(User, partner_id)
    if partner is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return MessageThreadResponse(
        partner=UserSummary.model_validate(partner),
        items=[MessageResponse.model_validate(message) for message in messages],
    )


@router.post("/{partner_id}", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def send_message_endpoint(
    partner_id: UUID,
    payload: MessageSendRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> MessageResponse:
    message = send_message(
        db,
        sender=current_user,
        receiver_id=partner_id,
        content=payload.content,
        audio_url=payload.audio_url,
    )
    return MessageResponse.model_validate(message)


__all__ = ["router"]
