"""Routes acting on a single comment: likes and deletion."""
from __future__ import annotations

from typing import cast
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from ..constants import LikeSubject
from ..database import get_session
from ..models import Comment, User
from ..schemas import LikeRequest, LikeStateResponse
from ..services import delete_comment, get_current_user, get_visible_post, toggle_like
from ..services.like_service import set_like_state
from .posts import like_response

router = APIRouter(prefix="/comments", tags=["comments"])


def _visible_comment(db: Session, comment_id: UUID, viewer: User) -> Comment:
    comment = db.get(Comment, comment_id)
    if comment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Comment not found")
    get_visible_post(db, post_id=cast(UUID, comment.post_id), viewer_id=cast(UUID, viewer.id))
    return comment


@router.post("/{comment_id}/like", response_model=LikeStateResponse)
async def toggle_comment_like_endpoint(
    comment_id: UUID,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> LikeStateResponse:
    _visible_comment(db, comment_id, current_user)
    state = toggle_like(db, subject=LikeSubject.COMMENT, subject_id=comment_id, account_id=cast(UUID, current_user.id))
    return like_response(LikeSubject.COMMENT, comment_id, state)


@router.put("/{comment_id}/like", response_model=LikeStateResponse)
async def set_comment_like_endpoint(
    comment_id: UUID,
    payload: LikeRequest,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> LikeStateResponse:
    _visible_comment(db, comment_id, current_user)
    state = set_like_state(
        db,
        subject=LikeSubject.COMMENT,
        subject_id=comment_id,
        account_id=cast(UUID, current_user.id),
        liked=payload.liked,
    )
    return like_response(LikeSubject.COMMENT, comment_id, state)


@router.delete("/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment_endpoint(
    comment_id: UUID,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> Response:
    delete_comment(db, comment_id=comment_id, author=current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


__all__ = ["router"]
