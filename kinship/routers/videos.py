"""Short video routes: feed, share links, likes and comments."""
from __future__ import annotations

from typing import cast
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from ..constants import LikeSubject
from ..database import get_session
from ..models import User, Video
from ..schemas import (
    LikeStateResponse,
    UserSummary,
    VideoCommentCreate,
    VideoCommentResponse,
    VideoCreate,
    VideoFeedResponse,
    VideoResponse,
)
from ..services import (
    VideoView,
    add_video_comment,
    create_video,
    get_by_share_code,
    get_current_user,
    get_optional_user,
    list_video_comments,
    list_videos,
    toggle_like,
)
from ..services.video_service import build_video_views, delete_video
from .posts import like_response

router = APIRouter(prefix="/videos", tags=["videos"])


def _serialize_video(view: VideoView) -> VideoResponse:
    video = view.video
    return VideoResponse(
        id=video.id,
        user_id=video.user_id,
        video_url=video.video_url,
        caption=video.caption,
        share_code=video.share_code,
        created_at=video.created_at,
        author=UserSummary.model_validate(video.author) if video.author is not None else None,
        like_count=view.like_count,
        comment_count=view.comment_count,
        viewer_liked=view.viewer_liked,
    )


def _single(db: Session, video: Video, viewer_id: UUID | None) -> VideoResponse:
    return _serialize_video(build_video_views(db, [video], viewer_id=viewer_id)[0])


@router.get("/", response_model=VideoFeedResponse)
async def video_feed_endpoint(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_session),
    viewer: User | None = Depends(get_optional_user),
) -> VideoFeedResponse:
    viewer_id = cast(UUID, viewer.id) if viewer else None
    views = list_videos(db, viewer_id=viewer_id, limit=limit, offset=offset)
    return VideoFeedResponse(items=[_serialize_video(view) for view in views])


@router.post("/", response_model=VideoResponse, status_code=status.HTTP_201_CREATED)
async def create_video_endpoint(
    payload: VideoCreate,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> VideoResponse:
    video = create_video(db, author=current_user, video_url=payload.video_url, caption=payload.caption)
    return _single(db, video, cast(UUID, current_user.id))


@router.get("/share/{share_code}", response_model=VideoResponse)
async def shared_video_endpoint(
    share_code: str,
    db: Session = Depends(get_session),
    viewer: User | None = Depends(get_optional_user),
) -> VideoResponse:
    video = get_by_share_code(db, share_code)
    return _single(db, video, cast(UUID, viewer.id) if viewer else None)


@router.delete("/{video_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_video_endpoint(
    video_id: UUID,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> Response:
    delete_video(db, video_id=video_id, author=current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{video_id}/like", response_model=LikeStateResponse)
async def toggle_video_like_endpoint(
    video_id: UUID,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> LikeStateResponse:
    state = toggle_like(db, subject=LikeSubject.VIDEO, subject_id=video_id, account_id=cast(UUID, current_user.id))
    return like_response(LikeSubject.VIDEO, video_id, state)


@router.get("/{video_id}/comments", response_model=list[VideoCommentResponse])
async def list_video_comments_endpoint(
    video_id: UUID,
    db: Session = Depends(get_session),
) -> list[VideoCommentResponse]:
    return [VideoCommentResponse.model_validate(comment) for comment in list_video_comments(db, video_id=video_id)]


@router.post("/{video_id}/comments", response_model=VideoCommentResponse, status_code=status.HTTP_201_CREATED)
async def create_video_comment_endpoint(
    video_id: UUID,
    payload: VideoCommentCreate,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> VideoCommentResponse:
    comment = add_video_comment(
        db,
        video_id=video_id,
        author=current_user,
        content=payload.content,
        audio_url=payload.audio_url,
    )
    return VideoCommentResponse.model_validate(comment)


__all__ = ["router"]
