"""Post related API routes: feed, authoring, reposts, likes and comments."""
from __future__ import annotations

import logging
from typing import cast
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from ..constants import LikeSubject
from ..database import get_session
from ..models import User
from ..schemas import (
    LikeRequest,
    LikeStateResponse,
    MediaGridResponse,
    PostCommentCreate,
    PostCommentListResponse,
    PostCommentResponse,
    PostCreate,
    PostFeedResponse,
    PostResponse,
    PostUpdate,
    PostVisibilityUpdate,
    RepostRequest,
    UserSummary,
)
from ..services import (
    CommentNode,
    PostView,
    create_comment,
    create_post,
    delete_post,
    get_current_user,
    get_optional_user,
    get_visible_post,
    list_comments,
    list_feed,
    repost,
    set_post_visibility,
    toggle_like,
    update_post,
)
from ..services.like_service import LikeState, set_like_state
from ..services.post_service import build_post_views

router = APIRouter(prefix="/posts", tags=["posts"])

logger = logging.getLogger(__name__)


def serialize_post_view(view: PostView) -> PostResponse:
    post = view.post
    return PostResponse(
        id=post.id,
        user_id=post.user_id,
        content=post.content or "",
        media_urls=list(post.media_urls or []),
        visibility=post.visibility,
        original_post_id=post.original_post_id,
        created_at=post.created_at,
        updated_at=post.updated_at,
        author=UserSummary.model_validate(post.author) if post.author is not None else None,
        like_count=view.like_count,
        comment_count=view.comment_count,
        viewer_liked=view.viewer_liked,
        media_grid=MediaGridResponse.model_validate(view.media_grid) if view.media_grid is not None else None,
    )


def serialize_comment_node(node: CommentNode) -> PostCommentResponse:
    comment = node.comment
    return PostCommentResponse(
        id=comment.id,
        post_id=comment.post_id,
        user_id=comment.user_id,
        author=UserSummary.model_validate(comment.author) if comment.author is not None else None,
        content=comment.content or "",
        audio_url=comment.audio_url,
        parent_comment_id=comment.parent_comment_id,
        created_at=comment.created_at,
        like_count=node.like_count,
        viewer_liked=node.viewer_liked,
        replies=[serialize_comment_node(reply) for reply in node.replies],
    )


def like_response(subject: LikeSubject, subject_id: UUID, state: LikeState) -> LikeStateResponse:
    return LikeStateResponse(subject=subject, subject_id=subject_id, liked=state.liked, like_count=state.like_count)


def _single_view(db: Session, post, viewer_id: UUID | None) -> PostResponse:
    return serialize_post_view(build_post_views(db, [post], viewer_id=viewer_id)[0])


@router.get("/feed", response_model=PostFeedResponse)
async def feed_endpoint(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_session),
    viewer: User | None = Depends(get_optional_user),
) -> PostFeedResponse:
    viewer_id = cast(UUID, viewer.id) if viewer else None
    views = list_feed(db, viewer_id=viewer_id, limit=limit, offset=offset)
    return PostFeedResponse(items=[serialize_post_view(view) for view in views])


@router.post("/", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post_endpoint(
    payload: PostCreate,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> PostResponse:
    post = create_post(
        db,
        author=current_user,
        content=payload.content,
        media_urls=payload.media_urls,
        visibility=payload.visibility,
    )
    return _single_view(db, post, cast(UUID, current_user.id))


@router.get("/{post_id}", response_model=PostResponse)
async def get_post_endpoint(
    post_id: UUID,
    db: Session = Depends(get_session),
    viewer: User | None = Depends(get_optional_user),
) -> PostResponse:
    viewer_id = cast(UUID, viewer.id) if viewer else None
    post = get_visible_post(db, post_id=post_id, viewer_id=viewer_id)
    return _single_view(db, post, viewer_id)


@router.put("/{post_id}", response_model=PostResponse)
async def update_post_endpoint(
    post_id: UUID,
    payload: PostUpdate,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> PostResponse:
    post = update_post(db, post_id=post_id, author=current_user, content=payload.content)
    return _single_view(db, post, cast(UUID, current_user.id))


@router.put("/{post_id}/visibility", response_model=PostResponse)
async def update_visibility_endpoint(
    post_id: UUID,
    payload: PostVisibilityUpdate,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> PostResponse:
    post = set_post_visibility(db, post_id=post_id, author=current_user, visibility=payload.visibility)
    return _single_view(db, post, cast(UUID, current_user.id))


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post_endpoint(
    post_id: UUID,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> Response:
    delete_post(db, post_id=post_id, author=current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{post_id}/repost", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def repost_endpoint(
    post_id: UUID,
    payload: RepostRequest | None = None,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> PostResponse:
    visibility = payload.visibility if payload is not None else RepostRequest().visibility
    post = repost(db, post_id=post_id, account=current_user, visibility=visibility)
    return _single_view(db, post, cast(UUID, current_user.id))


@router.post("/{post_id}/like", response_model=LikeStateResponse)
async def toggle_post_like_endpoint(
    post_id: UUID,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> LikeStateResponse:
    viewer_id = cast(UUID, current_user.id)
    get_visible_post(db, post_id=post_id, viewer_id=viewer_id)
    state = toggle_like(db, subject=LikeSubject.POST, subject_id=post_id, account_id=viewer_id)
    return like_response(LikeSubject.POST, post_id, state)


@router.put("/{post_id}/like", response_model=LikeStateResponse)
async def set_post_like_endpoint(
    post_id: UUID,
    payload: LikeRequest,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> LikeStateResponse:
    viewer_id = cast(UUID, current_user.id)
    get_visible_post(db, post_id=post_id, viewer_id=viewer_id)
    state = set_like_state(db, subject=LikeSubject.POST, subject_id=post_id, account_id=viewer_id, liked=payload.liked)
    return like_response(LikeSubject.POST, post_id, state)


@router.get("/{post_id}/comments", response_model=PostCommentListResponse)
async def list_comments_endpoint(
    post_id: UUID,
    db: Session = Depends(get_session),
    viewer: User | None = Depends(get_optional_user),
) -> PostCommentListResponse:
    viewer_id = cast(UUID, viewer.id) if viewer else None
    get_visible_post(db, post_id=post_id, viewer_id=viewer_id)
    nodes = list_comments(db, post_id=post_id, viewer_id=viewer_id)
    return PostCommentListResponse(items=[serialize_comment_node(node) for node in nodes])


@router.post("/{post_id}/comments", response_model=PostCommentResponse, status_code=status.HTTP_201_CREATED)
async def create_comment_endpoint(
    post_id: UUID,
    payload: PostCommentCreate,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> PostCommentResponse:
    get_visible_post(db, post_id=post_id, viewer_id=cast(UUID, current_user.id))
    comment = create_comment(
        db,
        post_id=post_id,
        author=current_user,
        content=payload.content,
        audio_url=payload.audio_url,
        parent_comment_id=payload.parent_comment_id,
    )
    return serialize_comment_node(CommentNode(comment=comment, like_count=0, viewer_liked=False))


__all__ = ["router", "serialize_post_view", "serialize_comment_node", "like_response"]
