"""Profile API routes."""
from __future__ import annotations

from dataclasses import asdict
from typing import cast
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..context import get_online_tracker
from ..database import get_session
from ..models import User
from ..schemas import PostFeedResponse, ProfileResponse, ProfileUpdateRequest
from ..services import get_current_user, get_optional_user, get_profile, list_user_posts, update_profile
from ..services.presence import OnlineTracker
from ..services.profile_service import ProfileView
from .posts import serialize_post_view

router = APIRouter(prefix="/profiles", tags=["profiles"])


def _to_profile_response(view: ProfileView) -> ProfileResponse:
    response = ProfileResponse.model_validate(view.user)
    stats = asdict(view.stats)
    stats.pop("user_id")
    return response.model_copy(update={**stats, "friend_status": view.friend_status, "online": view.online})


@router.get("/me", response_model=ProfileResponse)
async def my_profile(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
    tracker: OnlineTracker = Depends(get_online_tracker),
) -> ProfileResponse:
    user_id = cast(UUID, current_user.id)
    return _to_profile_response(get_profile(db, user_id=user_id, viewer_id=user_id, tracker=tracker))


@router.put("/me", response_model=ProfileResponse)
async def update_my_profile(
    payload: ProfileUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
    tracker: OnlineTracker = Depends(get_online_tracker),
) -> ProfileResponse:
    user_id = cast(UUID, current_user.id)
    update_profile(db, user_id=user_id, payload=payload)
    return _to_profile_response(get_profile(db, user_id=user_id, viewer_id=user_id, tracker=tracker))


@router.get("/{user_id}", response_model=ProfileResponse)
async def retrieve_profile(
    user_id: UUID,
    db: Session = Depends(get_session),
    viewer: User | None = Depends(get_optional_user),
    tracker: OnlineTracker = Depends(get_online_tracker),
) -> ProfileResponse:
    viewer_id = cast(UUID, viewer.id) if viewer else None
    return _to_profile_response(get_profile(db, user_id=user_id, viewer_id=viewer_id, tracker=tracker))


@router.get("/{user_id}/posts", response_model=PostFeedResponse)
async def profile_posts(
    user_id: UUID,
    limit: int = Query(50, ge=1, le=100),
    db: Session = Depends(get_session),
    viewer: User | None = Depends(get_optional_user),
) -> PostFeedResponse:
    viewer_id = cast(UUID, viewer.id) if viewer else None
    views = list_user_posts(db, author_id=user_id, viewer_id=viewer_id, limit=limit)
    return PostFeedResponse(items=[serialize_post_view(view) for view in views])


__all__ = ["router"]
