"""API routes for ephemeral stories."""
from __future__ import annotations

import logging
from typing import cast
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile, status
from sqlalchemy.orm import Session

from ..database import get_session
from ..models import User
from ..schemas import (
    StoryCreate,
    StoryFeedResponse,
    StoryGroupResponse,
    StoryResponse,
    StoryUploadResponse,
    StoryViewerResponse,
    StoryViewResponse,
    UserSummary,
)
from ..services import (
    create_story,
    delete_story,
    get_current_user,
    get_storage_backend,
    list_active_stories,
    list_viewers,
    record_view,
    upload_stories,
)
from ..services.storage_service import StorageBackend

router = APIRouter(prefix="/stories", tags=["stories"])

logger = logging.getLogger(__name__)


@router.get("/feed", response_model=StoryFeedResponse)
async def list_story_feed(
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> StoryFeedResponse:
    buckets = [
        StoryGroupResponse(
            user=UserSummary.model_validate(entry["user"]),
            stories=[StoryResponse.model_validate(story) for story in entry["stories"]],
        )
        for entry in list_active_stories(db, viewer_id=cast(UUID, current_user.id))
    ]
    return StoryFeedResponse(items=buckets)


@router.post("/", response_model=StoryResponse, status_code=status.HTTP_201_CREATED)
async def create_story_endpoint(
    payload: StoryCreate,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> StoryResponse:
    story = create_story(
        db,
        author=current_user,
        media_url=payload.media_url,
        media_type=payload.media_type,
        text_content=payload.text_content,
    )
    return StoryResponse.model_validate(story)


@router.post("/upload", response_model=StoryUploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_stories_endpoint(
    files: list[UploadFile] = File(...),
    text_content: str | None = Form(None),
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
    backend: StorageBackend = Depends(get_storage_backend),
) -> StoryUploadResponse:
    """Create one story per uploaded file.

    Files are handled independently. The response lists the stories that were
    created and the filenames that failed; a request where every file failed
    is answered with 502.
    """

    batch = [((upload.filename or "upload").strip(), await upload.read(), upload.content_type) for upload in files]
    result = upload_stories(db, author=current_user, files=batch, text_content=text_content, backend=backend)
    if not result.created:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"message": "No story could be uploaded", "failed": result.failed},
        )
    if result.partial:
        logger.info("Story upload for %s partially applied (%d failed)", current_user.id, len(result.failed))
    return StoryUploadResponse(
        created=[StoryResponse.model_validate(story) for story in result.created],
        failed=result.failed,
        partial=result.partial,
    )


@router.post("/{story_id}/view", response_model=StoryViewResponse)
async def record_view_endpoint(
    story_id: UUID,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> StoryViewResponse:
    return StoryViewResponse(story_id=story_id, recorded=record_view(db, story_id=story_id, viewer=current_user))


@router.get("/{story_id}/viewers", response_model=list[StoryViewerResponse])
async def list_viewers_endpoint(
    story_id: UUID,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> list[StoryViewerResponse]:
    return [
        StoryViewerResponse(user=UserSummary.model_validate(user), viewed_at=viewed_at)
        for user, viewed_at in list_viewers(db, story_id=story_id, owner=current_user)
    ]


@router.delete("/{story_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_story_endpoint(
    story_id: UUID,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> Response:
    delete_story(db, story_id=story_id, owner=current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


__all__ = ["router"]
