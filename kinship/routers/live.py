"""Live stream signaling routes: sessions and viewer membership."""
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..database import get_session
from ..models import User
from ..schemas import StreamListResponse, StreamResponse, StreamStart, UserSummary, ViewerCountResponse
from ..services import (
    StreamView,
    get_active_stream,
    get_current_user,
    join_stream,
    leave_stream,
    list_active_streams,
    start_stream,
    stop_stream,
)
from ..services.live_service import viewer_count

router = APIRouter(prefix="/live", tags=["live"])


def _stream_response(view: StreamView) -> StreamResponse:
    stream = view.stream
    return StreamResponse(
        id=stream.id,
        user_id=stream.user_id,
        title=stream.title,
        is_active=stream.is_active,
        started_at=stream.started_at,
        ended_at=stream.ended_at,
        host=UserSummary.model_validate(stream.host) if stream.host is not None else None,
        viewer_count=view.viewer_count,
    )


@router.get("/", response_model=StreamListResponse)
async def active_streams_endpoint(db: Session = Depends(get_session)) -> StreamListResponse:
    return StreamListResponse(items=[_stream_response(view) for view in list_active_streams(db)])


@router.post("/", response_model=StreamResponse, status_code=status.HTTP_201_CREATED)
async def start_stream_endpoint(
    payload: StreamStart,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> StreamResponse:
    stream = start_stream(db, host=current_user, title=payload.title)
    return _stream_response(StreamView(stream, 0))


@router.get("/{stream_id}", response_model=StreamResponse)
async def stream_detail_endpoint(stream_id: UUID, db: Session = Depends(get_session)) -> StreamResponse:
    return _stream_response(get_active_stream(db, stream_id))


@router.post("/{stream_id}/stop", response_model=StreamResponse)
async def stop_stream_endpoint(
    stream_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> StreamResponse:
    stream = stop_stream(db, stream_id=stream_id, host=current_user)
    return _stream_response(StreamView(stream, viewer_count(db, stream_id)))


@router.post("/{stream_id}/join", response_model=StreamResponse)
async def join_stream_endpoint(
    stream_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> StreamResponse:
    return _stream_response(join_stream(db, stream_id=stream_id, viewer=current_user))


@router.post("/{stream_id}/leave", response_model=ViewerCountResponse)
async def leave_stream_endpoint(
    stream_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> ViewerCountResponse:
    return ViewerCountResponse(stream_id=stream_id, viewer_count=leave_stream(db, stream_id=stream_id, viewer=current_user))


__all__ = ["router"]
