"""Live stream sessions and viewer membership.

Only signaling-level rows are kept: a stream row per broadcast and one viewer
row per joined account. The viewer count is the number of viewer rows.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import LiveStream, StreamViewer, User
from ..models.base import utcnow

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class StreamView:
    stream: LiveStream
    viewer_count: int


def _commit(db: Session, detail: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail) from exc


def viewer_count(db: Session, stream_id: UUID) -> int:
    stmt = select(func.count()).select_from(StreamViewer).where(StreamViewer.stream_id == stream_id)
    return int(db.scalar(stmt) or 0)


def start_stream(db: Session, *, host: User, title: str) -> LiveStream:
    label = (title or "").strip()
    if not label:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Stream title is required")
    active = db.scalar(select(LiveStream).where(LiveStream.user_id == host.id, LiveStream.is_active.is_(True)))
    if active is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="You already have an active stream")

    stream = LiveStream(user_id=host.id, title=label)
    db.add(stream)
    _commit(db, "Unable to start stream")
    db.refresh(stream)
    logger.info("Stream %s started by %s", stream.id, host.id)
    return stream


def stop_stream(db: Session, *, stream_id: UUID, host: User) -> LiveStream:
    stream = db.get(LiveStream, stream_id)
    if stream is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Stream not found")
    if stream.user_id != host.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only the host can end this stream")
    if stream.is_active:
        stream.is_active = False
        stream.ended_at = utcnow()
        db.execute(delete(StreamViewer).where(StreamViewer.stream_id == stream_id))
        _commit(db, "Unable to stop stream")
        db.refresh(stream)
        logger.info("Stream %s stopped", stream_id)
    return stream


def list_active_streams(db: Session) -> list[StreamView]:
    counts = (
        select(StreamViewer.stream_id, func.count().label("viewers"))
        .group_by(StreamViewer.stream_id)
        .subquery()
    )
    stmt = (
        select(LiveStream, func.coalesce(counts.c.viewers, 0))
        .outerjoin(counts, counts.c.stream_id == LiveStream.id)
        .where(LiveStream.is_active.is_(True))
        .order_by(LiveStream.started_at.desc())
    )
    return [StreamView(stream, int(viewers)) for stream, viewers in db.execute(stmt).all()]


def get_active_stream(db: Session, stream_id: UUID) -> StreamView:
    stream = db.get(LiveStream, stream_id)
    if stream is None or not stream.is_active:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Stream not found or ended")
    return StreamView(stream, viewer_count(db, stream_id))


def join_stream(db: Session, *, stream_id: UUID, viewer: User) -> StreamView:
    view = get_active_stream(db, stream_id)
    if view.stream.user_id == viewer.id:
        return view
    existing = db.scalar(
        select(StreamViewer).where(StreamViewer.stream_id == stream_id, StreamViewer.user_id == viewer.id)
    )
    if existing is None:
        db.add(StreamViewer(stream_id=stream_id, user_id=viewer.id))
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
        except SQLAlchemyError as exc:
            db.rollback()
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Unable to join stream") from exc
    return StreamView(view.stream, viewer_count(db, stream_id))


def leave_stream(db: Session, *, stream_id: UUID, viewer: User) -> int:
    record = db.scalar(
        select(StreamViewer).where(StreamViewer.stream_id == stream_id, StreamViewer.user_id == viewer.id)
    )
    if record is not None:
        db.delete(record)
        _commit(db, "Unable to leave stream")
    return viewer_count(db, stream_id)


__all__ = [
    "StreamView",
    "viewer_count",
    "start_stream",
    "stop_stream",
    "list_active_streams",
    "get_active_stream",
    "join_stream",
    "leave_stream",
]
