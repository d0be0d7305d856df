"""Short videos: publishing, feed, share links and comments."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, cast
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..constants import LikeSubject
from ..models import User, Video, VideoComment
from .like_service import count_likes, liked_by


@dataclass(slots=True)
class VideoView:
    video: Video
    like_count: int
    comment_count: int
    viewer_liked: bool


def _commit(db: Session, detail: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail) from exc


def create_video(db: Session, *, author: User, video_url: str, caption: str | None = None) -> Video:
    url = (video_url or "").strip()
    if not url:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Video URL is required")
    video = Video(user_id=author.id, video_url=url, caption=(caption or "").strip() or None)
    db.add(video)
    _commit(db, "Unable to publish video")
    db.refresh(video)
    return video


def build_video_views(db: Session, videos: Sequence[Video], *, viewer_id: UUID | None) -> list[VideoView]:
    ids = [cast(UUID, video.id) for video in videos]
    likes = count_likes(db, LikeSubject.VIDEO, ids)
    liked = liked_by(db, LikeSubject.VIDEO, ids, viewer_id)
    comments: dict[UUID, int] = {}
    if ids:
        rows = db.execute(
            select(VideoComment.video_id, func.count()).where(VideoComment.video_id.in_(ids)).group_by(VideoComment.video_id)
        )
        comments = {row[0]: int(row[1]) for row in rows}
    return [
        VideoView(video, likes.get(video.id, 0), comments.get(video.id, 0), video.id in liked)
        for video in videos
    ]


def list_videos(db: Session, *, viewer_id: UUID | None, limit: int = 20, offset: int = 0) -> list[VideoView]:
    stmt = (
        select(Video)
        .order_by(Video.created_at.desc())
        .offset(max(0, offset))
        .limit(max(1, min(limit, 100)))
    )
    return build_video_views(db, list(db.scalars(stmt)), viewer_id=viewer_id)


def get_video(db: Session, video_id: UUID) -> Video:
    video = db.get(Video, video_id)
    if video is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Video not found")
    return video


def get_by_share_code(db: Session, share_code: str) -> Video:
    video = db.scalar(select(Video).where(Video.share_code == share_code))
    if video is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Video not found")
    return video


def delete_video(db: Session, *, video_id: UUID, author: User) -> None:
    video = get_video(db, video_id)
    if video.user_id != author.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only the author can delete this video")
    db.delete(video)
    _commit(db, "Unable to delete video")


def add_video_comment(
    db: Session,
    *,
    video_id: UUID,
    author: User,
    content: str | None,
    audio_url: str | None = None,
) -> VideoComment:
    get_video(db, video_id)
    text = (content or "").strip()
    audio = (audio_url or "").strip() or None
    if not text and not audio:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Comment needs text or audio")
    comment = VideoComment(video_id=video_id, user_id=author.id, content=text, audio_url=audio)
    db.add(comment)
    _commit(db, "Unable to add comment")
    db.refresh(comment)
    return comment


def list_video_comments(db: Session, *, video_id: UUID) -> list[VideoComment]:
    get_video(db, video_id)
    stmt = select(VideoComment).where(VideoComment.video_id == video_id).order_by(VideoComment.created_at.asc())
    return list(db.scalars(stmt))


__all__ = [
    "VideoView",
    "create_video",
    "build_video_views",
    "list_videos",
    "get_video",
    "get_by_share_code",
    "delete_video",
    "add_video_comment",
    "list_video_comments",
]
