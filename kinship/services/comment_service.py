"""Post comments arranged as a one-level reply tree."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import cast
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..constants import LikeSubject
from ..models import Comment, User
from .like_service import count_likes, liked_by
from .notification_service import NotificationType, notify_best_effort
from .post_service import get_visible_post


@dataclass(slots=True)
class CommentNode:
    comment: Comment
    like_count: int
    viewer_liked: bool
    replies: list["CommentNode"] = field(default_factory=list)


def create_comment(
    db: Session,
    *,
    post_id: UUID,
    author: User,
    content: str | None,
    audio_url: str | None = None,
    parent_comment_id: UUID | None = None,
) -> Comment:
    post = get_visible_post(db, post_id=post_id, viewer_id=cast(UUID, author.id))
    text = (content or "").strip()
    audio = (audio_url or "").strip() or None
    if not text and not audio:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Comment needs text or audio")

    if parent_comment_id is not None:
        parent = db.get(Comment, parent_comment_id)
        if parent is None or parent.post_id != post.id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Parent comment belongs to another post")
        # replies to replies attach to the top-level comment
        if parent.parent_comment_id is not None:
            parent_comment_id = cast(UUID, parent.parent_comment_id)

    comment = Comment(
        post_id=post.id,
        user_id=author.id,
        parent_comment_id=parent_comment_id,
        content=text,
        audio_url=audio,
    )
    try:
        db.add(comment)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Unable to add comment") from exc
    db.refresh(comment)

    if post.user_id != author.id:
        notify_best_effort(
            db,
            recipient_id=post.user_id,
            sender_id=author.id,
            type_=NotificationType.POST_COMMENT,
            title="New comment",
            message=f"{author.display_name or author.username} commented on your post",
            related_id=post.id,
        )
    return comment


def list_comments(db: Session, *, post_id: UUID, viewer_id: UUID | None) -> list[CommentNode]:
    """Return top-level comments oldest first, each with its replies."""

    get_visible_post(db, post_id=post_id, viewer_id=viewer_id)
    comments = list(db.scalars(select(Comment).where(Comment.post_id == post_id).order_by(Comment.created_at.asc())))
    ids = [cast(UUID, comment.id) for comment in comments]
    likes = count_likes(db, LikeSubject.COMMENT, ids)
    liked = liked_by(db, LikeSubject.COMMENT, ids, viewer_id)

    nodes = {
        comment.id: CommentNode(comment, likes.get(comment.id, 0), comment.id in liked)
        for comment in comments
    }
    roots: list[CommentNode] = []
    for comment in comments:
        node = nodes[comment.id]
        parent = nodes.get(comment.parent_comment_id) if comment.parent_comment_id else None
        if parent is None:
            roots.append(node)
        else:
            parent.replies.append(node)
    return roots


def delete_comment(db: Session, *, comment_id: UUID, author: User) -> None:
    """Delete an owned comment together with its replies."""

    comment = db.get(Comment, comment_id)
    if comment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Comment not found")
    if comment.user_id != author.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only the author can delete this comment")
    try:
        db.delete(comment)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Unable to delete comment") from exc


__all__ = ["CommentNode", "create_comment", "list_comments", "delete_comment"]
