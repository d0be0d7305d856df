"""Business logic for posts, reposts and the visibility-filtered feed."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence, cast
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import ColumnElement, and_, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..constants import LikeSubject, Visibility
from ..models import Comment, Follow, Friendship, Post, User
from .follow_service import is_following
from .friendship_service import are_friends
from .like_service import count_likes, liked_by
from .media_layout import MediaGrid, select_media_grid

logger = logging.getLogger(__name__)

MAX_MEDIA_ITEMS = 20


@dataclass(slots=True)
class PostView:
    post: Post
    like_count: int
    comment_count: int
    viewer_liked: bool
    media_grid: MediaGrid | None


def _clean_media(media_urls: Sequence[str] | None) -> list[str]:
    cleaned = [url.strip() for url in media_urls or () if url and url.strip()]
    if len(cleaned) > MAX_MEDIA_ITEMS:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"At most {MAX_MEDIA_ITEMS} media items")
    return cleaned


def _visibility_clause(viewer_id: UUID | None) -> ColumnElement[bool]:
    """SQL predicate selecting the posts ``viewer_id`` may see (joined with ``User``)."""

    public = Post.visibility == Visibility.PUBLIC.value
    if viewer_id is None:
        return and_(public, User.is_public.is_(True))

    followed = select(Follow.following_id).where(Follow.follower_id == viewer_id)
    friends_low = select(Friendship.user_b_id).where(Friendship.user_a_id == viewer_id)
    friends_high = select(Friendship.user_a_id).where(Friendship.user_b_id == viewer_id)
    is_friend = or_(Post.user_id.in_(friends_low), Post.user_id.in_(friends_high))
    is_follower = Post.user_id.in_(followed)

    account_open = or_(User.is_public.is_(True), is_follower, is_friend)
    tier_allows = or_(
        public,
        and_(Post.visibility == Visibility.FOLLOWERS.value, is_follower),
        and_(Post.visibility == Visibility.FRIENDS.value, is_friend),
    )
    return or_(Post.user_id == viewer_id, and_(account_open, tier_allows))


def can_view_post(db: Session, post: Post, viewer_id: UUID | None) -> bool:
    author_id = cast(UUID, post.user_id)
    if viewer_id is not None and author_id == viewer_id:
        return True
    if post.visibility == Visibility.PRIVATE.value:
        return False

    following = viewer_id is not None and is_following(db, viewer_id, author_id)
    friends = viewer_id is not None and are_friends(db, viewer_id, author_id)
    author = db.get(User, author_id)
    if author is not None and not author.is_public and not (following or friends):
        return False

    if post.visibility == Visibility.PUBLIC.value:
        return True
    if post.visibility == Visibility.FOLLOWERS.value:
        return following
    if post.visibility == Visibility.FRIENDS.value:
        return friends
    return False


def get_visible_post(db: Session, *, post_id: UUID, viewer_id: UUID | None) -> Post:
    post = db.get(Post, post_id)
    # hidden posts look missing so their existence is not revealed
    if post is None or not can_view_post(db, post, viewer_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    return post


def build_post_views(db: Session, posts: Sequence[Post], *, viewer_id: UUID | None) -> list[PostView]:
    ids = [cast(UUID, post.id) for post in posts]
    likes = count_likes(db, LikeSubject.POST, ids)
    liked = liked_by(db, LikeSubject.POST, ids, viewer_id)
    comments: dict[UUID, int] = {}
    if ids:
        rows = db.execute(select(Comment.post_id, func.count()).where(Comment.post_id.in_(ids)).group_by(Comment.post_id))
        comments = {row[0]: int(row[1]) for row in rows}
    return [
        PostView(
            post=post,
            like_count=likes.get(post.id, 0),
            comment_count=comments.get(post.id, 0),
            viewer_liked=post.id in liked,
            media_grid=select_media_grid(post.media_urls),
        )
        for post in posts
    ]


def list_feed(db: Session, *, viewer_id: UUID | None, limit: int = 20, offset: int = 0) -> list[PostView]:
    stmt = (
        select(Post)
        .join(User, Post.user_id == User.id)
        .where(_visibility_clause(viewer_id))
        .order_by(Post.created_at.desc())
        .offset(max(0, offset))
        .limit(max(1, min(limit, 100)))
    )
    return build_post_views(db, list(db.scalars(stmt)), viewer_id=viewer_id)


def list_user_posts(db: Session, *, author_id: UUID, viewer_id: UUID | None, limit: int = 50) -> list[PostView]:
    if db.get(User, author_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    stmt = (
        select(Post)
        .join(User, Post.user_id == User.id)
        .where(Post.user_id == author_id, _visibility_clause(viewer_id))
        .order_by(Post.created_at.desc())
        .limit(max(1, min(limit, 100)))
    )
    return build_post_views(db, list(db.scalars(stmt)), viewer_id=viewer_id)


def _commit(db: Session, detail: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception(detail)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail) from exc


def create_post(
    db: Session,
    *,
    author: User,
    content: str | None,
    media_urls: Sequence[str] | None = None,
    visibility: Visibility | str = Visibility.PUBLIC,
) -> Post:
    text = (content or "").strip()
    media = _clean_media(media_urls)
    if not text and not media:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Post needs text or media")

    post = Post(user_id=author.id, content=text, media_urls=media, visibility=Visibility(visibility).value)
    db.add(post)
    _commit(db, "Unable to create post")
    db.refresh(post)
    return post


def _owned_post(db: Session, post_id: UUID, owner: User) -> Post:
    post = db.get(Post, post_id)
    if post is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    if post.user_id != owner.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only the author can change this post")
    return post


def update_post(db: Session, *, post_id: UUID, author: User, content: str) -> Post:
    post = _owned_post(db, post_id, author)
    text = (content or "").strip()
    if not text and not post.media_urls:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Post needs text or media")
    post.content = text
    _commit(db, "Unable to update post")
    db.refresh(post)
    return post


def set_post_visibility(db: Session, *, post_id: UUID, author: User, visibility: Visibility | str) -> Post:
    post = _owned_post(db, post_id, author)
    post.visibility = Visibility(visibility).value
    _commit(db, "Unable to update post visibility")
    db.refresh(post)
    return post


def delete_post(db: Session, *, post_id: UUID, author: User) -> None:
    post = _owned_post(db, post_id, author)
    db.delete(post)
    _commit(db, "Unable to delete post")


def repost(
    db: Session,
    *,
    post_id: UUID,
    account: User,
    visibility: Visibility | str = Visibility.PUBLIC,
) -> Post:
    """Copy a visible post into a new post owned by ``account``.

    Content and media are duplicated, so later edits to the source are not
    reflected in the copy; ``original_post_id`` keeps the provenance.
    """

    source = get_visible_post(db, post_id=post_id, viewer_id=cast(UUID, account.id))
    copy = Post(
        user_id=account.id,
        content=source.content,
        media_urls=list(source.media_urls or []),
        visibility=Visibility(visibility).value,
        original_post_id=source.id,
    )
    db.add(copy)
    _commit(db, "Unable to repost")
    db.refresh(copy)
    return copy


__all__ = [
    "PostView",
    "can_view_post",
    "get_visible_post",
    "build_post_views",
    "list_feed",
    "list_user_posts",
    "create_post",
    "update_post",
    "set_post_visibility",
    "delete_post",
    "repost",
]
