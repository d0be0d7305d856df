"""Integration tests for posts, likes and comment threads."""
from __future__ import annotations

import os
from typing import Callable, Iterator

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient
from sqlalchemy import func, select

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///./test_kinship.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("DISABLE_CLEANUP", "true")

from kinship.constants import LikeSubject, Visibility  # noqa: E402
from kinship.database import Base, SessionLocal, engine  # noqa: E402
from kinship.main import app  # noqa: E402
from kinship.models import Comment, Follow, PostLike, User  # noqa: E402
from kinship.services import get_current_user, get_optional_user, like_service, post_service  # noqa: E402


@pytest.fixture(scope="module", autouse=True)
def _create_schema() -> Iterator[None]:
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def _clean_database() -> Iterator[None]:
    with SessionLocal() as session:
        for table in reversed(Base.metadata.sorted_tables):
            session.execute(table.delete())
        session.commit()
    yield


@pytest.fixture
def user_factory() -> Callable[..., User]:
    def _factory(username: str, *, is_public: bool = True) -> User:
        with SessionLocal() as session:
            user = User(
                username=username,
                email=f"{username}@example.test",
                hashed_password="test-hash",
                is_public=is_public,
            )
            session.add(user)
            session.commit()
            session.refresh(user)
            return user
    return _factory


@pytest.fixture
def authed_client() -> Iterator[Callable[[User], TestClient]]:
    with TestClient(app) as client:
        def _with_user(user: User) -> TestClient:
            app.dependency_overrides[get_current_user] = lambda: user
            app.dependency_overrides[get_optional_user] = lambda: user
            return client
        yield _with_user
    app.dependency_overrides.clear()


def _like_rows() -> int:
    with SessionLocal() as session:
        return int(session.scalar(select(func.count()).select_from(PostLike)) or 0)


def test_toggle_like_flips_state_and_keeps_one_row(user_factory) -> None:
    author = user_factory("author")
    fan = user_factory("fan")

    with SessionLocal() as session:
        post = post_service.create_post(session, author=author, content="hello world")
        liked = like_service.toggle_like(session, subject=LikeSubject.POST, subject_id=post.id, account_id=fan.id)
        assert liked.liked is True and liked.like_count == 1

        # setting the state that already holds changes nothing
        again = like_service.set_like_state(
            session, subject=LikeSubject.POST, subject_id=post.id, account_id=fan.id, liked=True
        )
        assert again.liked is True and again.like_count == 1

        unliked = like_service.toggle_like(session, subject=LikeSubject.POST, subject_id=post.id, account_id=fan.id)
        assert unliked.liked is False and unliked.like_count == 0

    assert _like_rows() == 0


def test_racing_like_resolves_to_stored_state(monkeypatch, user_factory) -> None:
    author = user_factory("racer-author")
    fan = user_factory("racer-fan")

    with SessionLocal() as session:
        post = post_service.create_post(session, author=author, content="race me")
        session.add(PostLike(post_id=post.id, user_id=fan.id))
        session.commit()

        real_find = like_service._find_like
        calls = {"count": 0}

        def _stale_find(*args):
            # the first two reads miss the row another request just inserted
            calls["count"] += 1
            return None if calls["count"] <= 2 else real_find(*args)

        monkeypatch.setattr(like_service, "_find_like", _stale_find)
        state = like_service.toggle_like(session, subject=LikeSubject.POST, subject_id=post.id, account_id=fan.id)

    assert state.liked is True
    assert state.like_count == 1
    assert _like_rows() == 1


def test_like_on_missing_subject_is_404(user_factory) -> None:
    fan = user_factory("lonely-fan")
    with SessionLocal() as session:
        with pytest.raises(HTTPException) as excinfo:
            like_service.set_like_state(
                session, subject=LikeSubject.VIDEO, subject_id=fan.id, account_id=fan.id, liked=True
            )
    assert excinfo.value.status_code == 404


def test_post_routes_apply_visibility_and_media_grid(authed_client, user_factory) -> None:
    owner = user_factory("owner")
    follower = user_factory("follower")
    stranger = user_factory("stranger")

    with SessionLocal() as session:
        session.add(Follow(follower_id=follower.id, following_id=owner.id))
        session.commit()

    client = authed_client(owner)
    media = [f"https://cdn.example.test/{index}.jpg" for index in range(7)]
    public_post = client.post("/posts/", json={"content": "gallery", "media_urls": media})
    assert public_post.status_code == 201, public_post.text
    grid = public_post.json()["media_grid"]
    assert grid["layout"] == "two-rows"
    assert grid["hidden_count"] == 2
    assert grid["cells"][-1]["overlay"] == "+2"

    followers_only = client.post("/posts/", json={"content": "for followers", "visibility": "followers"})
    assert followers_only.status_code == 201
    followers_post_id = followers_only.json()["id"]

    follower_feed = authed_client(follower).get("/posts/feed").json()["items"]
    assert {item["content"] for item in follower_feed} == {"gallery", "for followers"}

    stranger_client = authed_client(stranger)
    stranger_feed = stranger_client.get("/posts/feed").json()["items"]
    assert [item["content"] for item in stranger_feed] == ["gallery"]
    assert stranger_client.get(f"/posts/{followers_post_id}").status_code == 404
    assert stranger_client.post(f"/posts/{followers_post_id}/like").status_code == 404


def test_private_account_hides_posts_from_non_followers(authed_client, user_factory) -> None:
    hidden = user_factory("hidden", is_public=False)
    follower = user_factory("insider")
    outsider = user_factory("outsider")

    with SessionLocal() as session:
        post = post_service.create_post(session, author=hidden, content="members only", visibility=Visibility.PUBLIC)
        session.add(Follow(follower_id=follower.id, following_id=hidden.id))
        session.commit()

    assert authed_client(outsider).get(f"/posts/{post.id}").status_code == 404
    assert authed_client(follower).get(f"/posts/{post.id}").status_code == 200


def test_like_endpoints_toggle_and_set(authed_client, user_factory) -> None:
    author = user_factory("liked-author")
    fan = user_factory("liked-fan")
    with SessionLocal() as session:
        post = post_service.create_post(session, author=author, content="like me")

    client = authed_client(fan)
    first = client.post(f"/posts/{post.id}/like")
    assert first.json() == {"subject": "post", "subject_id": str(post.id), "liked": True, "like_count": 1}

    repeated = client.put(f"/posts/{post.id}/like", json={"liked": True})
    assert repeated.json()["like_count"] == 1

    cleared = client.put(f"/posts/{post.id}/like", json={"liked": False})
    assert cleared.json()["liked"] is False
    assert _like_rows() == 0


def test_replies_to_replies_attach_to_top_level_comment(authed_client, user_factory) -> None:
    author = user_factory("thread-author")
    commenter = user_factory("commenter")
    with SessionLocal() as session:
        post = post_service.create_post(session, author=author, content="discuss")

    client = authed_client(commenter)
    top = client.post(f"/posts/{post.id}/comments", json={"content": "first"})
    assert top.status_code == 201, top.text
    reply = client.post(f"/posts/{post.id}/comments", json={"content": "reply", "parent_comment_id": top.json()["id"]})
    nested = client.post(
        f"/posts/{post.id}/comments",
        json={"content": "reply to reply", "parent_comment_id": reply.json()["id"]},
    )
    assert nested.json()["parent_comment_id"] == top.json()["id"]

    listing = client.get(f"/posts/{post.id}/comments").json()["items"]
    assert len(listing) == 1
    assert [child["content"] for child in listing[0]["replies"]] == ["reply", "reply to reply"]

    empty = client.post(f"/posts/{post.id}/comments", json={"content": "   "})
    assert empty.status_code == 400

    deleted = client.delete(f"/comments/{top.json()['id']}")
    assert deleted.status_code == 204
    with SessionLocal() as session:
        assert session.scalar(select(func.count()).select_from(Comment)) == 0


def test_repost_copies_content_with_provenance(authed_client, user_factory) -> None:
    author = user_factory("source")
    sharer = user_factory("sharer")
    with SessionLocal() as session:
        post = post_service.create_post(
            session, author=author, content="original", media_urls=["https://cdn.example.test/a.png"]
        )

    response = authed_client(sharer).post(f"/posts/{post.id}/repost")
    assert response.status_code == 201, response.text
    body = response.json()
    assert body["original_post_id"] == str(post.id)
    assert body["user_id"] == str(sharer.id)
    assert body["media_urls"] == ["https://cdn.example.test/a.png"]

    # later edits to the source stay out of the copy
    authed_client(author).put(f"/posts/{post.id}", json={"content": "edited"})
    copy = authed_client(sharer).get(f"/posts/{body['id']}").json()
    assert copy["content"] == "original"


def test_only_author_can_edit_or_delete(authed_client, user_factory) -> None:
    author = user_factory("editor")
    other = user_factory("intruder")
    with SessionLocal() as session:
        post = post_service.create_post(session, author=author, content="mine")

    intruder = authed_client(other)
    assert intruder.put(f"/posts/{post.id}", json={"content": "yours"}).status_code == 403
    assert intruder.delete(f"/posts/{post.id}").status_code == 403
    assert authed_client(author).delete(f"/posts/{post.id}").status_code == 204
