"""Integration tests for follows, profiles, notifications and short videos."""
from __future__ import annotations

import os
from typing import Callable, Iterator

import pytest
from fastapi.testclient import TestClient

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///./test_kinship.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("DISABLE_CLEANUP", "true")

from kinship.database import Base, SessionLocal, engine  # noqa: E402
from kinship.main import app  # noqa: E402
from kinship.models import User  # noqa: E402
from kinship.services import get_current_user, get_optional_user, post_service  # noqa: E402
from kinship.services.friendship_service import send_friend_request  # noqa: E402


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
def authed_client() -> Iterator[Callable[[User | None], TestClient]]:
    with TestClient(app) as client:
        def _with_user(user: User | None) -> TestClient:
            if user is None:
                app.dependency_overrides.pop(get_current_user, None)
                app.dependency_overrides[get_optional_user] = lambda: None
            else:
                app.dependency_overrides[get_current_user] = lambda: user
                app.dependency_overrides[get_optional_user] = lambda: user
            return client
        yield _with_user
    app.dependency_overrides.clear()


def test_follow_is_idempotent_and_notifies_once(authed_client, user_factory) -> None:
    fan = user_factory("fan")
    star = user_factory("star")
    client = authed_client(fan)

    first = client.post(f"/follows/{star.id}")
    assert first.status_code == 201
    assert first.json()["status"] == "followed"
    assert first.json()["followers_count"] == 1
    assert first.json()["is_following"] is True

    again = client.post(f"/follows/{star.id}")
    assert again.json()["status"] == "noop"
    assert again.json()["followers_count"] == 1

    assert client.post(f"/follows/{fan.id}").status_code == 400

    notes = authed_client(star).get("/notifications/").json()
    assert [item["type"] for item in notes["items"]] == ["follow"]
    assert notes["unread_count"] == 1

    stats = authed_client(star).get(f"/follows/stats/{fan.id}").json()
    assert stats["follows_you"] is True and stats["is_following"] is False

    followers = authed_client(fan).get(f"/follows/{star.id}/followers").json()["items"]
    assert [item["username"] for item in followers] == ["fan"]

    removed = authed_client(fan).delete(f"/follows/{star.id}")
    assert removed.json()["status"] == "unfollowed"
    assert authed_client(fan).delete(f"/follows/{star.id}").json()["status"] == "noop"
    assert authed_client(fan).get(f"/follows/{fan.id}/following").json()["items"] == []


def test_notifications_can_be_marked_read(authed_client, user_factory) -> None:
    target = user_factory("popular")
    for name in ("one", "two", "three"):
        follower = user_factory(name)
        authed_client(follower).post(f"/follows/{target.id}")

    client = authed_client(target)
    listing = client.get("/notifications/").json()
    assert listing["unread_count"] == 3

    first_id = listing["items"][0]["id"]
    marked = client.post(f"/notifications/{first_id}/read")
    assert marked.json()["read"] is True
    assert client.get("/notifications/summary").json() == {"unread_count": 2}

    assert client.post("/notifications/read-all").json() == {"unread_count": 0}

    stranger = user_factory("stranger")
    assert authed_client(stranger).post(f"/notifications/{first_id}/read").status_code == 404


def test_profile_reports_relationship_and_presence(authed_client, user_factory) -> None:
    viewer = user_factory("viewer")
    subject = user_factory("subject")
    with SessionLocal() as session:
        send_friend_request(session, sender=subject, receiver_id=viewer.id)

    client = authed_client(viewer)
    profile = client.get(f"/profiles/{subject.id}").json()
    assert profile["username"] == "subject"
    assert profile["friend_status"] == "incoming"
    assert profile["online"] is False

    tracker = app.state.online_tracker
    client.portal.call(tracker.announce, str(subject.id))
    try:
        assert client.get(f"/profiles/{subject.id}").json()["online"] is True
    finally:
        client.portal.call(tracker.withdraw, str(subject.id))

    own = client.get("/profiles/me").json()
    assert own["friend_status"] == "self"

    anonymous = authed_client(None).get(f"/profiles/{subject.id}").json()
    assert anonymous["friend_status"] is None


def test_profile_update_validates_usernames(authed_client, user_factory) -> None:
    user_factory("claimed")
    editor = user_factory("editor")
    client = authed_client(editor)

    updated = client.put("/profiles/me", json={"display_name": "  Ed  ", "bio": "hello", "is_public": False})
    assert updated.status_code == 200, updated.text
    body = updated.json()
    assert body["display_name"] == "Ed"
    assert body["is_public"] is False

    assert client.put("/profiles/me", json={"username": "claimed"}).status_code == 409
    assert client.put("/profiles/me", json={"username": "bad name"}).status_code == 400

    cleared = client.put("/profiles/me", json={"bio": "   "})
    assert cleared.json()["bio"] is None
    assert cleared.json()["display_name"] == "Ed"


def test_profile_posts_respect_privacy(authed_client, user_factory) -> None:
    private = user_factory("private", is_public=False)
    follower = user_factory("trusted")
    outsider = user_factory("curious")
    with SessionLocal() as session:
        post_service.create_post(session, author=private, content="inner circle")

    assert authed_client(outsider).get(f"/profiles/{private.id}/posts").json()["items"] == []

    authed_client(follower).post(f"/follows/{private.id}")
    items = authed_client(follower).get(f"/profiles/{private.id}/posts").json()["items"]
    assert [item["content"] for item in items] == ["inner circle"]


def test_videos_share_codes_likes_and_comments(authed_client, user_factory) -> None:
    creator = user_factory("creator")
    watcher = user_factory("watcher")

    created = authed_client(creator).post("/videos/", json={"video_url": "/files/videos/clip.mp4", "caption": "hi"})
    assert created.status_code == 201, created.text
    video = created.json()
    assert video["share_code"]

    client = authed_client(watcher)
    liked = client.post(f"/videos/{video['id']}/like")
    assert liked.json()["liked"] is True

    comment = client.post(f"/videos/{video['id']}/comments", json={"content": "great clip"})
    assert comment.status_code == 201
    assert client.post(f"/videos/{video['id']}/comments", json={"content": " "}).status_code == 400

    shared = client.get(f"/videos/share/{video['share_code']}").json()
    assert shared["id"] == video["id"]
    assert shared["like_count"] == 1
    assert shared["comment_count"] == 1
    assert shared["viewer_liked"] is True

    feed = client.get("/videos/").json()["items"]
    assert [item["id"] for item in feed] == [video["id"]]

    assert client.delete(f"/videos/{video['id']}").status_code == 403
    assert authed_client(creator).delete(f"/videos/{video['id']}").status_code == 204
    assert client.get(f"/videos/share/{video['share_code']}").status_code == 404
