"""Integration tests for story uploads, story visibility, media uploads and cleanup."""
from __future__ import annotations

import os
from datetime import timedelta
from pathlib import Path
from typing import Callable, Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import func, select

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///./test_kinship.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("DISABLE_CLEANUP", "true")

from kinship.database import Base, SessionLocal, engine  # noqa: E402
from kinship.main import app  # noqa: E402
from kinship.models import Follow, PasswordResetToken, Story, StoryView, User  # noqa: E402
from kinship.models.base import utcnow  # noqa: E402
from kinship.services import get_current_user, get_storage_backend, story_service  # noqa: E402
from kinship.services.cleanup_service import run_cleanup  # noqa: E402
from kinship.services.storage_service import LocalStorageBackend  # noqa: E402


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
def user_factory() -> Callable[[str], User]:
    def _factory(username: str) -> User:
        with SessionLocal() as session:
            user = User(username=username, email=f"{username}@example.test", hashed_password="test-hash")
            session.add(user)
            session.commit()
            session.refresh(user)
            return user
    return _factory


@pytest.fixture
def storage_root(tmp_path: Path) -> Path:
    return tmp_path / "media"


@pytest.fixture
def authed_client(storage_root: Path) -> Iterator[Callable[[User], TestClient]]:
    app.dependency_overrides[get_storage_backend] = lambda: LocalStorageBackend(storage_root)
    with TestClient(app) as client:
        def _with_user(user: User) -> TestClient:
            app.dependency_overrides[get_current_user] = lambda: user
            return client
        yield _with_user
    app.dependency_overrides.clear()


def _story(author: User, *, text: str = "hello", hours_left: float = 24) -> Story:
    now = utcnow()
    with SessionLocal() as session:
        story = Story(user_id=author.id, text_content=text, created_at=now, expires_at=now + timedelta(hours=hours_left))
        session.add(story)
        session.commit()
        session.refresh(story)
        return story


def test_story_upload_keeps_good_files_when_one_fails(authed_client, user_factory, storage_root: Path) -> None:
    author = user_factory("storyteller")
    files = [
        ("files", ("beach.jpg", b"jpeg-bytes", "image/jpeg")),
        ("files", ("empty.png", b"", "image/png")),
        ("files", ("clip.mp4", b"mp4-bytes", "video/mp4")),
    ]
    response = authed_client(author).post("/stories/upload", files=files, data={"text_content": "summer"})
    assert response.status_code == 201, response.text

    body = response.json()
    assert body["partial"] is True
    assert body["failed"] == ["empty.png"]
    assert [story["media_type"] for story in body["created"]] == ["image", "video"]
    assert all(story["text_content"] == "summer" for story in body["created"])
    assert all(story["media_url"].startswith(f"/files/stories/{author.id}/") for story in body["created"])

    stored = sorted(path.name for path in (storage_root / "stories" / str(author.id)).iterdir())
    assert len(stored) == 2
    assert {Path(name).suffix for name in stored} == {".jpg", ".mp4"}


def test_story_upload_with_no_usable_file_is_502(authed_client, user_factory) -> None:
    author = user_factory("unlucky")
    files = [("files", ("blank.jpg", b"", "image/jpeg"))]
    response = authed_client(author).post("/stories/upload", files=files)
    assert response.status_code == 502
    assert response.json()["detail"]["failed"] == ["blank.jpg"]
    with SessionLocal() as session:
        assert session.scalar(select(func.count()).select_from(Story)) == 0


def test_views_are_recorded_once_and_only_for_others(authed_client, user_factory) -> None:
    author = user_factory("poster")
    viewer = user_factory("watcher")
    story = _story(author)

    assert authed_client(author).post(f"/stories/{story.id}/view").json()["recorded"] is False
    viewer_client = authed_client(viewer)
    assert viewer_client.post(f"/stories/{story.id}/view").json()["recorded"] is True
    assert viewer_client.post(f"/stories/{story.id}/view").json()["recorded"] is False
    assert viewer_client.get(f"/stories/{story.id}/viewers").status_code == 403

    viewers = authed_client(author).get(f"/stories/{story.id}/viewers").json()
    assert [entry["user"]["username"] for entry in viewers] == ["watcher"]


def test_expired_story_cannot_be_viewed(authed_client, user_factory) -> None:
    author = user_factory("faded")
    viewer = user_factory("late")
    story = _story(author, hours_left=-1)
    assert authed_client(viewer).post(f"/stories/{story.id}/view").status_code == 404


def test_feed_groups_active_stories_of_followed_accounts(authed_client, user_factory) -> None:
    viewer = user_factory("reader")
    followed = user_factory("celebrity")
    stranger = user_factory("unknown")
    with SessionLocal() as session:
        session.add(Follow(follower_id=viewer.id, following_id=followed.id))
        session.commit()

    _story(followed, text="older")
    _story(followed, text="newer")
    _story(followed, text="gone", hours_left=-2)
    _story(stranger, text="not for you")
    _story(viewer, text="mine")

    feed = authed_client(viewer).get("/stories/feed").json()["items"]
    assert [group["user"]["username"] for group in feed] == ["reader", "celebrity"]
    assert [story["text_content"] for story in feed[1]["stories"]] == ["newer", "older"]


def test_feed_ordering_uses_reference_time(user_factory) -> None:
    viewer = user_factory("timekeeper")
    _story(viewer, text="short", hours_left=1)
    with SessionLocal() as session:
        later = utcnow() + timedelta(hours=2)
        assert story_service.list_active_stories(session, viewer_id=viewer.id, reference=later) == []


def test_only_the_author_deletes_a_story(authed_client, user_factory) -> None:
    author = user_factory("owner")
    other = user_factory("other")
    story = _story(author)

    assert authed_client(other).delete(f"/stories/{story.id}").status_code == 403
    assert authed_client(author).delete(f"/stories/{story.id}").status_code == 204
    assert authed_client(author).delete(f"/stories/{story.id}").status_code == 404


def test_text_only_story_and_validation(authed_client, user_factory) -> None:
    author = user_factory("writer")
    client = authed_client(author)
    created = client.post("/stories/", json={"text_content": "words only"})
    assert created.status_code == 201
    assert created.json()["media_type"] is None
    assert client.post("/stories/", json={"text_content": "  "}).status_code == 400


def test_cleanup_removes_expired_rows(user_factory) -> None:
    author = user_factory("archivist")
    viewer = user_factory("visitor")
    expired = _story(author, text="old", hours_left=-1)
    fresh = _story(author, text="new")
    with SessionLocal() as session:
        session.add(StoryView(story_id=expired.id, user_id=viewer.id))
        session.add(
            PasswordResetToken(user_id=author.id, token_hash="a" * 64, expires_at=utcnow() - timedelta(minutes=1))
        )
        session.add(PasswordResetToken(user_id=author.id, token_hash="b" * 64, expires_at=utcnow() + timedelta(hours=1)))
        session.commit()

    summary = run_cleanup(SessionLocal)
    assert (summary.stories, summary.story_views, summary.reset_tokens) == (1, 1, 1)
    assert summary.total == 3

    with SessionLocal() as session:
        remaining = list(session.scalars(select(Story.id)))
        assert remaining == [fresh.id]
        assert session.scalar(select(func.count()).select_from(PasswordResetToken)) == 1

    # nothing left to prune
    assert run_cleanup(SessionLocal).total == 0


def test_uploads_route_by_bucket(authed_client, user_factory, storage_root: Path) -> None:
    user = user_factory("uploader")
    client = authed_client(user)

    stored = client.post("/uploads/avatars", files={"file": ("me.PNG", b"png-bytes", "image/png")})
    assert stored.status_code == 201, stored.text
    body = stored.json()
    assert body["bucket"] == "avatars"
    assert body["url"] == f"/files/avatars/{body['key']}"
    assert (storage_root / "avatars" / body["key"]).read_bytes() == b"png-bytes"
    assert body["key"].endswith(".png")

    unknown = client.post("/uploads/secrets", files={"file": ("x.txt", b"data", "text/plain")})
    assert unknown.status_code == 404

    empty = client.post("/uploads/posts", files={"file": ("nothing.jpg", b"", "image/jpeg")})
    assert empty.status_code == 502
