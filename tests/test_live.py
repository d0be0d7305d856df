"""Integration tests for live stream sessions and viewer counts."""
from __future__ import annotations

import os
from typing import Callable, Iterator

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///./test_kinship.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("DISABLE_CLEANUP", "true")

from kinship.database import Base, SessionLocal, engine  # noqa: E402
from kinship.main import app  # noqa: E402
from kinship.models import User  # noqa: E402
from kinship.services import get_current_user, live_service  # noqa: E402


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
def authed_client() -> Iterator[Callable[[User], TestClient]]:
    with TestClient(app) as client:
        def _with_user(user: User) -> TestClient:
            app.dependency_overrides[get_current_user] = lambda: user
            return client
        yield _with_user
    app.dependency_overrides.clear()


def test_stream_lifecycle_counts_distinct_viewers(authed_client, user_factory) -> None:
    host = user_factory("streamer")
    first = user_factory("viewer_one")
    second = user_factory("viewer_two")

    started = authed_client(host).post("/live/", json={"title": "Evening set"})
    assert started.status_code == 201, started.text
    stream_id = started.json()["id"]
    assert started.json()["host"]["username"] == "streamer"

    assert authed_client(first).post(f"/live/{stream_id}/join").json()["viewer_count"] == 1
    # joining twice keeps a single membership
    assert authed_client(first).post(f"/live/{stream_id}/join").json()["viewer_count"] == 1
    assert authed_client(second).post(f"/live/{stream_id}/join").json()["viewer_count"] == 2
    # the host is never counted as a viewer
    assert authed_client(host).post(f"/live/{stream_id}/join").json()["viewer_count"] == 2

    listing = authed_client(host).get("/live/").json()["items"]
    assert [(item["id"], item["viewer_count"]) for item in listing] == [(stream_id, 2)]

    left = authed_client(second).post(f"/live/{stream_id}/leave")
    assert left.json() == {"stream_id": stream_id, "viewer_count": 1}

    stopped = authed_client(host).post(f"/live/{stream_id}/stop")
    assert stopped.json()["is_active"] is False
    assert stopped.json()["ended_at"] is not None
    assert stopped.json()["viewer_count"] == 0

    assert authed_client(host).get("/live/").json()["items"] == []
    assert authed_client(first).get(f"/live/{stream_id}").status_code == 404
    assert authed_client(first).post(f"/live/{stream_id}/join").status_code == 404


def test_one_active_stream_per_host(authed_client, user_factory) -> None:
    host = user_factory("busy")
    client = authed_client(host)
    first = client.post("/live/", json={"title": "First"}).json()
    assert client.post("/live/", json={"title": "Second"}).status_code == 409

    client.post(f"/live/{first['id']}/stop")
    assert client.post("/live/", json={"title": "Second"}).status_code == 201


def test_only_the_host_can_stop(authed_client, user_factory) -> None:
    host = user_factory("owner")
    other = user_factory("prankster")
    stream = authed_client(host).post("/live/", json={"title": "Mine"}).json()
    assert authed_client(other).post(f"/live/{stream['id']}/stop").status_code == 403


def test_blank_title_is_rejected(user_factory) -> None:
    host = user_factory("quiet")
    with SessionLocal() as session:
        with pytest.raises(HTTPException) as excinfo:
            live_service.start_stream(session, host=host, title="   ")
    assert excinfo.value.status_code == 400
