"""Integration tests for direct messages and group chats."""
from __future__ import annotations

import os
from typing import Callable, Iterator
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import func, select

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///./test_kinship.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("DISABLE_CLEANUP", "true")

from kinship.database import Base, SessionLocal, engine  # noqa: E402
from kinship.main import app  # noqa: E402
from kinship.models import GroupChat, GroupMember, User  # noqa: E402
from kinship.services import get_current_user  # noqa: E402


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


def test_direct_messages_track_unread_state(authed_client, user_factory) -> None:
    alice = user_factory("alice")
    bob = user_factory("bob")
    carol = user_factory("carol")

    alice_client = authed_client(alice)
    assert alice_client.post(f"/messages/{bob.id}", json={"content": "hi bob"}).status_code == 201
    assert alice_client.post(f"/messages/{bob.id}", json={"content": "are you there?"}).status_code == 201
    authed_client(carol).post(f"/messages/{bob.id}", json={"content": "hey from carol"})

    bob_client = authed_client(bob)
    assert bob_client.get("/messages/unread-count").json() == {"unread_count": 3}

    inbox = bob_client.get("/messages/").json()
    assert inbox["unread_total"] == 3
    assert [item["partner"]["username"] for item in inbox["items"]] == ["carol", "alice"]
    assert {item["partner"]["username"]: item["unread_count"] for item in inbox["items"]} == {"carol": 1, "alice": 2}

    thread = bob_client.get(f"/messages/{alice.id}").json()
    assert [message["content"] for message in thread["items"]] == ["hi bob", "are you there?"]
    assert bob_client.get("/messages/unread-count").json() == {"unread_count": 1}

    # reading your own sent messages marks nothing
    alice_client = authed_client(alice)
    alice_client.get(f"/messages/{bob.id}")
    assert authed_client(bob).get("/messages/unread-count").json() == {"unread_count": 1}


def test_direct_message_validation(authed_client, user_factory) -> None:
    alice = user_factory("sender")
    bob = user_factory("receiver")
    client = authed_client(alice)

    assert client.post(f"/messages/{alice.id}", json={"content": "me"}).status_code == 400
    assert client.post(f"/messages/{bob.id}", json={"content": "   "}).status_code == 400
    assert client.post(f"/messages/{uuid4()}", json={"content": "ghost"}).status_code == 404

    voice = client.post(f"/messages/{bob.id}", json={"audio_url": "/files/audio/note.webm"})
    assert voice.status_code == 201
    assert voice.json()["content"] == ""
    assert voice.json()["audio_url"] == "/files/audio/note.webm"


def test_group_creation_and_admin_only_invites(authed_client, user_factory) -> None:
    owner = user_factory("owner")
    member = user_factory("member")
    newcomer = user_factory("newcomer")

    created = authed_client(owner).post("/groups/", json={"name": "Book club", "member_ids": [str(member.id)]})
    assert created.status_code == 201, created.text
    group = created.json()
    admins = {entry["user_id"]: entry["is_admin"] for entry in group["members"]}
    assert admins == {str(owner.id): True, str(member.id): False}

    denied = authed_client(member).post(f"/groups/{group['id']}/members", json={"user_id": str(newcomer.id)})
    assert denied.status_code == 403

    owner_client = authed_client(owner)
    added = owner_client.post(f"/groups/{group['id']}/members", json={"user_id": str(newcomer.id)})
    assert added.status_code == 201
    again = owner_client.post(f"/groups/{group['id']}/members", json={"user_id": str(newcomer.id)})
    assert again.status_code == 409

    assert [item["name"] for item in authed_client(newcomer).get("/groups/").json()] == ["Book club"]


def test_group_messages_collect_read_receipts(authed_client, user_factory) -> None:
    owner = user_factory("host")
    guest = user_factory("guest")
    outsider = user_factory("outsider")
    group = authed_client(owner).post("/groups/", json={"name": "Trip", "member_ids": [str(guest.id)]}).json()

    sent = authed_client(owner).post(f"/groups/{group['id']}/messages", json={"content": "tickets booked"})
    assert sent.status_code == 201
    assert sent.json()["read_by"] == [str(owner.id)]

    messages = authed_client(guest).get(f"/groups/{group['id']}/messages").json()
    assert messages[0]["read_by"] == [str(owner.id), str(guest.id)]
    # reading twice does not duplicate the receipt
    again = authed_client(guest).get(f"/groups/{group['id']}/messages").json()
    assert again[0]["read_by"] == [str(owner.id), str(guest.id)]

    outsider_client = authed_client(outsider)
    assert outsider_client.get(f"/groups/{group['id']}/messages").status_code == 403
    assert outsider_client.post(f"/groups/{group['id']}/messages", json={"content": "let me in"}).status_code == 403


def test_leaving_passes_admin_on_and_last_member_deletes(authed_client, user_factory) -> None:
    founder = user_factory("founder")
    second = user_factory("second")
    third = user_factory("third")

    group = authed_client(founder).post("/groups/", json={"name": "Band", "member_ids": [str(second.id)]}).json()
    authed_client(founder).post(f"/groups/{group['id']}/members", json={"user_id": str(third.id)})

    left = authed_client(founder).delete(f"/groups/{group['id']}/members/me")
    assert left.json() == {"group_id": group["id"], "group_deleted": False}
    with SessionLocal() as session:
        members = {row.user_id: row.is_admin for row in session.scalars(select(GroupMember))}
    assert members == {second.id: True, third.id: False}

    assert authed_client(second).delete(f"/groups/{group['id']}/members/me").json()["group_deleted"] is False
    last = authed_client(third).delete(f"/groups/{group['id']}/members/me")
    assert last.json()["group_deleted"] is True
    with SessionLocal() as session:
        assert session.scalar(select(func.count()).select_from(GroupChat)) == 0

    assert authed_client(third).get(f"/groups/{group['id']}").status_code == 404
