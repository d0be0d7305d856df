"""Tests for registration, sign-in throttling, password resets and API keys."""
from __future__ import annotations

import os
from typing import Iterator
from uuid import UUID

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///./test_kinship.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("DISABLE_CLEANUP", "true")

from kinship.database import Base, SessionLocal, engine  # noqa: E402
from kinship.main import app  # noqa: E402
from kinship.models import ApiKey, User  # noqa: E402
from kinship.models.base import utcnow  # noqa: E402
from kinship.services import auth_service  # noqa: E402
from kinship.services.auth_service import LoginThrottle  # noqa: E402


class _Clock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


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
def clock() -> _Clock:
    return _Clock()


@pytest.fixture
def client(clock: _Clock) -> Iterator[TestClient]:
    app.dependency_overrides.clear()
    app.state.login_throttle = LoginThrottle(max_failures=3, window_seconds=60, clock=clock)
    with TestClient(app) as test_client:
        yield test_client
    app.state.login_throttle = auth_service.build_login_throttle()


@pytest.fixture
def outbox(monkeypatch) -> list[tuple[str, str, str]]:
    sent: list[tuple[str, str, str]] = []

    def _capture(to_address: str, subject: str, body: str) -> bool:
        sent.append((to_address, subject, body))
        return True

    monkeypatch.setattr(auth_service, "send_email", _capture)
    return sent


def _register(client: TestClient, username: str, password: str = "secret-pass") -> dict:
    response = client.post(
        "/auth/register",
        json={"email": f"{username}@example.com", "password": password, "username": username},
    )
    assert response.status_code == 201, response.text
    return response.json()


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def test_register_login_and_me(client: TestClient) -> None:
    registered = _register(client, "newcomer")
    assert registered["username"] == "newcomer"
    assert registered["is_admin"] is False

    me = client.get("/auth/me", headers=_bearer(registered["access_token"]))
    assert me.status_code == 200
    assert me.json()["email"] == "newcomer@example.com"
    assert me.json()["display_name"] == "newcomer"

    login = client.post("/auth/login", json={"email": "NEWCOMER@example.com", "password": "secret-pass"})
    assert login.status_code == 200
    assert login.json()["user_id"] == registered["user_id"]

    assert client.get("/auth/me").status_code == 401
    assert client.get("/auth/me", headers=_bearer("not-a-token")).status_code == 401


def test_duplicate_and_malformed_registrations(client: TestClient) -> None:
    _register(client, "taken")
    clash = client.post(
        "/auth/register",
        json={"email": "other@example.com", "password": "secret-pass", "username": "TAKEN"},
    )
    assert clash.status_code == 409

    same_email = client.post(
        "/auth/register",
        json={"email": "taken@example.com", "password": "secret-pass", "username": "another"},
    )
    assert same_email.status_code == 409

    bad_name = client.post(
        "/auth/register",
        json={"email": "odd@example.com", "password": "secret-pass", "username": "no spaces!"},
    )
    assert bad_name.status_code == 400


def test_repeated_failures_throttle_sign_in(client: TestClient, clock: _Clock) -> None:
    _register(client, "guarded")
    wrong = {"email": "guarded@example.com", "password": "wrong-pass"}
    for _ in range(3):
        assert client.post("/auth/login", json=wrong).status_code == 401

    right = {"email": "guarded@example.com", "password": "secret-pass"}
    # even the correct password is refused while the window is full
    assert client.post("/auth/login", json=right).status_code == 429

    clock.now += 61
    assert client.post("/auth/login", json=right).status_code == 200


def test_throttle_forgets_emails_without_recent_failures(clock: _Clock) -> None:
    throttle = LoginThrottle(max_failures=2, window_seconds=60, clock=clock, sweep_threshold=4)
    for index in range(1000):
        assert throttle.is_limited(f"nobody{index}@example.com") is False
    assert throttle.tracked_count == 0

    throttle.record_failure("Typo@Example.com")
    throttle.record_failure("typo@example.com")
    assert throttle.is_limited("typo@example.com") is True
    assert throttle.tracked_count == 1

    clock.now += 61
    assert throttle.is_limited("typo@example.com") is False
    assert throttle.tracked_count == 0

    for index in range(4):
        throttle.record_failure(f"stale{index}@example.com")
    clock.now += 61
    # the next failure sweeps the aged-out buckets before adding its own
    throttle.record_failure("fresh@example.com")
    assert throttle.tracked_count == 1


def test_blocked_account_cannot_sign_in(client: TestClient) -> None:
    registered = _register(client, "troublemaker")
    with SessionLocal() as session:
        user = session.get(User, UUID(registered["user_id"]))
        user.blocked_at = utcnow()
        user.block_reason = "spam"
        session.commit()

    login = client.post("/auth/login", json={"email": "troublemaker@example.com", "password": "secret-pass"})
    assert login.status_code == 403
    assert client.get("/auth/me", headers=_bearer(registered["access_token"])).status_code == 403


def test_password_reset_round_trip(client: TestClient, outbox) -> None:
    _register(client, "forgetful", password="old-password")

    requested = client.post("/auth/password-reset", json={"email": "forgetful@example.com"})
    assert requested.status_code == 202
    unknown = client.post("/auth/password-reset", json={"email": "nobody@example.com"})
    assert unknown.json() == requested.json()

    assert len(outbox) == 1
    to_address, _subject, body = outbox[0]
    assert to_address == "forgetful@example.com"
    token = body.split("token=", 1)[1].split()[0]

    confirmed = client.post("/auth/password-reset/confirm", json={"token": token, "new_password": "new-password"})
    assert confirmed.status_code == 200, confirmed.text

    reused = client.post("/auth/password-reset/confirm", json={"token": token, "new_password": "third-password"})
    assert reused.status_code == 400

    assert client.post("/auth/login", json={"email": "forgetful@example.com", "password": "old-password"}).status_code == 401
    assert client.post("/auth/login", json={"email": "forgetful@example.com", "password": "new-password"}).status_code == 200


def test_reset_survives_undeliverable_email(client: TestClient) -> None:
    _register(client, "offline")
    # no transport is configured in tests, so delivery fails quietly
    with SessionLocal() as session:
        token = auth_service.request_password_reset(session, "offline@example.com")
    assert token


def test_credential_changes_require_current_password(client: TestClient) -> None:
    registered = _register(client, "careful")
    headers = _bearer(registered["access_token"])

    wrong = client.put("/auth/password", headers=headers, json={"current_password": "nope", "new_password": "changed-1"})
    assert wrong.status_code == 400
    changed = client.put(
        "/auth/password", headers=headers, json={"current_password": "secret-pass", "new_password": "changed-1"}
    )
    assert changed.status_code == 200

    _register(client, "neighbour")
    clash = client.put("/auth/email", headers=headers, json={"new_email": "neighbour@example.com", "password": "changed-1"})
    assert clash.status_code == 409
    moved = client.put("/auth/email", headers=headers, json={"new_email": "moved@example.com", "password": "changed-1"})
    assert moved.json()["email"] == "moved@example.com"


def test_api_keys_authenticate_requests(client: TestClient) -> None:
    registered = _register(client, "integrator")
    headers = _bearer(registered["access_token"])

    created = client.post("/api-keys/", headers=headers, json={"name": "ci"})
    assert created.status_code == 201, created.text
    key = created.json()["key"]
    assert key.startswith("kn_")
    assert created.json()["last_used"] is None

    me = client.get("/auth/me", headers={"X-API-Key": key})
    assert me.status_code == 200
    assert me.json()["username"] == "integrator"
    with SessionLocal() as session:
        record = session.scalar(select(ApiKey).where(ApiKey.key == key))
        assert record is not None and record.last_used is not None

    assert client.get("/auth/me", headers={"X-API-Key": "kn_unknown"}).status_code == 401

    listed = client.get("/api-keys/", headers=headers).json()
    assert [item["name"] for item in listed] == ["ci"]
    assert client.delete(f"/api-keys/{listed[0]['id']}", headers=headers).status_code == 204
    assert client.get("/auth/me", headers={"X-API-Key": key}).status_code == 401


def test_api_keys_are_private_to_their_owner(client: TestClient) -> None:
    owner = _register(client, "keyholder")
    other = _register(client, "snooper")
    created = client.post("/api-keys/", headers=_bearer(owner["access_token"]), json={"name": "mine"}).json()

    assert client.get("/api-keys/", headers=_bearer(other["access_token"])).json() == []
    denied = client.delete(f"/api-keys/{created['id']}", headers=_bearer(other["access_token"]))
    assert denied.status_code == 404
