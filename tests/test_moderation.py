"""Integration tests for reports, verification review and admin actions."""
from __future__ import annotations

import os
from typing import Callable, Iterator

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient
from sqlalchemy import event, func, select

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///./test_kinship.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("DISABLE_CLEANUP", "true")

from kinship.constants import ADMIN_ROLE  # noqa: E402
from kinship.database import Base, SessionLocal, engine  # noqa: E402
from kinship.main import app  # noqa: E402
from kinship.models import Notification, Report, User, UserRole, VerificationRequest  # noqa: E402
from kinship.services import get_current_user, post_service, report_service, verification_service  # noqa: E402


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
    def _factory(username: str, *, admin: bool = False) -> User:
        with SessionLocal() as session:
            user = User(username=username, email=f"{username}@example.test", hashed_password="test-hash")
            if admin:
                user.roles.append(UserRole(role=ADMIN_ROLE))
            session.add(user)
            session.commit()
            session.refresh(user)
            # load roles while attached; admin checks read them later
            assert user.role_names == ({ADMIN_ROLE} if admin else set())
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


def _count(model) -> int:
    with SessionLocal() as session:
        return int(session.scalar(select(func.count()).select_from(model)) or 0)


def test_report_notifies_every_admin(authed_client, user_factory) -> None:
    user_factory("mod-one", admin=True)
    user_factory("mod-two", admin=True)
    author = user_factory("author")
    reporter = user_factory("reporter")
    with SessionLocal() as session:
        post = post_service.create_post(session, author=author, content="questionable")

    response = authed_client(reporter).post(
        "/reports/", json={"content_id": str(post.id), "content_type": "post", "reason": "spam"}
    )
    assert response.status_code == 201, response.text
    assert response.json()["status"] == "pending"

    with SessionLocal() as session:
        notes = list(session.scalars(select(Notification).where(Notification.type == "report")))
    assert len(notes) == 2
    assert {note.related_id for note in notes} == {post.id}


def test_report_is_withdrawn_when_a_notification_fails(monkeypatch, user_factory) -> None:
    user_factory("mod-a", admin=True)
    user_factory("mod-b", admin=True)
    author = user_factory("victim")
    reporter = user_factory("snitch")
    with SessionLocal() as session:
        post = post_service.create_post(session, author=author, content="reported")

    real_add = report_service.notification_service.add_notification
    calls = {"count": 0}

    def _flaky_add(db, **kwargs):
        calls["count"] += 1
        if calls["count"] == 1:
            return real_add(db, **kwargs)
        raise RuntimeError("notification store unavailable")

    monkeypatch.setattr(report_service.notification_service, "add_notification", _flaky_add)

    with SessionLocal() as session:
        with pytest.raises(HTTPException) as excinfo:
            report_service.create_report(
                session,
                reporter=reporter,
                content_id=post.id,
                content_type="post",
                reason="abusive",
                retry_delays=[0, 0],
            )

    assert excinfo.value.status_code == 500
    assert "rolled back" in excinfo.value.detail
    assert calls["count"] == 4
    assert _count(Report) == 0
    assert _count(Notification) == 0


def test_report_validation(user_factory) -> None:
    reporter = user_factory("picky")
    with SessionLocal() as session:
        with pytest.raises(HTTPException) as missing:
            report_service.create_report(
                session, reporter=reporter, content_id=reporter.id, content_type="post", reason="gone"
            )
        assert missing.value.status_code == 404

        with pytest.raises(HTTPException) as blank:
            report_service.create_report(
                session, reporter=reporter, content_id=reporter.id, content_type="account", reason=" "
            )
        assert blank.value.status_code == 400


def test_admin_reviews_reports(authed_client, user_factory) -> None:
    admin = user_factory("reviewer", admin=True)
    member = user_factory("member")
    with SessionLocal() as session:
        report = report_service.create_report(
            session, reporter=member, content_id=admin.id, content_type="account", reason="impersonation"
        )

    assert authed_client(member).get("/reports/").status_code == 403

    admin_client = authed_client(admin)
    pending = admin_client.get("/reports/")
    assert [item["id"] for item in pending.json()] == [str(report.id)]

    reviewed = admin_client.post(f"/reports/{report.id}/review", json={"outcome": "dismissed"})
    assert reviewed.status_code == 200
    assert reviewed.json()["reviewed_by"] == str(admin.id)
    assert admin_client.get("/reports/").json() == []
    assert len(admin_client.get("/reports/", params={"status": "dismissed"}).json()) == 1


def test_verification_request_lifecycle(authed_client, user_factory) -> None:
    admin = user_factory("verifier", admin=True)
    creator = user_factory("creator")

    creator_client = authed_client(creator)
    submitted = creator_client.post("/verification/", json={"reason": "public figure", "badge_type": "gold"})
    assert submitted.status_code == 201, submitted.text
    request_id = submitted.json()["id"]
    assert creator_client.post("/verification/", json={"reason": "again"}).status_code == 409

    admin_client = authed_client(admin)
    assert [item["id"] for item in admin_client.get("/verification/pending").json()] == [request_id]
    approved = admin_client.post(f"/verification/{request_id}/approve", json={"badge": "gold"})
    assert approved.status_code == 200, approved.text
    assert approved.json()["status"] == "approved"
    assert admin_client.post(f"/verification/{request_id}/approve", json={}).status_code == 409

    with SessionLocal() as session:
        account = session.get(User, creator.id)
        assert account.verified is True
        assert account.badge_type == "gold"
        note = session.scalar(select(Notification).where(Notification.recipient_id == creator.id))
        assert note is not None and note.type == "verification"


def test_failed_account_update_returns_request_to_pending(user_factory) -> None:
    admin = user_factory("approver", admin=True)
    applicant = user_factory("applicant")
    with SessionLocal() as session:
        pending = verification_service.request_verification(session, user=applicant, reason="press", badge_type="blue")

    attempts = {"count": 0}

    def _refuse_verification(mapper, connection, target) -> None:
        if target.verified:
            attempts["count"] += 1
            raise RuntimeError("accounts table is read-only")

    event.listen(User, "before_update", _refuse_verification)
    try:
        with SessionLocal() as session:
            with pytest.raises(HTTPException) as excinfo:
                verification_service.approve_verification(
                    session, request_id=pending.id, reviewer=admin, badge="blue", retry_delays=[0, 0]
                )
    finally:
        event.remove(User, "before_update", _refuse_verification)

    assert excinfo.value.status_code == 500
    assert "rolled back" in excinfo.value.detail
    assert attempts["count"] == 3

    with SessionLocal() as session:
        stored = session.get(VerificationRequest, pending.id)
        assert stored.status == "pending"
        assert stored.reviewed_by is None
        account = session.get(User, applicant.id)
        assert account.verified is False
        assert account.badge_type is None
        assert _count(Notification) == 0

    # the restored request can still be approved once the account table accepts writes
    with SessionLocal() as session:
        approved = verification_service.approve_verification(
            session, request_id=pending.id, reviewer=admin, badge="blue", retry_delays=[0]
        )
        assert approved.status == "approved"


def test_rejected_verification_leaves_account_unverified(authed_client, user_factory) -> None:
    admin = user_factory("gatekeeper", admin=True)
    hopeful = user_factory("hopeful")

    request = authed_client(hopeful).post("/verification/", json={"reason": "please"}).json()
    rejected = authed_client(admin).post(f"/verification/{request['id']}/reject")
    assert rejected.json()["status"] == "rejected"

    with SessionLocal() as session:
        assert session.get(User, hopeful.id).verified is False
        stored = session.scalar(select(VerificationRequest).where(VerificationRequest.user_id == hopeful.id))
        assert stored is not None
        assert stored.reviewed_by == admin.id
    # a new request may follow a rejection
    assert authed_client(hopeful).post("/verification/", json={"reason": "again"}).status_code == 201


def test_admin_badges_and_blocks(authed_client, user_factory) -> None:
    admin = user_factory("boss", admin=True)
    member = user_factory("regular")

    assert authed_client(member).put(f"/admin/users/{admin.id}/badge", json={"badge": "blue"}).status_code == 403

    admin_client = authed_client(admin)
    granted = admin_client.put(f"/admin/users/{member.id}/badge", json={"badge": "purple"})
    assert granted.json()["verified"] is True
    assert granted.json()["badge_type"] == "purple"
    revoked = admin_client.delete(f"/admin/users/{member.id}/badge")
    assert revoked.json()["badge_type"] is None

    blocked = admin_client.post(f"/admin/users/{member.id}/block", json={"reason": "spam waves"})
    assert blocked.status_code == 200
    assert blocked.json()["block_reason"] == "spam waves"
    assert admin_client.post(f"/admin/users/{admin.id}/block").status_code == 400

    unblocked = admin_client.delete(f"/admin/users/{member.id}/block")
    assert unblocked.json()["blocked_at"] is None
