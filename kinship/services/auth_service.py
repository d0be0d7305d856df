"""Business logic for authentication and authorization."""
from __future__ import annotations

import hashlib
import logging
import os
import re
import secrets
import threading
import time
from collections import deque
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Callable, Optional, Tuple
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import APIKeyHeader, HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import get_settings
from ..constants import ADMIN_ROLE
from ..database import get_session
from ..models import PasswordResetToken, User, UserRole
from ..models.base import as_utc, utcnow
from ..schemas import RegisterRequest
from ..security.secrets import MissingSecretError, require_secret
from .api_key_service import authenticate_api_key
from .email_service import EmailDeliveryError, send_email

logger = logging.getLogger(__name__)

_security = HTTPBearer(auto_error=False)
_api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)
_pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
DEFAULT_TOKEN_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "1440"))

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_]{3,30}$")


class LoginThrottle:
    """Sliding-window counter of failed sign-in attempts per email.

    Only emails with failures inside the window are kept; a bucket is dropped
    as soon as its last failure ages out.
    """

    def __init__(
        self,
        *,
        max_failures: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        sweep_threshold: int = 1024,
    ) -> None:
        self.max_failures = max_failures
        self.window_seconds = window_seconds
        self.sweep_threshold = sweep_threshold
        self._clock = clock
        self._failures: dict[str, deque[float]] = {}
        self._lock = threading.Lock()

    def _prune(self, key: str) -> deque[float] | None:
        bucket = self._failures.get(key)
        if bucket is None:
            return None
        cutoff = self._clock() - self.window_seconds
        while bucket and bucket[0] <= cutoff:
            bucket.popleft()
        if not bucket:
            del self._failures[key]
            return None
        return bucket

    def _sweep(self) -> None:
        for key in list(self._failures):
            self._prune(key)

    @property
    def tracked_count(self) -> int:
        return len(self._failures)

    def is_limited(self, email: str) -> bool:
        with self._lock:
            bucket = self._prune(email.lower())
            return bucket is not None and len(bucket) >= self.max_failures

    def record_failure(self, email: str) -> None:
        key = email.lower()
        with self._lock:
            if len(self._failures) >= self.sweep_threshold:
                self._sweep()
            bucket = self._prune(key)
            if bucket is None:
                bucket = self._failures[key] = deque()
            bucket.append(self._clock())

    def reset(self, email: str) -> None:
        with self._lock:
            self._failures.pop(email.lower(), None)


def build_login_throttle() -> LoginThrottle:
    settings = get_settings()
    return LoginThrottle(
        max_failures=settings.login_max_failures,
        window_seconds=float(settings.login_failure_window_seconds),
    )


def get_login_throttle(request: Request) -> LoginThrottle:
    throttle = getattr(request.app.state, "login_throttle", None)
    if throttle is None:
        throttle = build_login_throttle()
        request.app.state.login_throttle = throttle
    return throttle


@lru_cache(maxsize=1)
def _get_jwt_secret() -> str:
    try:
        return require_secret("JWT_SECRET_KEY")
    except MissingSecretError as exc:
        raise RuntimeError(str(exc)) from exc


def hash_password(password: str) -> str:
    return _pwd_context.hash(password)


def verify_password(password: str, hashed_password: str) -> bool:
    try:
        return _pwd_context.verify(password, hashed_password)
    except (ValueError, TypeError):
        logger.warning("Stored password hash could not be verified")
        return False


def create_access_token(subject: UUID, *, expires_minutes: Optional[int] = None) -> str:
    """Create a signed JWT holding the provided ``subject``."""

    expire_delta = timedelta(minutes=expires_minutes or DEFAULT_TOKEN_MINUTES)
    now = datetime.now(timezone.utc)
    payload = {"sub": str(subject), "exp": now + expire_delta, "iat": now}
    return jwt.encode(payload, _get_jwt_secret(), algorithm=ALGORITHM)


def decode_access_token(token: str) -> UUID:
    """Decode and validate a JWT, returning the embedded subject UUID."""

    try:
        payload = jwt.decode(token, _get_jwt_secret(), algorithms=[ALGORITHM])
    except JWTError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc

    subject = payload.get("sub")
    if not subject:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token payload")
    try:
        return UUID(subject)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token payload") from exc


def normalize_username(username: str) -> str:
    candidate = (username or "").strip()
    if not USERNAME_PATTERN.fullmatch(candidate):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username must be 3-30 letters, digits or underscores",
        )
    return candidate


def username_taken(db: Session, username: str, *, exclude_id: UUID | None = None) -> bool:
    stmt = select(User.id).where(func.lower(User.username) == username.lower())
    if exclude_id is not None:
        stmt = stmt.where(User.id != exclude_id)
    return db.scalar(stmt) is not None


def _email_taken(db: Session, email: str, *, exclude_id: UUID | None = None) -> bool:
    stmt = select(User.id).where(func.lower(User.email) == email.lower())
    if exclude_id is not None:
        stmt = stmt.where(User.id != exclude_id)
    return db.scalar(stmt) is not None


def register_user(db: Session, payload: RegisterRequest) -> Tuple[User, str]:
    """Persist a new account and return it with an access token."""

    username = normalize_username(payload.username)
    if username_taken(db, username):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Username already in use")

    email = str(payload.email).strip().lower()
    if _email_taken(db, email):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")

    user = User(
        username=username,
        email=email,
        hashed_password=hash_password(payload.password),
        display_name=(payload.display_name or "").strip() or username,
    )

    try:
        db.add(user)
        db.commit()
        db.refresh(user)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to register user")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Unable to register user") from exc

    return user, create_access_token(user.id)


def authenticate_user(db: Session, email: str, password: str, *, throttle: LoginThrottle | None = None) -> User:
    """Return the account for valid credentials or raise 401/403/429."""

    normalized = (email or "").strip().lower()
    if throttle is not None and throttle.is_limited(normalized):
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail="Too many failed sign-in attempts")

    user = db.scalar(select(User).where(func.lower(User.email) == normalized))
    if user is None or not verify_password(password, user.hashed_password):
        if throttle is not None:
            throttle.record_failure(normalized)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    if user.is_blocked:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is blocked")

    if throttle is not None:
        throttle.reset(normalized)
    return user


def _hash_reset_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def request_password_reset(db: Session, email: str) -> str | None:
    """Issue a reset token and email it; returns the raw token or ``None``.

    Unknown emails return ``None`` without raising so callers never reveal
    which addresses are registered.
    """

    settings = get_settings()
    user = db.scalar(select(User).where(func.lower(User.email) == (email or "").strip().lower()))
    if user is None:
        return None

    token = secrets.token_urlsafe(32)
    record = PasswordResetToken(
        user_id=user.id,
        token_hash=_hash_reset_token(token),
        expires_at=utcnow() + timedelta(minutes=settings.password_reset_minutes),
    )
    try:
        db.add(record)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Unable to start password reset") from exc

    link = f"{settings.public_base_url.rstrip('/')}/reset-password?token={token}"
    body = (
        "We received a request to reset your password.\n\n"
        f"Open this link within {settings.password_reset_minutes} minutes to choose a new one:\n{link}\n"
    )
    try:
        send_email(user.email, f"Reset your {settings.app_name} password", body)
    except EmailDeliveryError:
        logger.warning("Password reset email could not be delivered for user %s", user.id)
    return token


def confirm_password_reset(db: Session, *, token: str, new_password: str) -> User:
    record = db.scalar(select(PasswordResetToken).where(PasswordResetToken.token_hash == _hash_reset_token(token)))
    if record is None or record.used_at is not None or as_utc(record.expires_at) <= utcnow():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Reset link is invalid or expired")

    user = db.get(User, record.user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Reset link is invalid or expired")

    user.hashed_password = hash_password(new_password)
    record.used_at = utcnow()
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Unable to reset password") from exc
    db.refresh(user)
    return user


def update_password(db: Session, *, user: User, current_password: str, new_password: str) -> User:
    if not verify_password(current_password, user.hashed_password):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Current password is incorrect")
    user.hashed_password = hash_password(new_password)
    try:
        db.add(user)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Unable to update password") from exc
    db.refresh(user)
    return user


def update_email(db: Session, *, user: User, new_email: str, password: str) -> User:
    if not verify_password(password, user.hashed_password):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Password is incorrect")
    normalized = new_email.strip().lower()
    if _email_taken(db, normalized, exclude_id=user.id):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")
    user.email = normalized
    try:
        db.add(user)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Unable to update email") from exc
    db.refresh(user)
    return user


def resolve_token_user(db: Session, token: str) -> User:
    """Return the active account behind a bearer token."""

    user = db.get(User, decode_access_token(token))
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    if user.is_blocked:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is blocked")
    return user


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_security),
    api_key: str | None = Depends(_api_key_header),
    db: Session = Depends(get_session),
) -> User:
    """Resolve the authenticated account from a bearer token or API key."""

    if credentials and credentials.scheme.lower() == "bearer":
        user = resolve_token_user(db, credentials.credentials)
    elif api_key:
        user = authenticate_api_key(db, api_key)
        if user is None:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")
        if user.is_blocked:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is blocked")
    else:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")

    try:
        user.last_active_at = utcnow()
        db.commit()
    except SQLAlchemyError:  # pragma: no cover - logged only
        db.rollback()
        logger.warning("Failed to update last_active_at for user %s", user.id)

    return user


async def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_security),
    db: Session = Depends(get_session),
) -> User | None:
    """Return the authenticated account when a valid bearer token is provided."""

    if not credentials or credentials.scheme.lower() != "bearer":
        return None
    try:
        return resolve_token_user(db, credentials.credentials)
    except HTTPException:
        return None


def is_admin(user: User) -> bool:
    if ADMIN_ROLE in user.role_names:
        return True
    super_admins = {email.lower() for email in get_settings().super_admin_emails}
    return bool(user.email) and user.email.lower() in super_admins


def list_admin_ids(db: Session) -> list[UUID]:
    """Return every admin account id, role holders first, then configured super admins."""

    ids = list(db.scalars(select(UserRole.user_id).where(UserRole.role == ADMIN_ROLE).order_by(UserRole.created_at)))
    super_admins = [email.lower() for email in get_settings().super_admin_emails]
    if super_admins:
        for user_id in db.scalars(select(User.id).where(func.lower(User.email).in_(super_admins))):
            if user_id not in ids:
                ids.append(user_id)
    return ids


async def require_admin(user: User = Depends(get_current_user)) -> User:
    if not is_admin(user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user


__all__ = [
    "LoginThrottle",
    "build_login_throttle",
    "get_login_throttle",
    "register_user",
    "authenticate_user",
    "create_access_token",
    "decode_access_token",
    "hash_password",
    "verify_password",
    "normalize_username",
    "username_taken",
    "request_password_reset",
    "confirm_password_reset",
    "update_password",
    "update_email",
    "resolve_token_user",
    "get_current_user",
    "get_optional_user",
    "is_admin",
    "list_admin_ids",
    "require_admin",
]
