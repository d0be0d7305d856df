"""Personal API keys: generation, listing, revocation and lookup."""
from __future__ import annotations

import logging
import secrets
import string
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..constants import API_KEY_PREFIX
from ..models import ApiKey, User
from ..models.base import utcnow

logger = logging.getLogger(__name__)

_KEY_ALPHABET = string.ascii_letters + string.digits
_KEY_LENGTH = 32


def generate_api_key() -> str:
    return API_KEY_PREFIX + "".join(secrets.choice(_KEY_ALPHABET) for _ in range(_KEY_LENGTH))


def create_api_key(db: Session, *, user: User, name: str) -> ApiKey:
    label = (name or "").strip()
    if not label:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Key name is required")

    for _ in range(3):
        record = ApiKey(user_id=user.id, name=label, key=generate_api_key())
        db.add(record)
        try:
            db.commit()
        except IntegrityError:
            # key collision; draw again
            db.rollback()
            continue
        except SQLAlchemyError as exc:
            db.rollback()
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Unable to create API key") from exc
        db.refresh(record)
        return record
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Unable to create API key")


def list_api_keys(db: Session, *, user: User) -> list[ApiKey]:
    stmt = select(ApiKey).where(ApiKey.user_id == user.id).order_by(ApiKey.created_at.desc())
    return list(db.scalars(stmt))


def delete_api_key(db: Session, *, user: User, key_id: UUID) -> None:
    record = db.get(ApiKey, key_id)
    if record is None or record.user_id != user.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="API key not found")
    try:
        db.delete(record)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Unable to delete API key") from exc


def authenticate_api_key(db: Session, key: str) -> User | None:
    """Return the key owner and stamp ``last_used``; ``None`` for unknown keys."""

    if not key or not key.startswith(API_KEY_PREFIX):
        return None
    record = db.scalar(select(ApiKey).where(ApiKey.key == key))
    if record is None:
        return None
    record.last_used = utcnow()
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Failed to record last use of API key %s", record.id)
    return db.get(User, record.user_id)


__all__ = ["generate_api_key", "create_api_key", "list_api_keys", "delete_api_key", "authenticate_api_key"]
