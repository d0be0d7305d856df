"""Object storage for uploaded media.

Uploads go to an S3-compatible bucket through boto3 when ``S3_BUCKET`` is
configured and to a local directory served as static files otherwise. Either
way callers get back the object key and a public URL.
"""
from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Iterable, Protocol

from boto3.session import Session
from botocore.client import BaseClient
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import UploadFile
from fastapi.concurrency import run_in_threadpool

from ..config import Settings, get_settings
from ..constants import STORAGE_BUCKETS
from ..security.secrets import MissingSecretError, require_secret

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


class StorageConfigurationError(RuntimeError):
    """Raised when storage settings are missing or invalid."""


class StorageUploadError(RuntimeError):
    """Raised when writing an object fails."""


@dataclass(frozen=True, slots=True)
class StoredObject:
    bucket: str
    key: str
    url: str
    content_type: str


class StorageBackend(Protocol):
    def put(self, bucket: str, key: str, data: bytes, content_type: str) -> None: ...

    def public_url(self, bucket: str, key: str) -> str: ...


class LocalStorageBackend:
    """Writes objects below ``root/<bucket>/`` and serves them under ``prefix``."""

    def __init__(self, root: Path | str, public_prefix: str = "/files") -> None:
        self.root = Path(root)
        self.public_prefix = "/" + public_prefix.strip("/")

    def put(self, bucket: str, key: str, data: bytes, content_type: str) -> None:
        target = self.root / bucket / key
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as exc:
            logger.exception("Writing %s/%s to local storage failed", bucket, key)
            raise StorageUploadError("Unable to store file") from exc

    def public_url(self, bucket: str, key: str) -> str:
        return f"{self.public_prefix}/{bucket}/{key}"


class S3StorageBackend:
    """Stores objects as ``<bucket>/<key>`` inside one S3-compatible bucket."""

    def __init__(self, client: BaseClient, bucket_name: str, public_base: str) -> None:
        self.client = client
        self.bucket_name = bucket_name
        self.public_base = public_base.rstrip("/")

    def put(self, bucket: str, key: str, data: bytes, content_type: str) -> None:
        try:
            self.client.put_object(
                Bucket=self.bucket_name,
                Key=f"{bucket}/{key}",
                Body=data,
                ContentType=content_type,
                ACL="public-read",
            )
        except (ClientError, BotoCoreError) as exc:  # pragma: no cover - network bound
            logger.exception("Upload of %s/%s to object storage failed", bucket, key)
            raise StorageUploadError("Upload to object storage failed") from exc

    def public_url(self, bucket: str, key: str) -> str:
        return f"{self.public_base}/{bucket}/{key}"


def _build_s3_backend(settings: Settings) -> S3StorageBackend:
    try:
        access_key = require_secret("S3_ACCESS_KEY")
        secret_key = require_secret("S3_SECRET_KEY")
    except MissingSecretError as exc:
        raise StorageConfigurationError(str(exc)) from exc

    bucket_name = str(settings.s3_bucket).strip()
    client = Session().client(
        "s3",
        region_name=settings.s3_region,
        endpoint_url=settings.s3_endpoint_url,
        aws_access_key_id=access_key,
        aws_secret_access_key=secret_key,
    )
    public_base = settings.s3_public_url
    if not public_base:
        if settings.s3_endpoint_url:
            public_base = f"{settings.s3_endpoint_url.rstrip('/')}/{bucket_name}"
        else:
            region = settings.s3_region or "us-east-1"
            public_base = f"https://{bucket_name}.s3.{region}.amazonaws.com"
    return S3StorageBackend(client, bucket_name, public_base)


@lru_cache(maxsize=1)
def get_storage_backend() -> StorageBackend:
    """Return the configured backend; also usable as a FastAPI dependency."""

    settings = get_settings()
    if settings.s3_bucket:
        return _build_s3_backend(settings)
    return LocalStorageBackend(settings.storage_root, settings.storage_public_prefix)


def _sanitize_segments(parts: Iterable[str]) -> list[str]:
    cleaned_parts: list[str] = []
    for part in parts:
        if part in {"", ".", ".."}:
            continue
        cleaned = re.sub(r"[^A-Za-z0-9._-]", "-", part.strip())
        cleaned = re.sub(r"-+", "-", cleaned).strip("-.")
        if cleaned:
            cleaned_parts.append(cleaned)
    return cleaned_parts


def normalize_key(path: str) -> str:
    key = "/".join(_sanitize_segments(path.replace("\\", "/").split("/")))
    if not key:
        raise StorageUploadError("Object path is empty")
    return key


def unique_key(folder: str, filename: str | None) -> str:
    """Return ``<folder>/<random hex><ext>`` for an uploaded filename."""

    extension = Path(filename or "").suffix.lower()
    if extension and not re.fullmatch(r"\.[a-z0-9]{1,10}", extension):
        extension = ""
    prefix = "/".join(_sanitize_segments(folder.split("/")))
    name = f"{uuid.uuid4().hex}{extension}"
    return f"{prefix}/{name}" if prefix else name


def _check_bucket(bucket: str) -> None:
    if bucket not in STORAGE_BUCKETS:
        raise StorageUploadError(f"Unknown storage bucket '{bucket}'")


def upload_bytes(
    bucket: str,
    path: str,
    data: bytes,
    content_type: str | None = None,
    *,
    backend: StorageBackend | None = None,
) -> StoredObject:
    """Store ``data`` at ``bucket/path`` and return its public location."""

    _check_bucket(bucket)
    if not data:
        raise StorageUploadError("Refusing to store an empty file")
    store = backend or get_storage_backend()
    key = normalize_key(path)
    resolved_type = (content_type or "").strip() or DEFAULT_CONTENT_TYPE
    store.put(bucket, key, data, resolved_type)
    return StoredObject(bucket=bucket, key=key, url=store.public_url(bucket, key), content_type=resolved_type)


def public_url(bucket: str, key: str, *, backend: StorageBackend | None = None) -> str:
    _check_bucket(bucket)
    return (backend or get_storage_backend()).public_url(bucket, normalize_key(key))


async def upload_file(
    file: UploadFile,
    *,
    bucket: str,
    folder: str,
    backend: StorageBackend | None = None,
) -> StoredObject:
    """Read an ``UploadFile`` and store it under a fresh key in ``folder``."""

    data = await file.read()
    key = unique_key(folder, file.filename)
    return await run_in_threadpool(upload_bytes, bucket, key, data, file.content_type, backend=backend)


__all__ = [
    "StorageConfigurationError",
    "StorageUploadError",
    "StoredObject",
    "StorageBackend",
    "LocalStorageBackend",
    "S3StorageBackend",
    "get_storage_backend",
    "normalize_key",
    "unique_key",
    "upload_bytes",
    "public_url",
    "upload_file",
]
