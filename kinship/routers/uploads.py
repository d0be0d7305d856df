"""Standalone upload endpoint for media referenced by posts, profiles and messages."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from ..constants import STORAGE_BUCKETS
from ..models import User
from ..schemas import MediaUploadResponse
from ..services import StorageUploadError, get_current_user, get_storage_backend, upload_file
from ..services.storage_service import StorageBackend

router = APIRouter(prefix="/uploads", tags=["uploads"])

logger = logging.getLogger(__name__)


@router.post("/{bucket}", response_model=MediaUploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_endpoint(
    bucket: str,
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    backend: StorageBackend = Depends(get_storage_backend),
) -> MediaUploadResponse:
    """Store the file under the caller's folder and return its public URL.

    Storage failures raise ``HTTPException`` with status 502 to signal upstream problems.
    """

    if bucket not in STORAGE_BUCKETS:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown bucket")
    if not (file.filename or "").strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Uploaded file must include a filename.")

    try:
        stored = await upload_file(file, bucket=bucket, folder=str(current_user.id), backend=backend)
    except StorageUploadError as exc:
        logger.warning("Upload to %s failed for %s: %s", bucket, current_user.id, exc)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc

    return MediaUploadResponse.model_validate(stored)


__all__ = ["router"]
