"""Personal API key management."""
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from ..database import get_session
from ..models import User
from ..schemas import ApiKeyCreate, ApiKeyResponse
from ..services import create_api_key, delete_api_key, get_current_user, list_api_keys

router = APIRouter(prefix="/api-keys", tags=["api-keys"])


@router.get("/", response_model=list[ApiKeyResponse])
async def list_keys_endpoint(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> list[ApiKeyResponse]:
    return [ApiKeyResponse.model_validate(key) for key in list_api_keys(db, user=current_user)]


@router.post("/", response_model=ApiKeyResponse, status_code=status.HTTP_201_CREATED)
async def create_key_endpoint(
    payload: ApiKeyCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> ApiKeyResponse:
    return ApiKeyResponse.model_validate(create_api_key(db, user=current_user, name=payload.name))


@router.delete("/{key_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_key_endpoint(
    key_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> Response:
    delete_api_key(db, user=current_user, key_id=key_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


__all__ = ["router"]
