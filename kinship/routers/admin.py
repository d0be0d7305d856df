"""Admin account actions: badges and blocking."""
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_session
from ..models import User
from ..schemas import AdminUserResponse, BadgeGrantRequest, BlockRequest
from ..services import block_user, grant_badge, require_admin, revoke_badge, unblock_user

router = APIRouter(prefix="/admin", tags=["admin"])


@router.put("/users/{user_id}/badge", response_model=AdminUserResponse)
async def grant_badge_endpoint(
    user_id: UUID,
    payload: BadgeGrantRequest,
    _admin: User = Depends(require_admin),
    db: Session = Depends(get_session),
) -> AdminUserResponse:
    return AdminUserResponse.model_validate(grant_badge(db, user_id=user_id, badge=payload.badge))


@router.delete("/users/{user_id}/badge", response_model=AdminUserResponse)
async def revoke_badge_endpoint(
    user_id: UUID,
    _admin: User = Depends(require_admin),
    db: Session = Depends(get_session),
) -> AdminUserResponse:
    return AdminUserResponse.model_validate(revoke_badge(db, user_id=user_id))


@router.post("/users/{user_id}/block", response_model=AdminUserResponse)
async def block_user_endpoint(
    user_id: UUID,
    payload: BlockRequest | None = None,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_session),
) -> AdminUserResponse:
    reason = payload.reason if payload is not None else None
    return AdminUserResponse.model_validate(block_user(db, user_id=user_id, actor=admin, reason=reason))


@router.delete("/users/{user_id}/block", response_model=AdminUserResponse)
async def unblock_user_endpoint(
    user_id: UUID,
    _admin: User = Depends(require_admin),
    db: Session = Depends(get_session),
) -> AdminUserResponse:
    return AdminUserResponse.model_validate(unblock_user(db, user_id=user_id))


__all__ = ["router"]
