"""Verification badge request routes."""
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..database import get_session
from ..models import User
from ..schemas import VerificationApproval, VerificationRequestCreate, VerificationRequestResponse
from ..services import (
    approve_verification,
    get_current_user,
    list_pending_requests,
    reject_verification,
    request_verification,
    require_admin,
)

router = APIRouter(prefix="/verification", tags=["verification"])


@router.post("/", response_model=VerificationRequestResponse, status_code=status.HTTP_201_CREATED)
async def request_verification_endpoint(
    payload: VerificationRequestCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> VerificationRequestResponse:
    request = request_verification(db, user=current_user, reason=payload.reason, badge_type=payload.badge_type)
    return VerificationRequestResponse.model_validate(request)


@router.get("/pending", response_model=list[VerificationRequestResponse])
async def pending_requests_endpoint(
    _admin: User = Depends(require_admin),
    db: Session = Depends(get_session),
) -> list[VerificationRequestResponse]:
    return [VerificationRequestResponse.model_validate(item) for item in list_pending_requests(db)]


@router.post("/{request_id}/approve", response_model=VerificationRequestResponse)
async def approve_endpoint(
    request_id: UUID,
    payload: VerificationApproval,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_session),
) -> VerificationRequestResponse:
    request = approve_verification(db, request_id=request_id, reviewer=admin, badge=payload.badge)
    return VerificationRequestResponse.model_validate(request)


@router.post("/{request_id}/reject", response_model=VerificationRequestResponse)
async def reject_endpoint(
    request_id: UUID,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_session),
) -> VerificationRequestResponse:
    request = reject_verification(db, request_id=request_id, reviewer=admin)
    return VerificationRequestResponse.model_validate(request)


__all__ = ["router"]
