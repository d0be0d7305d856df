"""Authentication routes: sign-up, sign-in, session and credential changes."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..database import get_session
from ..models import User
from ..schemas import (
    AccountResponse,
    AuthResponse,
    EmailUpdateRequest,
    LoginRequest,
    PasswordResetConfirm,
    PasswordResetRequest,
    PasswordUpdateRequest,
    RegisterRequest,
)
from ..services import (
    authenticate_user,
    confirm_password_reset,
    create_access_token,
    get_current_user,
    get_login_throttle,
    is_admin,
    register_user,
    request_password_reset,
    update_email,
    update_password,
)
from ..services.auth_service import LoginThrottle

router = APIRouter(prefix="/auth", tags=["auth"])

logger = logging.getLogger(__name__)


def _to_account_response(user: User) -> AccountResponse:
    response = AccountResponse.model_validate(user)
    response.is_admin = is_admin(user)
    return response


def _auth_response(user: User, token: str) -> AuthResponse:
    return AuthResponse(access_token=token, user_id=user.id, username=user.username, is_admin=is_admin(user))


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register_endpoint(
    payload: RegisterRequest,
    db: Session = Depends(get_session),
) -> AuthResponse:
    user, token = register_user(db, payload)
    logger.info("Registered account %s", user.id)
    return _auth_response(user, token)


@router.post("/login", response_model=AuthResponse)
async def login_endpoint(
    payload: LoginRequest,
    db: Session = Depends(get_session),
    throttle: LoginThrottle = Depends(get_login_throttle),
) -> AuthResponse:
    user = authenticate_user(db, str(payload.email), payload.password, throttle=throttle)
    return _auth_response(user, create_access_token(user.id))


@router.get("/me", response_model=AccountResponse)
async def me_endpoint(current_user: User = Depends(get_current_user)) -> AccountResponse:
    return _to_account_response(current_user)


@router.post("/password-reset", status_code=status.HTTP_202_ACCEPTED)
async def password_reset_request_endpoint(
    payload: PasswordResetRequest,
    db: Session = Depends(get_session),
) -> dict[str, str]:
    # same response whether or not the address is registered
    request_password_reset(db, str(payload.email))
    return {"status": "sent"}


@router.post("/password-reset/confirm", response_model=AuthResponse)
async def password_reset_confirm_endpoint(
    payload: PasswordResetConfirm,
    db: Session = Depends(get_session),
) -> AuthResponse:
    user = confirm_password_reset(db, token=payload.token, new_password=payload.new_password)
    return _auth_response(user, create_access_token(user.id))


@router.put("/password", response_model=AccountResponse)
async def update_password_endpoint(
    payload: PasswordUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> AccountResponse:
    user = update_password(
        db,
        user=current_user,
        current_password=payload.current_password,
        new_password=payload.new_password,
    )
    return _to_account_response(user)


@router.put("/email", response_model=AccountResponse)
async def update_email_endpoint(
    payload: EmailUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> AccountResponse:
    user = update_email(db, user=current_user, new_email=str(payload.new_email), password=payload.password)
    return _to_account_response(user)


__all__ = ["router"]
