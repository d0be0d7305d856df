"""Pydantic schemas for authentication endpoints."""
from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    username: str = Field(..., min_length=3, max_length=30)
    display_name: str | None = Field(default=None, max_length=150)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class AuthResponse(BaseModel):
    access_token: str
    user_id: UUID
    token_type: str = "bearer"
    username: str
    is_admin: bool = False


class PasswordResetRequest(BaseModel):
    email: EmailStr


class PasswordResetConfirm(BaseModel):
    token: str = Field(..., min_length=16)
    new_password: str = Field(..., min_length=6, max_length=128)


class PasswordUpdateRequest(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=6, max_length=128)


class EmailUpdateRequest(BaseModel):
    new_email: EmailStr
    password: str


__all__ = [
    "RegisterRequest",
    "LoginRequest",
    "AuthResponse",
    "PasswordResetRequest",
    "PasswordResetConfirm",
    "PasswordUpdateRequest",
    "EmailUpdateRequest",
]
