"""Request / response bodies of the auth endpoints."""

from __future__ import annotations

from pydantic import BaseModel, EmailStr, Field

from festauth.schemas.results import SessionUser


class LoginIn(BaseModel):
    # Username or e-mail, matched case-insensitively
    identifier: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=128)


class SessionStatus(BaseModel):
    authenticated: bool
    user: SessionUser | None = None


class TemporarySessionStatus(BaseModel):
    is_temporary_session: bool


class PasswordResetRequest(BaseModel):
    email: EmailStr


class PasswordResetConfirm(BaseModel):
    token: str = Field(..., min_length=1, max_length=256)
    password: str = Field(..., max_length=128)
