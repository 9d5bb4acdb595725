"""Structured results returned by the public service operations."""

from __future__ import annotations

import uuid
from typing import Any

from pydantic import BaseModel

from festauth.schemas.user import Role


class SessionUser(BaseModel):
    """Identity exposed to the client after login / session changes."""

    id: str
    name: str | None = None
    email: str | None = None
    username: str | None = None
    role: Role
    email_verified: bool = False
    is_shadow_user: bool = False
    is_temporary_session: bool = False


class MaskedUser(BaseModel):
    """Who a password reset link belongs to, without leaking the full address."""

    id: uuid.UUID
    name: str | None
    email: str | None


class ActionResult(BaseModel):
    success: bool
    error: str | None = None
    message: str | None = None
    user: SessionUser | None = None
    data: dict[str, Any] | None = None

    @classmethod
    def ok(cls, **kwargs: Any) -> "ActionResult":
        return cls(success=True, **kwargs)

    @classmethod
    def fail(cls, error: str, message: str | None = None) -> "ActionResult":
        return cls(success=False, error=error, message=message)
