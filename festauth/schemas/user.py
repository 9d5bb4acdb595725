"""Schemas for User resources."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field

Role = Literal["user", "admin"]


class RegisterIn(BaseModel):
    """Self-service registration; always creates a regular user."""

    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    # Length rule is enforced by the service so it reports ``weak_password``
    password: str = Field(..., max_length=128)
    # No "@": usernames and e-mails share one login lookup
    username: str | None = Field(default=None, min_length=3, max_length=30, pattern=r"^[^@\s]+$")


class UserCreate(RegisterIn):
    role: Role = "user"


class RoleUpdate(BaseModel):
    role: Role


class ShadowUpdate(BaseModel):
    is_shadow_user: bool


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    username: str | None
    email: str | None
    role: Role
    is_active: bool
    email_verified: bool
    is_shadow_user: bool
    last_login: datetime | None
    created_at: datetime


class UserList(BaseModel):
    total: int
    items: list[UserOut]
