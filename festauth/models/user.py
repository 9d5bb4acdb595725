"""User model — festival accounts (regular users, admins and shadow users)."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from festauth.models.base import Base, TimestampMixin, UTCDateTime, UUIDPrimaryKeyMixin

ROLE_USER = "user"
ROLE_ADMIN = "admin"


class User(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "users"
    # Fetch server-side timestamps after flush; lazy loads are not allowed
    # on an AsyncSession.
    __mapper_args__ = {"eager_defaults": True}

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    username: Mapped[str | None] = mapped_column(String(100), unique=True, nullable=True, index=True)
    email: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True, index=True)

    password_hash: Mapped[str] = mapped_column(Text, nullable=False)

    # "admin" | "user"
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=ROLE_USER)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    email_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # Hidden from the default admin listing, can still log in
    is_shadow_user: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # ── Lockout ──────────────────────────────────────────────────────────────
    failed_login_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    lock_until: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    # ── Password reset (sha256 of the mailed token) ──────────────────────────
    password_reset_token: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    password_reset_expires: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    last_login: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def __repr__(self) -> str:
        return f"<User {self.username or self.email!r} role={self.role!r}>"


# Lookups compare lower-cased values, so uniqueness must hold case-insensitively
Index("ix_users_lower_username", func.lower(User.username), unique=True)
Index("ix_users_lower_email", func.lower(User.email), unique=True)
