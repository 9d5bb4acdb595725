"""User lookups and atomic account mutations (the credential store).

All lockout and reset-token writes are single ``UPDATE`` statements with
the arithmetic / guard in SQL, so two concurrent requests against the
same account never overwrite each other's changes.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from festauth.models.user import User


def _as_uuid(user_id: uuid.UUID | str) -> uuid.UUID | None:
    if isinstance(user_id, uuid.UUID):
        return user_id
    try:
        return uuid.UUID(str(user_id))
    except ValueError:
        return None


class UserRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @property
    def session(self) -> AsyncSession:
        return self._session

    # ── Lookups ──────────────────────────────────────────────────────────────

    async def find_by_identifier(self, identifier: str) -> User | None:
        """Active user whose username or e-mail matches, ignoring case.

        Shadow users are included.
        """
        ident = identifier.strip().lower()
        if not ident:
            return None
        result = await self._session.execute(
            select(User).where(
                or_(func.lower(User.username) == ident, func.lower(User.email) == ident),
                User.is_active.is_(True),
            ).execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def find_by_id(self, user_id: uuid.UUID | str) -> User | None:
        uid = _as_uuid(user_id)
        if uid is None:
            return None
        return await self._session.get(User, uid, populate_existing=True)

    async def find_by_email(self, email: str) -> User | None:
        result = await self._session.execute(
            select(User).where(
                func.lower(User.email) == email.strip().lower(),
                User.is_active.is_(True),
            ).execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def find_by_password_reset_token_hash(self, token_hash: str, now: datetime) -> User | None:
        result = await self._session.execute(
            select(User).where(
                User.password_reset_token == token_hash,
                User.password_reset_expires > now,
                User.is_active.is_(True),
            ).execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def exists_with_identity(self, email: str | None, username: str | None) -> bool:
        """True if either identifier is already taken as a username or an e-mail.

        Login matches one identifier against both columns, so a new e-mail
        must not equal an existing username and vice versa.
        """
        candidates = {value.strip().lower() for value in (email, username) if value and value.strip()}
        if not candidates:
            return False
        result = await self._session.execute(
            select(User.id)
            .where(
                or_(
                    func.lower(User.username).in_(sorted(candidates)),
                    func.lower(User.email).in_(sorted(candidates)),
                )
            )
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def list_users(self, *, include_shadow: bool = False, shadow_only: bool = False) -> list[User]:
        stmt = select(User).where(User.is_active.is_(True)).order_by(User.created_at.desc())
        if shadow_only:
            stmt = stmt.where(User.is_shadow_user.is_(True))
        elif not include_shadow:
            stmt = stmt.where(User.is_shadow_user.is_(False))
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    # ── Writes ───────────────────────────────────────────────────────────────

    async def create(self, **fields) -> User:
        user = User(**fields)
        self._session.add(user)
        await self._session.flush()
        await self._session.refresh(user)
        return user

    async def save(self, user: User, **changes) -> User:
        """Apply a partial update to *user* and flush it."""
        for field, value in changes.items():
            setattr(user, field, value)
        await self._session.flush()
        await self._session.refresh(user)
        return user

    async def reload(self, user: User) -> User:
        await self._session.refresh(user)
        return user

    async def increment_failed_attempts(self, user_id: uuid.UUID, now: datetime) -> int | None:
        """Atomically add one failed attempt unless the account is locked.

        Returns the new counter value, or ``None`` when the account was
        locked and nothing changed.
        """
        result = await self._session.execute(
            update(User)
            .where(
                User.id == user_id,
                or_(User.lock_until.is_(None), User.lock_until <= now),
            )
            .values(failed_login_attempts=User.failed_login_attempts + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            return None
        count = await self._session.execute(
            select(User.failed_login_attempts).where(User.id == user_id)
        )
        return count.scalar_one()

    async def lock(self, user_id: uuid.UUID, threshold: int, until: datetime) -> bool:
        """Start a lock window once the counter reached *threshold*.

        The counter is reset in the same statement; only one of several
        racing requests wins.
        """
        result = await self._session.execute(
            update(User)
            .where(User.id == user_id, User.failed_login_attempts >= threshold)
            .values(failed_login_attempts=0, lock_until=until)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    async def reset_failed_attempts(self, user_id: uuid.UUID, last_login: datetime | None = None) -> None:
        values: dict = {"failed_login_attempts": 0, "lock_until": None}
        if last_login is not None:
            values["last_login"] = last_login
        await self._session.execute(
            update(User)
            .where(User.id == user_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )

    async def set_password_reset_token(self, user_id: uuid.UUID, token_hash: str, expires: datetime) -> None:
        await self._session.execute(
            update(User)
            .where(User.id == user_id)
            .values(password_reset_token=token_hash, password_reset_expires=expires)
            .execution_options(synchronize_session=False)
        )

    async def consume_password_reset_token(
        self, token_hash: str, now: datetime, new_password_hash: str
    ) -> bool:
        """Set the new password and clear the token in one statement.

        Returns False when the token is unknown, expired or was consumed
        by a concurrent request.
        """
        result = await self._session.execute(
            update(User)
            .where(
                User.password_reset_token == token_hash,
                User.password_reset_expires > now,
                User.is_active.is_(True),
            )
            .values(
                password_hash=new_password_hash,
                password_reset_token=None,
                password_reset_expires=None,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
