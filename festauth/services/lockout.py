"""Per-account login lockout.

After ``lockout_threshold`` consecutive failures the account is locked for
``lockout_minutes`` and the counter starts again from zero, so hammering a
locked account never extends the lock. A successful login clears both.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from festauth.core.config import Settings
from festauth.core.logging import get_logger
from festauth.models.user import User
from festauth.services.credentials import UserRepository

logger = get_logger(__name__)


class LockoutGuard:
    def __init__(self, repo: UserRepository, settings: Settings) -> None:
        self._repo = repo
        self._threshold = settings.lockout_threshold
        self._window = timedelta(minutes=settings.lockout_minutes)

    @staticmethod
    def is_locked(user: User, now: datetime | None = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return user.lock_until is not None and user.lock_until > now

    async def increment_failed_attempts(self, user: User, now: datetime | None = None) -> bool:
        """Record a failed login; returns True if the account is now locked.

        No-op while a lock window is active.
        """
        now = now or datetime.now(timezone.utc)
        count = await self._repo.increment_failed_attempts(user.id, now)
        if count is None:
            return True
        if count >= self._threshold:
            if await self._repo.lock(user.id, self._threshold, now + self._window):
                logger.warning(
                    "Account locked after repeated failed logins",
                    user_id=str(user.id),
                    minutes=int(self._window.total_seconds() // 60),
                )
            await self._repo.reload(user)
            return True
        await self._repo.reload(user)
        return False

    async def reset_failed_attempts(self, user: User, last_login: datetime | None = None) -> None:
        await self._repo.reset_failed_attempts(user.id, last_login=last_login)
        await self._repo.reload(user)
