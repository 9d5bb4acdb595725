"""Login, logout, session refresh and admin impersonation.

States: anonymous (no valid cookie), normal session, temporary
impersonation session (token carries ``originalAdmin``). Sessions live
only in the signed cookie; every operation re-derives the caller from the
current token and re-reads account state from the credential store where
it matters.

Each public coroutine returns an ``ActionResult``. Expected failures come
back as ``success=False`` with the error code, unexpected ones are logged
and reported generically.
"""

from __future__ import annotations

import uuid
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta, timezone
from typing import Protocol

from festauth.core.auth import issue_token, verify_password, verify_token
from festauth.core.config import Settings, get_settings
from festauth.core.exceptions import (
    UNEXPECTED_ERROR_CODE,
    UNEXPECTED_ERROR_MESSAGE,
    AccountLocked,
    AdminNoLongerValid,
    AuthError,
    InvalidCredentials,
    InvalidToken,
    NoTemporarySession,
    NotFound,
    Unauthorized,
)
from festauth.core.logging import get_logger
from festauth.models.user import User
from festauth.schemas.results import ActionResult, SessionUser
from festauth.schemas.session import (
    AdminIdentity,
    ImpersonationSessionClaims,
    NormalSessionClaims,
    SessionClaims,
    parse_session_claims,
)
from festauth.services.credentials import UserRepository
from festauth.services.lockout import LockoutGuard

logger = get_logger(__name__)


class SessionTransport(Protocol):
    """Where the session token lives between requests (the auth cookie)."""

    def read(self) -> str | None: ...

    def write(self, token: str, max_age: int) -> None: ...

    def clear(self) -> None: ...


def session_user(claims: SessionClaims) -> SessionUser:
    return SessionUser(
        id=claims.user_id,
        name=claims.name,
        email=claims.email,
        username=claims.username,
        role=claims.role,
        email_verified=claims.email_verified,
        is_shadow_user=claims.is_shadow_user,
        is_temporary_session=isinstance(claims, ImpersonationSessionClaims),
    )


async def run_action(
    action: str,
    fn: Callable[[], Awaitable[ActionResult]],
    repo: UserRepository | None = None,
) -> ActionResult:
    """Run *fn* and fold any failure into an ``ActionResult``."""
    try:
        return await fn()
    except AuthError as exc:
        return ActionResult.fail(exc.code, exc.message)
    except Exception:
        logger.exception("Unexpected error in auth action", action=action)
        if repo is not None:
            await repo.session.rollback()
        return ActionResult.fail(UNEXPECTED_ERROR_CODE, UNEXPECTED_ERROR_MESSAGE)


class SessionManager:
    def __init__(
        self,
        repo: UserRepository,
        transport: SessionTransport,
        settings: Settings | None = None,
    ) -> None:
        self._repo = repo
        self._transport = transport
        self._settings = settings or get_settings()
        self._lockout = LockoutGuard(repo, self._settings)

    @property
    def session_ttl(self) -> timedelta:
        return timedelta(days=self._settings.session_ttl_days)

    @property
    def impersonation_ttl(self) -> timedelta:
        return timedelta(hours=self._settings.impersonation_ttl_hours)

    # ── Token plumbing ───────────────────────────────────────────────────────

    def _current_claims(self) -> SessionClaims | None:
        """Claims of the cookie token; ``None`` without cookie.

        Raises ``InvalidToken`` for a cookie that does not verify.
        """
        token = self._transport.read()
        if not token:
            return None
        return parse_session_claims(verify_token(token))

    def _issue(self, claims: SessionClaims, ttl: timedelta) -> SessionClaims:
        token = issue_token(claims.to_payload(), ttl)
        self._transport.write(token, int(ttl.total_seconds()))
        return claims

    @staticmethod
    def _normal_claims(user: User) -> NormalSessionClaims:
        return NormalSessionClaims(
            user_id=str(user.id),
            email=user.email,
            name=user.name,
            username=user.username,
            role=user.role,
            email_verified=user.email_verified,
            is_shadow_user=user.is_shadow_user,
        )

    @staticmethod
    def _impersonation_claims(user: User, original_admin: AdminIdentity) -> ImpersonationSessionClaims:
        return ImpersonationSessionClaims(
            user_id=str(user.id),
            email=user.email,
            name=user.name,
            username=user.username,
            role=user.role,
            email_verified=user.email_verified,
            is_shadow_user=user.is_shadow_user,
            original_admin=original_admin,
        )

    # ── Read-only introspection ──────────────────────────────────────────────

    def verify_session(self) -> SessionClaims | None:
        """Current identity, or ``None``. Never touches the cookie."""
        try:
            return self._current_claims()
        except InvalidToken:
            return None

    def verify_admin_session(self) -> SessionClaims | None:
        claims = self.verify_session()
        return claims if claims is not None and claims.is_admin else None

    def is_temporary_user_session(self) -> bool:
        return isinstance(self.verify_session(), ImpersonationSessionClaims)

    # ── Transitions ──────────────────────────────────────────────────────────

    async def login(self, identifier: str, password: str) -> ActionResult:
        async def _login() -> ActionResult:
            user = await self._repo.find_by_identifier(identifier)
            if user is None:
                raise InvalidCredentials()

            now = datetime.now(timezone.utc)
            if not verify_password(password, user.password_hash):
                was_locked = self._lockout.is_locked(user, now)
                await self._lockout.increment_failed_attempts(user, now)
                logger.info("Login failed", user_id=str(user.id), locked=was_locked)
                if was_locked:
                    raise AccountLocked()
                raise InvalidCredentials()

            # Checked after the password on purpose: a correct password
            # against a locked account still reports the lock.
            if self._lockout.is_locked(user, now):
                raise AccountLocked()

            await self._lockout.reset_failed_attempts(user, last_login=now)
            claims = self._issue(self._normal_claims(user), self.session_ttl)
            logger.info(
                "User logged in",
                user_id=str(user.id),
                role=user.role,
                shadow=user.is_shadow_user,
            )
            return ActionResult.ok(user=session_user(claims))

        return await run_action("login", _login, self._repo)

    async def logout(self) -> ActionResult:
        # Stateless sessions: the token itself stays valid until it expires.
        self._transport.clear()
        return ActionResult.ok()

    async def refresh_session(self) -> ActionResult:
        """Re-issue the current token from fresh account state.

        A temporary session keeps its ``originalAdmin`` verbatim and the
        short impersonation lifetime.
        """
        async def _refresh() -> ActionResult:
            try:
                current = self._current_claims()
            except InvalidToken:
                self._transport.clear()
                raise
            if current is None:
                raise InvalidToken()

            user = await self._repo.find_by_id(current.user_id)
            if user is None or not user.is_active:
                self._transport.clear()
                logger.info("Session dropped on refresh, user gone", user_id=current.user_id)
                raise InvalidToken()

            if isinstance(current, ImpersonationSessionClaims):
                claims = self._issue(
                    self._impersonation_claims(user, current.original_admin),
                    self.impersonation_ttl,
                )
            else:
                claims = self._issue(self._normal_claims(user), self.session_ttl)
            return ActionResult.ok(user=session_user(claims))

        return await run_action("refresh_session", _refresh, self._repo)

    async def become_user(self, target_user_id: uuid.UUID | str) -> ActionResult:
        """Start a temporary session as *target_user_id* (admins only)."""
        async def _become() -> ActionResult:
            current = self.verify_session()
            if current is None or not current.is_admin:
                raise Unauthorized()

            target = await self._repo.find_by_id(target_user_id)
            if target is None or not target.is_active:
                raise NotFound()

            if isinstance(current, ImpersonationSessionClaims):
                # Keep pointing at the real admin when hopping between users
                original_admin = current.original_admin
            else:
                original_admin = AdminIdentity(
                    user_id=current.user_id,
                    email=current.email,
                    name=current.name,
                    username=current.username,
                )

            claims = self._issue(
                self._impersonation_claims(target, original_admin),
                self.impersonation_ttl,
            )
            logger.info(
                "Temporary user session started",
                admin_id=original_admin.user_id,
                target_id=str(target.id),
                target_role=target.role,
            )
            return ActionResult.ok(user=session_user(claims))

        return await run_action("become_user", _become, self._repo)

    async def restore_admin_session(self) -> ActionResult:
        """Leave a temporary session and log the original admin back in."""
        async def _restore() -> ActionResult:
            try:
                current = self._current_claims()
            except InvalidToken:
                self._transport.clear()
                raise NoTemporarySession() from None
            if not isinstance(current, ImpersonationSessionClaims):
                raise NoTemporarySession()

            admin = await self._repo.find_by_id(current.original_admin.user_id)
            if admin is None or not admin.is_active or not admin.is_admin:
                logger.warning(
                    "Admin session restore refused",
                    admin_id=current.original_admin.user_id,
                )
                raise AdminNoLongerValid()

            claims = self._issue(self._normal_claims(admin), self.session_ttl)
            logger.info(
                "Admin session restored",
                admin_id=str(admin.id),
                left_user_id=current.user_id,
            )
            return ActionResult.ok(user=session_user(claims))

        return await run_action("restore_admin_session", _restore, self._repo)
