"""Password reset via single-use, short-lived e-mailed tokens.

Only the sha256 of a token is stored. Consuming a token sets the new
password and clears the token in the same statement, so a link can never
be replayed. A reset does not log the user in.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from urllib.parse import urlencode

from festauth.core.auth import generate_reset_token, hash_password, hash_reset_token
from festauth.core.config import Settings, get_settings
from festauth.core.email import EmailService, get_email_service
from festauth.core.exceptions import InvalidOrExpired, NotFound, WeakPassword
from festauth.core.logging import get_logger, redact_email
from festauth.models.user import User
from festauth.schemas.results import ActionResult, MaskedUser
from festauth.services.credentials import UserRepository
from festauth.services.sessions import run_action

logger = get_logger(__name__)


def check_password_strength(password: str, settings: Settings) -> None:
    if len(password) < settings.password_min_length:
        raise WeakPassword(
            f"Password must be at least {settings.password_min_length} characters long"
        )


class PasswordResetManager:
    def __init__(
        self,
        repo: UserRepository,
        mailer: EmailService | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._repo = repo
        self._mailer = mailer or get_email_service()
        self._settings = settings or get_settings()

    def reset_url(self, token: str) -> str:
        base = self._settings.public_base_url.rstrip("/")
        return f"{base}/auth/reset-password?{urlencode({'token': token})}"

    async def _issue_and_send(self, user: User) -> None:
        plain, token_hash = generate_reset_token()
        expires = datetime.now(timezone.utc) + timedelta(
            minutes=self._settings.password_reset_ttl_minutes
        )
        await self._repo.set_password_reset_token(user.id, token_hash, expires)
        # The row must be committed before the link can be clicked
        await self._repo.session.commit()

        try:
            sent = await self._mailer.send_password_reset(user.email, user.name, self.reset_url(plain))
        except Exception:
            # Same answer as for an unknown address
            logger.exception("Password reset mail failed", to=redact_email(user.email))
            return
        if sent:
            logger.info("Password reset mail sent", to=redact_email(user.email))
        else:
            logger.error("Password reset mail could not be delivered", to=redact_email(user.email))

    async def request_reset(self, email: str) -> ActionResult:
        """Mail a reset link if an active account has this address.

        Always reports success so callers cannot probe for accounts.
        """
        async def _request() -> ActionResult:
            user = await self._repo.find_by_email(email)
            if user is not None and user.email:
                await self._issue_and_send(user)
            return ActionResult.ok()

        return await run_action("request_password_reset", _request, self._repo)

    async def request_reset_for_user(self, user_id: uuid.UUID | str) -> ActionResult:
        """Admin-triggered reset mail for a specific account."""
        async def _request() -> ActionResult:
            user = await self._repo.find_by_id(user_id)
            if user is None or not user.is_active:
                raise NotFound()
            if not user.email:
                return ActionResult.fail("no_email", "This account has no e-mail address")
            await self._issue_and_send(user)
            return ActionResult.ok()

        return await run_action("request_password_reset_for_user", _request, self._repo)

    async def _user_for_token(self, token: str) -> User:
        if not token:
            raise InvalidOrExpired()
        user = await self._repo.find_by_password_reset_token_hash(
            hash_reset_token(token), datetime.now(timezone.utc)
        )
        if user is None:
            raise InvalidOrExpired()
        return user

    async def validate_token(self, token: str) -> ActionResult:
        async def _validate() -> ActionResult:
            user = await self._user_for_token(token)
            masked = MaskedUser(
                id=user.id,
                name=user.name,
                email=redact_email(user.email) if user.email else None,
            )
            return ActionResult.ok(data=masked.model_dump(mode="json"))

        return await run_action("validate_password_reset_token", _validate, self._repo)

    async def reset_password(self, token: str, new_password: str) -> ActionResult:
        async def _reset() -> ActionResult:
            await self._user_for_token(token)
            # Rejected before touching the token, which stays usable
            check_password_strength(new_password, self._settings)
            consumed = await self._repo.consume_password_reset_token(
                hash_reset_token(token),
                datetime.now(timezone.utc),
                hash_password(new_password),
            )
            if not consumed:
                raise InvalidOrExpired()
            logger.info("Password reset completed")
            return ActionResult.ok()

        return await run_action("reset_password", _reset, self._repo)
