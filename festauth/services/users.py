"""Registration, role changes and shadow status of user accounts."""

from __future__ import annotations

import uuid
from typing import Any, Protocol

from festauth.core.auth import hash_password
from festauth.core.config import Settings, get_settings
from festauth.core.exceptions import CannotDemoteSelf, NotFound, Unauthorized, UserAlreadyExists
from festauth.core.logging import get_logger, redact_email
from festauth.models.user import ROLE_ADMIN, ROLE_USER, User
from festauth.schemas.results import ActionResult
from festauth.schemas.session import SessionClaims
from festauth.schemas.user import UserOut
from festauth.services.credentials import UserRepository
from festauth.services.password_reset import check_password_strength
from festauth.services.sessions import SessionManager, run_action

logger = get_logger(__name__)

ROLE_CHANGED_EVENT = "user-role-changed"


class Broadcaster(Protocol):
    """Fan-out to connected clients (the WebSocket hub lives elsewhere)."""

    async def broadcast(self, event: str, payload: dict[str, Any]) -> None: ...


class LogBroadcaster:
    """Default broadcaster when no realtime hub is wired in."""

    async def broadcast(self, event: str, payload: dict[str, Any]) -> None:
        logger.info("Broadcast", broadcast_event=event, **payload)


def _user_data(user: User) -> dict[str, Any]:
    return UserOut.model_validate(user).model_dump(mode="json")


class UserAdminService:
    def __init__(
        self,
        repo: UserRepository,
        sessions: SessionManager,
        broadcaster: Broadcaster | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._repo = repo
        self._sessions = sessions
        self._broadcaster = broadcaster or LogBroadcaster()
        self._settings = settings or get_settings()

    def _require_admin(self) -> SessionClaims:
        admin = self._sessions.verify_admin_session()
        if admin is None:
            raise Unauthorized()
        return admin

    async def _create(
        self,
        name: str,
        email: str,
        password: str,
        role: str,
        username: str | None,
    ) -> User:
        check_password_strength(password, self._settings)
        email = email.strip().lower()
        username = username.strip() if username else None
        if await self._repo.exists_with_identity(email, username):
            raise UserAlreadyExists()
        user = await self._repo.create(
            name=name.strip(),
            email=email,
            username=username,
            password_hash=hash_password(password),
            role=role,
        )
        logger.info("User registered", email=redact_email(email), role=role)
        return user

    async def register_user(
        self,
        name: str,
        email: str,
        password: str,
        username: str | None = None,
    ) -> ActionResult:
        """Self-service registration; always a regular user."""
        async def _register() -> ActionResult:
            user = await self._create(name, email, password, ROLE_USER, username)
            return ActionResult.ok(data=_user_data(user))

        return await run_action("register_user", _register, self._repo)

    async def create_user(
        self,
        name: str,
        email: str,
        password: str,
        role: str = ROLE_USER,
        username: str | None = None,
    ) -> ActionResult:
        async def _create() -> ActionResult:
            self._require_admin()
            user = await self._create(name, email, password, role, username)
            return ActionResult.ok(data=_user_data(user))

        return await run_action("create_user", _create, self._repo)

    async def list_users(self, *, include_shadow: bool = False, shadow_only: bool = False) -> list[User]:
        """Active users; shadow users only on request. Caller checks admin."""
        return await self._repo.list_users(include_shadow=include_shadow, shadow_only=shadow_only)

    async def change_user_role(self, user_id: uuid.UUID | str, new_role: str) -> ActionResult:
        async def _change() -> ActionResult:
            admin = self._require_admin()
            is_self = str(user_id) == admin.user_id
            if is_self and new_role != ROLE_ADMIN:
                raise CannotDemoteSelf()

            user = await self._repo.find_by_id(user_id)
            if user is None:
                raise NotFound()
            user = await self._repo.save(user, role=new_role)
            logger.info(
                "User role changed",
                user_id=str(user.id),
                new_role=new_role,
                by=admin.user_id,
            )
            await self._broadcaster.broadcast(
                ROLE_CHANGED_EVENT, {"userId": str(user.id), "newRole": new_role}
            )

            if is_self:
                await self._sessions.refresh_session()
            return ActionResult.ok(data=_user_data(user))

        return await run_action("change_user_role", _change, self._repo)

    async def change_shadow_status(self, user_id: uuid.UUID | str, is_shadow_user: bool) -> ActionResult:
        async def _change() -> ActionResult:
            admin = self._require_admin()
            user = await self._repo.find_by_id(user_id)
            if user is None:
                raise NotFound()
            user = await self._repo.save(user, is_shadow_user=is_shadow_user)
            logger.info(
                "Shadow status changed",
                user_id=str(user.id),
                shadow=is_shadow_user,
                by=admin.user_id,
            )
            return ActionResult.ok(data=_user_data(user))

        return await run_action("change_shadow_status", _change, self._repo)


async def bootstrap_admin(repo: UserRepository, settings: Settings) -> User | None:
    """Create the configured admin account unless it already exists."""
    if await repo.exists_with_identity(settings.admin_email, settings.admin_username):
        logger.info("Bootstrap admin already present", username=settings.admin_username)
        return None
    user = await repo.create(
        name=settings.admin_username,
        username=settings.admin_username,
        email=settings.admin_email.lower() if settings.admin_email else None,
        password_hash=hash_password(settings.admin_password),
        role=ROLE_ADMIN,
    )
    logger.info(
        "Bootstrap admin created",
        username=settings.admin_username,
        hint="Change the default password immediately!",
    )
    return user
