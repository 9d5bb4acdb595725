"""FastAPI dependency providers."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, HTTPException, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from festauth.api.transport import CookieTransport
from festauth.core.config import Settings, get_settings
from festauth.core.database import get_session_factory
from festauth.core.email import EmailService, get_email_service
from festauth.core.exceptions import STATUS_BY_CODE
from festauth.schemas.results import ActionResult
from festauth.schemas.session import SessionClaims
from festauth.services.credentials import UserRepository
from festauth.services.password_reset import PasswordResetManager
from festauth.services.sessions import SessionManager
from festauth.services.users import Broadcaster, LogBroadcaster, UserAdminService

_broadcaster = LogBroadcaster()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield a database session for the duration of a request."""
    factory = get_session_factory()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_broadcaster() -> Broadcaster:
    return _broadcaster


def get_user_repository(db: Annotated[AsyncSession, Depends(get_db)]) -> UserRepository:
    return UserRepository(db)


def get_session_manager(
    request: Request,
    response: Response,
    repo: Annotated[UserRepository, Depends(get_user_repository)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> SessionManager:
    return SessionManager(repo, CookieTransport(request, response, settings), settings)


def get_password_reset_manager(
    repo: Annotated[UserRepository, Depends(get_user_repository)],
    mailer: Annotated[EmailService, Depends(get_email_service)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> PasswordResetManager:
    return PasswordResetManager(repo, mailer, settings)


def get_user_admin_service(
    repo: Annotated[UserRepository, Depends(get_user_repository)],
    sessions: Annotated[SessionManager, Depends(get_session_manager)],
    broadcaster: Annotated[Broadcaster, Depends(get_broadcaster)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> UserAdminService:
    return UserAdminService(repo, sessions, broadcaster, settings)


async def get_current_session(
    sessions: Annotated[SessionManager, Depends(get_session_manager)],
) -> SessionClaims:
    """Raise 401 without a valid session cookie."""
    claims = sessions.verify_session()
    if claims is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return claims


async def require_admin(
    current: Annotated[SessionClaims, Depends(get_current_session)],
) -> SessionClaims:
    """Raise 403 if the session is not an admin session."""
    if not current.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return current


def apply_status(result: ActionResult, response: Response) -> ActionResult:
    """Map a failed result's error code onto the HTTP status."""
    if not result.success:
        response.status_code = STATUS_BY_CODE.get(result.error or "", status.HTTP_400_BAD_REQUEST)
    return result
