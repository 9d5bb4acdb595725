"""Auth router — login, logout, session refresh/introspection, impersonation."""

from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response

from festauth.api.dependencies import apply_status, get_session_manager, get_user_admin_service
from festauth.core.config import get_settings
from festauth.core.limiter import limiter
from festauth.schemas.auth import LoginIn, SessionStatus, TemporarySessionStatus
from festauth.schemas.results import ActionResult
from festauth.schemas.user import RegisterIn
from festauth.services.sessions import SessionManager, session_user
from festauth.services.users import UserAdminService

router = APIRouter(prefix="/auth", tags=["auth"])

SessionsDep = Annotated[SessionManager, Depends(get_session_manager)]
UserAdminDep = Annotated[UserAdminService, Depends(get_user_admin_service)]


@router.post("/login", response_model=ActionResult)
@limiter.limit(get_settings().login_rate_limit)
async def login(
    request: Request,
    response: Response,
    payload: LoginIn,
    sessions: SessionsDep,
) -> ActionResult:
    """Authenticate with username or e-mail + password; sets the session cookie."""
    result = await sessions.login(payload.identifier, payload.password)
    return apply_status(result, response)


@router.post("/logout", response_model=ActionResult)
async def logout(sessions: SessionsDep) -> ActionResult:
    """Delete the session cookie. The token itself is not revoked."""
    return await sessions.logout()


@router.post("/refresh", response_model=ActionResult)
async def refresh(response: Response, sessions: SessionsDep) -> ActionResult:
    result = await sessions.refresh_session()
    return apply_status(result, response)


@router.get("/session", response_model=SessionStatus)
async def get_session(sessions: SessionsDep) -> SessionStatus:
    claims = sessions.verify_session()
    if claims is None:
        return SessionStatus(authenticated=False)
    return SessionStatus(authenticated=True, user=session_user(claims))


@router.get("/session/admin", response_model=SessionStatus)
async def get_admin_session(sessions: SessionsDep) -> SessionStatus:
    claims = sessions.verify_admin_session()
    if claims is None:
        return SessionStatus(authenticated=False)
    return SessionStatus(authenticated=True, user=session_user(claims))


@router.get("/session/temporary", response_model=TemporarySessionStatus)
async def get_temporary_session(sessions: SessionsDep) -> TemporarySessionStatus:
    return TemporarySessionStatus(is_temporary_session=sessions.is_temporary_user_session())


@router.post("/become/{user_id}", response_model=ActionResult)
async def become_user(user_id: uuid.UUID, response: Response, sessions: SessionsDep) -> ActionResult:
    """Admin only: continue as another user for a limited time."""
    result = await sessions.become_user(user_id)
    return apply_status(result, response)


@router.post("/restore", response_model=ActionResult)
async def restore_admin_session(response: Response, sessions: SessionsDep) -> ActionResult:
    result = await sessions.restore_admin_session()
    return apply_status(result, response)


@router.post("/register", response_model=ActionResult, status_code=201)
async def register(payload: RegisterIn, response: Response, users: UserAdminDep) -> ActionResult:
    result = await users.register_user(
        payload.name, payload.email, payload.password, username=payload.username
    )
    return apply_status(result, response)
