"""Password reset router — request link, check link, set new password."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response

from festauth.api.dependencies import apply_status, get_password_reset_manager
from festauth.schemas.auth import PasswordResetConfirm, PasswordResetRequest
from festauth.schemas.results import ActionResult
from festauth.services.password_reset import PasswordResetManager

router = APIRouter(prefix="/password-reset", tags=["password-reset"])

ResetDep = Annotated[PasswordResetManager, Depends(get_password_reset_manager)]


@router.post("/request", response_model=ActionResult)
async def request_reset(payload: PasswordResetRequest, response: Response, resets: ResetDep) -> ActionResult:
    """Always answers success, whether or not the address is known."""
    result = await resets.request_reset(payload.email)
    return apply_status(result, response)


@router.get("/validate", response_model=ActionResult)
async def validate_token(
    token: Annotated[str, Query(min_length=1, max_length=256)],
    response: Response,
    resets: ResetDep,
) -> ActionResult:
    result = await resets.validate_token(token)
    return apply_status(result, response)


@router.post("/confirm", response_model=ActionResult)
async def confirm_reset(payload: PasswordResetConfirm, response: Response, resets: ResetDep) -> ActionResult:
    result = await resets.reset_password(payload.token, payload.password)
    return apply_status(result, response)
