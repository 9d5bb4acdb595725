"""Users router — admin listing and account administration."""

from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Response, status

from festauth.api.dependencies import (
    apply_status,
    get_password_reset_manager,
    get_user_admin_service,
    require_admin,
)
from festauth.schemas.results import ActionResult
from festauth.schemas.user import RoleUpdate, ShadowUpdate, UserCreate, UserList
from festauth.services.password_reset import PasswordResetManager
from festauth.services.users import UserAdminService

router = APIRouter(prefix="/users", tags=["users"], dependencies=[Depends(require_admin)])

UserAdminDep = Annotated[UserAdminService, Depends(get_user_admin_service)]
ResetDep = Annotated[PasswordResetManager, Depends(get_password_reset_manager)]


@router.get("", response_model=UserList)
async def list_users(
    users: UserAdminDep,
    include_shadow: bool = False,
    shadow_only: bool = False,
) -> UserList:
    """Active users. Shadow users are hidden unless asked for."""
    items = await users.list_users(include_shadow=include_shadow, shadow_only=shadow_only)
    return UserList(total=len(items), items=items)


@router.post("", response_model=ActionResult, status_code=status.HTTP_201_CREATED)
async def create_user(payload: UserCreate, response: Response, users: UserAdminDep) -> ActionResult:
    result = await users.create_user(
        payload.name, payload.email, payload.password, payload.role, payload.username
    )
    return apply_status(result, response)


@router.patch("/{user_id}/role", response_model=ActionResult)
async def change_role(
    user_id: uuid.UUID, payload: RoleUpdate, response: Response, users: UserAdminDep
) -> ActionResult:
    result = await users.change_user_role(user_id, payload.role)
    return apply_status(result, response)


@router.patch("/{user_id}/shadow", response_model=ActionResult)
async def change_shadow_status(
    user_id: uuid.UUID, payload: ShadowUpdate, response: Response, users: UserAdminDep
) -> ActionResult:
    result = await users.change_shadow_status(user_id, payload.is_shadow_user)
    return apply_status(result, response)


@router.post("/{user_id}/password-reset", response_model=ActionResult)
async def send_password_reset(user_id: uuid.UUID, response: Response, resets: ResetDep) -> ActionResult:
    result = await resets.request_reset_for_user(user_id)
    return apply_status(result, response)
