"""
Back Office — User API routes
"""
from fastapi import APIRouter, Depends, Query, status

from backoffice.api.deps import ANY_ROLE, get_user_service, require_roles
from backoffice.core.security import Identity
from backoffice.models.user import Role
from backoffice.schemas.common import MessageResponse, Page
from backoffice.schemas.user import (
    PasswordChangeRequest,
    PasswordResetRequest,
    PasswordSetRequest,
    RegisterRequest,
    UserCreateRequest,
    UserResponse,
    UserStatusUpdate,
    UserUpdateRequest,
)
from backoffice.services.user_service import UserService

router = APIRouter(prefix="/api/users", tags=["users"])


# ─── Self-service (anonymous) ─────────────────────────────────────────────────

@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(payload: RegisterRequest, users: UserService = Depends(get_user_service)):
    """Create an inactive CLIENT account and mail a password-creation link."""
    return await users.register(payload)


@router.post("/set-password", response_model=MessageResponse)
async def set_password(payload: PasswordSetRequest, users: UserService = Depends(get_user_service)):
    await users.set_password_with_token(payload.token, payload.password)
    return MessageResponse(success=True, message="Password set, you can now log in.")


@router.post("/password-reset-request", response_model=MessageResponse)
async def request_password_reset(payload: PasswordResetRequest, users: UserService = Depends(get_user_service)):
    await users.request_password_reset(payload.email)
    return MessageResponse(success=True, message="If the address is known, a reset link was sent.")


# ─── Own profile ──────────────────────────────────────────────────────────────

@router.get("/profile", response_model=UserResponse)
async def get_profile(
    identity: Identity = Depends(require_roles(*ANY_ROLE)),
    users: UserService = Depends(get_user_service),
):
    return await users.get_by_username(identity.username)


@router.put("/profile", response_model=UserResponse)
async def update_profile(
    payload: UserUpdateRequest,
    identity: Identity = Depends(require_roles(*ANY_ROLE)),
    users: UserService = Depends(get_user_service),
):
    user = await users.get_by_username(identity.username)
    return await users.update(user, payload, identity.username, allow_roles=False)


@router.put("/profile/password", response_model=MessageResponse)
async def change_password(
    payload: PasswordChangeRequest,
    identity: Identity = Depends(require_roles(*ANY_ROLE)),
    users: UserService = Depends(get_user_service),
):
    await users.change_password(identity.username, payload.current_password, payload.new_password)
    return MessageResponse(success=True, message="Password changed.")


# ─── Administration ───────────────────────────────────────────────────────────

@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: UserCreateRequest,
    identity: Identity = Depends(require_roles(Role.ADMIN)),
    users: UserService = Depends(get_user_service),
):
    """Create a user with a throwaway password and mail them a password-creation link."""
    return await users.create_user(payload, identity.username)


@router.get("", response_model=Page[UserResponse])
async def search_users(
    search: str | None = None,
    is_active: bool | None = None,
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1, le=200),
    identity: Identity = Depends(require_roles(Role.ADMIN)),
    users: UserService = Depends(get_user_service),
):
    return await users.search(search, is_active, page, size)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    identity: Identity = Depends(require_roles(Role.ADMIN)),
    users: UserService = Depends(get_user_service),
):
    return await users.get(user_id)


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    payload: UserUpdateRequest,
    identity: Identity = Depends(require_roles(Role.ADMIN)),
    users: UserService = Depends(get_user_service),
):
    user = await users.get(user_id)
    return await users.update(user, payload, identity.username, allow_roles=True)


@router.patch("/{user_id}/status", response_model=UserResponse)
async def update_user_status(
    user_id: str,
    payload: UserStatusUpdate,
    identity: Identity = Depends(require_roles(Role.ADMIN)),
    users: UserService = Depends(get_user_service),
):
    return await users.update_status(user_id, payload.is_active, identity.username)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: str,
    identity: Identity = Depends(require_roles(Role.ADMIN)),
    users: UserService = Depends(get_user_service),
):
    await users.delete(user_id, identity.username)
