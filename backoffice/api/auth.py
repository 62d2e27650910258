"""
Back Office — Auth API routes
"""
from fastapi import APIRouter, Depends, Request, Response

from backoffice.api.deps import current_identity, get_audit, get_token_service, get_user_service
from backoffice.core.config import get_settings
from backoffice.core.exceptions import InvalidToken, NotFound
from backoffice.core.security import REFRESH, Identity, TokenService
from backoffice.models.audit import AuditAction
from backoffice.models.user import User
from backoffice.schemas.auth import LoginRequest, TokenResponse
from backoffice.schemas.common import MessageResponse
from backoffice.services.audit_service import AuditService
from backoffice.services.user_service import UserService

settings = get_settings()
router = APIRouter(prefix="/api/auth", tags=["auth"])


def _issue(response: Response, user: User, tokens: TokenService) -> TokenResponse:
    refresh = tokens.issue_refresh_token(user.username, user.roles)
    response.set_cookie(
        key=settings.REFRESH_COOKIE_NAME,
        value=refresh,
        max_age=settings.JWT_REFRESH_TOKEN_EXPIRE_HOURS * 3600,
        httponly=True,
        secure=settings.REFRESH_COOKIE_SECURE,
        samesite="lax",
        path="/api/auth",
    )
    return TokenResponse(
        access_token=tokens.issue_access_token(user.username, user.roles),
        expires_in=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        username=user.username,
        roles=list(user.roles),
    )


@router.post("/login", response_model=TokenResponse)
async def login(
    payload: LoginRequest,
    response: Response,
    users: UserService = Depends(get_user_service),
    tokens: TokenService = Depends(get_token_service),
    audit: AuditService = Depends(get_audit),
):
    """Check credentials; access token in the body, refresh token in an HttpOnly cookie."""
    user = await users.authenticate(payload.username, payload.password)
    audit.record(user.username, AuditAction.LOGIN, "User", user.id, "Logged in")
    await audit.db.commit()
    return _issue(response, user, tokens)


@router.post("/refresh-token", response_model=TokenResponse)
async def refresh_token(
    request: Request,
    response: Response,
    users: UserService = Depends(get_user_service),
    tokens: TokenService = Depends(get_token_service),
):
    """Issue a new token pair from the refresh-token cookie."""
    cookie = request.cookies.get(settings.REFRESH_COOKIE_NAME)
    if not cookie:
        raise InvalidToken("Refresh token cookie is missing.")
    identity = tokens.validate(cookie, expected_type=REFRESH)
    try:
        user = await users.get_by_username(identity.username)
    except NotFound:
        raise InvalidToken("User no longer exists.")
    if not user.is_active:
        raise InvalidToken("Account is not active.")
    return _issue(response, user, tokens)


@router.post("/logout", response_model=MessageResponse)
async def logout(response: Response):
    response.delete_cookie(settings.REFRESH_COOKIE_NAME, path="/api/auth")
    return MessageResponse(success=True, message="Logged out.")


@router.get("/check-login", response_model=MessageResponse)
async def check_login(identity: Identity | None = Depends(current_identity)):
    if identity is None:
        return MessageResponse(success=False, message="Not authenticated.")
    return MessageResponse(success=True, message=f"Authenticated as {identity.username}.")
