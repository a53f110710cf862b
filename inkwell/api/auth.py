"""Authentication API endpoints."""

import structlog
from fastapi import APIRouter, Depends, Request, Response

from inkwell.api.dependencies import get_auth_service, get_current_user
from inkwell.models.auth import (
    ApiResponse,
    GoogleLoginRequest,
    IdentityPayload,
    UserPayload,
    UserSummary,
)
from inkwell.models.user import AuthenticatedUser
from inkwell.services.auth_service import AuthService
from inkwell.services.session_cookies import (
    REFRESH_COOKIE_NAME,
    attach_session_cookies,
    clear_session_cookies,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/google")
@router.post("/login")
async def google_login(
    body: GoogleLoginRequest,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service),
) -> ApiResponse[UserPayload]:
    """Sign in with a Google ID token.

    Verifies the credential, creates the account on first login, and sets the
    access/refresh cookies. Any earlier session of the same user ends.

    Raises:
        400: Missing credential
        401: Invalid credential or disabled account
        503: Identity provider unreachable
    """
    user, tokens = await auth_service.login(body.credential)
    attach_session_cookies(response, tokens)
    return ApiResponse(success=True, data=UserPayload(user=UserSummary.from_user(user)))


@router.post("/refresh")
async def refresh(
    request: Request,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service),
) -> ApiResponse[None]:
    """Rotate the session using the refresh cookie.

    The presented refresh token is invalidated and a new pair is set.

    Raises:
        401: Refresh token missing, invalid, expired, superseded or reused
    """
    tokens = await auth_service.refresh(request.cookies.get(REFRESH_COOKIE_NAME))
    attach_session_cookies(response, tokens)
    return ApiResponse(success=True, message="Token refreshed successfully")


@router.get("/me")
async def get_me(
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> ApiResponse[IdentityPayload]:
    """Get the authenticated user's profile."""
    return ApiResponse(success=True, data=IdentityPayload(user=current_user))


@router.post("/logout")
async def logout(
    response: Response,
    current_user: AuthenticatedUser = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
) -> ApiResponse[None]:
    """End the session: clear the refresh fingerprint and both cookies.

    Idempotent; logging out an already logged-out session succeeds.
    """
    await auth_service.logout(current_user.id)
    clear_session_cookies(response)
    return ApiResponse(success=True, message="Logged out successfully")
