"""FastAPI dependencies for authentication and authorization."""

from functools import lru_cache
from typing import Optional
from uuid import UUID

import structlog
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from inkwell.models.user import AuthenticatedUser
from inkwell.services.auth_service import AuthService
from inkwell.services.content_service import BlogService, CommentService, OwnerLookup
from inkwell.services.errors import (
    AuthError,
    ForbiddenError,
    InternalAuthError,
    ResourceNotFoundError,
)
from inkwell.services.identity_service import GoogleIdentityVerifier, IdentityVerifier
from inkwell.services.session_cookies import ACCESS_COOKIE_NAME
from inkwell.services.user_service import UserService

logger = structlog.get_logger(__name__)

# Header fallback for non-browser clients; the cookie wins when both are sent
bearer_scheme = HTTPBearer(auto_error=False)


@lru_cache
def get_identity_verifier() -> IdentityVerifier:
    """Process-wide verifier so the provider's signing keys stay cached."""
    return GoogleIdentityVerifier()


def get_user_service() -> UserService:
    return UserService()


def get_auth_service(
    verifier: IdentityVerifier = Depends(get_identity_verifier),
    user_service: UserService = Depends(get_user_service),
) -> AuthService:
    return AuthService(user_service=user_service, verifier=verifier)


def get_blog_service() -> BlogService:
    return BlogService()


def get_comment_service() -> CommentService:
    return CommentService()


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    auth_service: AuthService = Depends(get_auth_service),
) -> AuthenticatedUser:
    """Authenticate the request from the access cookie or Bearer header.

    Args:
        request: Incoming request (for the access cookie)
        credentials: Optional Bearer token from the Authorization header

    Returns:
        Identity of the authenticated, active user

    Raises:
        MissingTokenError, InvalidOrExpiredTokenError,
        UserNotFoundOrInactiveError: 401
        InternalAuthError: 500 when the user directory fails
    """
    token = request.cookies.get(ACCESS_COOKIE_NAME)
    if not token and credentials is not None:
        token = credentials.credentials

    try:
        return await auth_service.authenticate(token)
    except AuthError as e:
        logger.info("authentication_rejected", reason=e.code, path=request.url.path)
        raise


async def require_admin(
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> AuthenticatedUser:
    """Require the current user to have the ADMIN role.

    Raises:
        ForbiddenError: If user is not an admin
    """
    if not current_user.is_admin:
        raise ForbiddenError("Admin access required")
    return current_user


def _parse_id(raw: str, label: str) -> UUID:
    # Unparseable ids are just ids that do not exist
    try:
        return UUID(raw)
    except ValueError:
        raise ResourceNotFoundError(f"{label} not found")


def blog_id_param(blog_id: str) -> UUID:
    return _parse_id(blog_id, "Blog")


def comment_id_param(comment_id: str) -> UUID:
    return _parse_id(comment_id, "Comment")


async def _require_owner(
    lookup: OwnerLookup,
    resource_id: UUID,
    current_user: AuthenticatedUser,
    label: str,
) -> AuthenticatedUser:
    # Existence is checked before permission for every caller, admins included
    try:
        owner_id = await lookup.get_owner_id(resource_id)
    except Exception as e:
        logger.exception("ownership_lookup_failed", resource=label, resource_id=str(resource_id))
        raise InternalAuthError(str(e))

    if owner_id is None:
        raise ResourceNotFoundError(f"{label} not found")

    if owner_id != current_user.id and not current_user.is_admin:
        logger.info(
            "ownership_denied",
            resource=label,
            resource_id=str(resource_id),
            user_id=str(current_user.id),
        )
        raise ForbiddenError(f"Not authorized to modify this {label.lower()}")

    return current_user


async def require_blog_owner(
    current_user: AuthenticatedUser = Depends(get_current_user),
    blog_id: UUID = Depends(blog_id_param),
    blog_service: BlogService = Depends(get_blog_service),
) -> AuthenticatedUser:
    """Allow the blog's author or an admin."""
    return await _require_owner(blog_service, blog_id, current_user, "Blog")


async def require_comment_owner(
    current_user: AuthenticatedUser = Depends(get_current_user),
    comment_id: UUID = Depends(comment_id_param),
    comment_service: CommentService = Depends(get_comment_service),
) -> AuthenticatedUser:
    """Allow the comment's author or an admin."""
    return await _require_owner(comment_service, comment_id, current_user, "Comment")
