"""Models package exports."""

from inkwell.models.auth import (
    ApiResponse,
    GoogleLoginRequest,
    TokenClaims,
    TokenPair,
    UpdateUserRequest,
    UserSummary,
)
from inkwell.models.user import AuthenticatedUser, FederatedIdentity, Role, User

__all__ = [
    "ApiResponse",
    "AuthenticatedUser",
    "FederatedIdentity",
    "GoogleLoginRequest",
    "Role",
    "TokenClaims",
    "TokenPair",
    "UpdateUserRequest",
    "User",
    "UserSummary",
]
