"""Authentication and authorization error taxonomy.

Every error carries a stable ``code`` (logged server side), the HTTP status it
maps to, and the message that is safe to show to clients. 401 errors share a
public message per flow so responses never reveal which check failed.
"""

from typing import Optional

from fastapi import status

AUTH_REQUIRED_MESSAGE = "Authentication required"
INVALID_REFRESH_MESSAGE = "Invalid or expired refresh token"


class AuthError(Exception):
    """Base class for errors raised by the auth core."""

    code = "AuthError"
    status_code = status.HTTP_401_UNAUTHORIZED
    public_message = AUTH_REQUIRED_MESSAGE

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.public_message
        super().__init__(self.detail)


# ---------------------------------------------------------------------------
# Identity verification
# ---------------------------------------------------------------------------

class MissingCredentialError(AuthError):
    code = "MissingCredential"
    status_code = status.HTTP_400_BAD_REQUEST
    public_message = "Identity credential is required"


class InvalidCredentialError(AuthError):
    code = "InvalidCredential"
    public_message = "Invalid identity credential"


class VerificationUnavailableError(AuthError):
    code = "VerificationUnavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    public_message = "Identity provider is temporarily unavailable"


# ---------------------------------------------------------------------------
# Token layer
# ---------------------------------------------------------------------------

class TokenError(AuthError):
    """Raised by the token service when a token fails verification."""

    code = "InvalidToken"


class InvalidTokenError(TokenError):
    code = "InvalidToken"


class TokenExpiredError(TokenError):
    code = "Expired"


class WrongTokenTypeError(TokenError):
    code = "WrongTokenType"


# ---------------------------------------------------------------------------
# Request authentication
# ---------------------------------------------------------------------------

class MissingTokenError(AuthError):
    code = "MissingToken"


class InvalidOrExpiredTokenError(AuthError):
    code = "InvalidOrExpiredToken"


class UserNotFoundOrInactiveError(AuthError):
    code = "UserNotFoundOrInactive"


class RefreshTokenRequiredError(AuthError):
    code = "RefreshTokenRequired"
    public_message = INVALID_REFRESH_MESSAGE


class InvalidRefreshTokenError(AuthError):
    code = "InvalidRefreshToken"
    public_message = INVALID_REFRESH_MESSAGE


class InternalAuthError(AuthError):
    code = "InternalError"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    public_message = "Authentication failed due to an internal error"


# ---------------------------------------------------------------------------
# Authorization
# ---------------------------------------------------------------------------

class ForbiddenError(AuthError):
    code = "Forbidden"
    status_code = status.HTTP_403_FORBIDDEN
    public_message = "You do not have permission to perform this action"


class ResourceNotFoundError(AuthError):
    code = "NotFound"
    status_code = status.HTTP_404_NOT_FOUND
    public_message = "Resource not found"


class SelfModificationError(AuthError):
    code = "SelfModification"
    status_code = status.HTTP_400_BAD_REQUEST
    public_message = "You cannot perform this action on your own account"
