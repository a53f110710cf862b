"""Access/refresh token issuance and verification."""

import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from uuid import UUID

import jwt
import structlog
from pydantic import ValidationError

from inkwell.config import get_settings
from inkwell.models.auth import TokenClaims, TokenPair, TokenType
from inkwell.services.errors import (
    InvalidTokenError,
    TokenExpiredError,
    WrongTokenTypeError,
)

logger = structlog.get_logger(__name__)

JWT_ALGORITHM = "HS256"
ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"
REQUIRED_CLAIMS = ["sub", "type", "iat", "exp", "jti"]


def fingerprint(token: str) -> str:
    """Return the SHA-256 hex digest stored in place of a raw refresh token."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class TokenService:
    """Mints and verifies the access/refresh token pair.

    Access and refresh tokens are signed with separate secrets and carry a
    ``type`` claim; verification checks both.
    """

    def __init__(self):
        self.settings = get_settings()

    def _secret_for(self, token_type: TokenType) -> str:
        if token_type == ACCESS_TOKEN_TYPE:
            return self.settings.jwt_access_secret
        return self.settings.jwt_refresh_secret

    def _lifetime_for(self, token_type: TokenType) -> timedelta:
        if token_type == ACCESS_TOKEN_TYPE:
            return timedelta(minutes=self.settings.access_token_expire_minutes)
        return timedelta(days=self.settings.refresh_token_expire_days)

    def _encode(self, user_id: UUID, token_type: TokenType) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "type": token_type,
            "iat": now,
            "exp": now + self._lifetime_for(token_type),
            "jti": secrets.token_urlsafe(16),
        }
        return jwt.encode(payload, self._secret_for(token_type), algorithm=JWT_ALGORITHM)

    def issue_token_pair(self, user_id: UUID) -> TokenPair:
        """Mint a fresh access token and refresh token for a user.

        Args:
            user_id: Subject of both tokens

        Returns:
            TokenPair with both encoded JWTs
        """
        pair = TokenPair(
            access_token=self._encode(user_id, ACCESS_TOKEN_TYPE),
            refresh_token=self._encode(user_id, REFRESH_TOKEN_TYPE),
        )
        logger.debug(
            "token_pair_issued",
            user_id=str(user_id),
            access_expires_minutes=self.settings.access_token_expire_minutes,
            refresh_expires_days=self.settings.refresh_token_expire_days,
        )
        return pair

    def verify(self, token: str, expected_type: TokenType) -> TokenClaims:
        """Decode and validate a token of the expected type.

        The signature is checked with the secret of ``expected_type``; the
        ``type`` claim is then checked separately so that a token carrying
        the wrong type is refused even if it is validly signed.

        Args:
            token: Encoded JWT string
            expected_type: "access" or "refresh"

        Returns:
            Verified TokenClaims

        Raises:
            TokenExpiredError: If the token is past its expiry
            WrongTokenTypeError: If the type claim does not match
            InvalidTokenError: If the token is malformed, tampered or incomplete
        """
        try:
            payload = jwt.decode(
                token,
                self._secret_for(expected_type),
                algorithms=[JWT_ALGORITHM],
                options={"require": REQUIRED_CLAIMS},
            )
        except jwt.ExpiredSignatureError:
            raise TokenExpiredError("Token has expired")
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError(f"Invalid token: {e}")

        if payload.get("type") != expected_type:
            raise WrongTokenTypeError(
                f"Expected {expected_type} token, got {payload.get('type')!r}"
            )

        try:
            return TokenClaims(**{claim: payload[claim] for claim in REQUIRED_CLAIMS})
        except ValidationError as e:
            raise InvalidTokenError(f"Invalid token claims: {e.error_count()} error(s)")
