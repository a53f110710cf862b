"""Authentication service: login, request authentication, refresh rotation, logout."""

import hmac
from typing import Optional
from uuid import UUID

import structlog

from inkwell.models.auth import TokenPair
from inkwell.models.user import AuthenticatedUser, User
from inkwell.services.errors import (
    InternalAuthError,
    InvalidOrExpiredTokenError,
    InvalidRefreshTokenError,
    MissingCredentialError,
    MissingTokenError,
    RefreshTokenRequiredError,
    TokenError,
    UserNotFoundOrInactiveError,
)
from inkwell.services.identity_service import GoogleIdentityVerifier, IdentityVerifier
from inkwell.services.token_service import (
    ACCESS_TOKEN_TYPE,
    REFRESH_TOKEN_TYPE,
    TokenService,
    fingerprint,
)
from inkwell.services.user_service import UserService

logger = structlog.get_logger(__name__)


class AuthService:
    """Coordinates the identity verifier, user directory and token service.

    This is the only place that writes the refresh fingerprint: ``login``
    sets it, ``refresh`` compare-and-swaps it, ``logout`` clears it.
    """

    def __init__(
        self,
        user_service: Optional[UserService] = None,
        token_service: Optional[TokenService] = None,
        verifier: Optional[IdentityVerifier] = None,
    ):
        self.user_service = user_service or UserService()
        self.token_service = token_service or TokenService()
        self.verifier = verifier or GoogleIdentityVerifier()

    async def login(self, credential: str) -> tuple[User, TokenPair]:
        """Verify a provider credential and open a fresh session.

        Any previously issued refresh token for the user stops working.

        Args:
            credential: Raw identity credential from the client

        Returns:
            Tuple of (User, TokenPair)

        Raises:
            MissingCredentialError: If the credential is empty
            InvalidCredentialError: If the provider rejects the credential
            VerificationUnavailableError: If the provider cannot be reached
            UserNotFoundOrInactiveError: If the account has been deactivated
        """
        if not credential:
            raise MissingCredentialError()

        identity = await self.verifier.verify(credential)
        user = await self.user_service.find_or_create_from_identity(identity)

        if not user.is_active:
            logger.warning("login_rejected_inactive", user_id=str(user.id))
            raise UserNotFoundOrInactiveError("User account is disabled")

        tokens = self.token_service.issue_token_pair(user.id)
        await self.user_service.set_refresh_fingerprint(
            user.id, fingerprint(tokens.refresh_token)
        )

        logger.info("user_logged_in", user_id=str(user.id), role=user.role.value)
        return user, tokens

    async def authenticate(self, access_token: Optional[str]) -> AuthenticatedUser:
        """Resolve an access token to the identity of an active user.

        Never refreshes: an expired access token is simply rejected.

        Raises:
            MissingTokenError: No token was presented
            InvalidOrExpiredTokenError: Signature, expiry or type check failed
            UserNotFoundOrInactiveError: Subject is missing or deactivated
            InternalAuthError: The user directory failed
        """
        if not access_token:
            raise MissingTokenError()

        try:
            claims = self.token_service.verify(access_token, ACCESS_TOKEN_TYPE)
        except TokenError as e:
            raise InvalidOrExpiredTokenError(e.detail)

        try:
            user = await self.user_service.load_active_by_id(claims.sub)
        except Exception as e:
            logger.exception("authentication_internal_error", user_id=str(claims.sub))
            raise InternalAuthError(str(e))

        if user is None:
            raise UserNotFoundOrInactiveError()

        return AuthenticatedUser.from_user(user)

    async def refresh(self, refresh_token: Optional[str]) -> TokenPair:
        """Redeem a refresh token for a new token pair (rotation).

        The presented token must match the stored fingerprint, and the swap
        to the new fingerprint is conditional on it still matching, so a
        replayed or concurrently redeemed token fails.

        Raises:
            RefreshTokenRequiredError: No refresh token was presented
            InvalidRefreshTokenError: Verification, fingerprint match or swap failed
        """
        if not refresh_token:
            raise RefreshTokenRequiredError()

        try:
            claims = self.token_service.verify(refresh_token, REFRESH_TOKEN_TYPE)
        except TokenError as e:
            logger.warning("refresh_token_rejected", reason=e.code)
            raise InvalidRefreshTokenError(e.detail)

        state = await self.user_service.get_refresh_state(claims.sub)
        if state is None:
            logger.warning(
                "refresh_token_rejected",
                reason="user_not_found_or_inactive",
                user_id=str(claims.sub),
            )
            raise InvalidRefreshTokenError()

        user, stored = state
        presented = fingerprint(refresh_token)
        if stored is None or not hmac.compare_digest(stored, presented):
            logger.warning(
                "refresh_token_rejected",
                reason="logged_out" if stored is None else "superseded",
                user_id=str(user.id),
            )
            raise InvalidRefreshTokenError()

        tokens = self.token_service.issue_token_pair(user.id)
        swapped = await self.user_service.rotate_refresh_fingerprint(
            user.id, presented, fingerprint(tokens.refresh_token)
        )
        if not swapped:
            logger.warning("refresh_rotation_conflict", user_id=str(user.id))
            raise InvalidRefreshTokenError()

        logger.info("refresh_token_rotated", user_id=str(user.id))
        return tokens

    async def logout(self, user_id: UUID) -> None:
        """End the user's session by clearing the refresh fingerprint."""
        await self.user_service.set_refresh_fingerprint(user_id, None)
        logger.info("user_logged_out", user_id=str(user_id))
