"""Identity verification against an external identity provider.

The token service and request authentication never depend on a concrete
provider: anything implementing ``IdentityVerifier`` can be plugged into
``AuthService``. ``GoogleIdentityVerifier`` validates Google Sign-In ID tokens
against Google's published signing keys.
"""

import asyncio
import re
import time
from typing import Any, Optional, Protocol

import httpx
import jwt
import structlog

from inkwell.config import get_settings
from inkwell.models.user import FederatedIdentity
from inkwell.services.errors import InvalidCredentialError, VerificationUnavailableError

logger = structlog.get_logger(__name__)

GOOGLE_ISSUERS = frozenset({"accounts.google.com", "https://accounts.google.com"})
GOOGLE_ALGORITHMS = ["RS256"]
MAX_AGE_PATTERN = re.compile(r"max-age=(\d+)")


class IdentityVerifier(Protocol):
    """Exchanges a client-supplied credential for verified identity claims."""

    async def verify(self, credential: str) -> FederatedIdentity:
        ...


def _cache_ttl(cache_control: Optional[str], default: int) -> int:
    """Extract max-age from a Cache-Control header."""
    if cache_control:
        match = MAX_AGE_PATTERN.search(cache_control)
        if match:
            return int(match.group(1))
    return default


class GoogleIdentityVerifier:
    """Verifies Google ID tokens (the ``credential`` from Google Sign-In).

    Signing keys are fetched from the JWKS endpoint and cached for the
    max-age Google advertises. A token whose ``kid`` is not in the cache
    triggers a refetch (Google rotates keys periodically), but no more than
    once per ``google_certs_min_refetch_seconds``.
    """

    def __init__(self, http_client: Optional[httpx.AsyncClient] = None):
        self.settings = get_settings()
        self._http_client = http_client
        self._keys: dict[str, Any] = {}
        self._expires_at = 0.0
        self._last_fetch = float("-inf")
        self._lock = asyncio.Lock()

    async def _fetch_keys(self) -> None:
        self._last_fetch = time.monotonic()
        try:
            if self._http_client is not None:
                response = await self._http_client.get(self.settings.google_certs_url)
            else:
                async with httpx.AsyncClient(
                    timeout=self.settings.google_certs_timeout_seconds
                ) as client:
                    response = await client.get(self.settings.google_certs_url)
            response.raise_for_status()
            jwks = response.json()
            keys = {
                jwk["kid"]: jwt.PyJWK.from_dict(jwk).key
                for jwk in jwks.get("keys", [])
                if "kid" in jwk
            }
        except (httpx.HTTPError, ValueError, KeyError, jwt.PyJWKError) as e:
            logger.error(
                "identity_keys_fetch_failed",
                url=self.settings.google_certs_url,
                error=str(e),
            )
            raise VerificationUnavailableError(f"Could not load provider keys: {e}")

        if not keys:
            logger.error("identity_keys_empty", url=self.settings.google_certs_url)
            raise VerificationUnavailableError("Provider returned no signing keys")

        ttl = _cache_ttl(
            response.headers.get("cache-control"),
            self.settings.google_certs_default_ttl,
        )
        self._keys = keys
        self._expires_at = time.monotonic() + ttl
        logger.info("identity_keys_fetched", key_count=len(keys), ttl_seconds=ttl)

    async def _get_key(self, kid: str) -> Any:
        async with self._lock:
            now = time.monotonic()
            if now >= self._expires_at:
                await self._fetch_keys()
            elif kid not in self._keys:
                # At most one unknown-kid refetch per interval
                if now - self._last_fetch >= self.settings.google_certs_min_refetch_seconds:
                    await self._fetch_keys()
                else:
                    logger.info("identity_key_refetch_throttled", kid=kid)
        key = self._keys.get(kid)
        if key is None:
            raise InvalidCredentialError("Credential signed with an unknown key")
        return key

    async def verify(self, credential: str) -> FederatedIdentity:
        """Verify a Google ID token and return its identity claims.

        Args:
            credential: Raw ID token string

        Returns:
            FederatedIdentity built from the token's sub/email/name/picture

        Raises:
            InvalidCredentialError: Signature, audience, issuer or expiry check
                failed, or the token is malformed
            VerificationUnavailableError: Google's keys could not be fetched
        """
        try:
            header = jwt.get_unverified_header(credential)
        except jwt.InvalidTokenError as e:
            raise InvalidCredentialError(f"Malformed credential: {e}")

        kid = header.get("kid")
        if not kid:
            raise InvalidCredentialError("Credential has no key id")

        key = await self._get_key(kid)

        try:
            claims = jwt.decode(
                credential,
                key,
                algorithms=GOOGLE_ALGORITHMS,
                audience=self.settings.google_client_id,
                options={"require": ["iss", "aud", "exp", "sub"]},
            )
        except jwt.InvalidTokenError as e:
            logger.warning("identity_verification_failed", reason=type(e).__name__)
            raise InvalidCredentialError(f"Credential rejected: {e}")

        if claims.get("iss") not in GOOGLE_ISSUERS:
            logger.warning("identity_verification_failed", reason="issuer")
            raise InvalidCredentialError("Credential issued by an untrusted issuer")

        email = claims.get("email")
        if not email:
            raise InvalidCredentialError("Credential carries no email")
        if claims.get("email_verified") is False:
            raise InvalidCredentialError("Email address is not verified")

        email = email.strip().lower()
        return FederatedIdentity(
            external_subject_id=str(claims["sub"]),
            email=email,
            name=claims.get("name") or email.split("@")[0],
            avatar_url=claims.get("picture"),
        )
