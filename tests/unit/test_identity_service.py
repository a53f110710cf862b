"""Unit tests for GoogleIdentityVerifier.

Google's JWKS endpoint is replaced with an httpx.MockTransport serving keys
generated for the test run.
"""

from datetime import datetime, timedelta, timezone

import httpx
import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa
from jwt.algorithms import RSAAlgorithm

from inkwell.config import get_settings
from inkwell.services.errors import InvalidCredentialError, VerificationUnavailableError
from inkwell.services.identity_service import GoogleIdentityVerifier, _cache_ttl


def _rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


def _jwk(private_key, kid):
    jwk = RSAAlgorithm.to_jwk(private_key.public_key(), as_dict=True)
    jwk.update({"kid": kid, "alg": "RS256", "use": "sig"})
    return jwk


class FakeGoogleCerts:
    """Serves a mutable JWKS document and counts fetches."""

    def __init__(self, keys, status_code=200, cache_control="public, max-age=19800"):
        self.keys = keys
        self.status_code = status_code
        self.cache_control = cache_control
        self.fetches = 0

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.fetches += 1
        if self.status_code != 200:
            return httpx.Response(self.status_code, text="unavailable")
        return httpx.Response(
            200,
            json={"keys": self.keys},
            headers={"Cache-Control": self.cache_control},
        )


@pytest.fixture(scope="module")
def signing_key():
    return _rsa_key()


@pytest.fixture
def certs(signing_key):
    return FakeGoogleCerts([_jwk(signing_key, "key-1")])


@pytest.fixture
def verifier(certs):
    client = httpx.AsyncClient(transport=httpx.MockTransport(certs.handler))
    return GoogleIdentityVerifier(http_client=client)


def _id_token(private_key, kid="key-1", **overrides):
    now = datetime.now(timezone.utc)
    claims = {
        "iss": "https://accounts.google.com",
        "aud": get_settings().google_client_id,
        "sub": "108234567890",
        "email": "Alice@Example.com",
        "email_verified": True,
        "name": "Alice Liddell",
        "picture": "https://lh3.googleusercontent.com/a/alice",
        "iat": now,
        "exp": now + timedelta(hours=1),
    }
    claims.update(overrides)
    headers = {"kid": kid} if kid else None
    return jwt.encode(claims, private_key, algorithm="RS256", headers=headers)


class TestVerify:
    """Tests for GoogleIdentityVerifier.verify."""

    async def test_valid_credential(self, verifier, signing_key):
        identity = await verifier.verify(_id_token(signing_key))

        assert identity.external_subject_id == "108234567890"
        assert identity.email == "alice@example.com"
        assert identity.name == "Alice Liddell"
        assert identity.avatar_url == "https://lh3.googleusercontent.com/a/alice"

    async def test_name_falls_back_to_email_local_part(self, verifier, signing_key):
        identity = await verifier.verify(_id_token(signing_key, name=None))
        assert identity.name == "alice"

    async def test_bare_issuer_accepted(self, verifier, signing_key):
        identity = await verifier.verify(_id_token(signing_key, iss="accounts.google.com"))
        assert identity.email == "alice@example.com"

    async def test_wrong_audience(self, verifier, signing_key):
        with pytest.raises(InvalidCredentialError):
            await verifier.verify(_id_token(signing_key, aud="someone-else"))

    async def test_untrusted_issuer(self, verifier, signing_key):
        with pytest.raises(InvalidCredentialError):
            await verifier.verify(_id_token(signing_key, iss="https://evil.example.com"))

    async def test_expired_credential(self, verifier, signing_key):
        past = datetime.now(timezone.utc) - timedelta(hours=2)
        with pytest.raises(InvalidCredentialError):
            await verifier.verify(
                _id_token(signing_key, iat=past, exp=past + timedelta(hours=1))
            )

    async def test_signed_by_foreign_key(self, verifier):
        with pytest.raises(InvalidCredentialError):
            await verifier.verify(_id_token(_rsa_key()))

    async def test_unverified_email(self, verifier, signing_key):
        with pytest.raises(InvalidCredentialError):
            await verifier.verify(_id_token(signing_key, email_verified=False))

    async def test_missing_email(self, verifier, signing_key):
        with pytest.raises(InvalidCredentialError):
            await verifier.verify(_id_token(signing_key, email=None))

    async def test_missing_kid(self, verifier, signing_key):
        with pytest.raises(InvalidCredentialError):
            await verifier.verify(_id_token(signing_key, kid=None))

    async def test_malformed_credential(self, verifier):
        with pytest.raises(InvalidCredentialError):
            await verifier.verify("definitely-not-a-jwt")


class TestKeyCache:
    """Tests for JWKS fetching and caching."""

    async def test_keys_fetched_once_while_fresh(self, verifier, certs, signing_key):
        await verifier.verify(_id_token(signing_key))
        await verifier.verify(_id_token(signing_key))

        assert certs.fetches == 1

    async def test_stale_cache_is_refetched(self, verifier, certs, signing_key):
        await verifier.verify(_id_token(signing_key))
        verifier._expires_at = 0.0

        await verifier.verify(_id_token(signing_key))

        assert certs.fetches == 2

    async def test_unknown_kid_triggers_refetch_after_rotation(self, verifier, certs, signing_key):
        await verifier.verify(_id_token(signing_key))
        verifier._last_fetch -= get_settings().google_certs_min_refetch_seconds

        rotated = _rsa_key()
        certs.keys = [_jwk(signing_key, "key-1"), _jwk(rotated, "key-2")]

        identity = await verifier.verify(_id_token(rotated, kid="key-2"))

        assert identity.email == "alice@example.com"
        assert certs.fetches == 2

    async def test_unknown_kid_after_refetch_is_invalid(self, verifier, certs):
        with pytest.raises(InvalidCredentialError):
            await verifier.verify(_id_token(_rsa_key(), kid="key-unknown"))
        assert certs.fetches == 1

    async def test_unknown_kid_refetch_is_throttled(self, verifier, certs, signing_key):
        await verifier.verify(_id_token(signing_key))
        forger = _rsa_key()

        for i in range(50):
            with pytest.raises(InvalidCredentialError):
                await verifier.verify(_id_token(forger, kid=f"bogus-{i}"))

        assert certs.fetches == 1

    async def test_rotation_within_refetch_interval_waits(self, verifier, certs, signing_key):
        await verifier.verify(_id_token(signing_key))
        rotated = _rsa_key()
        certs.keys = [_jwk(signing_key, "key-1"), _jwk(rotated, "key-2")]

        with pytest.raises(InvalidCredentialError):
            await verifier.verify(_id_token(rotated, kid="key-2"))
        verifier._last_fetch -= get_settings().google_certs_min_refetch_seconds
        identity = await verifier.verify(_id_token(rotated, kid="key-2"))

        assert identity.email == "alice@example.com"
        assert certs.fetches == 2

    async def test_provider_error_is_unavailable(self, verifier, certs, signing_key):
        certs.status_code = 503

        with pytest.raises(VerificationUnavailableError):
            await verifier.verify(_id_token(signing_key))

    async def test_connection_failure_is_unavailable(self, signing_key):
        def unreachable(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(unreachable))
        verifier = GoogleIdentityVerifier(http_client=client)

        with pytest.raises(VerificationUnavailableError):
            await verifier.verify(_id_token(signing_key))

    async def test_empty_key_set_is_unavailable(self, verifier, certs, signing_key):
        certs.keys = []

        with pytest.raises(VerificationUnavailableError):
            await verifier.verify(_id_token(signing_key))


class TestCacheTtl:
    """Tests for Cache-Control parsing."""

    def test_reads_max_age(self):
        assert _cache_ttl("public, max-age=19800, must-revalidate", 60) == 19800

    def test_falls_back_to_default(self):
        assert _cache_ttl(None, 60) == 60
        assert _cache_ttl("no-cache", 60) == 60
