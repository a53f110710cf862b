"""Binds the token pair to httpOnly session cookies."""

from typing import Literal

from fastapi import Response

from inkwell.config import Settings, get_settings
from inkwell.models.auth import TokenPair

ACCESS_COOKIE_NAME = "accessToken"
REFRESH_COOKIE_NAME = "refreshToken"
COOKIE_PATH = "/"


def _cookie_policy(settings: Settings) -> tuple[bool, Literal["strict", "lax"]]:
    """Return (secure, samesite) for the current environment.

    Production gets Secure + SameSite=Strict; development runs over plain
    http with a separate SPA origin and uses SameSite=Lax.
    """
    if settings.is_production:
        return True, "strict"
    return False, "lax"


def attach_session_cookies(response: Response, tokens: TokenPair) -> None:
    """Set both token cookies with Max-Age matching each token's lifetime."""
    settings = get_settings()
    secure, samesite = _cookie_policy(settings)

    response.set_cookie(
        ACCESS_COOKIE_NAME,
        tokens.access_token,
        max_age=settings.access_token_max_age,
        path=COOKIE_PATH,
        httponly=True,
        secure=secure,
        samesite=samesite,
    )
    response.set_cookie(
        REFRESH_COOKIE_NAME,
        tokens.refresh_token,
        max_age=settings.refresh_token_max_age,
        path=COOKIE_PATH,
        httponly=True,
        secure=secure,
        samesite=samesite,
    )


def clear_session_cookies(response: Response) -> None:
    """Expire both token cookies. Safe to call when they are already absent."""
    secure, samesite = _cookie_policy(get_settings())

    for name in (ACCESS_COOKIE_NAME, REFRESH_COOKIE_NAME):
        response.delete_cookie(
            name,
            path=COOKIE_PATH,
            httponly=True,
            secure=secure,
            samesite=samesite,
        )
