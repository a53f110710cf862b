"""Python client for the Inkwell API."""

from inkwell.client.api_client import ApiClient, ApiError, SessionExpiredError
from inkwell.client.auth_state import AuthState, AuthStatus, AuthStore

__all__ = [
    "ApiClient",
    "ApiError",
    "AuthState",
    "AuthStatus",
    "AuthStore",
    "SessionExpiredError",
]
