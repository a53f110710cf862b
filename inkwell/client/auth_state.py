"""Explicit client-side authentication state container."""

from enum import Enum
from typing import Callable, Optional

import httpx
import structlog
from pydantic import BaseModel

from inkwell.client.api_client import ApiClient, ApiError, SessionExpiredError
from inkwell.models.user import AuthenticatedUser

logger = structlog.get_logger(__name__)


class AuthStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    AUTHENTICATED = "authenticated"
    ANONYMOUS = "anonymous"
    ERROR = "error"


class AuthState(BaseModel):
    """Immutable snapshot handed to subscribers."""

    status: AuthStatus = AuthStatus.IDLE
    user: Optional[AuthenticatedUser] = None
    error: Optional[str] = None

    model_config = {"frozen": True}

    @property
    def is_authenticated(self) -> bool:
        return self.status == AuthStatus.AUTHENTICATED


Listener = Callable[[AuthState], None]


class AuthStore:
    """Holds who is signed in and notifies subscribers on every transition.

    Lifecycle: ``IDLE`` until ``initialize()`` is called, then ``LOADING``
    and finally ``AUTHENTICATED``, ``ANONYMOUS`` or ``ERROR``. A session
    that the API client fails to renew moves the store to ``ANONYMOUS``.
    """

    def __init__(self, api: ApiClient):
        self.api = api
        self.api.on_session_expired = self._on_session_expired
        self._state = AuthState()
        self._listeners: list[Listener] = []
        self._initializing = False

    @property
    def state(self) -> AuthState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_state(self, **changes) -> None:
        self._state = AuthState(**changes)
        for listener in list(self._listeners):
            listener(self._state)

    def _on_session_expired(self) -> None:
        # initialize() reports its own outcome
        if self._initializing:
            return
        logger.info("client_session_expired")
        self._set_state(status=AuthStatus.ANONYMOUS, error="Session expired, please log in again")

    async def initialize(self) -> AuthState:
        """Resolve the current session from the server's cookies.

        An expired access token is renewed transparently by the API client.
        """
        self._set_state(status=AuthStatus.LOADING)
        self._initializing = True
        try:
            data = await self.api.request_data("GET", "/auth/me")
        except SessionExpiredError:
            self._set_state(status=AuthStatus.ANONYMOUS)
        except ApiError as e:
            if e.status_code == 401:
                self._set_state(status=AuthStatus.ANONYMOUS)
            else:
                self._set_state(status=AuthStatus.ERROR, error=e.message)
        except httpx.HTTPError as e:
            logger.warning("auth_initialize_failed", error=str(e))
            self._set_state(status=AuthStatus.ERROR, error=str(e))
        else:
            self._set_state(
                status=AuthStatus.AUTHENTICATED,
                user=AuthenticatedUser.model_validate(data["user"]),
            )
        finally:
            self._initializing = False
        return self._state

    async def login(self, credential: str) -> AuthenticatedUser:
        """Sign in with a Google ID token.

        Raises:
            ApiError: If the server rejects the credential
        """
        self._set_state(status=AuthStatus.LOADING)
        try:
            data = await self.api.request_data("POST", "/auth/google", json={"credential": credential})
        except ApiError as e:
            self._set_state(status=AuthStatus.ANONYMOUS, error=e.message)
            raise

        user = AuthenticatedUser.model_validate(data["user"])
        self._set_state(status=AuthStatus.AUTHENTICATED, user=user)
        return user

    async def logout(self) -> None:
        """Sign out; local state is cleared even if the server call fails."""
        try:
            await self.api.request_data("POST", "/auth/logout")
        except (ApiError, httpx.HTTPError) as e:
            logger.warning("logout_request_failed", error=str(e))
        finally:
            self._set_state(status=AuthStatus.ANONYMOUS)
