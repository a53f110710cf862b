"""HTTP client for the Inkwell API with single-flight session refresh."""

import asyncio
from typing import Any, Callable, Optional

import httpx
import structlog

logger = structlog.get_logger(__name__)

REFRESH_PATH = "/auth/refresh"

# A 401 from these paths means bad input, not an expired session
NO_REFRESH_PATHS = frozenset({REFRESH_PATH, "/auth/google", "/auth/login"})


class ApiError(Exception):
    """A non-2xx response from the API, carrying the envelope's message."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"{status_code}: {message}")

    @classmethod
    def from_response(cls, response: httpx.Response) -> "ApiError":
        try:
            message = response.json().get("message") or response.reason_phrase
        except ValueError:
            message = response.reason_phrase
        return cls(response.status_code, message)


class SessionExpiredError(ApiError):
    """The session could not be renewed; the user has to sign in again."""

    def __init__(self, message: str = "Session expired, please log in again"):
        super().__init__(401, message)


class ApiClient:
    """Cookie-carrying client that renews the session once on a 401.

    Requests that fail while a refresh is already running wait for that same
    refresh instead of starting their own, then replay. A request is retried
    at most once. If the server rejects the refresh token every waiter gets
    ``SessionExpiredError`` and ``on_session_expired`` fires once; if the
    refresh fails for any other reason (5xx, network) the waiters get that
    ``ApiError`` or ``httpx.HTTPError`` and the session is left alone.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:5003",
        http_client: Optional[httpx.AsyncClient] = None,
        on_session_expired: Optional[Callable[[], None]] = None,
        timeout: float = 30.0,
    ):
        self._client = http_client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self.on_session_expired = on_session_expired
        self._refresh_task: Optional[asyncio.Task] = None
        # Bumped after every successful refresh
        self._session_generation = 0

    async def request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send a request, renewing the session once if it has expired.

        Returns:
            The final response (which may still be a non-401 error)

        Raises:
            SessionExpiredError: If the server rejected the session
            ApiError: If the refresh endpoint answered with another error
            httpx.HTTPError: If the refresh request could not be sent
        """
        generation = self._session_generation
        response = await self._client.request(method, path, **kwargs)

        if response.status_code != 401 or path in NO_REFRESH_PATHS:
            return response

        # Another request already renewed the session after this one was sent
        if generation == self._session_generation:
            await self._refresh_once()

        response = await self._client.request(method, path, **kwargs)
        if response.status_code == 401:
            logger.warning("session_rejected_after_refresh", path=path)
            self._expire_session()
            raise SessionExpiredError()
        return response

    async def _refresh_once(self) -> None:
        if self._refresh_task is None or self._refresh_task.done():
            self._refresh_task = asyncio.create_task(self._refresh())
        await asyncio.shield(self._refresh_task)

    async def _refresh(self) -> None:
        # Only a 401 ends the session; 5xx and transport errors propagate as is
        try:
            response = await self._client.post(REFRESH_PATH)
        except httpx.HTTPError as e:
            logger.warning("session_refresh_failed", error=str(e))
            raise

        if response.status_code == 401:
            logger.info("session_refresh_rejected", status_code=response.status_code)
            self._expire_session()
            raise SessionExpiredError(ApiError.from_response(response).message)

        if response.status_code != 200:
            logger.warning("session_refresh_failed", status_code=response.status_code)
            raise ApiError.from_response(response)

        self._session_generation += 1
        logger.debug("session_refreshed", generation=self._session_generation)

    def _expire_session(self) -> None:
        if self.on_session_expired is not None:
            self.on_session_expired()

    async def request_data(self, method: str, path: str, **kwargs: Any) -> Any:
        """Send a request and unwrap the ``data`` of a successful envelope.

        Raises:
            ApiError: For any non-2xx response or ``success: false`` body
        """
        response = await self.request(method, path, **kwargs)
        if response.is_error:
            raise ApiError.from_response(response)

        body = response.json()
        if not body.get("success"):
            raise ApiError(response.status_code, body.get("message") or "Request failed")
        return body.get("data")

    async def get(self, path: str, params: Optional[dict] = None) -> httpx.Response:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, json: Optional[dict] = None) -> httpx.Response:
        return await self.request("POST", path, json=json)

    async def put(self, path: str, json: Optional[dict] = None) -> httpx.Response:
        return await self.request("PUT", path, json=json)

    async def delete(self, path: str) -> httpx.Response:
        return await self.request("DELETE", path)

    async def aclose(self) -> None:
        await self._client.aclose()
