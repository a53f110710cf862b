"""Exception handlers mapping errors onto the ``{success, message}`` envelope."""

from typing import Optional
from uuid import uuid4

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from inkwell.services.errors import AuthError

logger = structlog.get_logger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal server error"


def error_response(
    status_code: int,
    message: str,
    correlation_id: Optional[str] = None,
    headers: Optional[dict] = None,
) -> JSONResponse:
    response_headers = dict(headers or {})
    if correlation_id:
        response_headers["X-Correlation-Id"] = correlation_id
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message},
        headers=response_headers,
    )


def _correlation_id(request: Request) -> str:
    return getattr(request.state, "correlation_id", None) or str(uuid4())


async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Render an AuthError without revealing which check failed.

    401 responses always use the class's shared public message; the precise
    code and detail only go to the log.
    """
    correlation_id = _correlation_id(request)

    if exc.status_code >= 500:
        logger.error(
            "auth_internal_error",
            code=exc.code,
            detail=exc.detail,
            path=request.url.path,
        )
    else:
        logger.info(
            "auth_request_rejected",
            code=exc.code,
            status_code=exc.status_code,
            detail=exc.detail,
            path=request.url.path,
        )

    if exc.status_code == status.HTTP_401_UNAUTHORIZED or exc.status_code >= 500:
        message = exc.public_message
    else:
        message = exc.detail

    headers = None
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}

    return error_response(exc.status_code, message, correlation_id, headers)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle Pydantic validation errors as 400 with the first field error."""
    correlation_id = _correlation_id(request)

    errors = exc.errors()
    if errors:
        first_error = errors[0]
        field = ".".join(str(loc) for loc in first_error.get("loc", ["unknown"]))
        message = f"Field '{field}': {first_error.get('msg', 'Validation failed')}"
    else:
        message = "Request validation failed"

    logger.warning("validation_error", detail=message, path=request.url.path)
    return error_response(status.HTTP_400_BAD_REQUEST, message, correlation_id)


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    return error_response(
        exc.status_code,
        str(exc.detail),
        _correlation_id(request),
        getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log the full error server side; return a generic 500 to the client."""
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        error_type=type(exc).__name__,
        exc_info=exc,
    )
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        INTERNAL_ERROR_MESSAGE,
        _correlation_id(request),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AuthError, auth_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
