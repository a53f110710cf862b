"""structlog setup: JSON lines, correlation ids, secret redaction."""

import logging
import sys
from typing import Any, Dict, Optional

import structlog

SERVICE_NAME = "inkwell-api"
REDACTED = "REDACTED"

SENSITIVE_KEY_FRAGMENTS = (
    "token",
    "secret",
    "password",
    "authorization",
    "cookie",
    "credential",
    "fingerprint",
)


def _is_sensitive(key: str) -> bool:
    key_lower = key.lower()
    return any(fragment in key_lower for fragment in SENSITIVE_KEY_FRAGMENTS)


def _redact_value(key: str, value: Any) -> Any:
    if not _is_sensitive(key):
        if isinstance(value, dict):
            return {k: _redact_value(k, v) for k, v in value.items()}
        return value
    # Flags and counts such as token_expired / token_count are kept
    if isinstance(value, (bool, int)) or value is None:
        return value
    return REDACTED


def redact_sensitive(
    logger: Any, method_name: str, event_dict: Dict[str, Any]
) -> Dict[str, Any]:
    """Mask raw tokens, ID-token credentials and refresh fingerprints.

    Keys are matched on SENSITIVE_KEY_FRAGMENTS, case-insensitively, and
    nested dicts (headers, cookie jars) are walked as well.
    """
    for key in list(event_dict.keys()):
        event_dict[key] = _redact_value(key, event_dict[key])
    return event_dict


def add_service_name(
    logger: Any, method_name: str, event_dict: Dict[str, Any]
) -> Dict[str, Any]:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def configure_logging(log_level: str = "INFO") -> None:
    """Configure structlog for JSON output with correlation ID support.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    # uvicorn and asyncpg log through the stdlib
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            add_service_name,
            redact_sensitive,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger, bound to ``logger_name`` when given."""
    logger = structlog.get_logger()
    if name:
        logger = logger.bind(logger_name=name)
    return logger
