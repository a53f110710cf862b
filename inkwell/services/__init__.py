"""Services package exports."""

from inkwell.services.auth_service import AuthService
from inkwell.services.logging_service import configure_logging, get_logger

__all__ = [
    "AuthService",
    "configure_logging",
    "get_logger",
]
