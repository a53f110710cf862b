"""API package exports."""

from inkwell.api.middleware import CorrelationIdMiddleware
from inkwell.api.routes import router

__all__ = ["router", "CorrelationIdMiddleware"]
