"""FastAPI application factory and ASGI entry point."""

from contextlib import asynccontextmanager

from dotenv import load_dotenv

# .env must be loaded before Settings is first built
load_dotenv()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from inkwell import __version__, database
from inkwell.api.admin import router as admin_router
from inkwell.api.auth import router as auth_router
from inkwell.api.blogs import router as blogs_router
from inkwell.api.errors import register_error_handlers
from inkwell.api.middleware import CorrelationIdMiddleware
from inkwell.api.routes import router as health_router
from inkwell.config import get_settings
from inkwell.services.logging_service import configure_logging, get_logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the database pool and apply migrations for the app's lifetime.

    In production a database failure aborts startup; elsewhere the app
    starts anyway and /health reports the database as unhealthy.
    """
    settings = get_settings()
    configure_logging(settings.log_level)
    logger = get_logger("main")

    try:
        await database.init_database()
        await database.run_migrations()
        logger.info("database_initialized")
    except Exception as e:
        if settings.is_production:
            logger.error("database_initialization_failed", error=str(e))
            raise
        logger.warning(
            "database_initialization_failed",
            error=str(e),
            note="Continuing without database - user directory will be unavailable",
        )

    logger.info(
        "application_started",
        environment=settings.environment,
        client_origin=settings.client_origin,
    )

    yield

    await database.close_database()
    logger.info("application_shutdown")


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title="Inkwell - Blog API",
        description="Google sign-in, session tokens and role-gated blog management",
        version=__version__,
        lifespan=lifespan,
    )

    register_error_handlers(app)

    # Credentialed CORS needs an explicit origin, never "*"
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.client_origin],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Correlation-Id"],
        expose_headers=["X-Correlation-Id"],
    )
    app.add_middleware(CorrelationIdMiddleware)

    app.include_router(auth_router)
    app.include_router(admin_router)
    app.include_router(blogs_router)
    app.include_router(health_router)

    return app


app = create_app()
