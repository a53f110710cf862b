"""Liveness endpoint."""

from datetime import datetime, timezone
from typing import Literal

from fastapi import APIRouter
from pydantic import BaseModel

from inkwell import __version__, database

router = APIRouter(tags=["Health"])


class HealthResponse(BaseModel):
    status: Literal["healthy"] = "healthy"
    version: str
    timestamp: datetime
    database: Literal["healthy", "unhealthy"]


@router.get("/health")
async def health() -> HealthResponse:
    """Report liveness and whether Postgres answers.

    Always 200 while the process is up; the database field tells an
    orchestrator whether the user directory is reachable.
    """
    db_healthy = await database.health_check()
    return HealthResponse(
        version=__version__,
        timestamp=datetime.now(timezone.utc),
        database="healthy" if db_healthy else "unhealthy",
    )
