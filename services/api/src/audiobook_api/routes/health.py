"""Liveness, readiness and health probes."""

from datetime import datetime, timezone
from typing import Literal

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from audiobook_shared.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HealthStatus(BaseModel):
    status: Literal["healthy", "degraded"] = Field(
        description="degraded when the database or the usage log consumer is down"
    )
    timestamp: datetime = Field(default_factory=_utcnow)
    version: str
    checks: dict[str, bool] = Field(description="Component name to status")


class ReadinessStatus(BaseModel):
    ready: bool = Field(description="Whether this instance should receive traffic")
    timestamp: datetime = Field(default_factory=_utcnow)
    checks: dict[str, bool]


async def _database_checks(request: Request) -> dict[str, bool]:
    """Startup initialization flag plus a live round-trip when it succeeded."""
    checks = {"database": bool(request.app.state.db_initialized)}
    if checks["database"]:
        try:
            await request.app.state.db.ping()
        except Exception:
            logger.warning("Database health probe failed", exc_info=True)
            checks["database_connection"] = False
        else:
            checks["database_connection"] = True
    return checks


@router.get("/health", response_model=HealthStatus, summary="Health Check")
async def health_check(request: Request) -> HealthStatus:
    checks = {"api": True, **await _database_checks(request)}
    checks["usage_log_consumer"] = request.app.state.usage_log_queue.running

    return HealthStatus(
        status="healthy" if all(checks.values()) else "degraded",
        version=request.app.version,
        checks=checks,
    )


@router.get("/health/ready", response_model=ReadinessStatus, summary="Readiness Check")
async def readiness_check(request: Request) -> ReadinessStatus:
    """Ready once the schema exists and the database answers."""
    database = await _database_checks(request)
    checks = {"database_init": database["database"]}
    if "database_connection" in database:
        checks["database_connection"] = database["database_connection"]
    return ReadinessStatus(ready=all(checks.values()), checks=checks)


@router.get("/health/live", summary="Liveness Check")
async def liveness_check() -> dict[str, str]:
    return {"status": "ok"}
