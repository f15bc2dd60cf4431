"""
Health Check Endpoints

Provides health and readiness checks for orchestration systems.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Request, Response
from pydantic import BaseModel

from gold_analytics.config import get_settings

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    version: str
    environment: str
    timestamp: datetime
    checks: Dict[str, Any]


@router.get("/health", response_model=HealthResponse)
def health_check(request: Request) -> HealthResponse:
    """
    Health check endpoint.

    Reports whether a dataset store is loaded and which tables it holds.
    """
    settings = get_settings()
    engine = getattr(request.app.state, "engine", None)

    if engine is None:
        status = "unhealthy"
        checks = {"store": {"status": "unavailable"}}
    else:
        tables = engine.store.tables()
        status = "healthy" if tables else "degraded"
        checks = {"store": {"status": status, "tables": tables}}

    return HealthResponse(
        status=status,
        version=settings.version,
        environment=settings.app_env,
        timestamp=datetime.now(timezone.utc),
        checks=checks,
    )


@router.get("/health/live")
def liveness_check() -> Dict[str, str]:
    """Liveness probe: 200 while the process runs"""
    return {"status": "alive"}


@router.get("/health/ready")
def readiness_check(request: Request, response: Response) -> Dict[str, str]:
    """Readiness probe: 200 once the dataset store is loaded"""
    if getattr(request.app.state, "engine", None) is None:
        response.status_code = 503
        return {"status": "not_ready", "reason": "store_unavailable"}
    return {"status": "ready"}
