"""Health check endpoints."""

from datetime import datetime, timezone

from fastapi import APIRouter, status

from postfinance_gateway.api.dependencies import GatewayConfigDep
from postfinance_gateway.api.schemas import HealthResponse

router = APIRouter(tags=["health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
)
async def health_check(config: GatewayConfigDep) -> HealthResponse:
    """Check API health and whether gateway access is enabled."""
    return HealthResponse(
        status="healthy" if config.enabled else "degraded",
        timestamp=datetime.now(timezone.utc),
        gateway="enabled" if config.enabled else "disabled",
        environment=config.environment,
    )


@router.get("/ready", status_code=status.HTTP_200_OK)
async def readiness_check() -> dict[str, str]:
    """Readiness check for container orchestration."""
    return {"status": "ready"}


@router.get("/live", status_code=status.HTTP_200_OK)
async def liveness_check() -> dict[str, str]:
    """Liveness check for container orchestration."""
    return {"status": "alive"}
