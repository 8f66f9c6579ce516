"""API routes."""

from postfinance_gateway.api.routes.health import router as health_router
from postfinance_gateway.api.routes.webhooks import router as webhooks_router

__all__ = ["health_router", "webhooks_router"]
