"""FastAPI dependencies for dependency injection."""

from typing import Annotated

from fastapi import Depends, Request

from postfinance_gateway.config import GatewayConfig, get_config


def get_gateway_config(request: Request) -> GatewayConfig:
    """Config passed to create_app(), else the process-wide one."""
    config = getattr(request.app.state, "gateway_config", None)
    return config or get_config()


# Type aliases for cleaner dependency injection
GatewayConfigDep = Annotated[GatewayConfig, Depends(get_gateway_config)]
