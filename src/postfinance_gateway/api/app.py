"""FastAPI application factory."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from postfinance_gateway.api.routes import health_router, webhooks_router
from postfinance_gateway.config import GatewayConfig
from postfinance_gateway.errors import ErrorCategory, PostFinanceError

logger = logging.getLogger(__name__)


def create_app(config: GatewayConfig | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        config: Gateway configuration; the process-wide one is used when
            omitted.
    """
    app = FastAPI(
        title="PostFinance Gateway",
        description="PostFinance DirectLink callbacks",
        version="0.1.0",
    )
    app.state.gateway_config = config

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(PostFinanceError)
    async def postfinance_exception_handler(
        request: Request, exc: PostFinanceError
    ) -> JSONResponse:
        """Map system errors to 400 and gateway declines to 402."""
        if exc.category is ErrorCategory.GATEWAY:
            status_code = status.HTTP_402_PAYMENT_REQUIRED
        else:
            status_code = status.HTTP_400_BAD_REQUEST
        return JSONResponse(status_code=status_code, content=exc.to_dict())

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s", request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(webhooks_router)

    return app


# Default app instance for uvicorn
app = create_app()
