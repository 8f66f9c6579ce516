"""Entry point for running the webhook application with uvicorn."""

import logging

import uvicorn

from postfinance_gateway.config import get_server_settings


def main() -> None:
    """Run the application."""
    settings = get_server_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "postfinance_gateway.api.app:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
