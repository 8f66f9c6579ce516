"""httpx transport for the gateway DirectLink endpoints."""

from __future__ import annotations

import logging

import httpx

from postfinance_gateway.config import GatewayConfig
from postfinance_gateway.errors import PaymentSystemError
from postfinance_gateway.response import parse_attributes
from postfinance_gateway.transport.base import (
    FORM_CONTENT_TYPE,
    TransportRequest,
    TransportResponse,
)

logger = logging.getLogger(__name__)


class HttpTransport:
    """Posts urlencoded payloads to the configured gateway host."""

    def __init__(self, config: GatewayConfig, client: httpx.Client | None = None):
        """Initialize transport.

        Args:
            config: Gateway configuration (host, paths, timeout).
            client: Optional preconfigured httpx client (tests pass one
                built on httpx.MockTransport).
        """
        self.config = config
        self._owns_client = client is None
        self.client = client or httpx.Client(timeout=config.timeout_seconds)

    def execute(self, request: TransportRequest) -> TransportResponse:
        if not self.config.enabled:
            raise PaymentSystemError(
                "Gateway access is disabled",
                request.operation_category.value,
            )

        url = self.config.url_for(request.operation_category)
        headers = {"Content-Type": FORM_CONTENT_TYPE, **request.headers}

        try:
            response = self.client.request(
                request.method,
                url,
                content=request.body,
                headers=headers,
            )
        except httpx.HTTPError as exc:
            logger.error("Gateway request to %s failed: %s", url, exc)
            raise PaymentSystemError("Error making gateway request", str(exc)) from exc

        if not response.is_success:
            logger.error("Gateway answered %s for %s", response.status_code, url)
            raise PaymentSystemError(
                "Unexpected gateway HTTP status",
                {"status": response.status_code, "url": url},
            )

        logger.debug(
            "Gateway %s request answered %s", request.operation_category.value, response.status_code
        )
        return TransportResponse(
            status=response.status_code,
            headers=dict(response.headers),
            body=parse_attributes(response.text),
        )

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def __enter__(self) -> HttpTransport:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
