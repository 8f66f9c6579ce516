"""Gateway transports."""

from postfinance_gateway.transport.base import (
    TransportClient,
    TransportRequest,
    TransportResponse,
)
from postfinance_gateway.transport.http import HttpTransport
from postfinance_gateway.transport.stub import StubGatewayTransport

__all__ = [
    "TransportClient",
    "TransportRequest",
    "TransportResponse",
    "HttpTransport",
    "StubGatewayTransport",
]
