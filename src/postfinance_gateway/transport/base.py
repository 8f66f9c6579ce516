"""Base protocol and types for gateway transports.

All transports must implement the TransportClient protocol.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol
from urllib.parse import urlencode

from postfinance_gateway.operations import OperationCategory

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


@dataclass(frozen=True)
class TransportRequest:
    """A signed payload addressed to a gateway endpoint category."""

    operation_category: OperationCategory
    method: str
    payload: Mapping[str, Any]
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def body(self) -> str:
        """application/x-www-form-urlencoded encoding of the payload."""
        return urlencode({key: str(value) for key, value in self.payload.items()})


@dataclass(frozen=True)
class TransportResponse:
    """Gateway answer with the flat attribute map as body."""

    status: int
    headers: dict[str, str] = field(default_factory=dict)
    body: dict[str, str] = field(default_factory=dict)

    def get(self, name: str, default: str | None = None) -> str | None:
        """Case-insensitive body lookup (the gateway answers orderID, PAYID...)."""
        if name in self.body:
            return self.body[name]
        wanted = name.upper()
        for key, value in self.body.items():
            if key.upper() == wanted:
                return value
        return default


class TransportClient(Protocol):
    """Protocol for gateway transports.

    Implementations deliver a request to the gateway and return the parsed
    response. They raise PaymentSystemError when the gateway could not be
    reached or answered with a non-2xx status; business declines are left
    to the caller.
    """

    def execute(self, request: TransportRequest) -> TransportResponse:
        """Deliver a request.

        Args:
            request: Signed payload and its endpoint category.

        Returns:
            TransportResponse with the parsed attribute map.
        """
        ...
