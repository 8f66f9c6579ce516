"""Error taxonomy for gateway operations.

Two categories exist:

- system: raised before, or independently of, any network round trip
  (bad configuration, invalid input, failed preconditions, transport
  failures, identity mismatches). Nothing is stored on the card or
  transaction when one is raised.
- gateway: raised after a round trip that reached the gateway, when the
  gateway declined or flagged the business operation (non-zero NCERROR).
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Error categories."""

    SYSTEM = "system"
    GATEWAY = "gateway"


class PostFinanceError(Exception):
    """Base exception for all gateway integration errors."""

    def __init__(
        self,
        category: ErrorCategory,
        message: str,
        details: Any = None,
    ):
        self.category = category
        self.message = message
        self.details = details
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to an API error response body."""
        return {
            "category": self.category.value,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"{self.category.value}: {self.message}: {self.details!r}"


class PaymentSystemError(PostFinanceError):
    """Configuration, input or precondition failure.

    Examples:
    - Missing card number or CSC
    - Amount above the configured ceiling
    - Maintenance operation without a PAYID
    - Currency not in the allowed set
    """

    def __init__(self, message: str, details: Any = None):
        super().__init__(ErrorCategory.SYSTEM, message, details)


class IdentityMismatchError(PaymentSystemError):
    """The gateway echoed a different alias than the one requested."""

    def __init__(self, requested: str | None, returned: str | None):
        self.requested = requested
        self.returned = returned
        super().__init__(
            "Loaded alias does not equal the alias that was requested",
            {"requested": requested, "returned": returned},
        )


class PaymentGatewayError(PostFinanceError):
    """The gateway processed the request but declined the operation.

    Attributes:
        code: NCERROR value returned by the gateway.
        status: Short status label from the local message table.
        description: Human readable description.
        response: Parsed response fields, when available.
    """

    def __init__(
        self,
        code: int,
        status: str,
        description: str,
        context: str | None = None,
        response: dict[str, str] | None = None,
    ):
        self.code = code
        self.status = status
        self.description = description
        self.context = context
        self.response = response or {}
        message = description if not context else f"{description}: {context}"
        super().__init__(
            ErrorCategory.GATEWAY,
            message,
            {"code": code, "status": status},
        )

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["code"] = self.code
        data["status"] = self.status
        return data
