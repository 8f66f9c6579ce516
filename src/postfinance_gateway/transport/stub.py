"""In-memory gateway stub for local development and testing.

Simulates the DirectLink endpoints closely enough to drive cards and
transactions through their lifecycle without network access:

- order: RES authorizes (STATUS 5), SAL sells or captures (STATUS 9),
  ALIAS + CARDNO registers an alias
- maintenance: SAS cancels an authorization, RFD/RFS refund a payment
- query: answers with stored alias data or order status

Replace with HttpTransport for production.
"""

from __future__ import annotations

import itertools
from decimal import Decimal
from typing import Any

from postfinance_gateway.checks import get_issuer, hidden_number, mod10check
from postfinance_gateway.config import GatewayConfig
from postfinance_gateway.messages import describe_error
from postfinance_gateway.operations import OperationCategory, WireOperation
from postfinance_gateway.signing import verify
from postfinance_gateway.transport.base import TransportRequest, TransportResponse

# STATUS values used by the stub
AUTHORIZED = "5"
CANCELLED = "6"
REFUNDED = "8"
PAID = "9"

INVALID_DATA = 50001111
UNKNOWN_ORDER = 50001130
ALREADY_PROCESSED = 50001113
NOT_AUTHORIZED = 50001127
INVALID_CARD = 30141001


def _major_units(minor: Any) -> str:
    amount = Decimal(str(minor)) / 100
    return format(amount.normalize(), "f")


class StubGatewayTransport:
    """Stub gateway transport.

    Every executed request is kept in ``requests`` so tests can assert
    what was (or was not) sent.
    """

    def __init__(self, config: GatewayConfig, first_pay_id: int = 3014728):
        """Initialize stub gateway.

        Args:
            config: Configuration whose secret verifies incoming SHASIGN.
            first_pay_id: First PAYID handed out.
        """
        self.config = config
        self.requests: list[TransportRequest] = []
        # In-memory tracking for stub
        self._orders: dict[str, dict[str, Any]] = {}
        self._aliases: dict[str, dict[str, str]] = {}
        self._pay_ids = itertools.count(first_pay_id)
        self._pending_errors: list[tuple[OperationCategory | None, int, str]] = []
        self._alias_echo: dict[str, str] = {}

    @property
    def last_request(self) -> TransportRequest | None:
        return self.requests[-1] if self.requests else None

    def execute(self, request: TransportRequest) -> TransportResponse:
        self.requests.append(request)
        payload = {key.upper(): str(value) for key, value in request.payload.items()}

        if not verify(
            payload,
            self.config.sha_secret,
            append_secret=self.config.sha_with_secret,
            algorithm=self.config.sha_algorithm,
            encoding=self.config.sha_encoding,
        ):
            return self._error(INVALID_DATA, payload, "unknown order/1/s/")

        pending = self._take_error(request.operation_category)
        if pending is not None:
            code, description = pending
            return self._error(code, payload, description)

        handlers = {
            OperationCategory.ORDER: self._order,
            OperationCategory.MAINTENANCE: self._maintenance,
            OperationCategory.QUERY: self._query,
        }
        handler = handlers.get(request.operation_category)
        if handler is None:
            return self._error(INVALID_DATA, payload, "operation not supported by DirectLink")
        return handler(payload)

    # -------------------------------------------------------------------------
    # Endpoints
    # -------------------------------------------------------------------------

    def _order(self, payload: dict[str, str]) -> TransportResponse:
        operation = payload.get("OPERATION", WireOperation.RES.value)
        pay_id = payload.get("PAYID")

        if pay_id:
            return self._capture(pay_id, payload)

        alias = payload.get("ALIAS")
        number = payload.get("CARDNO")
        if number:
            if mod10check(number) is None:
                return self._error(INVALID_CARD, payload)
            if alias:
                self._aliases[alias] = {
                    "CARDNO": hidden_number(number),
                    "BRAND": get_issuer(number),
                    "ED": payload.get("ED", ""),
                    "CN": payload.get("CN", ""),
                }
        elif alias:
            if alias not in self._aliases:
                return self._error(INVALID_DATA, payload, "Unknown alias")
        elif not payload.get("PM"):
            return self._error(INVALID_DATA, payload, "no payment data")

        pay_id = str(next(self._pay_ids))
        order = {
            "orderID": payload.get("ORDERID", ""),
            "PAYID": pay_id,
            "STATUS": PAID if operation == WireOperation.SAL.value else AUTHORIZED,
            "AMOUNT": int(payload.get("AMOUNT", "0")),
            "currency": payload.get("CURRENCY", self.config.currency),
            "ALIAS": alias or "",
        }
        self._orders[pay_id] = order
        return self._ok(order, ACCEPTANCE="test123", BRAND=self._brand(payload))

    def _capture(self, pay_id: str, payload: dict[str, str]) -> TransportResponse:
        order = self._orders.get(pay_id)
        if order is None:
            return self._error(UNKNOWN_ORDER, payload)
        if order["STATUS"] != AUTHORIZED:
            return self._error(ALREADY_PROCESSED, payload)

        order["STATUS"] = (
            PAID if payload.get("OPERATION") == WireOperation.SAL.value else AUTHORIZED
        )
        order["AMOUNT"] = int(payload.get("AMOUNT", order["AMOUNT"]))
        return self._ok(order, ACCEPTANCE="test123")

    def _maintenance(self, payload: dict[str, str]) -> TransportResponse:
        order = self._orders.get(payload.get("PAYID", ""))
        if order is None:
            return self._error(UNKNOWN_ORDER, payload)

        operation = payload.get("OPERATION")
        amount = int(payload.get("AMOUNT", order["AMOUNT"]))

        if operation in (WireOperation.SAS.value, WireOperation.DES.value, WireOperation.DEL.value):
            if order["STATUS"] != AUTHORIZED:
                return self._error(NOT_AUTHORIZED, payload)
            order["STATUS"] = CANCELLED
        elif operation in (WireOperation.RFD.value, WireOperation.RFS.value):
            if order["STATUS"] != PAID:
                return self._error(NOT_AUTHORIZED, payload)
            if amount > order["AMOUNT"]:
                return self._error(INVALID_DATA, payload, "refund exceeds payment")
            order["STATUS"] = REFUNDED
        elif operation == WireOperation.REN.value:
            if order["STATUS"] != AUTHORIZED:
                return self._error(NOT_AUTHORIZED, payload)
        else:
            return self._error(INVALID_DATA, payload, f"unknown operation {operation}")

        return self._ok(order, ACCEPTANCE="test123")

    def _query(self, payload: dict[str, str]) -> TransportResponse:
        alias = payload.get("ALIAS")
        if alias:
            stored = self._aliases.get(alias)
            if stored is None:
                return self._error(INVALID_DATA, payload, "Unknown alias")
            body = {
                "NCERROR": "0",
                "ALIAS": self._alias_echo.get(alias, alias),
                **stored,
            }
            return TransportResponse(status=200, body={k: v for k, v in body.items() if v})

        order = self._orders.get(payload.get("PAYID", ""))
        if order is None:
            return self._error(UNKNOWN_ORDER, payload)
        return self._ok(order)

    # -------------------------------------------------------------------------
    # Response helpers
    # -------------------------------------------------------------------------

    def _brand(self, payload: dict[str, str]) -> str:
        if payload.get("CARDNO"):
            return get_issuer(payload["CARDNO"])
        alias = payload.get("ALIAS")
        if alias and alias in self._aliases:
            return self._aliases[alias]["BRAND"]
        return payload.get("PM", "")

    def _ok(self, order: dict[str, Any], **extra: str) -> TransportResponse:
        body = {
            "orderID": order["orderID"],
            "PAYID": order["PAYID"],
            "NCERROR": "0",
            "STATUS": order["STATUS"],
            "amount": _major_units(order["AMOUNT"]),
            "currency": order["currency"],
            "ALIAS": order.get("ALIAS", ""),
            **extra,
        }
        return TransportResponse(status=200, body={k: v for k, v in body.items() if v})

    def _error(
        self,
        code: int,
        payload: dict[str, str],
        description: str = "",
    ) -> TransportResponse:
        body = {
            "orderID": payload.get("ORDERID", ""),
            "PAYID": "0",
            "NCERROR": str(code),
            "NCERRORPLUS": description or describe_error(code).description,
            "STATUS": "0",
        }
        return TransportResponse(status=200, body={k: v for k, v in body.items() if v})

    def _take_error(self, category: OperationCategory) -> tuple[int, str] | None:
        for index, (wanted, code, description) in enumerate(self._pending_errors):
            if wanted is None or wanted == category:
                del self._pending_errors[index]
                return code, description
        return None

    # -------------------------------------------------------------------------
    # Simulation hooks (for testing)
    # -------------------------------------------------------------------------

    def simulate_error(
        self,
        code: int,
        category: OperationCategory | None = None,
        description: str = "",
    ) -> None:
        """Answer the next matching request with NCERROR ``code``.

        Args:
            code: NCERROR to return.
            category: Only apply to this endpoint category (any if None).
            description: NCERRORPLUS text (defaults to the message table).
        """
        self._pending_errors.append((category, code, description))

    def simulate_alias_echo(self, alias: str, returned: str) -> None:
        """Make queries for ``alias`` echo ``returned`` instead."""
        self._alias_echo[alias] = returned

    def order_status(self, pay_id: str) -> str | None:
        """Current STATUS of an order, None if unknown."""
        order = self._orders.get(str(pay_id))
        return order["STATUS"] if order else None
