"""Transaction lifecycle.

Valid flows:
    authorize -> (update) capture
    authorize -> cancel
    purchase  -> refund
    cancel / refund of a known PAYID

A Transaction never talks to the gateway itself; it merges its data into
the card payload and lets Card.publish submit it.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from postfinance_gateway.amounts import validate_amount
from postfinance_gateway.config import GatewayConfig, get_config
from postfinance_gateway.errors import PaymentSystemError
from postfinance_gateway.operations import (
    TransactionOperation,
    WireOperation,
    is_maintenance,
    parse_operation,
    wire_operation,
)

if TYPE_CHECKING:
    from postfinance_gateway.card import Card
    from postfinance_gateway.transport import TransportResponse

logger = logging.getLogger(__name__)

DATA_FIELDS = ("amount", "currency", "email", "group_id")


class Transaction:
    """One gateway operation on an order.

    Args:
        options: Mapping with ``operation``, ``order_id``, ``amount``,
            ``pay_id``, ``currency``, ``email``, ``group_id``; or the JSON
            string produced by to_json().
        config: Gateway configuration (defaults to the process-wide one).

    Raises:
        PaymentSystemError: Invalid or incomplete options. Nothing is stored
            before validation passes.
    """

    def __init__(
        self,
        options: Mapping[str, Any] | str | None,
        *,
        config: GatewayConfig | None = None,
    ):
        options = self._decode(options)
        self.config = config or get_config()

        operation = parse_operation(options.get("operation"))
        maintenance = is_maintenance(operation)

        if maintenance and not options.get("pay_id"):
            raise PaymentSystemError("Missing payId for maintenance operation", operation.value)
        if not maintenance and not options.get("amount"):
            raise PaymentSystemError("Missing amount value", operation.value)
        if not maintenance and not options.get("order_id"):
            raise PaymentSystemError("Missing order identifier", operation.value)

        amount: Decimal | None = None
        if options.get("amount"):
            amount = validate_amount(
                options["amount"],
                self.config.allow_max_amount,
                options.get("currency") or self.config.currency,
            )

        self.operation = operation
        self.order_id: str | None = options.get("order_id")
        self.pay_id: str | None = options.get("pay_id")
        self.status: str | None = None
        self.acceptance: str | None = None
        self.data: dict[str, Any] = {}
        if amount is not None:
            self.data["amount"] = amount
        for name in DATA_FIELDS[1:]:
            if options.get(name):
                self.data[name] = options[name]

    @staticmethod
    def _decode(options: Mapping[str, Any] | str | None) -> Mapping[str, Any]:
        if isinstance(options, str):
            try:
                options = json.loads(options)
            except ValueError as exc:
                raise PaymentSystemError("Missing options object", str(exc)) from exc
        if not options or not isinstance(options, Mapping):
            raise PaymentSystemError("Missing options object", options)
        return options

    @property
    def amount(self) -> Decimal | None:
        return self.data.get("amount")

    @property
    def currency(self) -> str | None:
        return self.data.get("currency")

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Operation, identifiers and the sorted data fields."""
        out: dict[str, Any] = {
            "operation": self.operation.value,
            "pay_id": self.pay_id,
            "order_id": self.order_id,
        }
        for key in sorted(self.data):
            value = self.data[key]
            out[key] = str(value) if isinstance(value, Decimal) else value
        return out

    def to_json(self) -> str:
        """Serialize; Transaction(to_json()) yields an equal transaction."""
        return json.dumps(self.to_dict())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Transaction):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return (
            f"Transaction(operation={self.operation.value!r}, order_id={self.order_id!r}, "
            f"pay_id={self.pay_id!r}, amount={self.amount!r})"
        )

    # -------------------------------------------------------------------------
    # State transitions
    # -------------------------------------------------------------------------

    def update(self, options: Mapping[str, Any]) -> None:
        """Turn an authorization into a capture (no network call)."""
        options = options or {}
        if self.operation is not TransactionOperation.AUTHORIZE:
            raise PaymentSystemError(
                "Only authorization operation can be updated", self.operation.value
            )
        if options.get("operation") != TransactionOperation.CAPTURE.value:
            raise PaymentSystemError(
                "Only a capture operation can be applied with an authorization",
                options.get("operation"),
            )

        amount = self.amount
        if options.get("amount"):
            amount = validate_amount(
                options["amount"],
                self.config.allow_max_amount,
                self.currency or self.config.currency,
            )

        self.operation = TransactionOperation.CAPTURE
        self.data["amount"] = amount
        logger.debug("Transaction %s updated to capture", self.order_id)

    def _publish_options(self, wire: WireOperation) -> dict[str, Any]:
        # Empty strings clear the PAYID/AMOUNT a card kept from earlier orders
        return {
            "operation": wire.value,
            "order_id": self.order_id,
            "pay_id": self.pay_id or "",
            "amount": self.amount if self.amount is not None else "",
            "currency": self.currency,
            "email": self.data.get("email"),
            "group_id": self.data.get("group_id"),
        }

    def _submit(self, card: Card, wire: WireOperation) -> TransportResponse:
        response = card.publish(self._publish_options(wire))

        self.pay_id = response.get("PAYID") or self.pay_id
        self.order_id = response.get("ORDERID") or self.order_id
        self.acceptance = response.get("ACCEPTANCE") or self.acceptance
        self.status = response.get("STATUS") or self.status

        logger.info(
            "Transaction %s: %s done, payid=%s status=%s",
            self.order_id,
            wire.value,
            self.pay_id,
            self.status,
        )
        return response

    def process(self, card: Card) -> TransportResponse:
        """Submit the transaction's operation with the card.

        Raises:
            PaymentSystemError: currency not allowed (before any request).
            PaymentGatewayError: the gateway declined the operation.
        """
        currency = self.currency
        if currency and not self.config.is_currency_allowed(currency):
            raise PaymentSystemError("Currency not allowed", currency)

        return self._submit(card, wire_operation(self.operation))

    def _require_submitted(self) -> None:
        if not self.pay_id or not self.order_id:
            raise PaymentSystemError("Transaction is not valid", self.to_dict())

    def cancel(self, card: Card) -> TransportResponse:
        """Cancel the authorization identified by pay_id."""
        self._require_submitted()
        return self._submit(card, wire_operation(TransactionOperation.CANCEL))

    def refund(self, card: Card) -> TransportResponse:
        """Refund the payment identified by pay_id (partial with an amount)."""
        self._require_submitted()
        return self._submit(card, wire_operation(TransactionOperation.REFUND))
