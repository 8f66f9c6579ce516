"""Payment method: raw card, hosted payment method or stored alias.

A Card builds the signed wire payload for every gateway operation and
keeps track of which fields changed since the last successful round trip.

Pattern:
    card = Card({"number": "4111 1111 1111 1111", "csc": "123", "expiry": "12/29"})
    card.create("customer-42")        # registers the alias
    card.city = "Geneva"
    card.update()                     # re-publishes only when something changed
"""

from __future__ import annotations

import copy
import datetime
import json
import logging
import re
import time
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any
from urllib.parse import urlencode

from postfinance_gateway import checks
from postfinance_gateway.amounts import to_minor_units, validate_amount
from postfinance_gateway.config import GatewayConfig, get_config
from postfinance_gateway.errors import IdentityMismatchError, PaymentSystemError
from postfinance_gateway.fields import (
    CARD_FIELDS,
    OPTION_FIELDS,
    TRACKED_FIELDS,
    build_fields,
    missing_required,
)
from postfinance_gateway.operations import OperationCategory, category_for
from postfinance_gateway.response import raise_for_error
from postfinance_gateway.signing import sign_with_config
from postfinance_gateway.transport import (
    HttpTransport,
    TransportClient,
    TransportRequest,
    TransportResponse,
)

logger = logging.getLogger(__name__)

# AMOUNT sent when the card carries no amount (alias registration check)
ALIAS_VERIFICATION_AMOUNT = 100

# Fields never exposed to the hosted payment page
ECOMMERCE_EXCLUDED_FIELDS = frozenset({"USERID", "PSWD", "CARDNO", "CVC"})

REDACTED_NUMBER = "4111111111111111"
REDACTED_CSC = "111"

EXPIRY_SEPARATORS = re.compile(r"[/\s-]+")


class CardVariant(str, Enum):
    """How the payment method is identified."""

    ALIAS = "alias"
    FORM = "form"
    RAW_CARD = "raw_card"


@dataclass(frozen=True)
class EcommerceForm:
    """Signed fields for the hosted e-commerce page."""

    path: str
    fields: dict[str, Any]
    query: str


def generate_order_id() -> str:
    """Timestamp based order id used for alias operations."""
    return f"AS{time.time_ns() // 1_000_000}"


def normalize_year(value: Any, today: datetime.date | None = None) -> Any:
    """Normalize an expiry year.

    - falsy values are returned unchanged
    - non-numeric values become None
    - 0-9 is the Nth year of the current decade
    - 10-99 is the Nth year of the current century
    - years in [2000, 2050) are stored as their offset from 2000

    "5", "15", "2015" and the offset 15 therefore share a representation.
    """
    if not value:
        return value
    try:
        year = int(str(value).strip())
    except ValueError:
        return None

    today = today or datetime.date.today()
    if year < 10:
        year = today.year // 10 * 10 + year
    elif year < 100:
        year = today.year // 100 * 100 + year

    if 2000 <= year < 2050:
        return year - 2000
    return year


def normalize_month(value: Any) -> int | None:
    """Month in [1, 12], anything else is unset."""
    try:
        month = int(str(value).strip())
    except (TypeError, ValueError):
        return None
    return month if 1 <= month <= 12 else None


def split_expiry(value: Any) -> tuple[str, str]:
    """Split MM/YY, MM/YYYY, MM-YY, "MM YY" or MMYY into (month, year)."""
    text = str(value).strip()
    parts = [part for part in EXPIRY_SEPARATORS.split(text) if part]
    if len(parts) == 2:
        return parts[0], parts[1]
    if len(text) == 4 and text.isdigit():
        return text[:2], text[2:]
    raise PaymentSystemError(f'Date is not well formed "{value}"', value)


class DirtyTracker:
    """Baseline of tracked fields compared against current values."""

    def __init__(self, baseline: Mapping[str, Any]):
        self._baseline: dict[str, Any] = {}
        self.reset(baseline)

    def dirty(self, current: Mapping[str, Any]) -> set[str]:
        """Names of the tracked fields whose value differs from the baseline."""
        return {
            name
            for name in TRACKED_FIELDS
            if current.get(name) != self._baseline.get(name)
        }

    def reset(self, current: Mapping[str, Any]) -> None:
        """Replace the baseline with a copy of the current values."""
        self._baseline = {name: copy.deepcopy(current.get(name)) for name in TRACKED_FIELDS}


class Card:
    """A payment method.

    Exactly one variant is active per instance: an ``alias`` option selects
    ALIAS, a ``payment_method`` option selects FORM, anything else is a
    RAW_CARD which requires ``number`` and ``csc``.
    """

    def __init__(
        self,
        options: Mapping[str, Any] | None,
        *,
        config: GatewayConfig | None = None,
        transport: TransportClient | None = None,
    ):
        if not options or not isinstance(options, Mapping):
            raise PaymentSystemError("Missing options object", options)

        self.config = config or get_config()
        self._transport = transport

        if options.get("alias"):
            self.variant = CardVariant.ALIAS
        elif options.get("payment_method"):
            self.variant = CardVariant.FORM
        else:
            self.variant = CardVariant.RAW_CARD

        self._number: str | None = None
        self.issuer: str | None = None
        self.hidden_number: str | None = None
        self.csc: str | None = None
        self._year: Any = None
        self._month: int | None = None
        self.first_name: str | None = None
        self.last_name: str | None = None
        self.email: str | None = None
        self.address1: str | None = None
        self.address2: str | None = None
        self.city: str | None = None
        self.state: str | None = None
        self.zip: str | None = None
        self.payment_method: str | None = None
        self._custom: Any = None
        self._amount: Decimal | None = None
        self.alias: str | None = None
        self.alias_usage: str | None = None
        self.order_id: str | None = None
        self.pay_id: str | None = None
        self.group_id: str | None = None

        self._tracker = DirtyTracker(self._tracked_values())

        if self.variant is CardVariant.ALIAS:
            self._load_alias(options)
        elif self.variant is CardVariant.FORM:
            self._load_form(options)
        else:
            self._load_raw_card(options)

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    def _load_alias(self, options: Mapping[str, Any]) -> None:
        self.alias = options["alias"]
        self.alias_usage = options.get("alias_usage", "")
        self.order_id = options.get("order_id") or generate_order_id()
        self.pay_id = options.get("pay_id", "")

    def _load_form(self, options: Mapping[str, Any]) -> None:
        payment_method = str(options["payment_method"])
        if payment_method.lower() not in self.config.payment_methods:
            raise PaymentSystemError("payment method is not valid", payment_method)

        self.payment_method = payment_method
        self.issuer = payment_method
        self._load_name(options)
        self._load_billing(options)
        self.custom = options.get("custom")
        self.amount = options.get("amount")
        self.order_id = options.get("order_id")
        self.group_id = options.get("group_id")

    def _load_raw_card(self, options: Mapping[str, Any]) -> None:
        missing = missing_required(CARD_FIELDS, options)
        if missing:
            raise PaymentSystemError(f"{missing[0].label} is required", missing[0].name)

        # Parse the expiry before touching any field
        if options.get("expiry"):
            month, year = split_expiry(options["expiry"])
        else:
            month, year = options.get("month"), options.get("year")

        self.payment_method = "CreditCard"
        self.number = options["number"]
        self.csc = str(options["csc"])
        self.month = month
        self.year = year
        self._load_name(options)
        self._load_billing(options)
        self.custom = options.get("custom")
        self.amount = options.get("amount")
        self.order_id = options.get("order_id")
        self.group_id = options.get("group_id")

    def _load_name(self, options: Mapping[str, Any]) -> None:
        name = options.get("name")
        if name:
            first, _, last = str(name).strip().partition(" ")
            self.first_name = first
            self.last_name = last.strip() or None
        else:
            self.first_name = options.get("first_name")
            self.last_name = options.get("last_name")

    def _load_billing(self, options: Mapping[str, Any]) -> None:
        self.email = options.get("email")
        self.address1 = options.get("address1")
        self.address2 = options.get("address2")
        self.city = options.get("city")
        self.state = options.get("state")
        self.zip = options.get("zip")

    # -------------------------------------------------------------------------
    # Normalizing attributes
    # -------------------------------------------------------------------------

    @property
    def number(self) -> str | None:
        return self._number

    @number.setter
    def number(self, value: Any) -> None:
        # Alias numbers come back masked from the gateway and are kept as is
        if self.variant is CardVariant.ALIAS:
            self._number = value
            return

        digits = checks.extract_digits(value)
        self._number = digits or None
        self.issuer = checks.get_issuer(digits) if digits else None
        self.hidden_number = checks.hidden_number(digits) if digits else None

    @property
    def year(self) -> Any:
        return self._year

    @year.setter
    def year(self, value: Any) -> None:
        self._year = normalize_year(value)

    @property
    def month(self) -> int | None:
        return self._month

    @month.setter
    def month(self, value: Any) -> None:
        self._month = normalize_month(value)

    @property
    def expiry_year_full(self) -> int | None:
        if not self._has_expiry():
            return None
        year = int(self._year)
        return year + 2000 if year < 100 else year

    @property
    def custom(self) -> Any:
        return self._custom

    @custom.setter
    def custom(self, value: Any) -> None:
        if value is not None:
            try:
                json.dumps(value)
            except (TypeError, ValueError) as exc:
                raise PaymentSystemError("Custom data is not JSON serializable", str(exc)) from exc
        self._custom = value

    @property
    def amount(self) -> Decimal | None:
        return self._amount

    @amount.setter
    def amount(self, value: Any) -> None:
        if value is None or value == "":
            self._amount = None
            return
        self._amount = validate_amount(value, self.config.allow_max_amount, self.config.currency)

    @property
    def transport(self) -> TransportClient:
        if self._transport is None:
            self._transport = HttpTransport(self.config)
        return self._transport

    @property
    def dirty(self) -> set[str]:
        """Tracked fields changed since the last successful round trip."""
        return self._tracker.dirty(self._tracked_values())

    def _tracked_values(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in TRACKED_FIELDS}

    def _values(self) -> dict[str, Any]:
        return {spec.name: getattr(self, spec.name) for spec in CARD_FIELDS}

    def _has_expiry(self) -> bool:
        return self._month is not None and self._year not in (None, "")

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def is_valid(self) -> bool:
        """Luhn checksum and issuer CSC length."""
        return checks.mod10check(self.number) is not None and checks.csc_check(
            self.number, self.csc
        )

    def is_expired(self) -> bool:
        """True when the expiry is unset or before the current month."""
        if not self._has_expiry():
            return True
        today = datetime.date.today()
        return (self.expiry_year_full, self._month) < (today.year, today.month)

    # -------------------------------------------------------------------------
    # Payload
    # -------------------------------------------------------------------------

    def get_payload(self, options: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """Build the signed wire payload, merging allowed caller options.

        Options override the card's fields; an option set to None leaves the
        card's value in place, an empty string removes the field.

        Raises:
            PaymentSystemError: unknown option key or invalid amount.
        """
        return self._build_payload(options or {}, self._values())

    def _build_payload(
        self,
        options: Mapping[str, Any],
        values: Mapping[str, Any],
        excluded: frozenset[str] = frozenset(),
    ) -> dict[str, Any]:
        config = self.config
        payload: dict[str, Any] = {
            "PSPID": config.pspid,
            "USERID": config.api_user,
            "PSWD": config.api_password,
            "CURRENCY": config.currency,
            "OPERATION": config.operation,
            "LANGUAGE": config.language,
            "AMOUNT": (
                to_minor_units(self.amount)
                if self.amount is not None
                else ALIAS_VERIFICATION_AMOUNT
            ),
        }
        payload.update(build_fields(CARD_FIELDS, values))

        if self.first_name and self.last_name:
            payload["CN"] = f"{self.first_name} {self.last_name}"
        if self._has_expiry():
            payload["ED"] = f"{int(self._month):02d}{int(self._year) % 100:02d}"

        for key, value in options.items():
            spec = OPTION_FIELDS.get(key)
            if spec is None:
                raise PaymentSystemError(
                    "Error preparing payment request", f"unauthorized field: {key}"
                )
            # None keeps the card's own value, "" clears it
            if value is None:
                continue
            if key == "amount" and value != "":
                amount = validate_amount(
                    value,
                    config.allow_max_amount,
                    options.get("currency") or config.currency,
                )
                payload[spec.wire_name] = to_minor_units(amount)
            else:
                payload[spec.wire_name] = spec.render(value)

        payload = {
            key: value for key, value in payload.items() if value and key not in excluded
        }
        logger.debug("Signing payload fields: %s", ", ".join(sorted(payload)))
        return sign_with_config(payload, config)

    def _order_values(self, options: Mapping[str, Any]) -> dict[str, Any]:
        values = self._values()
        if options.get("alias") and (not self.order_id or not options.get("order_id")):
            values["order_id"] = generate_order_id()
        return values

    # -------------------------------------------------------------------------
    # Gateway operations
    # -------------------------------------------------------------------------

    def _send(self, category: OperationCategory, payload: dict[str, Any]) -> TransportResponse:
        response = self.transport.execute(
            TransportRequest(operation_category=category, method="POST", payload=payload)
        )
        raise_for_error(response.body, context=payload.get("ORDERID"))
        return response

    def publish(self, options: Mapping[str, Any] | None = None) -> TransportResponse:
        """Submit the card data (and transaction options) to the gateway.

        Raises:
            PaymentSystemError: card not ready, invalid options or transport failure.
            PaymentGatewayError: the gateway declined the operation.
        """
        options = dict(options or {})
        if not options.get("alias") and not self.number and not self.order_id:
            raise PaymentSystemError("Card is not ready to use")

        values = self._order_values(options)
        payload = self._build_payload(options, values)
        category = category_for(payload.get("OPERATION", ""))

        response = self._send(category, payload)

        alias = response.get("ALIAS")
        if alias:
            self.alias = alias
        self.pay_id = response.get("PAYID")
        self.order_id = values["order_id"]
        self._tracker.reset(self._tracked_values())

        logger.info(
            "Published %s card: operation=%s category=%s payid=%s",
            self.variant.value,
            payload.get("OPERATION"),
            category.value,
            self.pay_id,
        )
        return response

    def create(self, alias: str, alias_usage: str = "") -> TransportResponse | None:
        """Register the card on the gateway under ``alias``."""
        if self.alias == alias and not self.dirty:
            logger.debug("Alias %s already registered, nothing to publish", alias)
            return None
        response = self.publish({"alias": alias, "alias_usage": alias_usage})
        self.alias_usage = alias_usage
        return response

    def publish_for_ecommerce(self, options: Mapping[str, Any] | None = None) -> EcommerceForm:
        """Signed fields for the hosted e-commerce page (no network call)."""
        options = dict(options or {})
        values = self._order_values(options)
        fields = self._build_payload(options, values, excluded=ECOMMERCE_EXCLUDED_FIELDS)
        self.order_id = values["order_id"]

        return EcommerceForm(
            path=self.config.url_for(OperationCategory.ECOMMERCE),
            fields=fields,
            query=urlencode({key: str(value) for key, value in fields.items()}),
        )

    def load(self) -> TransportResponse:
        """Load the card data stored under the card's alias.

        Raises:
            IdentityMismatchError: the gateway answered for another alias.
        """
        if not self.alias:
            raise PaymentSystemError("Card alias is required to load payment data")

        response = self._send(OperationCategory.QUERY, self.get_payload())

        returned = response.get("ALIAS")
        if returned and returned != self.alias:
            raise IdentityMismatchError(self.alias, returned)

        self._number = response.get("CARDNO") or self._number
        self.issuer = response.get("BRAND") or self.issuer
        expiry = response.get("ED")
        if expiry and len(expiry) >= 4:
            self.month = expiry[:2]
            self.year = expiry[2:4]
        self._tracker.reset(self._tracked_values())

        logger.info("Loaded payment data for alias %s", self.alias)
        return response

    def update(self) -> TransportResponse | None:
        """Re-publish changed card data under the card's alias.

        Returns None without any request when nothing changed.
        """
        dirty = self.dirty
        if not dirty:
            return None
        if not self.alias:
            raise PaymentSystemError("Card alias is required to update payment data")

        logger.debug("Updating alias %s, changed fields: %s", self.alias, ", ".join(sorted(dirty)))
        return self.publish({"alias": self.alias, "alias_usage": self.alias_usage})

    def redact(self) -> TransportResponse:
        """Overwrite the stored card with a test card expiring this month.

        DirectLink cannot delete an alias.
        """
        if not self.alias:
            raise PaymentSystemError("Card alias is required to redact payment data")

        today = datetime.date.today()
        # Bypass the alias pass-through so the number gets normalized
        self._number = REDACTED_NUMBER
        self.issuer = checks.get_issuer(REDACTED_NUMBER)
        self.hidden_number = checks.hidden_number(REDACTED_NUMBER)
        self.csc = REDACTED_CSC
        self.year = today.year
        self.month = today.month
        self.first_name = "Vault"
        self.last_name = str(time.time_ns() // 1_000_000)

        return self.publish({"alias": self.alias})

    def __repr__(self) -> str:
        return (
            f"Card(variant={self.variant.value!r}, issuer={self.issuer!r}, "
            f"number={self.hidden_number or self.alias!r})"
        )
