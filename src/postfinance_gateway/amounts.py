"""Amount coercion and validation.

Amounts are handled as Decimal in major units (e.g. 130.00 CHF) and only
scaled to minor units (13000) when the wire payload is built.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from postfinance_gateway.errors import PaymentSystemError

HUNDRED = Decimal("100")


def to_decimal(value: Decimal | int | float | str) -> Decimal:
    """Coerce an amount to Decimal without going through binary floats."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise PaymentSystemError("Payment amount is not a number", value)
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise PaymentSystemError("Payment amount is not a number", value)
    if not amount.is_finite():
        raise PaymentSystemError("Payment amount is not a number", value)
    return amount


def has_minor_unit_precision(amount: Decimal) -> bool:
    """True if amount * 100 is a whole number (at most 2 fractional digits)."""
    scaled = amount * HUNDRED
    return scaled == scaled.to_integral_value()


def validate_amount(
    value: Decimal | int | float | str,
    ceiling: Decimal,
    currency: str = "",
) -> Decimal:
    """Validate an amount against the ceiling and the precision rule.

    Raises:
        PaymentSystemError: amount above ceiling or with 3+ fractional digits.
    """
    amount = to_decimal(value)
    if amount > ceiling:
        raise PaymentSystemError(
            f"Payment amount is limited to maximum {ceiling} {currency}".rstrip(),
            str(amount),
        )
    if not has_minor_unit_precision(amount):
        raise PaymentSystemError(
            f"Payment amount format is not compatible {amount} {currency}".rstrip(),
            str(amount),
        )
    return amount


def to_minor_units(value: Decimal | int | float | str) -> int:
    """Scale a major-unit amount to minor units, e.g. 123.00 -> 12300."""
    scaled = to_decimal(value) * HUNDRED
    return int(scaled.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
