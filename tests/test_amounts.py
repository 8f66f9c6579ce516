"""Tests for amount validation and operation tables."""

from decimal import Decimal

import pytest

from postfinance_gateway.amounts import (
    has_minor_unit_precision,
    to_decimal,
    to_minor_units,
    validate_amount,
)
from postfinance_gateway.errors import PaymentSystemError
from postfinance_gateway.operations import (
    OperationCategory,
    TransactionOperation,
    WireOperation,
    category_for,
    is_maintenance,
    parse_operation,
    wire_operation,
)


class TestAmounts:
    """Test decimal coercion and validation."""

    def test_float_goes_through_str(self):
        """Floats are not converted through their binary value."""
        assert to_decimal(19.99) == Decimal("19.99")

    @pytest.mark.parametrize("value", ["abc", True, "NaN", "Infinity"])
    def test_not_a_number(self, value):
        with pytest.raises(PaymentSystemError):
            to_decimal(value)

    def test_minor_units(self):
        """123.00 scales to 12300."""
        assert to_minor_units("123.00") == 12300
        assert to_minor_units(130.0) == 13000
        assert to_minor_units(Decimal("0.07")) == 7

    def test_precision(self):
        assert has_minor_unit_precision(Decimal("10.12")) is True
        assert has_minor_unit_precision(Decimal("10.125")) is False

    def test_three_fractional_digits_rejected(self):
        """10.125 does not survive the x100 scaling."""
        with pytest.raises(PaymentSystemError) as exc_info:
            validate_amount(10.125, Decimal("1000"), "CHF")

        assert exc_info.value.message == "Payment amount format is not compatible 10.125 CHF"

    def test_ceiling(self):
        with pytest.raises(PaymentSystemError) as exc_info:
            validate_amount("1000.01", Decimal("1000"), "CHF")

        assert exc_info.value.message == "Payment amount is limited to maximum 1000 CHF"

    def test_ceiling_is_inclusive(self):
        assert validate_amount("1000", Decimal("1000")) == Decimal("1000")


class TestOperations:
    """Test operation parsing and tables."""

    def test_wire_mapping(self):
        assert wire_operation(TransactionOperation.AUTHORIZE) is WireOperation.RES
        assert wire_operation(TransactionOperation.PURCHASE) is WireOperation.SAL
        assert wire_operation(TransactionOperation.CAPTURE) is WireOperation.SAL
        assert wire_operation(TransactionOperation.CANCEL) is WireOperation.SAS
        assert wire_operation(TransactionOperation.REFUND) is WireOperation.RFD

    def test_every_operation_has_a_wire_code(self):
        for operation in TransactionOperation:
            assert category_for(wire_operation(operation)) in OperationCategory

    def test_categories(self):
        assert category_for("RES") is OperationCategory.ORDER
        assert category_for("SAL") is OperationCategory.ORDER
        for code in ("SAS", "RFD", "RFS", "DES", "DEL", "REN"):
            assert category_for(code) is OperationCategory.MAINTENANCE

    def test_unknown_wire_code(self):
        with pytest.raises(PaymentSystemError):
            category_for("XXX")

    def test_parse_operation(self):
        assert parse_operation("refund") is TransactionOperation.REFUND
        with pytest.raises(PaymentSystemError) as exc_info:
            parse_operation("void")
        assert exc_info.value.message == "Missing or invalid transaction operation"
        with pytest.raises(PaymentSystemError):
            parse_operation(None)

    def test_maintenance(self):
        assert is_maintenance(TransactionOperation.CANCEL) is True
        assert is_maintenance(TransactionOperation.REFUND) is True
        assert is_maintenance(TransactionOperation.CAPTURE) is False
