"""Tests for card number checks."""

import pytest

from postfinance_gateway.checks import (
    csc_check,
    extract_digits,
    get_issuer,
    hidden_number,
    mod10check,
)


class TestMod10:
    """Test the Luhn checksum."""

    @pytest.mark.parametrize(
        "number",
        [
            "4111111111111111",
            "4111-1111-1111-1111",
            "5555555555554444",
            "378282246310005",
            "6011111111111117",
            "4222222222222",
        ],
    )
    def test_valid_numbers(self, number):
        """Valid numbers return their digits."""
        assert mod10check(number) == extract_digits(number)

    @pytest.mark.parametrize("number", ["4111111111111112", "1234567890", "", None, "abcd"])
    def test_invalid_numbers(self, number):
        """Invalid or empty numbers return None."""
        assert mod10check(number) is None


class TestIssuer:
    """Test issuer detection."""

    @pytest.mark.parametrize(
        "number,issuer",
        [
            ("4111111111111111", "Visa"),
            ("5555555555554444", "MasterCard"),
            ("378282246310005", "American Express"),
            ("30569309025904", "Diners Club"),
            ("6011111111111117", "Discover"),
            ("3530111333300000", "JCB"),
            ("9999", "Unknown"),
            ("", "Unknown"),
        ],
    )
    def test_get_issuer(self, number, issuer):
        assert get_issuer(number) == issuer


class TestCsc:
    """Test CSC length per issuer."""

    def test_visa_three_digits(self):
        assert csc_check("4111111111111111", "123") is True
        assert csc_check("4111111111111111", "1234") is False

    def test_amex_four_digits(self):
        assert csc_check("378282246310005", "1234") is True
        assert csc_check("378282246310005", "123") is False

    def test_missing_csc(self):
        assert csc_check("4111111111111111", None) is False


class TestHelpers:
    """Test digit extraction and masking."""

    def test_extract_digits(self):
        assert extract_digits("4111 1111-1111.1111") == "4111111111111111"
        assert extract_digits(None) == ""
        assert extract_digits(123) == "123"

    def test_hidden_number(self):
        """First two and last four digits stay visible."""
        assert hidden_number("4111 1111 1111 1111") == "41XXXXXXXXXX1111"

    def test_hidden_number_short(self):
        assert hidden_number("1234") == "XXXX"
        assert hidden_number("123456") == "XX3456"
