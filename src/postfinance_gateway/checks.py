"""Card number checks.

- Luhn mod-10 checksum
- CSC length check (issuer dependent)
- Issuer detection
- Digit extraction and masking

Issuer patterns are meant to catch major networks for the CSC check, not
to be a comprehensive BIN database.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

NON_DIGIT_CHARS = re.compile(r"\D+")


@dataclass(frozen=True)
class IssuerInfo:
    """Issuer name with patterns for card numbers and CSCs."""

    name: str
    number_pattern: re.Pattern[str]
    csc_pattern: re.Pattern[str]


ISSUERS: dict[str, IssuerInfo] = {
    "VISA": IssuerInfo("Visa", re.compile(r"^4(\d{12}|\d{15})$"), re.compile(r"^\d{3}$")),
    "MAST": IssuerInfo("MasterCard", re.compile(r"^5[1-5]\d{14}$"), re.compile(r"^\d{3}$")),
    "AMEX": IssuerInfo("American Express", re.compile(r"^3[47]\d{13}$"), re.compile(r"^\d{4}$")),
    "DINA": IssuerInfo("Diners Club", re.compile(r"^3(00|05|6\d|8\d)\d{11}$"), re.compile(r"^\d{3}$")),
    "DISC": IssuerInfo(
        "Discover",
        re.compile(r"^(622[1-9]|6011|64[4-9]\d|65\d{2})\d{12}$"),
        re.compile(r"^\d{3}$"),
    ),
    "JCB": IssuerInfo("JCB", re.compile(r"^35(28|29|[3-8]\d)\d{12}$"), re.compile(r"^\d{3}$")),
    # China UnionPay numbers do not pass the Luhn check
    "CHIN": IssuerInfo("China UnionPay", re.compile(r"^62\d{14}"), re.compile(r"^\d{3}$")),
}

UNKNOWN_ISSUER = IssuerInfo("Unknown", re.compile(r"^\d{16}$"), re.compile(r"^\d{3}$"))


def extract_digits(value: str | int | None) -> str:
    """Remove every non-digit character, e.g. '4111-1111' -> '41111111'."""
    if value is None:
        return ""
    return NON_DIGIT_CHARS.sub("", str(value))


def get_issuer_info(number: str | None) -> IssuerInfo:
    """Return issuer details for a card number.

    When several patterns match, the last one in ISSUERS wins.
    """
    digits = extract_digits(number)
    match = UNKNOWN_ISSUER
    if not digits:
        return match
    for info in ISSUERS.values():
        if info.number_pattern.search(digits):
            match = info
    return match


def get_issuer(number: str | None) -> str:
    """Return the issuer name of a card number ('Unknown' if undetected)."""
    return get_issuer_info(number).name


def mod10check(number: str | None) -> str | None:
    """Luhn mod-10 check.

    Returns:
        The sanitized number if the checksum is valid, otherwise None.
    """
    digits = extract_digits(number)
    if not digits:
        return None

    values = [int(d) for d in digits]
    checksum = sum(values[-1::-2])
    for d in values[-2::-2]:
        checksum += sum(divmod(d * 2, 10))

    return digits if checksum % 10 == 0 else None


def csc_check(number: str | None, csc: str | int | None) -> bool:
    """Check that the CSC has the number of digits the issuer uses."""
    digits = extract_digits(csc)
    if not digits:
        return False
    return bool(get_issuer_info(number).csc_pattern.search(digits))


def hidden_number(number: str | None) -> str:
    """Mask a card number, keeping the first two and the last four digits."""
    digits = extract_digits(number)
    if len(digits) <= 4:
        return "X" * len(digits)
    if len(digits) <= 6:
        return "X" * (len(digits) - 4) + digits[-4:]
    return digits[:2] + "X" * (len(digits) - 6) + digits[-4:]
