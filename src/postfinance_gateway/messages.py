"""
Gateway Code Reference Tables.

NCERROR identifies why the gateway declined or flagged an operation
(0 means no error). STATUS describes where the payment stands after the
operation. Both tables are local copies of the gateway documentation;
codes missing here are still reported, with a generic description.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class ErrorCodeInfo:
    """Information about an NCERROR code."""
    code: int
    status: str  # refused, invalid, denied, technical
    description: str


@dataclass(frozen=True)
class StatusInfo:
    """Information about a payment STATUS value."""
    code: int
    label: str
    final: bool


# =============================================================================
# NCERROR Reference
# =============================================================================

ERROR_CODE_REFERENCE: dict[int, ErrorCodeInfo] = {
    0: ErrorCodeInfo(0, "ok", "No error"),
    # Acquirer / issuer refusals
    30001001: ErrorCodeInfo(30001001, "refused", "Payment refused by the acquirer"),
    30031001: ErrorCodeInfo(30031001, "refused", "Invalid merchant number"),
    30041001: ErrorCodeInfo(30041001, "refused", "Retain card"),
    30051001: ErrorCodeInfo(30051001, "refused", "Authorization declined"),
    30141001: ErrorCodeInfo(30141001, "refused", "Invalid card number"),
    30171001: ErrorCodeInfo(30171001, "refused", "Payment method cancelled by the buyer"),
    30331001: ErrorCodeInfo(30331001, "refused", "Card expired"),
    30511001: ErrorCodeInfo(30511001, "refused", "Insufficient funds"),
    # Request validation
    50001005: ErrorCodeInfo(50001005, "invalid", "Expiry date error"),
    50001111: ErrorCodeInfo(50001111, "invalid", "Data validation error"),
    50001113: ErrorCodeInfo(50001113, "invalid", "This order has already been processed"),
    50001127: ErrorCodeInfo(50001127, "denied", "This order is not authorized"),
    50001130: ErrorCodeInfo(50001130, "invalid", "Unknown order"),
    50001134: ErrorCodeInfo(50001134, "denied", "3-D Secure authentication failed"),
    50001174: ErrorCodeInfo(50001174, "invalid", "Cardholder name is too long"),
    50001186: ErrorCodeInfo(50001186, "denied", "Operation not permitted"),
    50001187: ErrorCodeInfo(50001187, "denied", "Operation not permitted for this merchant"),
}


# =============================================================================
# STATUS Reference
# =============================================================================

STATUS_REFERENCE: dict[int, StatusInfo] = {
    0: StatusInfo(0, "Invalid or incomplete", True),
    1: StatusInfo(1, "Cancelled by customer", True),
    2: StatusInfo(2, "Authorisation refused", True),
    4: StatusInfo(4, "Order stored", False),
    41: StatusInfo(41, "Waiting for client payment", False),
    46: StatusInfo(46, "Waiting for authentication", False),
    5: StatusInfo(5, "Authorised", False),
    51: StatusInfo(51, "Authorisation waiting", False),
    52: StatusInfo(52, "Authorisation not known", False),
    6: StatusInfo(6, "Authorised and cancelled", True),
    61: StatusInfo(61, "Authorisation deletion waiting", False),
    62: StatusInfo(62, "Authorisation deletion uncertain", False),
    63: StatusInfo(63, "Authorisation deletion refused", False),
    7: StatusInfo(7, "Payment deleted", True),
    74: StatusInfo(74, "Payment deleted", True),
    8: StatusInfo(8, "Refund", True),
    81: StatusInfo(81, "Refund pending", False),
    82: StatusInfo(82, "Refund uncertain", False),
    83: StatusInfo(83, "Refund refused", False),
    84: StatusInfo(84, "Refund declined by the acquirer", True),
    85: StatusInfo(85, "Refund processed by merchant", True),
    9: StatusInfo(9, "Payment requested", True),
    91: StatusInfo(91, "Payment processing", False),
    92: StatusInfo(92, "Payment uncertain", False),
    93: StatusInfo(93, "Payment refused", True),
    94: StatusInfo(94, "Refund declined by the acquirer", True),
    95: StatusInfo(95, "Payment processed by merchant", True),
    99: StatusInfo(99, "Being processed", False),
}


def _to_int(code: int | str | None) -> int | None:
    if code is None:
        return None
    try:
        return int(str(code).strip())
    except ValueError:
        return None


def describe_error(code: int | str) -> ErrorCodeInfo:
    """
    Get information about an NCERROR code.

    Args:
        code: The NCERROR value (string or int)

    Returns:
        ErrorCodeInfo for the code, or a generic entry for unknown codes
    """
    value = _to_int(code)
    if value is not None and value in ERROR_CODE_REFERENCE:
        return ERROR_CODE_REFERENCE[value]

    return ErrorCodeInfo(
        code=value if value is not None else -1,
        status="unknown",
        description=f"Gateway error {code}",
    )


def describe_status(code: int | str | None) -> StatusInfo | None:
    """Get information about a STATUS value, or None when it is unknown."""
    value = _to_int(code)
    if value is None:
        return None
    return STATUS_REFERENCE.get(value)
