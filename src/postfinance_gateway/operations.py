"""Transaction operations, wire operation codes and request categories."""

from __future__ import annotations

from enum import Enum

from postfinance_gateway.errors import PaymentSystemError


class TransactionOperation(str, Enum):
    """Operations a Transaction can perform."""

    AUTHORIZE = "authorize"
    PURCHASE = "purchase"
    CAPTURE = "capture"
    CANCEL = "cancel"
    REFUND = "refund"


class WireOperation(str, Enum):
    """OPERATION codes understood by the gateway."""

    RES = "RES"  # request for authorisation
    SAL = "SAL"  # request for direct sale / capture
    SAS = "SAS"  # partial or full data capture and closing
    RFD = "RFD"  # partial refund and closing
    RFS = "RFS"  # full refund and closing
    DES = "DES"  # delete authorisation and closing
    DEL = "DEL"  # delete authorisation
    REN = "REN"  # renew authorisation


class OperationCategory(str, Enum):
    """Gateway endpoint a request is sent to."""

    ORDER = "order"
    MAINTENANCE = "maintenance"
    QUERY = "query"
    ECOMMERCE = "ecommerce"


# Operations acting on an existing PAYID
MAINTENANCE_OPERATIONS = frozenset({
    TransactionOperation.CANCEL,
    TransactionOperation.REFUND,
})

WIRE_OPERATIONS: dict[TransactionOperation, WireOperation] = {
    TransactionOperation.AUTHORIZE: WireOperation.RES,
    TransactionOperation.PURCHASE: WireOperation.SAL,
    TransactionOperation.CAPTURE: WireOperation.SAL,
    TransactionOperation.CANCEL: WireOperation.SAS,
    TransactionOperation.REFUND: WireOperation.RFD,
}

OPERATION_CATEGORIES: dict[WireOperation, OperationCategory] = {
    WireOperation.RES: OperationCategory.ORDER,
    WireOperation.SAL: OperationCategory.ORDER,
    WireOperation.SAS: OperationCategory.MAINTENANCE,
    WireOperation.RFD: OperationCategory.MAINTENANCE,
    WireOperation.RFS: OperationCategory.MAINTENANCE,
    WireOperation.DES: OperationCategory.MAINTENANCE,
    WireOperation.DEL: OperationCategory.MAINTENANCE,
    WireOperation.REN: OperationCategory.MAINTENANCE,
}


def parse_operation(value: str | TransactionOperation | None) -> TransactionOperation:
    """Parse a transaction operation name, raising PaymentSystemError if invalid."""
    try:
        return TransactionOperation(value)
    except ValueError:
        raise PaymentSystemError("Missing or invalid transaction operation", value)


def is_maintenance(operation: TransactionOperation) -> bool:
    """Check if the operation acts on an existing PAYID."""
    return operation in MAINTENANCE_OPERATIONS


def wire_operation(operation: TransactionOperation) -> WireOperation:
    """Map a transaction operation to its wire OPERATION code."""
    return WIRE_OPERATIONS[operation]


def category_for(code: str | WireOperation) -> OperationCategory:
    """Return the endpoint category for a wire OPERATION code."""
    try:
        return OPERATION_CATEGORIES[WireOperation(code)]
    except ValueError:
        raise PaymentSystemError("Unknown gateway operation", code)
