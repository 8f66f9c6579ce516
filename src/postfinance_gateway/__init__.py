"""PostFinance DirectLink integration.

Cards (raw card, hosted payment method or alias), transactions and the
signing / response handling they share.
"""

from postfinance_gateway.card import Card, CardVariant, EcommerceForm, generate_order_id
from postfinance_gateway.config import GatewayConfig, configure, get_config, reset_config
from postfinance_gateway.errors import (
    ErrorCategory,
    IdentityMismatchError,
    PaymentGatewayError,
    PaymentSystemError,
    PostFinanceError,
)
from postfinance_gateway.operations import TransactionOperation, WireOperation
from postfinance_gateway.signing import SignatureAlgorithm, sign, verify, verify_callback
from postfinance_gateway.transaction import Transaction

__version__ = "0.1.0"

__all__ = [
    "Card",
    "CardVariant",
    "EcommerceForm",
    "generate_order_id",
    "GatewayConfig",
    "configure",
    "get_config",
    "reset_config",
    "ErrorCategory",
    "IdentityMismatchError",
    "PaymentGatewayError",
    "PaymentSystemError",
    "PostFinanceError",
    "TransactionOperation",
    "WireOperation",
    "SignatureAlgorithm",
    "sign",
    "verify",
    "verify_callback",
    "Transaction",
]
