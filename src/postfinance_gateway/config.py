"""Gateway configuration.

Pattern:
    configure(
        GatewayConfig(
            pspid="...",
            api_user="...",
            api_password="...",
            sha_secret="...",
            allowed_currencies=("CHF", "EUR"),
        )
    )

Rules:
    1. Immutable after creation (frozen dataclass).
    2. The process-wide config is locked once set, unless the current
       config explicitly allows reconfiguration (tests).
    3. Every Card and Transaction also accepts an explicit config.
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass, field
from decimal import Decimal
from functools import lru_cache

from dotenv import load_dotenv

from postfinance_gateway.amounts import to_decimal
from postfinance_gateway.errors import PaymentSystemError
from postfinance_gateway.operations import OperationCategory, WireOperation
from postfinance_gateway.signing import SignatureAlgorithm

logger = logging.getLogger(__name__)

DEFAULT_HOST = "https://e-payment.postfinance.ch"

DEFAULT_PAYMENT_METHODS: tuple[str, ...] = (
    "creditcard",
    "postfinance card",
    "postfinance e-finance",
    "twint",
    "paypal",
)

ENDPOINTS: dict[OperationCategory, str] = {
    OperationCategory.ORDER: "orderdirect_utf8.asp",
    OperationCategory.MAINTENANCE: "maintenancedirect_utf8.asp",
    OperationCategory.QUERY: "querydirect_utf8.asp",
    OperationCategory.ECOMMERCE: "orderstandard_utf8.asp",
}


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: str) -> tuple[str, ...]:
    raw = os.getenv(name, default)
    return tuple(item.strip() for item in raw.split(",") if item.strip())


@dataclass(frozen=True)
class GatewayConfig:
    """
    Gateway credentials and behavior.

    Attributes:
        pspid: Merchant (PSP) identifier.
        api_user: API user id.
        api_password: API user password.
        sha_secret: Passphrase used for SHA-IN/SHA-OUT signatures.
        sha_with_secret: Append the secret after every KEY=value pair.
        sha_algorithm: Digest used for signing and verification.
        sha_encoding: Byte encoding of the canonical string.
        currency: Default currency.
        allowed_currencies: Currencies transactions may use. The default
            currency is always allowed.
        allow_max_amount: Ceiling for a single transaction (major units).
        operation: Default wire OPERATION for card publication.
        language: Gateway LANGUAGE field.
        payment_methods: Lower-case allow-list of hosted payment methods.
        host: Gateway base URL.
        sandbox: Use the test environment.
        enabled: If False, no request leaves the process.
        timeout_seconds: HTTP timeout used by the transport.
        allow_reconfigure: Allow configure() to replace this config.
    """

    pspid: str
    api_user: str
    api_password: str
    sha_secret: str = ""
    sha_with_secret: bool = True
    sha_algorithm: SignatureAlgorithm = SignatureAlgorithm.SHA256
    sha_encoding: str = "utf-8"
    currency: str = "CHF"
    allowed_currencies: tuple[str, ...] = ("CHF",)
    allow_max_amount: Decimal = Decimal("1000")
    operation: str = WireOperation.RES.value
    language: str = "fr_FR"
    payment_methods: tuple[str, ...] = DEFAULT_PAYMENT_METHODS
    host: str = DEFAULT_HOST
    sandbox: bool = False
    enabled: bool = True
    timeout_seconds: float = 30
    allow_reconfigure: bool = False
    extra_paths: dict[OperationCategory, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate configuration."""
        if not self.pspid or not self.api_user or not self.api_password:
            raise PaymentSystemError(
                "Incomplete gateway credentials",
                {"pspid": bool(self.pspid), "api_user": bool(self.api_user)},
            )

        currencies = tuple(dict.fromkeys(c.upper() for c in self.allowed_currencies))
        if self.currency.upper() not in currencies:
            currencies += (self.currency.upper(),)
        object.__setattr__(self, "currency", self.currency.upper())
        object.__setattr__(self, "allowed_currencies", currencies)

        ceiling = to_decimal(self.allow_max_amount)
        if ceiling <= 0:
            raise PaymentSystemError("allow_max_amount must be positive", str(ceiling))
        object.__setattr__(self, "allow_max_amount", ceiling)

        object.__setattr__(
            self,
            "payment_methods",
            tuple(m.lower() for m in self.payment_methods),
        )
        object.__setattr__(self, "sha_algorithm", SignatureAlgorithm(self.sha_algorithm))

    @property
    def environment(self) -> str:
        return "test" if self.sandbox else "prod"

    @property
    def paths(self) -> dict[OperationCategory, str]:
        """Request path for every operation category."""
        paths = {
            category: f"/ncol/{self.environment}/{endpoint}"
            for category, endpoint in ENDPOINTS.items()
        }
        paths.update(self.extra_paths)
        return paths

    def url_for(self, category: OperationCategory) -> str:
        """Absolute URL for an operation category."""
        return self.host.rstrip("/") + self.paths[OperationCategory(category)]

    def is_currency_allowed(self, currency: str) -> bool:
        return currency.upper() in self.allowed_currencies

    @classmethod
    def from_env(cls) -> GatewayConfig:
        """Load configuration from POSTFINANCE_* environment variables."""
        load_dotenv()

        return cls(
            pspid=os.getenv("POSTFINANCE_PSPID", ""),
            api_user=os.getenv("POSTFINANCE_API_USER", ""),
            api_password=os.getenv("POSTFINANCE_API_PASSWORD", ""),
            sha_secret=os.getenv("POSTFINANCE_SHA_SECRET", ""),
            sha_with_secret=_env_bool("POSTFINANCE_SHA_WITH_SECRET", "true"),
            sha_algorithm=SignatureAlgorithm(
                os.getenv("POSTFINANCE_SHA_ALGORITHM", SignatureAlgorithm.SHA256.value)
            ),
            sha_encoding=os.getenv("POSTFINANCE_SHA_ENCODING", "utf-8"),
            currency=os.getenv("POSTFINANCE_CURRENCY", "CHF"),
            allowed_currencies=_env_list("POSTFINANCE_ALLOWED_CURRENCIES", "CHF"),
            allow_max_amount=Decimal(os.getenv("POSTFINANCE_ALLOW_MAX_AMOUNT", "1000")),
            operation=os.getenv("POSTFINANCE_OPERATION", WireOperation.RES.value),
            language=os.getenv("POSTFINANCE_LANGUAGE", "fr_FR"),
            payment_methods=_env_list(
                "POSTFINANCE_PAYMENT_METHODS", ",".join(DEFAULT_PAYMENT_METHODS)
            ),
            host=os.getenv("POSTFINANCE_HOST", DEFAULT_HOST),
            sandbox=_env_bool("POSTFINANCE_SANDBOX", "false"),
            enabled=_env_bool("POSTFINANCE_ENABLED", "true"),
            timeout_seconds=float(os.getenv("POSTFINANCE_TIMEOUT_SECONDS", "30")),
        )


@dataclass(frozen=True)
class ServerSettings:
    """Webhook server settings loaded from environment."""

    host: str
    port: int
    debug: bool
    log_level: str

    @classmethod
    def from_env(cls) -> ServerSettings:
        """Load settings from environment variables."""
        load_dotenv()

        return cls(
            host=os.getenv("POSTFINANCE_API_HOST", "0.0.0.0"),
            port=int(os.getenv("POSTFINANCE_API_PORT", "8000")),
            debug=_env_bool("POSTFINANCE_DEBUG", "false"),
            log_level=os.getenv("POSTFINANCE_LOG_LEVEL", "INFO").upper(),
        )


@lru_cache(maxsize=1)
def get_server_settings() -> ServerSettings:
    """Get cached server settings instance."""
    return ServerSettings.from_env()


# =============================================================================
# Process-wide configuration store
# =============================================================================

_lock = threading.Lock()
_current: GatewayConfig | None = None


def configure(config: GatewayConfig) -> GatewayConfig:
    """Set the process-wide configuration.

    Raises:
        PaymentSystemError: a configuration is already set and does not
            allow reconfiguration.
    """
    global _current
    with _lock:
        if _current is not None and not _current.allow_reconfigure:
            raise PaymentSystemError("Configuration is already locked", _current.pspid)
        _current = config
    logger.info(
        "Gateway configured for PSPID %s (%s)", config.pspid, config.environment
    )
    return config


def get_config() -> GatewayConfig:
    """Return the process-wide configuration, loading it from env if unset."""
    global _current
    with _lock:
        if _current is None:
            _current = GatewayConfig.from_env()
        return _current


def reset_config() -> None:
    """Forget the process-wide configuration (tests only)."""
    global _current
    with _lock:
        _current = None
