"""SHA signature generation and verification.

The same canonicalisation is used for outbound requests (SHA-IN) and for
gateway callbacks (SHA-OUT):

1. drop fields whose value is None or renders to an empty string,
   and any existing SHASIGN
2. sort the remaining keys in ordinal order
3. concatenate KEY=value, each followed by the secret when
   append_secret is set
4. hash the encoded string, render as upper-case hex
"""

from __future__ import annotations

import hashlib
import hmac
import logging
from collections.abc import Mapping
from enum import Enum
from typing import TYPE_CHECKING, Any

from postfinance_gateway.errors import PaymentSystemError

if TYPE_CHECKING:
    from postfinance_gateway.config import GatewayConfig

logger = logging.getLogger(__name__)

SIGNATURE_FIELD = "SHASIGN"


class SignatureAlgorithm(str, Enum):
    """Supported digest algorithms."""

    SHA1 = "sha1"
    SHA256 = "sha256"
    SHA512 = "sha512"
    HMAC_SHA256 = "hmac-sha256"
    HMAC_SHA512 = "hmac-sha512"

    @property
    def is_hmac(self) -> bool:
        return self.value.startswith("hmac-")

    @property
    def digest_name(self) -> str:
        return self.value.removeprefix("hmac-")


def _render(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def signable_fields(fields: Mapping[str, Any]) -> dict[str, Any]:
    """Return the fields that take part in a signature, in canonical order."""
    kept = {
        key: value
        for key, value in fields.items()
        if key.upper() != SIGNATURE_FIELD and _render(value) != ""
    }
    return {key: kept[key] for key in sorted(kept)}


def canonical_string(
    fields: Mapping[str, Any],
    secret: str,
    append_secret: bool = True,
) -> str:
    """Build the string the signature is computed over."""
    suffix = secret if append_secret else ""
    return "".join(
        f"{key}={_render(value)}{suffix}"
        for key, value in signable_fields(fields).items()
    )


def compute_signature(
    fields: Mapping[str, Any],
    secret: str,
    append_secret: bool = True,
    algorithm: SignatureAlgorithm = SignatureAlgorithm.SHA256,
    encoding: str = "utf-8",
) -> str:
    """Compute the upper-case hex SHASIGN for a field map.

    Raises:
        PaymentSystemError: a value or the secret cannot be represented
            in ``encoding``.
    """
    algorithm = SignatureAlgorithm(algorithm)
    try:
        message = canonical_string(fields, secret, append_secret).encode(encoding)
        key = secret.encode(encoding)
    except UnicodeEncodeError as exc:
        raise PaymentSystemError(
            f"Signed fields cannot be encoded as {encoding}", str(exc)
        ) from exc

    if algorithm.is_hmac:
        digest = hmac.new(key, message, algorithm.digest_name)
    else:
        digest = hashlib.new(algorithm.digest_name, message)

    return digest.hexdigest().upper()


def sign(
    fields: Mapping[str, Any],
    secret: str,
    append_secret: bool = True,
    algorithm: SignatureAlgorithm = SignatureAlgorithm.SHA256,
    encoding: str = "utf-8",
) -> dict[str, Any]:
    """Return the signable fields plus SHASIGN.

    Empty fields are neither signed nor transmitted, so they are left out
    of the returned mapping as well.
    """
    signed = signable_fields(fields)
    signed[SIGNATURE_FIELD] = compute_signature(
        fields, secret, append_secret, algorithm, encoding
    )
    return signed


def verify(
    fields: Mapping[str, Any],
    secret: str,
    append_secret: bool = True,
    algorithm: SignatureAlgorithm = SignatureAlgorithm.SHA256,
    encoding: str = "utf-8",
) -> bool:
    """Verify the SHASIGN carried by a field map (case-insensitive compare)."""
    received = next(
        (_render(v) for k, v in fields.items() if k.upper() == SIGNATURE_FIELD),
        "",
    )
    if not received:
        return False

    try:
        expected = compute_signature(fields, secret, append_secret, algorithm, encoding)
    except PaymentSystemError as exc:
        logger.warning("Signature not verifiable: %s", exc.details)
        return False
    return hmac.compare_digest(expected.encode(), received.upper().encode("utf-8"))


def sign_with_config(fields: Mapping[str, Any], config: GatewayConfig) -> dict[str, Any]:
    """Sign a request payload with the configured secret and algorithm."""
    return sign(
        fields,
        config.sha_secret,
        append_secret=config.sha_with_secret,
        algorithm=config.sha_algorithm,
        encoding=config.sha_encoding,
    )


def verify_callback(params: Mapping[str, Any], config: GatewayConfig) -> bool:
    """Verify a gateway callback (SHA-OUT).

    Callback parameter names arrive in mixed case (orderID, amount, PAYID);
    they are signed by their upper-case names.
    """
    normalized = {key.upper(): value for key, value in params.items()}
    return verify(
        normalized,
        config.sha_secret,
        append_secret=config.sha_with_secret,
        algorithm=config.sha_algorithm,
        encoding=config.sha_encoding,
    )
