"""Tests for SHA signing and verification.

Tests verify:
1. Canonical string construction (ordering, empty fields, SHASIGN exclusion)
2. Digest and HMAC algorithms
3. Verification of outbound payloads and gateway callbacks
"""

import hashlib
import hmac

import pytest

from postfinance_gateway.config import GatewayConfig
from postfinance_gateway.errors import PaymentSystemError
from postfinance_gateway.signing import (
    SIGNATURE_FIELD,
    SignatureAlgorithm,
    canonical_string,
    compute_signature,
    sign,
    sign_with_config,
    verify,
    verify_callback,
)


class TestCanonicalString:
    """Test canonical string construction."""

    def test_secret_appended_after_each_pair(self):
        """KEY=value followed by the secret, in key order."""
        assert canonical_string({"b": "2", "a": "1"}, "S") == "a=1Sb=2S"

    def test_without_secret(self):
        """No secret between pairs when append is off."""
        assert canonical_string({"b": "2", "a": "1"}, "S", append_secret=False) == "a=1b=2"

    def test_empty_fields_dropped(self):
        """None and empty strings are not signed."""
        fields = {"a": "1", "b": "", "c": None, "d": 0}
        assert canonical_string(fields, "S") == "a=1Sd=0S"

    def test_existing_signature_ignored(self):
        """SHASIGN never signs itself, whatever its case."""
        fields = {"a": "1", "SHASIGN": "ABC", "shasign": "DEF"}
        assert canonical_string(fields, "S") == "a=1S"

    def test_ordinal_sort(self):
        """Upper-case keys sort before lower-case ones."""
        assert canonical_string({"b": "1", "B": "2", "A": "3"}, "") == "A=3B=2b=1"


class TestSign:
    """Test signature generation."""

    def test_sha256_reference_value(self):
        """sign({a, b}, S) is the SHA-256 of 'a=1Sb=2S'."""
        expected = hashlib.sha256(b"a=1Sb=2S").hexdigest().upper()

        signed = sign({"a": "1", "b": "2"}, "S", True)

        assert signed[SIGNATURE_FIELD] == expected

    def test_deterministic_regardless_of_insertion_order(self):
        """Same fields, different insertion order, same signature."""
        first = sign({"ORDERID": "X", "AMOUNT": 100, "PSPID": "p"}, "secret")
        second = sign({"PSPID": "p", "ORDERID": "X", "AMOUNT": 100}, "secret")

        assert first[SIGNATURE_FIELD] == second[SIGNATURE_FIELD]

    def test_empty_fields_not_transmitted(self):
        """Empty fields are absent from the signed payload."""
        signed = sign({"a": "1", "b": "", "c": None}, "S")

        assert set(signed) == {"a", SIGNATURE_FIELD}

    def test_input_not_mutated(self):
        """sign returns a new mapping."""
        fields = {"a": "1"}
        sign(fields, "S")

        assert fields == {"a": "1"}

    def test_upper_case_hex(self):
        """Signature is upper-case hexadecimal."""
        signature = sign({"a": "1"}, "S")[SIGNATURE_FIELD]

        assert signature == signature.upper()
        int(signature, 16)

    @pytest.mark.parametrize(
        "algorithm,name",
        [
            (SignatureAlgorithm.SHA1, "sha1"),
            (SignatureAlgorithm.SHA256, "sha256"),
            (SignatureAlgorithm.SHA512, "sha512"),
        ],
    )
    def test_plain_digests(self, algorithm, name):
        """Plain digests hash the canonical string."""
        expected = hashlib.new(name, b"a=1S").hexdigest().upper()

        assert compute_signature({"a": "1"}, "S", algorithm=algorithm) == expected

    def test_hmac_variant_keyed_with_secret(self):
        """HMAC variants use the secret as key."""
        expected = hmac.new(b"S", b"a=1S", "sha256").hexdigest().upper()

        signature = compute_signature(
            {"a": "1"}, "S", algorithm=SignatureAlgorithm.HMAC_SHA256
        )

        assert signature == expected

    def test_encoding_changes_accented_input(self):
        """UTF-8 and Latin-1 produce different digests for accented values."""
        fields = {"CN": "Zoé Müller"}

        utf8 = compute_signature(fields, "S", encoding="utf-8")
        latin1 = compute_signature(fields, "S", encoding="latin-1")

        assert utf8 != latin1

    def test_unencodable_value_is_system_error(self):
        """A value outside the configured charset cannot be signed."""
        with pytest.raises(PaymentSystemError) as exc_info:
            sign({"CITY": "Zürich €"}, "S", encoding="iso-8859-1")

        assert exc_info.value.message == "Signed fields cannot be encoded as iso-8859-1"


class TestVerify:
    """Test signature verification."""

    def test_verify_signed_payload(self):
        """A freshly signed payload verifies."""
        signed = sign({"ORDERID": "X", "AMOUNT": 100}, "secret")

        assert verify(signed, "secret") is True

    def test_verify_is_case_insensitive(self):
        """Lower-case signatures are accepted."""
        signed = sign({"ORDERID": "X"}, "secret")
        signed[SIGNATURE_FIELD] = signed[SIGNATURE_FIELD].lower()

        assert verify(signed, "secret") is True

    def test_tampered_payload_rejected(self):
        """Changing a value invalidates the signature."""
        signed = sign({"ORDERID": "X", "AMOUNT": 100}, "secret")
        signed["AMOUNT"] = 200

        assert verify(signed, "secret") is False

    def test_wrong_secret_rejected(self):
        """Another secret does not verify."""
        signed = sign({"ORDERID": "X"}, "secret")

        assert verify(signed, "other") is False

    def test_missing_signature_rejected(self):
        """No SHASIGN means not verified."""
        assert verify({"ORDERID": "X"}, "secret") is False

    def test_unencodable_value_not_verified(self):
        """Values outside the charset fail verification instead of raising."""
        fields = {"CN": "€", SIGNATURE_FIELD: "AB"}

        assert verify(fields, "secret", encoding="iso-8859-1") is False


class TestConfiguredSigning:
    """Test signing with a GatewayConfig."""

    def test_sign_with_config_uses_configured_algorithm(self):
        """Config algorithm and secret are applied."""
        config = GatewayConfig(
            pspid="p",
            api_user="u",
            api_password="pw",
            sha_secret="S",
            sha_algorithm=SignatureAlgorithm.SHA512,
            sha_with_secret=False,
        )

        signed = sign_with_config({"a": "1"}, config)

        assert signed[SIGNATURE_FIELD] == hashlib.sha512(b"a=1").hexdigest().upper()

    def test_verify_callback_mixed_case_keys(self, gateway_config):
        """Callback keys are signed by their upper-case names."""
        params = {"orderID": "TX1", "amount": "130", "currency": "CHF", "STATUS": "5"}
        upper = {key.upper(): value for key, value in params.items()}
        params["SHASIGN"] = compute_signature(upper, gateway_config.sha_secret)

        assert verify_callback(params, gateway_config) is True

    def test_verify_callback_rejects_tampering(self, gateway_config):
        """A modified callback is rejected."""
        params = {"orderID": "TX1", "amount": "130"}
        upper = {key.upper(): value for key, value in params.items()}
        params["SHASIGN"] = compute_signature(upper, gateway_config.sha_secret)
        params["amount"] = "1"

        assert verify_callback(params, gateway_config) is False
