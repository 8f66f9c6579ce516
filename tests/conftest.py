"""Pytest fixtures for gateway tests."""

from __future__ import annotations

from collections.abc import Generator

import pytest

from postfinance_gateway.card import Card
from postfinance_gateway.config import GatewayConfig, reset_config
from postfinance_gateway.transport import StubGatewayTransport

SHA_SECRET = "Mysecretsig1875!?"


@pytest.fixture(autouse=True)
def _clean_config_store() -> Generator[None, None, None]:
    """Every test starts without a process-wide configuration."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def gateway_config() -> GatewayConfig:
    """Sandbox configuration used by most tests."""
    return GatewayConfig(
        pspid="test_pspid",
        api_user="test_api",
        api_password="test_password",
        sha_secret=SHA_SECRET,
        allowed_currencies=("CHF", "EUR"),
        sandbox=True,
    )


@pytest.fixture
def stub(gateway_config: GatewayConfig) -> StubGatewayTransport:
    """In-memory gateway."""
    return StubGatewayTransport(gateway_config)


@pytest.fixture
def visa_card(gateway_config: GatewayConfig, stub: StubGatewayTransport) -> Card:
    """Raw Visa card bound to the stub gateway."""
    return Card(
        {
            "number": "4111 1111 1111 1111",
            "csc": "123",
            "expiry": "12/30",
            "name": "Jane Doe",
            "email": "jane@example.ch",
            "address1": "Rue du Lac 1",
            "city": "Geneva",
            "zip": "1201",
        },
        config=gateway_config,
        transport=stub,
    )
