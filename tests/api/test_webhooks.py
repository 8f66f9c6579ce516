"""Webhook API tests.

Tests the FastAPI endpoints receiving gateway callbacks.
"""

from collections.abc import AsyncGenerator
from dataclasses import replace
from urllib.parse import urlencode

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from postfinance_gateway.api import create_app
from postfinance_gateway.errors import PaymentGatewayError, PaymentSystemError
from postfinance_gateway.signing import compute_signature

pytestmark = pytest.mark.asyncio


def signed_callback(secret: str, encoding: str = "utf-8", **overrides: str) -> dict[str, str]:
    """Callback parameters as the gateway sends them (mixed-case names)."""
    params = {
        "orderID": "TX1",
        "currency": "CHF",
        "amount": "130",
        "PM": "CreditCard",
        "ACCEPTANCE": "test123",
        "STATUS": "5",
        "CARDNO": "XXXXXXXXXXXX1111",
        "ED": "1230",
        "CN": "Jane Doe",
        "TRXDATE": "10/18/26",
        "PAYID": "3014728",
        "NCERROR": "0",
        "BRAND": "VISA",
    }
    params.update(overrides)
    upper = {key.upper(): value for key, value in params.items()}
    params["SHASIGN"] = compute_signature(upper, secret, encoding=encoding)
    return params


@pytest_asyncio.fixture
async def client(gateway_config) -> AsyncGenerator[AsyncClient, None]:
    """Client bound to an app using the test configuration."""
    app = create_app(gateway_config)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


class TestHealthEndpoints:
    """Test health check endpoints."""

    async def test_health_check(self, client: AsyncClient):
        """Health endpoint should return 200."""
        response = await client.get("/health")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "healthy"
        assert data["environment"] == "test"
        assert "timestamp" in data

    async def test_readiness_check(self, client: AsyncClient):
        response = await client.get("/ready")
        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    async def test_liveness_check(self, client: AsyncClient):
        response = await client.get("/live")
        assert response.status_code == 200
        assert response.json()["status"] == "alive"


class TestPostFinanceWebhook:
    """Test the callback endpoint."""

    async def test_get_callback_accepted(self, client: AsyncClient, gateway_config):
        params = signed_callback(gateway_config.sha_secret)

        response = await client.get("/webhooks/postfinance", params=params)

        assert response.status_code == 200
        assert response.json() == {
            "order_id": "TX1",
            "pay_id": "3014728",
            "status": 5,
            "status_text": "Authorised",
            "ncerror": "0",
            "accepted": True,
        }

    async def test_post_callback_accepted(self, client: AsyncClient, gateway_config):
        params = signed_callback(gateway_config.sha_secret, STATUS="9")

        response = await client.post(
            "/webhooks/postfinance",
            content=urlencode(params),
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )

        assert response.status_code == 200
        assert response.json()["status"] == 9
        assert response.json()["accepted"] is True

    async def test_accented_values(self, client: AsyncClient, gateway_config):
        params = signed_callback(gateway_config.sha_secret, CN="Zoé Müller")

        response = await client.post(
            "/webhooks/postfinance",
            content=urlencode(params),
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )

        assert response.status_code == 200

    async def test_latin1_callback(self, gateway_config):
        config = replace(gateway_config, sha_encoding="iso-8859-1")
        params = signed_callback(config.sha_secret, encoding="iso-8859-1", CN="José")
        app = create_app(config)

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            posted = await ac.post(
                "/webhooks/postfinance",
                content=urlencode(params, encoding="iso-8859-1"),
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
            queried = await ac.get(
                "/webhooks/postfinance?" + urlencode(params, encoding="iso-8859-1")
            )

        assert posted.status_code == 200
        assert posted.json()["accepted"] is True
        assert queried.status_code == 200

    async def test_undecodable_body_rejected(self, client: AsyncClient):
        response = await client.post(
            "/webhooks/postfinance",
            content=b"CN=\xff\xfe&SHASIGN=AB",
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Callback is not valid utf-8"

    async def test_undecodable_escape_rejected(self, client: AsyncClient):
        response = await client.get("/webhooks/postfinance?CN=Jos%E9&SHASIGN=AB")

        assert response.status_code == 400

    async def test_tampered_callback_rejected(self, client: AsyncClient, gateway_config):
        params = signed_callback(gateway_config.sha_secret)
        params["amount"] = "1"

        response = await client.get("/webhooks/postfinance", params=params)

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid callback signature"

    async def test_unsigned_callback_rejected(self, client: AsyncClient):
        response = await client.get("/webhooks/postfinance", params={"orderID": "TX1"})

        assert response.status_code == 400

    async def test_declined_payment_not_accepted(self, client: AsyncClient, gateway_config):
        params = signed_callback(gateway_config.sha_secret, STATUS="2", NCERROR="30051001")

        response = await client.get("/webhooks/postfinance", params=params)

        assert response.status_code == 200
        data = response.json()
        assert data["accepted"] is False
        assert data["status_text"] == "Authorisation refused"
        assert data["ncerror"] == "30051001"


class TestErrorHandlers:
    """Test PostFinanceError mapping."""

    async def test_error_status_codes(self, gateway_config):
        app = create_app(gateway_config)

        async def system_error() -> None:
            raise PaymentSystemError("Currency not allowed", "USD")

        async def gateway_error() -> None:
            raise PaymentGatewayError(50001127, "denied", "This order is not authorized")

        app.add_api_route("/system-error", system_error)
        app.add_api_route("/gateway-error", gateway_error)

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            system = await ac.get("/system-error")
            gateway = await ac.get("/gateway-error")

        assert system.status_code == 400
        assert system.json() == {
            "category": "system",
            "message": "Currency not allowed",
            "details": "USD",
        }
        assert gateway.status_code == 402
        assert gateway.json()["code"] == 50001127
        assert gateway.json()["status"] == "denied"
