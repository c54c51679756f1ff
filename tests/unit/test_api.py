"""Unit tests for the merchant backend API."""

import httpx
import pytest
from fastapi.testclient import TestClient

from card_checkout.api.main import create_app
from card_checkout.flows.payment import PaymentSubmissionFlow
from card_checkout.flows.tokenization import TokenizationFlow
from card_checkout.models.outcomes import PaymentSucceeded
from card_checkout.sdk.base import PaymentContext
from card_checkout.sdk.checkout_api import CheckoutApiGateway
from card_checkout.sdk.mock import MockEncryptionSession, MockGateway
from card_checkout.sdk.worldline import WorldlineGateway
from card_checkout.test_cards import get_test_card


@pytest.fixture
def client(gateway):
    """Test client with the mock gateway injected."""
    with TestClient(create_app(gateway=gateway)) as test_client:
        yield test_client


def payment_body(vault, card_number, amount=7799):
    return {
        "cardToken": vault.put(card_number),
        "customerId": "cust-1234",
        "amount": amount,
        "currency": "AUD",
        "cardHolder": "TEST USER",
    }


class TestServiceEndpoints:
    """Test health and root endpoints."""

    def test_health_check(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["service"] == "card-checkout"
        assert "environment" in response.json()

    def test_root_endpoint(self, client):
        response = client.get("/")

        assert response.json() == {"service": "Card Checkout", "version": "0.1.0", "status": "running"}

    def test_gateway_not_initialized(self):
        # No lifespan: the gateway is never created
        response = TestClient(create_app()).post("/api/session", json={})

        assert response.status_code == 503


class TestSessionEndpoint:
    """Test POST /api/session."""

    def test_create_session(self, client, gateway):
        response = client.post("/api/session", json={"countryCode": "NZ", "currencyCode": "NZD", "amount": 500})

        assert response.status_code == 200
        data = response.json()
        assert data["clientSessionId"].startswith("mock_cs_")
        assert data["customerId"]
        assert data["clientApiUrl"]
        assert gateway.sessions == [PaymentContext(country_code="NZ", currency_code="NZD", amount=500)]

    def test_create_session_without_body(self, client, gateway):
        response = client.post("/api/session")

        assert response.status_code == 200
        assert len(gateway.sessions) == 1

    def test_create_session_refused(self, client):
        response = client.post("/api/session", json={"amount": 0})

        assert response.status_code == 400
        assert response.json() == {"error": "Failed to create session", "details": {"amount": 0}}

    def test_missing_credentials(self):
        gateway = WorldlineGateway(
            merchant_id="",
            api_key_id="",
            secret_api_key="",
            api_url="https://payment.preprod.example.com",
        )

        with TestClient(create_app(gateway=gateway)) as client:
            response = client.post("/api/session", json={})

        assert response.status_code == 500
        assert response.json()["error"] == "Missing credentials"


class TestPaymentsEndpoint:
    """Test POST /api/payments."""

    def test_success(self, client, vault):
        response = client.post("/api/payments", json=payment_body(vault, "4111111111111111"))

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["paymentId"].startswith("mock_pay_")
        assert data["status"] == "PENDING_CAPTURE"
        assert data["amount"] == 7799
        assert data["cardNumber"] == "************1111"

    def test_challenge(self, client, vault):
        response = client.post("/api/payments", json=payment_body(vault, "4000000000003220"))

        assert response.status_code == 402
        data = response.json()
        assert data["requires3DS"] is True
        assert data["paymentId"]
        assert data["redirectUrl"].startswith("https://mock-acs.example.com/3ds")
        assert data["message"] == "Customer authentication required"

    def test_decline(self, client, vault):
        response = client.post("/api/payments", json=payment_body(vault, "4000000000000002"))

        assert response.status_code == 400
        data = response.json()
        assert data["success"] is False
        assert data["error"] == "Payment declined or processing failed"
        assert data["status"] == "REJECTED"
        assert data["statusCode"] == 2

    def test_processor_timeout(self, client, vault):
        response = client.post("/api/payments", json=payment_body(vault, "4000000000000119"))

        assert response.status_code == 502
        assert response.json()["error"] == "Payment processing failed"

    def test_missing_fields(self, client):
        response = client.post("/api/payments", json={"amount": 100})

        assert response.status_code == 422

    def test_idempotency_key_forwarded(self, client, vault, gateway):
        client.post(
            "/api/payments",
            json=payment_body(vault, "4111111111111111"),
            headers={"X-Idempotency-Key": "order-42"},
        )

        assert gateway.charges[0].idempotency_key == "order-42"

    def test_blank_idempotency_key_rejected(self, client, vault, gateway):
        response = client.post(
            "/api/payments",
            json=payment_body(vault, "4111111111111111"),
            headers={"X-Idempotency-Key": "  "},
        )

        assert response.status_code == 400
        assert gateway.charges == []


class TestCaptureEndpoint:
    """Test POST /api/payments/{payment_id}/capture."""

    def test_capture(self, client, gateway):
        response = client.post("/api/payments/mock_pay_1/capture", json={"amount": 7799})

        assert response.status_code == 200
        assert response.json()["status"] == "CAPTURED"
        assert gateway.captures == [("mock_pay_1", 7799)]

    def test_capture_declined(self, vault):
        gateway = MockGateway(vault=vault, capture_response="declined")

        with TestClient(create_app(gateway=gateway)) as client:
            response = client.post("/api/payments/mock_pay_1/capture", json={"amount": 7799})

        assert response.status_code == 400
        assert response.json()["error"] == "Payment capture failed"


class TestClientThroughBackend:
    """Client core talking to the backend over HTTP."""

    @pytest.mark.asyncio
    async def test_tokenize_and_pay(self, store, vault):
        app = create_app(gateway=MockGateway(vault=vault))
        http_client = httpx.AsyncClient(transport=httpx.ASGITransport(app=app))
        backend_gateway = CheckoutApiGateway(base_url="http://testserver/api", http_client=http_client)

        card = get_test_card("Visa - Success").to_input()
        session = MockEncryptionSession(vault=vault)
        tokenized = await TokenizationFlow(store, session).tokenize(card)
        assert tokenized.ok is True

        outcome = await PaymentSubmissionFlow(store, backend_gateway).submit("77.99", "AUD")
        await backend_gateway.close()

        assert isinstance(outcome, PaymentSucceeded)
        assert outcome.status == "CAPTURED"
        assert outcome.amount == 7799
