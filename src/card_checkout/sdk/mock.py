"""
Mock collaborators for tests and offline demos.

MockGateway and MockEncryptionSession implement the same interfaces as
the Worldline gateway and ClientSession without making network calls.
They share a MockVault so the gateway can recognise which test card a
mock token stands for; real tokens stay opaque.

SYNC WITH WORLDLINE:
Outcome shapes mirror ``classify_payment_response`` and
``classify_capture_response`` in worldline.py: successful card
authorizations come back as PENDING_CAPTURE, declines as REJECTED with a
status code, 3-D Secure cards as a challenge with a redirect URL.
"""

import asyncio
import uuid
from typing import Any, Optional

import structlog

from card_checkout.models.exceptions import GatewayUnavailable, SessionCreationError
from card_checkout.models.outcomes import (
    PENDING_CAPTURE,
    REMOTE_FAILURE,
    ChallengeRequired,
    PaymentFailed,
    PaymentOutcome,
    PaymentSucceeded,
)
from card_checkout.models.card import mask_card_number
from card_checkout.sdk.base import (
    ChargeRequest,
    EncryptionSession,
    Encryptor,
    PaymentContext,
    PaymentGateway,
    SessionDescriptor,
)
from card_checkout.sdk.payment_request import DEFAULT_CARD_PRODUCT, PaymentProduct, PaymentRequest

logger = structlog.get_logger(__name__)

MOCK_REDIRECT_BASE = "https://mock-acs.example.com/3ds"

# Test card behaviours, keyed by card number.
TEST_CARD_BEHAVIORS: dict[str, dict[str, Any]] = {
    # Success scenarios (authorization, capture needed)
    "4111111111111111": {"type": "success", "status": PENDING_CAPTURE, "description": "Visa success"},
    "5555555555554444": {"type": "success", "status": PENDING_CAPTURE, "description": "Mastercard success"},
    "378282246310005": {"type": "success", "status": PENDING_CAPTURE, "description": "American Express success"},
    # Direct sale, already captured
    "6011111111111117": {"type": "success", "status": "CAPTURED", "description": "Discover direct sale"},
    # Decline scenarios
    "4000000000000002": {
        "type": "decline",
        "status": "REJECTED",
        "status_code": 2,
        "description": "Visa decline",
    },
    "5105105105105100": {
        "type": "decline",
        "status": "REJECTED",
        "status_code": 2,
        "description": "Mastercard decline",
    },
    # 3-D Secure challenge
    "4000000000003220": {"type": "challenge", "description": "Requires 3-D Secure authentication"},
    # Transport failure
    "4000000000000119": {"type": "timeout", "description": "Processor timeout"},
}


class MockVault:
    """Maps mock tokens to the card numbers they were created from."""

    def __init__(self) -> None:
        self._cards: dict[str, str] = {}

    def put(self, card_number: str) -> str:
        token = f"mock_enc_{uuid.uuid4().hex}"
        self._cards[token] = card_number
        return token

    def card_for(self, token: str) -> Optional[str]:
        return self._cards.get(token)


class MockEncryptor(Encryptor):
    """
    Encryptor that registers the card in the vault and returns a mock token.

    Args:
        vault: Shared vault
        delay_seconds: Simulated latency (used to exercise the timeout)
        result: Force a result (e.g. "" to simulate an empty encryption)
        error: Exception to raise instead of encrypting
    """

    def __init__(
        self,
        vault: MockVault,
        delay_seconds: float = 0.0,
        result: Optional[str] = None,
        error: Optional[Exception] = None,
    ) -> None:
        self.vault = vault
        self.delay_seconds = delay_seconds
        self.result = result
        self.error = error
        self.calls = 0

    async def encrypt(self, request: PaymentRequest) -> str:
        self.calls += 1
        if self.delay_seconds > 0:
            await asyncio.sleep(self.delay_seconds)
        if self.error is not None:
            raise self.error
        if self.result is not None:
            return self.result
        return self.vault.put(request.get_value("cardNumber") or "")


class MockEncryptionSession(EncryptionSession):
    """Client session double with the default card product."""

    def __init__(
        self,
        vault: Optional[MockVault] = None,
        customer_id: str = "mock-customer-1",
        product: Optional[PaymentProduct] = None,
        product_error: Optional[Exception] = None,
        encryptor: Optional[Encryptor] = None,
        has_encryptor: bool = True,
    ) -> None:
        self.vault = vault or MockVault()
        self._customer_id = customer_id
        self.product = product or DEFAULT_CARD_PRODUCT
        self.product_error = product_error
        self.encryptor = encryptor or MockEncryptor(self.vault)
        self.has_encryptor = has_encryptor

    @property
    def customer_id(self) -> str:
        return self._customer_id

    async def get_payment_product(self, product_id: int) -> PaymentProduct:
        if self.product_error is not None:
            raise self.product_error
        return self.product

    def get_encryptor(self) -> Optional[Encryptor]:
        return self.encryptor if self.has_encryptor else None


class MockGateway(PaymentGateway):
    """
    Mock payment gateway.

    Args:
        vault: Vault shared with the mock encryptor
        default_response: Behaviour for unknown tokens ("authorized" or "declined")
        latency_ms: Simulated latency in milliseconds
        capture_response: "captured", "declined" or "timeout"
        card_behaviors: Override the default test card behaviours
    """

    def __init__(
        self,
        vault: Optional[MockVault] = None,
        default_response: str = "authorized",
        latency_ms: int = 0,
        capture_response: str = "captured",
        card_behaviors: Optional[dict[str, dict[str, Any]]] = None,
    ) -> None:
        self.vault = vault or MockVault()
        self.default_response = default_response
        self.latency_ms = latency_ms
        self.capture_response = capture_response
        self.card_behaviors = card_behaviors or TEST_CARD_BEHAVIORS
        self.charges: list[ChargeRequest] = []
        self.captures: list[tuple[str, int]] = []
        self.sessions: list[PaymentContext] = []

        logger.info(
            "mock_gateway_initialized",
            default_response=self.default_response,
            capture_response=self.capture_response,
            latency_ms=self.latency_ms,
        )

    async def _simulate_latency(self) -> None:
        if self.latency_ms > 0:
            await asyncio.sleep(self.latency_ms / 1000.0)

    async def create_session(self, context: PaymentContext) -> SessionDescriptor:
        await self._simulate_latency()
        self.sessions.append(context)
        if context.amount <= 0:
            raise SessionCreationError("Failed to create session", status_code=400, details={"amount": context.amount})
        return SessionDescriptor(
            client_session_id=f"mock_cs_{uuid.uuid4().hex[:24]}",
            customer_id=f"mock_cust_{uuid.uuid4().hex[:12]}",
            client_api_url="https://mock-client-api.example.com/client",
            asset_url="https://mock-assets.example.com",
        )

    async def charge(self, request: ChargeRequest) -> PaymentOutcome:
        await self._simulate_latency()
        self.charges.append(request)

        card_number = self.vault.card_for(request.card_token)
        behavior = self.card_behaviors.get(card_number or "")
        if behavior is None:
            default_type = "decline" if self.default_response == "declined" else "success"
            behavior = {"type": default_type, "status": PENDING_CAPTURE if default_type == "success" else "REJECTED"}

        behavior_type = behavior["type"]
        payment_id = f"mock_pay_{uuid.uuid4().hex[:16]}"
        last4 = card_number[-4:] if card_number else None

        if behavior_type == "timeout":
            logger.warning("mock_timeout", card_last_four=last4)
            raise GatewayUnavailable("Mock processor timeout")

        if behavior_type == "challenge":
            logger.info("mock_challenge_required", payment_id=payment_id, card_last_four=last4)
            return ChallengeRequired(
                payment_id=payment_id,
                redirect_url=f"{MOCK_REDIRECT_BASE}?paymentId={payment_id}",
            )

        if behavior_type == "decline":
            logger.info("mock_card_declined", payment_id=payment_id, card_last_four=last4)
            return PaymentFailed(
                error="Payment declined or processing failed",
                error_code=REMOTE_FAILURE,
                status=behavior.get("status", "REJECTED"),
                status_code=behavior.get("status_code", 2),
                payment_id=payment_id,
            )

        logger.info("mock_authorization_success", payment_id=payment_id, amount=request.amount)
        return PaymentSucceeded(
            payment_id=payment_id,
            status=behavior.get("status", PENDING_CAPTURE),
            amount=request.amount,
            card_number=mask_card_number(card_number) if card_number else None,
        )

    async def capture(self, payment_id: str, amount: int) -> PaymentOutcome:
        await self._simulate_latency()
        self.captures.append((payment_id, amount))

        if self.capture_response == "timeout":
            raise GatewayUnavailable("Mock capture timeout")
        if self.capture_response == "declined":
            return PaymentFailed(
                error="Payment capture failed",
                error_code=REMOTE_FAILURE,
                status="REJECTED_CAPTURE",
                payment_id=payment_id,
            )
        return PaymentSucceeded(payment_id=payment_id, status="CAPTURED", amount=amount)
