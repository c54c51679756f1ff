"""Gateway client for the merchant backend.

The client core never holds merchant credentials. In a browser-like
deployment it reaches the processor through the merchant backend
(``card_checkout.api``), and this client maps the backend's JSON
envelopes back onto the payment outcome union.
"""

import uuid
from typing import Optional

import httpx
import structlog

from card_checkout.models.exceptions import GatewayUnavailable, SessionCreationError
from card_checkout.models.outcomes import (
    REMOTE_FAILURE,
    ChallengeRequired,
    PaymentFailed,
    PaymentOutcome,
    PaymentSucceeded,
)
from card_checkout.sdk.base import ChargeRequest, PaymentContext, PaymentGateway, SessionDescriptor

logger = structlog.get_logger(__name__)


def outcome_from_api(status_code: int, body: dict) -> PaymentOutcome:
    """Map a merchant backend payment/capture response to an outcome."""
    if body.get("requires3DS") or status_code == 402:
        return ChallengeRequired(payment_id=body.get("paymentId"), redirect_url=body.get("redirectUrl"))

    if body.get("success") and body.get("paymentId"):
        card_number = body.get("cardNumber")
        return PaymentSucceeded(
            payment_id=body["paymentId"],
            status=body.get("status", "UNKNOWN"),
            amount=body.get("amount"),
            card_number=None if card_number == "N/A" else card_number,
            capture_pending=bool(body.get("capturePending", False)),
        )

    if status_code == 422:
        return PaymentFailed(
            error="Missing required fields",
            error_code="validation_error",
            status_code=status_code,
        )

    return PaymentFailed(
        error=body.get("error") or body.get("message") or "Payment failed",
        error_code=body.get("errorCode", REMOTE_FAILURE),
        status=body.get("status"),
        status_code=body.get("statusCode") or status_code,
        payment_id=body.get("paymentId"),
    )


class CheckoutApiGateway(PaymentGateway):
    """
    PaymentGateway backed by the merchant backend's REST API.

    Args:
        base_url: Backend API base URL (e.g., "http://localhost:3000/api")
        timeout_seconds: Request timeout in seconds
        http_client: Optional pre-built client (tests inject a mock transport)
    """

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 10.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.http_client = http_client or httpx.AsyncClient(timeout=timeout_seconds)

        logger.info("checkout_api_gateway_initialized", base_url=self.base_url, timeout_seconds=timeout_seconds)

    async def _post(self, path: str, body: dict, headers: Optional[dict] = None) -> tuple[int, dict]:
        correlation_id = str(uuid.uuid4())
        url = f"{self.base_url}{path}"

        try:
            response = await self.http_client.post(
                url,
                json=body,
                headers={"X-Request-ID": correlation_id, **(headers or {})},
            )
        except httpx.TimeoutException as e:
            logger.error("checkout_api_timeout", path=path, correlation_id=correlation_id, error=str(e))
            raise GatewayUnavailable("Checkout backend timeout") from e
        except httpx.RequestError as e:
            logger.error("checkout_api_request_error", path=path, correlation_id=correlation_id, error=str(e))
            raise GatewayUnavailable(f"Checkout backend request error: {e}") from e

        if response.status_code >= 500 and path != "/session":
            logger.error("checkout_api_server_error", path=path, status_code=response.status_code)
            raise GatewayUnavailable(f"Checkout backend unavailable (status: {response.status_code})")

        try:
            payload = response.json()
        except ValueError:
            payload = {}
        return response.status_code, payload if isinstance(payload, dict) else {}

    async def create_session(self, context: PaymentContext) -> SessionDescriptor:
        logger.info("fetching_session_credentials", base_url=self.base_url)

        status_code, body = await self._post("/session", context.to_dict())
        if status_code != 200:
            raise SessionCreationError(
                f"Could not initialize payment session: Backend error: {status_code}",
                status_code=status_code,
                details=body,
            )

        descriptor = SessionDescriptor.from_dict(body)
        logger.info(
            "session_credentials_received",
            customer_id=descriptor.customer_id,
            client_api_url=descriptor.client_api_url,
        )
        return descriptor

    async def charge(self, request: ChargeRequest) -> PaymentOutcome:
        headers = {}
        if request.idempotency_key:
            headers["X-Idempotency-Key"] = request.idempotency_key

        status_code, body = await self._post(
            "/payments",
            {
                "cardToken": request.card_token,
                "customerId": request.customer_id,
                "amount": request.amount,
                "currency": request.currency,
            },
            headers=headers,
        )
        return outcome_from_api(status_code, body)

    async def capture(self, payment_id: str, amount: int) -> PaymentOutcome:
        status_code, body = await self._post(f"/payments/{payment_id}/capture", {"amount": amount})
        return outcome_from_api(status_code, body)

    async def close(self) -> None:
        """Close the HTTP client connection pool."""
        await self.http_client.aclose()
