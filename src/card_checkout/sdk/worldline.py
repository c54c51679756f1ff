"""
Worldline (Online Payments) server API gateway.

Wraps the official Online Payments Python SDK with merchant credentials:
client session creation, payment creation from encrypted customer input,
and capture of authorized payments. The SDK signs every request (v1HMAC).

IMPORTANT - MOCK GATEWAY SYNC:
MockGateway (mock.py) mirrors the outcome classification in
``classify_payment_response`` and ``classify_capture_response``. When
the response handling here changes, review the mock as well.

Reference:
- https://docs.direct.worldline-solutions.com/en/integration/how-to-integrate/server-sdks/python
- https://docs.direct.worldline-solutions.com/en/api-reference
"""

import asyncio
import json
from typing import Any, Callable, Optional
from urllib.parse import urlsplit

import structlog
from onlinepayments.sdk.api_exception import ApiException
from onlinepayments.sdk.call_context import CallContext
from onlinepayments.sdk.client import Client
from onlinepayments.sdk.communication.communication_exception import CommunicationException
from onlinepayments.sdk.communicator_configuration import CommunicatorConfiguration
from onlinepayments.sdk.domain.capture_payment_request import CapturePaymentRequest
from onlinepayments.sdk.domain.create_payment_request import CreatePaymentRequest
from onlinepayments.sdk.domain.session_request import SessionRequest
from onlinepayments.sdk.factory import Factory

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

AUTHORIZATION_TYPE = "v1HMAC"
CHALLENGE_STATUS_CODE = 402
MAX_CONNECTIONS = 10
# The SDK returns the body only; any successful call is reported as 200.
SUCCESS_STATUS_CODE = 200


def _get(data: Any, *keys: str) -> Any:
    """Walk nested dictionaries, returning None on any missing level."""
    for key in keys:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def _payment_body(body: dict) -> dict:
    payment = body.get("payment") or _get(body, "paymentResult", "payment")
    return payment if isinstance(payment, dict) else {}


def _error_body(error: ApiException) -> dict:
    """Decode the JSON envelope carried by an SDK API exception."""
    try:
        body = json.loads(error.response_body) if error.response_body else {}
    except ValueError:
        body = {}
    return body if isinstance(body, dict) else {}


def classify_payment_response(status_code: int, body: dict) -> PaymentOutcome:
    """
    Turn a create-payment response into exactly one outcome.

    402, or a 2xx carrying a REDIRECT merchant action, is a challenge.
    Any other 2xx is a success. Everything else is a failure.
    """
    payment = _payment_body(body)
    payment_id = payment.get("id")
    redirect_url = _get(payment, "authentication", "redirectUrl") or _get(
        body, "merchantAction", "redirectData", "redirectURL"
    )

    if status_code == CHALLENGE_STATUS_CODE or (
        200 <= status_code < 300 and _get(body, "merchantAction", "actionType") == "REDIRECT"
    ):
        return ChallengeRequired(payment_id=payment_id, redirect_url=redirect_url)

    if 200 <= status_code < 300 and payment_id:
        return PaymentSucceeded(
            payment_id=payment_id,
            status=payment.get("status", "UNKNOWN"),
            amount=_get(payment, "paymentOutput", "amountOfMoney", "amount"),
            card_number=(
                _get(payment, "paymentOutput", "cardPaymentMethodSpecificOutput", "card", "cardNumber")
                or _get(payment, "cardPaymentMethodSpecificOutput", "card", "cardNumber")
            ),
        )

    return PaymentFailed(
        error="Payment declined or processing failed",
        error_code=REMOTE_FAILURE,
        status=payment.get("status") or "FAILED",
        status_code=_get(payment, "statusOutput", "statusCode") or status_code,
        payment_id=payment_id,
    )


def classify_capture_response(payment_id: str, status_code: int, body: dict) -> PaymentOutcome:
    """Turn a capture response into a success or failure outcome."""
    if 200 <= status_code < 300:
        return PaymentSucceeded(
            payment_id=payment_id,
            status=body.get("status", "CAPTURE_REQUESTED"),
            amount=_get(body, "captureOutput", "amountOfMoney", "amount"),
            card_number=_get(body, "captureOutput", "cardPaymentMethodSpecificOutput", "card", "cardNumber"),
        )

    return PaymentFailed(
        error="Payment capture failed",
        error_code=REMOTE_FAILURE,
        status=body.get("status") or "CAPTURE_FAILED",
        status_code=_get(body, "statusOutput", "statusCode") or status_code,
        payment_id=payment_id,
    )


class WorldlineGateway(PaymentGateway):
    """
    Worldline server API implementation of PaymentGateway.

    Card declines come back as PaymentFailed; 5xx, timeouts and
    connection errors raise GatewayUnavailable. Nothing is retried here.
    """

    def __init__(
        self,
        merchant_id: str,
        api_key_id: str,
        secret_api_key: str,
        api_url: str,
        integrator: str = "CardCheckout/1.0",
        timeout_seconds: float = 10.0,
        client: Optional[Client] = None,
    ) -> None:
        """
        Initialize the gateway.

        Args:
            merchant_id: PSPID of the merchant account
            api_key_id: API key identifier
            secret_api_key: API secret used for signing
            api_url: Server API base URL
            integrator: Integrator name sent in the server meta info header
            timeout_seconds: Connect and socket timeout in seconds
            client: Optional pre-built SDK client (tests inject a mock)
        """
        self.merchant_id = merchant_id
        self.api_key_id = api_key_id
        self.secret_api_key = secret_api_key
        self.api_url = api_url.rstrip("/")
        self.integrator = integrator
        self.timeout_seconds = timeout_seconds
        self._client = client

        parts = urlsplit(self.api_url)
        logger.info(
            "worldline_gateway_initialized",
            scheme=parts.scheme,
            host=parts.hostname,
            port=parts.port or (443 if parts.scheme == "https" else 80),
            timeout_seconds=timeout_seconds,
        )

    @property
    def has_credentials(self) -> bool:
        return bool(self.merchant_id and self.api_key_id and self.secret_api_key)

    @property
    def client(self) -> Client:
        """SDK client, built on first use (the SDK rejects blank credentials)."""
        if self._client is None:
            configuration = CommunicatorConfiguration(
                api_endpoint=self.api_url,
                api_key_id=self.api_key_id,
                secret_api_key=self.secret_api_key,
                authorization_type=AUTHORIZATION_TYPE,
                connect_timeout=self.timeout_seconds,
                socket_timeout=self.timeout_seconds,
                max_connections=MAX_CONNECTIONS,
                integrator=self.integrator,
            )
            self._client = Factory.create_client_from_configuration(configuration)
        return self._client

    async def _call(self, operation: str, call: Callable[[], Any]) -> tuple[int, dict]:
        """
        Run one blocking SDK call off the event loop.

        Returns the status code and the JSON body, taken from the error
        envelope when the SDK raises an API exception.
        """
        try:
            response = await asyncio.to_thread(call)
        except CommunicationException as e:
            logger.error("worldline_communication_error", operation=operation, error=str(e))
            raise GatewayUnavailable(f"Payment processor request error: {e}") from e
        except ApiException as e:
            if e.status_code >= 500:
                logger.error(
                    "worldline_server_error",
                    operation=operation,
                    status_code=e.status_code,
                    error_id=e.error_id,
                )
                raise GatewayUnavailable(
                    f"Payment processor unavailable (status: {e.status_code})"
                ) from e

            logger.debug("worldline_error_response", operation=operation, status_code=e.status_code)
            return e.status_code, _error_body(e)

        body = response.to_dictionary() if response is not None else {}
        logger.debug("worldline_response", operation=operation, status_code=SUCCESS_STATUS_CODE)
        return SUCCESS_STATUS_CODE, body

    async def create_session(self, context: PaymentContext) -> SessionDescriptor:
        logger.info("worldline_session_creating", merchant_id=self.merchant_id)

        sessions = self.client.merchant(self.merchant_id).sessions()
        status_code, body = await self._call(
            "create_session",
            lambda: sessions.create_session(SessionRequest()),
        )

        if 200 <= status_code < 300:
            descriptor = SessionDescriptor.from_dict(body)
            logger.info("worldline_session_created", customer_id=descriptor.customer_id)
            return descriptor

        logger.error("worldline_session_failed", status_code=status_code)
        raise SessionCreationError("Failed to create session", status_code=status_code, details=body)

    async def charge(self, request: ChargeRequest) -> PaymentOutcome:
        logger.info(
            "worldline_payment_starting",
            amount=request.amount,
            currency=request.currency,
            customer_id=request.customer_id,
        )

        body = CreatePaymentRequest().from_dictionary(
            {
                "encryptedCustomerInput": request.card_token,
                "order": {
                    "amountOfMoney": {
                        "amount": request.amount,
                        "currencyCode": request.currency,
                    },
                    "customer": {"merchantCustomerId": request.customer_id},
                },
            }
        )
        context = CallContext(idempotence_key=request.idempotency_key) if request.idempotency_key else None

        payments = self.client.merchant(self.merchant_id).payments()
        status_code, payload = await self._call(
            "create_payment",
            lambda: payments.create_payment(body, context),
        )

        outcome = classify_payment_response(status_code, payload)
        logger.info(
            "worldline_payment_classified",
            outcome=outcome.kind,
            status_code=status_code,
            payment_id=getattr(outcome, "payment_id", None),
        )
        return outcome

    async def capture(self, payment_id: str, amount: int) -> PaymentOutcome:
        logger.info("worldline_capture_starting", payment_id=payment_id, amount=amount)

        body = CapturePaymentRequest().from_dictionary({"amount": amount})
        payments = self.client.merchant(self.merchant_id).payments()
        status_code, payload = await self._call(
            "capture_payment",
            lambda: payments.capture_payment(payment_id, body),
        )

        outcome = classify_capture_response(payment_id, status_code, payload)
        logger.info("worldline_capture_classified", outcome=outcome.kind, status_code=status_code)
        return outcome

    async def close(self) -> None:
        """Close the SDK client's connection pool, if one was opened."""
        if self._client is not None:
            self._client.close()
