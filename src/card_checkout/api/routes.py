"""FastAPI routes for the merchant backend.

- POST /api/session: Create a client session for encryption
- POST /api/payments: Charge an encrypted card token
- POST /api/payments/{payment_id}/capture: Capture an authorized payment

Payment responses keep the envelope shapes the client expects:
200 success, 402 step-up challenge, 400 failure.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from card_checkout.api.dependencies import Gateway, IdempotencyKey
from card_checkout.api.models import (
    CaptureRequestJSON,
    ChargeRequestJSON,
    SessionRequestJSON,
    SessionResponseJSON,
)
from card_checkout.config import settings
from card_checkout.models.exceptions import GatewayUnavailable, SessionCreationError
from card_checkout.models.outcomes import ChallengeRequired, PaymentOutcome, PaymentSucceeded
from card_checkout.sdk.base import ChargeRequest, PaymentContext, PaymentGateway
from card_checkout.sdk.worldline import WorldlineGateway

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api")


def outcome_to_response(outcome: PaymentOutcome) -> JSONResponse:
    """Render a payment outcome as the backend's JSON envelope."""
    if isinstance(outcome, PaymentSucceeded):
        return JSONResponse(status_code=status.HTTP_200_OK, content=outcome.to_dict())

    if isinstance(outcome, ChallengeRequired):
        return JSONResponse(
            status_code=status.HTTP_402_PAYMENT_REQUIRED,
            content={
                "requires3DS": True,
                "paymentId": outcome.payment_id,
                "redirectUrl": outcome.redirect_url,
                "message": "Customer authentication required",
            },
        )

    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=outcome.to_dict())


def _unavailable(error: GatewayUnavailable, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"error": message, "message": str(error)},
    )


def _credentials_missing(gateway: PaymentGateway) -> bool:
    if not isinstance(gateway, WorldlineGateway):
        return False
    return not gateway.has_credentials


@router.post("/session", responses={200: {"model": SessionResponseJSON}})
async def create_session(
    gateway: Gateway,
    body: Optional[SessionRequestJSON] = None,
) -> JSONResponse:
    """Create a client session.

    Responses:
        200 OK: clientSessionId, customerId, clientApiUrl, assetUrl
        500: Merchant credentials not configured
        4xx/5xx: Processor refused the session (its status is passed through)
        502: Processor unreachable
    """
    if _credentials_missing(gateway):
        logger.error("session_credentials_missing")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "Missing credentials",
                "message": "WORLDLINE__MERCHANT_ID, WORLDLINE__API_KEY_ID, or "
                "WORLDLINE__SECRET_API_KEY not configured",
            },
        )

    body = body or SessionRequestJSON()
    context = PaymentContext(
        country_code=body.country_code or settings.checkout.country_code,
        currency_code=body.currency_code or settings.checkout.currency_code,
        amount=body.amount if body.amount is not None else settings.checkout.amount,
    )

    try:
        descriptor = await gateway.create_session(context)
    except SessionCreationError as e:
        logger.error("session_creation_failed", status_code=e.status_code)
        return JSONResponse(
            status_code=e.status_code,
            content={"error": "Failed to create session", "details": e.details},
        )
    except GatewayUnavailable as e:
        return _unavailable(e, "Failed to create session")

    logger.info("session_created", customer_id=descriptor.customer_id)
    return JSONResponse(status_code=status.HTTP_200_OK, content=descriptor.to_dict())


@router.post("/payments")
async def create_payment(
    body: ChargeRequestJSON,
    gateway: Gateway,
    idempotency_key: IdempotencyKey,
) -> JSONResponse:
    """Charge an encrypted card token.

    Responses:
        200 OK: {success, paymentId, status, amount, cardNumber}
        402 Payment Required: {requires3DS, paymentId, redirectUrl, message}
        400 Bad Request: {success: false, error, status, statusCode}
        422: Missing or invalid fields
        502: Processor unreachable
    """
    logger.info(
        "processing_payment",
        amount=body.amount,
        currency=body.currency,
        customer_id=body.customer_id,
    )

    request = ChargeRequest(
        card_token=body.card_token,
        customer_id=body.customer_id,
        amount=body.amount,
        currency=body.currency.upper(),
        idempotency_key=idempotency_key,
    )

    try:
        outcome = await gateway.charge(request)
    except GatewayUnavailable as e:
        logger.error("payment_processing_error", error=str(e))
        return _unavailable(e, "Payment processing failed")

    return outcome_to_response(outcome)


@router.post("/payments/{payment_id}/capture")
async def capture_payment(
    payment_id: str,
    body: CaptureRequestJSON,
    gateway: Gateway,
) -> JSONResponse:
    """Capture an authorized payment.

    Responses:
        200 OK: {success, paymentId, status, amount, cardNumber}
        400 Bad Request: {success: false, error, status, statusCode}
        502: Processor unreachable
    """
    logger.info("capturing_payment", payment_id=payment_id, amount=body.amount)

    try:
        outcome = await gateway.capture(payment_id, body.amount)
    except GatewayUnavailable as e:
        logger.error("payment_capture_error", payment_id=payment_id, error=str(e))
        return _unavailable(e, "Payment capture failed")

    return outcome_to_response(outcome)
