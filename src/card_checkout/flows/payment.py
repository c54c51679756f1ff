"""Payment submission flow.

Charges the saved card for a user-facing decimal amount and classifies
the processor's answer into exactly one of three outcomes: success,
step-up challenge, or failure. An authorization that still needs a
capture is captured before success is declared.
"""

import re
import uuid
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional, Union

import structlog

from card_checkout.models.exceptions import (
    CheckoutError,
    GatewayError,
    NoTokenAvailable,
    ValidationError,
)
from card_checkout.models.outcomes import (
    AUTHORIZED_PENDING_CAPTURE,
    PENDING_CAPTURE,
    ChallengeRequired,
    PaymentFailed,
    PaymentOutcome,
    PaymentSucceeded,
    attempt_status_for,
)
from card_checkout.sdk.base import ChargeRequest, PaymentGateway
from card_checkout.storage.token_store import TokenStore

logger = structlog.get_logger(__name__)

_CURRENCY_PATTERN = re.compile(r"^[A-Za-z]{3}$")

Amount = Union[Decimal, float, int, str]

# Largest amount accepted, in major units.
MAX_AMOUNT = Decimal("999999999999.99")


def to_minor_units(amount: Amount) -> int:
    """
    Convert a decimal amount to integer minor units.

    Multiplies by 100 and rounds half up, never truncates:
    10.005 -> 1001, 77.99 -> 7799.

    Raises:
        ValidationError: If the amount is not a positive number or exceeds MAX_AMOUNT
    """
    try:
        value = Decimal(str(amount).strip())
    except InvalidOperation as e:
        raise ValidationError({"amount": "Amount must be a number"}) from e

    if not value.is_finite() or value <= 0:
        raise ValidationError({"amount": "Amount must be greater than zero"})

    if value > MAX_AMOUNT:
        raise ValidationError({"amount": "Amount is too large"})

    try:
        minor = int((value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    except InvalidOperation as e:
        raise ValidationError({"amount": "Amount must be a number"}) from e
    if minor <= 0:
        raise ValidationError({"amount": "Amount must be at least 0.01"})
    return minor


def normalize_currency(currency: str) -> str:
    """Validate and upper-case an ISO 4217 currency code."""
    if not isinstance(currency, str) or not _CURRENCY_PATTERN.match(currency.strip()):
        raise ValidationError({"currency": "Currency must be a 3-letter ISO code"})
    return currency.strip().upper()


class PaymentSubmissionFlow:
    """
    Charge the saved card token.

    Args:
        store: Token store holding the saved card
        gateway: Payment gateway (Worldline, merchant backend or mock)
        result_stage: Optional result stage; reset before each charge and
            given the definitive result afterwards
    """

    def __init__(self, store: TokenStore, gateway: PaymentGateway, result_stage=None) -> None:
        self.store = store
        self.gateway = gateway
        self.result_stage = result_stage
        self._in_flight = False

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    async def submit(
        self,
        amount: Amount,
        currency: str,
        idempotency_key: Optional[str] = None,
    ) -> PaymentOutcome:
        """
        Submit a payment with the saved card. Never raises for checkout errors.

        Args:
            amount: User-facing decimal amount (e.g., "77.99")
            currency: ISO 4217 currency code
            idempotency_key: Key forwarded to the processor. Pass the same
                key when retrying after a timeout to avoid a double charge;
                a fresh key is generated when omitted.

        Returns:
            PaymentSucceeded, ChallengeRequired or PaymentFailed. Failure
            codes include no_token_available, validation_error,
            gateway_unavailable, remote_failure and already_in_progress.
        """
        if self._in_flight:
            logger.warning("payment_already_in_progress")
            return PaymentFailed(
                error="A payment is already being processed",
                error_code="already_in_progress",
            )

        self._in_flight = True
        try:
            return await self._submit(amount, currency, idempotency_key)
        except CheckoutError as e:
            logger.warning("payment_submission_failed", error_code=e.error_code, error=str(e))
            return PaymentFailed(
                error=str(e),
                error_code=e.error_code,
                field_errors=getattr(e, "field_errors", None) or {},
            )
        finally:
            self._in_flight = False

    async def _submit(
        self,
        amount: Amount,
        currency: str,
        idempotency_key: Optional[str],
    ) -> PaymentOutcome:
        token = self.store.load()
        if token is None:
            raise NoTokenAvailable("No token found")

        field_errors: dict[str, str] = {}
        minor_amount = None
        currency_code = None
        try:
            minor_amount = to_minor_units(amount)
        except ValidationError as e:
            field_errors.update(e.field_errors)
        try:
            currency_code = normalize_currency(currency)
        except ValidationError as e:
            field_errors.update(e.field_errors)
        if field_errors:
            raise ValidationError(field_errors)

        if self.result_stage is not None:
            self.result_stage.reset()

        request = ChargeRequest(
            card_token=token.token,
            customer_id=token.customer_id,
            amount=minor_amount,
            currency=currency_code,
            idempotency_key=idempotency_key or str(uuid.uuid4()),
        )

        logger.info(
            "payment_submitting",
            amount=minor_amount,
            currency=currency_code,
            customer_id=token.customer_id,
            card_brand=token.card_brand.value,
            last4=token.last4,
        )

        try:
            outcome = await self.gateway.charge(request)
        except GatewayError as e:
            logger.error("payment_gateway_error", error_code=e.error_code, error=str(e))
            outcome = PaymentFailed(error=str(e), error_code=e.error_code)

        if isinstance(outcome, PaymentSucceeded) and outcome.status == PENDING_CAPTURE:
            outcome = await self._capture(outcome, minor_amount)

        if isinstance(outcome, ChallengeRequired):
            logger.info(
                "payment_challenge_required",
                payment_id=outcome.payment_id,
                has_redirect=bool(outcome.redirect_url),
            )
        else:
            logger.info(
                "payment_completed",
                outcome=outcome.kind,
                payment_id=outcome.payment_id,
                status=outcome.status,
            )

        self._record(outcome)
        return outcome

    async def _capture(self, authorization: PaymentSucceeded, requested_amount: int) -> PaymentSucceeded:
        """
        Capture an authorization using the authorized amount.

        A failed capture still reports the authorization, flagged as
        AUTHORIZED_PENDING_CAPTURE with capture_pending set.
        """
        amount = authorization.amount if authorization.amount is not None else requested_amount
        logger.info("payment_capturing", payment_id=authorization.payment_id, amount=amount)

        try:
            capture = await self.gateway.capture(authorization.payment_id, amount)
        except GatewayError as e:
            logger.error("payment_capture_error", payment_id=authorization.payment_id, error=str(e))
            capture = None

        if isinstance(capture, PaymentSucceeded):
            logger.info("payment_captured", payment_id=authorization.payment_id, status=capture.status)
            return PaymentSucceeded(
                payment_id=authorization.payment_id,
                status=capture.status,
                amount=capture.amount if capture.amount is not None else amount,
                card_number=capture.card_number or authorization.card_number,
            )

        logger.warning("payment_capture_pending", payment_id=authorization.payment_id)
        return PaymentSucceeded(
            payment_id=authorization.payment_id,
            status=AUTHORIZED_PENDING_CAPTURE,
            amount=amount,
            card_number=authorization.card_number,
            capture_pending=True,
        )

    async def capture_pending(self, payment_id: str, amount: int) -> PaymentOutcome:
        """
        Explicitly retry the capture of an authorization left pending.

        Args:
            payment_id: Payment id reported with capture_pending
            amount: Authorized amount in minor units

        Returns:
            PaymentSucceeded (captured, or still pending) - never a silent
            failure of the authorization itself
        """
        authorization = PaymentSucceeded(payment_id=payment_id, status=PENDING_CAPTURE, amount=amount)
        outcome = await self._capture(authorization, amount)
        self._record(outcome)
        return outcome

    def _record(self, outcome: PaymentOutcome) -> None:
        if self.result_stage is None:
            return
        status = attempt_status_for(outcome)
        if status is not None:
            self.result_stage.record(outcome.payment_id, status)
