"""Payment result stage.

Presents the outcome of the last payment attempt exactly once, whether it
finished in this session or came back from a 3-D Secure redirect.

States:
    AWAITING         nothing pending
    PENDING_DISPLAY  a same-session result is stored and not yet shown
    SHOWN            a result has been displayed; dismiss() or a new
                     attempt returns to AWAITING

Redirect-return parameters take precedence over a same-session result,
and are stripped from the location handed back so that a reload does not
show the same result twice.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import structlog

from card_checkout.models.exceptions import StorageFailure
from card_checkout.models.outcomes import AttemptStatus, PendingAttemptResult, ResultSource
from card_checkout.storage.backends import KeyValueBackend

logger = structlog.get_logger(__name__)

SHOW_FLAG_KEY = "showPaymentStatus"
LAST_PAYMENT_ID_KEY = "lastPaymentId"
LAST_PAYMENT_STATUS_KEY = "lastPaymentStatus"

REDIRECT_PAYMENT_ID_PARAM = "paymentId"
REDIRECT_STATUS_PARAM = "status"


class StageState(str, Enum):
    AWAITING = "AWAITING"
    PENDING_DISPLAY = "PENDING_DISPLAY"
    SHOWN = "SHOWN"


@dataclass(frozen=True)
class StageView:
    """What to render after load: the result (if any) and the cleaned location."""

    result: Optional[PendingAttemptResult]
    location: Optional[str]


@dataclass(frozen=True)
class StatusDescription:
    title: str
    message: str
    tone: str


_DESCRIPTIONS = {
    AttemptStatus.SUCCEEDED: StatusDescription(
        "Payment Successful", "Your payment has been processed successfully.", "green"
    ),
    AttemptStatus.FAILED: StatusDescription(
        "Payment Failed", "There was an issue processing your payment.", "red"
    ),
    AttemptStatus.DECLINED: StatusDescription(
        "Payment Declined", "Your payment was declined by the card issuer.", "red"
    ),
    AttemptStatus.PENDING: StatusDescription(
        "Payment Pending", "Your payment is pending. You will receive confirmation shortly.", "yellow"
    ),
}


def describe(status: AttemptStatus) -> StatusDescription:
    """Headline and message shown for a result status."""
    return _DESCRIPTIONS.get(
        status,
        StatusDescription("Payment Status", "Your payment status has been updated.", "blue"),
    )


def parse_redirect_return(location: Optional[str]) -> tuple[Optional[PendingAttemptResult], Optional[str]]:
    """
    Extract redirect-return parameters from a location.

    Returns:
        (result, cleaned location). The result is None unless both the
        payment id and the status are present. When a result is found the
        two parameters are removed from the location; other query
        parameters are kept.
    """
    if not location:
        return None, location

    parts = urlsplit(location)
    params = parse_qsl(parts.query, keep_blank_values=True)
    values = dict(params)
    payment_id = values.get(REDIRECT_PAYMENT_ID_PARAM)
    status = values.get(REDIRECT_STATUS_PARAM)

    if not payment_id or not status:
        return None, location

    remaining = [
        (key, value)
        for key, value in params
        if key not in (REDIRECT_PAYMENT_ID_PARAM, REDIRECT_STATUS_PARAM)
    ]
    cleaned = urlunsplit(parts._replace(query=urlencode(remaining)))

    result = PendingAttemptResult(
        payment_id=payment_id,
        status=AttemptStatus.parse(status),
        source=ResultSource.REDIRECT_RETURN,
    )
    return result, cleaned


class ResultStage:
    """
    Session-scoped result reconciliation.

    Args:
        backend: Session-scoped key-value backend
    """

    def __init__(self, backend: KeyValueBackend) -> None:
        self.backend = backend
        self._shown: Optional[PendingAttemptResult] = None

    @property
    def shown(self) -> Optional[PendingAttemptResult]:
        return self._shown

    @property
    def state(self) -> StageState:
        if self._shown is not None:
            return StageState.SHOWN
        if self._get(SHOW_FLAG_KEY) == "true":
            return StageState.PENDING_DISPLAY
        return StageState.AWAITING

    def _get(self, key: str) -> Optional[str]:
        try:
            return self.backend.get(key)
        except StorageFailure as e:
            logger.error("result_stage_read_failed", key=key, error=str(e))
            return None

    def _delete(self, *keys: str) -> None:
        for key in keys:
            try:
                self.backend.delete(key)
            except StorageFailure as e:
                logger.error("result_stage_delete_failed", key=key, error=str(e))

    def record(self, payment_id: Optional[str], status: AttemptStatus) -> bool:
        """
        Store a same-session result for display.

        Returns:
            False if the backend failed (the result will not be shown)
        """
        self._shown = None
        try:
            if payment_id:
                self.backend.set(LAST_PAYMENT_ID_KEY, payment_id)
            else:
                self.backend.delete(LAST_PAYMENT_ID_KEY)
            self.backend.set(LAST_PAYMENT_STATUS_KEY, status.value)
            self.backend.set(SHOW_FLAG_KEY, "true")
        except StorageFailure as e:
            logger.error("result_stage_record_failed", payment_id=payment_id, error=str(e))
            return False

        logger.info("payment_result_recorded", payment_id=payment_id, status=status.value)
        return True

    def reset(self) -> None:
        """Forget everything; called when a new attempt starts."""
        self._delete(SHOW_FLAG_KEY, LAST_PAYMENT_ID_KEY, LAST_PAYMENT_STATUS_KEY)
        self._shown = None

    def load(self, location: Optional[str] = None) -> StageView:
        """
        Decide what to show on page load.

        Args:
            location: Current location, possibly carrying redirect-return
                parameters

        Returns:
            StageView with the result to show (or None) and the location
            with redirect-return parameters stripped
        """
        result, cleaned = parse_redirect_return(location)

        if result is not None:
            logger.info(
                "redirect_return_consumed",
                payment_id=result.payment_id,
                status=result.status.value,
            )
            # Superseded; must not surface on the next load.
            self._delete(SHOW_FLAG_KEY)
        elif self._get(SHOW_FLAG_KEY) == "true":
            payment_id = self._get(LAST_PAYMENT_ID_KEY)
            status = self._get(LAST_PAYMENT_STATUS_KEY)
            if payment_id or status:
                result = PendingAttemptResult(
                    payment_id=payment_id,
                    status=AttemptStatus.parse(status),
                    source=ResultSource.LOCAL_SESSION,
                )
            # Cleared so a refresh does not show it again.
            self._delete(SHOW_FLAG_KEY)

        if result is not None:
            self._shown = result

        return StageView(result=result, location=cleaned)

    def dismiss(self) -> None:
        """User closed the result view."""
        self._delete(LAST_PAYMENT_ID_KEY, LAST_PAYMENT_STATUS_KEY)
        self._shown = None
