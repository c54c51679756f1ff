"""Result types returned by the checkout flows.

Payment outcomes form a tagged union with exactly three variants. Callers
dispatch on ``kind`` (or ``isinstance``) instead of probing optional
fields.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal, Optional, Union

from card_checkout.models.card import CardToken

# Vendor status for an authorization that still needs a capture call.
PENDING_CAPTURE = "PENDING_CAPTURE"
# Reported when the follow-up capture did not go through.
AUTHORIZED_PENDING_CAPTURE = "AUTHORIZED_PENDING_CAPTURE"
# Error code for a failure envelope returned by the payment or capture call.
REMOTE_FAILURE = "remote_failure"


@dataclass(frozen=True)
class PaymentSucceeded:
    """The collaborator accepted the charge (or the capture)."""

    payment_id: str
    status: str
    amount: Optional[int] = None
    card_number: Optional[str] = None
    capture_pending: bool = False
    kind: Literal["success"] = "success"

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": True,
            "paymentId": self.payment_id,
            "status": self.status,
            "amount": self.amount,
            "cardNumber": self.card_number or "N/A",
            "capturePending": self.capture_pending,
        }


@dataclass(frozen=True)
class ChallengeRequired:
    """Out-of-band (3-D Secure) authentication is required before charging."""

    payment_id: Optional[str]
    redirect_url: Optional[str]
    kind: Literal["challenge"] = "challenge"

    def to_dict(self) -> dict[str, Any]:
        return {
            "challenge": True,
            "redirectUrl": self.redirect_url,
            "paymentId": self.payment_id,
        }


@dataclass(frozen=True)
class PaymentFailed:
    """Any other outcome. Never treated as success."""

    error: str
    error_code: str = REMOTE_FAILURE
    status: Optional[str] = None
    status_code: Optional[int] = None
    payment_id: Optional[str] = None
    field_errors: dict[str, str] = field(default_factory=dict)
    kind: Literal["failure"] = "failure"

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "success": False,
            "error": self.error,
            "errorCode": self.error_code,
            "status": self.status,
            "statusCode": self.status_code,
        }
        if self.payment_id:
            result["paymentId"] = self.payment_id
        if self.field_errors:
            result["fieldErrors"] = dict(self.field_errors)
        return result


PaymentOutcome = Union[PaymentSucceeded, ChallengeRequired, PaymentFailed]


@dataclass(frozen=True)
class TokenizationResult:
    """Outcome of one tokenization attempt."""

    ok: bool
    token: Optional[CardToken] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    field_errors: dict[str, str] = field(default_factory=dict)

    @classmethod
    def success(cls, token: CardToken) -> "TokenizationResult":
        return cls(ok=True, token=token)

    @classmethod
    def failure(
        cls,
        error_code: str,
        error: str,
        field_errors: Optional[dict[str, str]] = None,
    ) -> "TokenizationResult":
        return cls(
            ok=False,
            error=error,
            error_code=error_code,
            field_errors=dict(field_errors or {}),
        )


class AttemptStatus(str, Enum):
    """User-facing status of a finished attempt."""

    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    DECLINED = "DECLINED"
    PENDING = "PENDING"
    UNSPECIFIED = "UNSPECIFIED"

    @classmethod
    def parse(cls, value: Optional[str]) -> "AttemptStatus":
        """Parse a status string case-insensitively; unknown values are UNSPECIFIED."""
        if not value:
            return cls.UNSPECIFIED
        try:
            return cls(value.strip().upper())
        except ValueError:
            return cls.UNSPECIFIED


class ResultSource(str, Enum):
    """Where a pending result came from."""

    REDIRECT_RETURN = "REDIRECT_RETURN"
    LOCAL_SESSION = "LOCAL_SESSION"


@dataclass(frozen=True)
class PendingAttemptResult:
    """Session-scoped result waiting to be shown to the user once."""

    payment_id: Optional[str]
    status: AttemptStatus
    source: ResultSource


# Vendor statuses that mean the money moved or will move.
_SETTLED_STATUSES = frozenset({"CAPTURED", "CAPTURE_REQUESTED", "PAID", "SUCCEEDED", "COMPLETED"})
_DECLINED_STATUSES = frozenset({"REJECTED", "DECLINED", "REJECTED_CAPTURE", "REFUSED"})


def attempt_status_for(outcome: PaymentOutcome) -> Optional[AttemptStatus]:
    """Map a payment outcome to the status recorded for display.

    Returns None for a challenge, which is not a definitive result.
    """
    if isinstance(outcome, ChallengeRequired):
        return None
    if isinstance(outcome, PaymentSucceeded):
        if outcome.capture_pending:
            return AttemptStatus.PENDING
        if outcome.status.upper() in _SETTLED_STATUSES:
            return AttemptStatus.SUCCEEDED
        return AttemptStatus.PENDING
    if (outcome.status or "").upper() in _DECLINED_STATUSES:
        return AttemptStatus.DECLINED
    return AttemptStatus.FAILED
