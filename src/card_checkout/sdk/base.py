"""Capability interfaces for the vendor collaborators.

The flows only talk to these interfaces. Real implementations wrap the
Worldline server and client APIs; test doubles live in
``card_checkout.sdk.mock``.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from card_checkout.models.outcomes import PaymentOutcome

if TYPE_CHECKING:
    from card_checkout.sdk.payment_request import PaymentProduct, PaymentRequest


@dataclass(frozen=True)
class PaymentContext:
    """Context used to scope a client session."""

    country_code: str = "AU"
    currency_code: str = "AUD"
    amount: int = 6767

    def to_dict(self) -> dict:
        return {
            "countryCode": self.country_code,
            "currencyCode": self.currency_code,
            "amount": self.amount,
        }


@dataclass(frozen=True)
class SessionDescriptor:
    """Short-lived client session returned by the vendor."""

    client_session_id: str
    customer_id: str
    client_api_url: str
    asset_url: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "SessionDescriptor":
        return cls(
            client_session_id=data["clientSessionId"],
            customer_id=data["customerId"],
            client_api_url=data["clientApiUrl"],
            asset_url=data.get("assetUrl"),
        )

    def to_dict(self) -> dict:
        return {
            "clientSessionId": self.client_session_id,
            "customerId": self.customer_id,
            "clientApiUrl": self.client_api_url,
            "assetUrl": self.asset_url,
        }


@dataclass(frozen=True)
class ChargeRequest:
    """Charge of a saved card token.

    Attributes:
        card_token: Opaque encrypted customer input
        customer_id: Customer id of the session that produced the token
        amount: Amount in minor units (e.g., 7799 = $77.99)
        currency: ISO 4217 currency code
        idempotency_key: Key forwarded to the processor to deduplicate retries
    """

    card_token: str
    customer_id: str
    amount: int
    currency: str
    idempotency_key: Optional[str] = None

    def __repr__(self) -> str:
        return (
            f"ChargeRequest(customer_id={self.customer_id!r}, amount={self.amount}, "
            f"currency={self.currency!r})"
        )


class PaymentGateway(ABC):
    """
    Abstract interface to the payment processor.

    Card declines and challenges are NOT exceptions - they are returned as
    PaymentFailed / ChallengeRequired outcomes. Transport problems raise
    GatewayUnavailable.
    """

    @abstractmethod
    async def create_session(self, context: PaymentContext) -> SessionDescriptor:
        """
        Create a client session for encryption.

        Raises:
            SessionCreationError: If the vendor refuses the request
            GatewayUnavailable: For transport errors
        """

    @abstractmethod
    async def charge(self, request: ChargeRequest) -> PaymentOutcome:
        """
        Charge an encrypted card token.

        Returns:
            PaymentSucceeded, ChallengeRequired or PaymentFailed

        Raises:
            GatewayUnavailable: For transport errors (timeouts, 5xx)
        """

    @abstractmethod
    async def capture(self, payment_id: str, amount: int) -> PaymentOutcome:
        """
        Capture a previously authorized payment.

        Returns:
            PaymentSucceeded or PaymentFailed

        Raises:
            GatewayUnavailable: For transport errors (timeouts, 5xx)
        """

    async def close(self) -> None:
        """Release any connection pool held by the gateway."""


class Encryptor(ABC):
    """Turns a validated payment request into an opaque token."""

    @abstractmethod
    async def encrypt(self, request: "PaymentRequest") -> str:
        """
        Encrypt the request values.

        Returns:
            Opaque encrypted customer input. May be empty on a broken
            collaborator; callers must check.
        """


class EncryptionSession(ABC):
    """Client-side session that scopes encryption."""

    @property
    @abstractmethod
    def customer_id(self) -> str:
        """Customer id the session was created for."""

    @abstractmethod
    async def get_payment_product(self, product_id: int) -> "PaymentProduct":
        """Fetch the payment product with its field validation rules."""

    @abstractmethod
    def get_encryptor(self) -> Optional[Encryptor]:
        """Return an encryptor bound to this session, or None if unavailable."""
