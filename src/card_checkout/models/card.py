"""Domain models for saved card tokens.

This module contains the card token entity and the pure helpers used to
derive its display metadata: brand detection, masking, expiry conversion
and local input validation. None of these helpers ever returns or logs the
raw card number, cvv or expiry.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping, Optional

from card_checkout.models.exceptions import ValidationError

MASK_CHAR = "*"
CARD_PAYMENT_PRODUCT_ID = 1

_CARD_NUMBER_PATTERN = re.compile(r"[0-9]{13,19}")
_EXPIRY_PATTERN = re.compile(r"[0-9]{2}/[0-9]{2}")
_CVV_PATTERN = re.compile(r"[0-9]{3,4}")
_SEPARATORS = re.compile(r"[\s-]")


class CardBrand(str, Enum):
    """Card network derived from the leading digits."""

    VISA = "VISA"
    MASTERCARD = "MASTERCARD"
    AMEX = "AMEX"
    DISCOVER = "DISCOVER"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class CardInput:
    """Card fields as entered by the user (sensitive, never persisted).

    Attributes:
        card_number: Card number, separators allowed
        expiry: Expiry in display form MM/YY
        cvv: Card verification value
        holder_name: Name as it appears on the card
    """

    card_number: str = field(repr=False)
    expiry: str = field(repr=False)
    cvv: str = field(repr=False)
    holder_name: str


def clean_card_number(card_number: str) -> str:
    """Strip whitespace and dashes from a card number."""
    return _SEPARATORS.sub("", card_number or "")


def detect_card_brand(card_number: str) -> CardBrand:
    """Detect card brand from the leading digits of a card number."""
    digits = clean_card_number(card_number)

    if digits.startswith("4"):
        return CardBrand.VISA
    if digits.startswith(("51", "52", "53", "54", "55")):
        return CardBrand.MASTERCARD
    if digits.startswith(("34", "37")):
        return CardBrand.AMEX
    if digits.startswith("6011"):
        return CardBrand.DISCOVER
    return CardBrand.UNKNOWN


def mask_card_number(card_number: str) -> str:
    """Replace all but the last four digits with the mask character.

    The result has the same length as the cleaned input.
    """
    digits = clean_card_number(card_number)
    return digits[-4:].rjust(len(digits), MASK_CHAR)


def to_wire_expiry(expiry: str) -> str:
    """Convert display expiry MM/YY into the wire form MMYYYY.

    >>> to_wire_expiry("12/25")
    '122025'
    """
    if "/" not in expiry:
        return expiry
    month, year = expiry.split("/", 1)
    full_year = f"20{year}" if len(year) == 2 else year
    return f"{month}{full_year}"


def validate_card_input(card: CardInput) -> dict[str, str]:
    """Run local shape checks and return a field-keyed map of errors.

    Keys match the form fields: cardNumber, expiryDate, cvv, cardHolder.
    An empty map means the input may be sent to the collaborator.
    """
    errors: dict[str, str] = {}

    digits = clean_card_number(card.card_number)
    if not _CARD_NUMBER_PATTERN.fullmatch(digits):
        errors["cardNumber"] = "Invalid card number"

    if not card.expiry or not _EXPIRY_PATTERN.fullmatch(card.expiry):
        errors["expiryDate"] = "Format: MM/YY"

    if not _CVV_PATTERN.fullmatch(card.cvv or ""):
        errors["cvv"] = "CVV must be 3-4 digits"

    if not (card.holder_name or "").strip():
        errors["cardHolder"] = "Card holder name required"

    return errors


@dataclass(frozen=True)
class CardToken:
    """Saved card: opaque encrypted token plus non-sensitive display metadata.

    At most one instance lives in the token store. Instances are immutable;
    replacing a saved card means saving a new token over the old one.

    Attributes:
        token: Opaque encrypted customer input (never parsed or logged)
        masked_number: Card number with all but the last 4 digits masked
        card_brand: Brand derived at creation time
        holder_name: Card holder name as entered
        expiry: Expiry in display form MM/YY
        customer_id: Customer id of the session that produced the token
        created_at: Creation timestamp (UTC)
        payment_product_id: Vendor payment product used for encryption
    """

    token: str = field(repr=False)
    masked_number: str
    card_brand: CardBrand
    holder_name: str
    expiry: str
    customer_id: str
    created_at: datetime
    payment_product_id: int = CARD_PAYMENT_PRODUCT_ID

    def __post_init__(self):
        """Validate token fields."""
        errors: dict[str, str] = {}

        if not isinstance(self.token, str) or not self.token:
            errors["token"] = "token cannot be empty"

        if not isinstance(self.masked_number, str) or len(self.masked_number) < 4:
            errors["maskedNumber"] = "maskedNumber must keep the last 4 digits"

        if not isinstance(self.card_brand, CardBrand):
            errors["cardBrand"] = "cardBrand must be a CardBrand"

        if not isinstance(self.holder_name, str):
            errors["holderName"] = "holderName must be a string"

        if not isinstance(self.expiry, str) or not _EXPIRY_PATTERN.match(self.expiry):
            errors["expiry"] = "expiry must be MM/YY"

        if not isinstance(self.customer_id, str):
            errors["customerId"] = "customerId must be a string"

        if not isinstance(self.created_at, datetime):
            errors["createdAt"] = "createdAt must be a datetime"

        if errors:
            raise ValidationError(errors, message="Invalid card token")

    @property
    def last4(self) -> str:
        return self.masked_number[-4:]

    @classmethod
    def create(
        cls,
        token: str,
        card: CardInput,
        customer_id: str,
        payment_product_id: int = CARD_PAYMENT_PRODUCT_ID,
    ) -> "CardToken":
        """Build a new token from freshly encrypted card input.

        Only the masked number, brand, holder name and display expiry are
        kept from the card input; the cvv is dropped.
        """
        return cls(
            token=token,
            masked_number=mask_card_number(card.card_number),
            card_brand=detect_card_brand(card.card_number),
            holder_name=card.holder_name,
            expiry=card.expiry,
            customer_id=customer_id,
            created_at=datetime.now(timezone.utc),
            payment_product_id=payment_product_id,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to the persisted JSON layout."""
        return {
            "token": self.token,
            "maskedNumber": self.masked_number,
            "cardBrand": self.card_brand.value,
            "holderName": self.holder_name,
            "expiry": self.expiry,
            "customerId": self.customer_id,
            "createdAt": self.created_at.isoformat(),
            "paymentProductId": self.payment_product_id,
        }

    def to_display(self) -> dict[str, Any]:
        """Display metadata only (no token)."""
        data = self.to_dict()
        data.pop("token")
        return data

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "CardToken":
        """Create a token from its persisted layout.

        Raises:
            ValidationError: If the value is not structurally a card token
        """
        if not isinstance(data, Mapping):
            raise ValidationError({"token": "card token must be an object"}, message="Invalid card token")

        if not data.get("token"):
            raise ValidationError({"token": "token cannot be empty"}, message="Invalid card token")

        try:
            card_brand = CardBrand(data.get("cardBrand", CardBrand.UNKNOWN.value))
        except ValueError as e:
            raise ValidationError({"cardBrand": str(e)}, message="Invalid card token") from e

        created_at = data.get("createdAt")
        if isinstance(created_at, str):
            try:
                created_at = datetime.fromisoformat(created_at)
            except ValueError as e:
                raise ValidationError({"createdAt": str(e)}, message="Invalid card token") from e

        payment_product_id = data.get("paymentProductId", CARD_PAYMENT_PRODUCT_ID)
        if not isinstance(payment_product_id, int):
            raise ValidationError(
                {"paymentProductId": "paymentProductId must be an integer"},
                message="Invalid card token",
            )

        return cls(
            token=data.get("token"),
            masked_number=data.get("maskedNumber"),
            card_brand=card_brand,
            holder_name=data.get("holderName"),
            expiry=data.get("expiry"),
            customer_id=data.get("customerId"),
            created_at=created_at,
            payment_product_id=payment_product_id,
        )
