"""Domain models for Card Checkout."""

from card_checkout.models.card import (
    CardBrand,
    CardInput,
    CardToken,
    clean_card_number,
    detect_card_brand,
    mask_card_number,
    to_wire_expiry,
    validate_card_input,
)
from card_checkout.models.exceptions import (
    CheckoutError,
    CollaboratorValidationError,
    EmptyEncryptionResult,
    EncryptionFailed,
    EncryptionTimeout,
    GatewayError,
    GatewayUnavailable,
    NoTokenAvailable,
    SessionCreationError,
    SessionUnavailable,
    StorageFailure,
    ValidationError,
)
from card_checkout.models.outcomes import (
    AttemptStatus,
    ChallengeRequired,
    PaymentFailed,
    PaymentOutcome,
    PaymentSucceeded,
    PendingAttemptResult,
    ResultSource,
    TokenizationResult,
)

__all__ = [
    # Card models
    "CardBrand",
    "CardInput",
    "CardToken",
    "clean_card_number",
    "detect_card_brand",
    "mask_card_number",
    "to_wire_expiry",
    "validate_card_input",
    # Exceptions
    "CheckoutError",
    "CollaboratorValidationError",
    "EmptyEncryptionResult",
    "EncryptionFailed",
    "EncryptionTimeout",
    "GatewayError",
    "GatewayUnavailable",
    "NoTokenAvailable",
    "SessionCreationError",
    "SessionUnavailable",
    "StorageFailure",
    "ValidationError",
    # Outcomes
    "AttemptStatus",
    "ChallengeRequired",
    "PaymentFailed",
    "PaymentOutcome",
    "PaymentSucceeded",
    "PendingAttemptResult",
    "ResultSource",
    "TokenizationResult",
]
