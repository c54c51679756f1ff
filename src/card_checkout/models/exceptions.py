"""Custom exceptions for Card Checkout."""

from typing import Any


class CheckoutError(Exception):
    """Base exception for checkout-related errors."""

    error_code = "checkout_error"


class ValidationError(CheckoutError):
    """
    Raised when local input fails shape or format checks.

    Carries a field-keyed map so callers can render per-field messages.
    Never triggers a network call.
    """

    error_code = "validation_error"

    def __init__(self, field_errors: dict[str, str], message: str = "Please correct the errors below"):
        super().__init__(message)
        self.field_errors = dict(field_errors)


class CollaboratorValidationError(CheckoutError):
    """Raised when the vendor's request-level validation rejects normalized input."""

    error_code = "collaborator_validation_error"

    def __init__(self, error_ids: list[str], messages: list[str]):
        super().__init__(f"Payment validation failed: {', '.join(messages)}")
        self.error_ids = list(error_ids)
        self.messages = list(messages)


class EncryptionTimeout(CheckoutError):
    """
    Raised when the encryption collaborator does not answer within the bound.

    This is a RETRYABLE error. It usually points at a session problem rather
    than bad input.
    """

    error_code = "encryption_timeout"


class EmptyEncryptionResult(CheckoutError):
    """Raised when the encryptor reports success but returns nothing."""

    error_code = "empty_encryption_result"


class EncryptionFailed(CheckoutError):
    """Raised when the encryptor fails for any other reason."""

    error_code = "encryption_failed"


class SessionUnavailable(CheckoutError):
    """Raised when tokenization is attempted without an initialized session."""

    error_code = "session_unavailable"


class NoTokenAvailable(CheckoutError):
    """Raised when a payment is submitted with an empty token store."""

    error_code = "no_token_available"


class StorageFailure(CheckoutError):
    """Raised by storage backends when the persistence layer fails."""

    error_code = "storage_failure"


class GatewayError(CheckoutError):
    """Base exception for payment gateway transport errors."""

    error_code = "gateway_error"


class GatewayUnavailable(GatewayError):
    """
    Raised when the gateway times out, cannot be reached, or returns 5xx.

    This is a RETRYABLE error, but only on explicit user action.
    """

    error_code = "gateway_unavailable"


class SessionCreationError(GatewayError):
    """Raised when the vendor refuses to create a client session."""

    error_code = "session_creation_failed"

    def __init__(self, message: str, status_code: int = 500, details: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details
