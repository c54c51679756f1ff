"""Vendor collaborators: capability interfaces and their implementations."""

from card_checkout.sdk.base import (
    ChargeRequest,
    EncryptionSession,
    Encryptor,
    PaymentContext,
    PaymentGateway,
    SessionDescriptor,
)
from card_checkout.sdk.payment_request import (
    DEFAULT_CARD_PRODUCT,
    PaymentProduct,
    PaymentRequest,
    message_for,
)

__all__ = [
    "ChargeRequest",
    "DEFAULT_CARD_PRODUCT",
    "EncryptionSession",
    "Encryptor",
    "PaymentContext",
    "PaymentGateway",
    "PaymentProduct",
    "PaymentRequest",
    "SessionDescriptor",
    "message_for",
]
