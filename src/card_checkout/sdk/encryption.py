"""Encryption of customer input for the processor.

This module builds the processor's ``encryptedCustomerInput``: a JWE
compact serialization (RSA-OAEP key wrapping, A256CBC-HS512 content
encryption) of the payment values, keyed with the session's public key.
The result is opaque to every other component in this package.
"""

import base64
import json
import secrets
import time
from typing import TYPE_CHECKING

import structlog
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey
from jose import jwe
from jose.constants import ALGORITHMS
from jose.exceptions import JOSEError

from card_checkout.models.exceptions import EncryptionFailed
from card_checkout.sdk.base import Encryptor
from card_checkout.sdk.payment_request import PaymentRequest

if TYPE_CHECKING:
    from card_checkout.sdk.session import ClientSession

logger = structlog.get_logger(__name__)


def load_public_key(public_key: str) -> RSAPublicKey:
    """Load a base64 DER-encoded RSA public key as served by the client API.

    Raises:
        EncryptionFailed: If the key cannot be parsed or is not RSA
    """
    try:
        key = serialization.load_der_public_key(base64.b64decode(public_key))
    except ValueError as e:
        raise EncryptionFailed(f"Invalid public key: {e}") from e
    if not isinstance(key, RSAPublicKey):
        raise EncryptionFailed("Public key is not an RSA key")
    return key


def encrypt_jwe(plaintext: bytes, public_key: RSAPublicKey, key_id: str) -> str:
    """Encrypt plaintext into a JWE compact serialization.

    Args:
        plaintext: Bytes to encrypt
        public_key: Recipient RSA public key
        key_id: Key identifier placed in the protected header

    Returns:
        header.encrypted_key.iv.ciphertext.tag, each part base64url

    Raises:
        EncryptionFailed: If the JWE library rejects the key or payload
    """
    pem = public_key.public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    try:
        token = jwe.encrypt(
            plaintext,
            pem,
            encryption=ALGORITHMS.A256CBC_HS512,
            algorithm=ALGORITHMS.RSA_OAEP,
            kid=key_id,
        )
    except JOSEError as e:
        raise EncryptionFailed(f"Customer input encryption failed: {e}") from e
    return token.decode("ascii")


def build_customer_input(client_session_id: str, request: PaymentRequest) -> bytes:
    """Serialize the payment values the way the processor expects them."""
    payload = {
        "clientSessionId": client_session_id,
        "nonce": secrets.token_hex(16),
        "paymentProductId": request.payment_product_id,
        "tokenize": False,
        "paymentValues": [
            {"key": key, "value": value} for key, value in request.values().items()
        ],
        "collectedDeviceInformation": {
            "timezoneOffsetUtcMinutes": str(-time.timezone // 60),
        },
    }
    return json.dumps(payload, separators=(",", ":")).encode("utf-8")


class SessionEncryptor(Encryptor):
    """Encryptor bound to a client session's public key."""

    def __init__(self, session: "ClientSession") -> None:
        self.session = session

    async def encrypt(self, request: PaymentRequest) -> str:
        public_key = await self.session.get_public_key()
        key = load_public_key(public_key.public_key)

        plaintext = build_customer_input(self.session.descriptor.client_session_id, request)
        encrypted = encrypt_jwe(plaintext, key, public_key.key_id)

        logger.info(
            "customer_input_encrypted",
            payment_product_id=request.payment_product_id,
            key_id=public_key.key_id,
        )
        return encrypted
