"""Unit tests for customer input encryption and the client session."""

import base64
import json
from datetime import date

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import jwe

from card_checkout.models.exceptions import EncryptionFailed, GatewayUnavailable
from card_checkout.sdk.base import SessionDescriptor
from card_checkout.sdk.encryption import encrypt_jwe, load_public_key
from card_checkout.sdk.payment_request import DEFAULT_CARD_PRODUCT, PaymentRequest
from card_checkout.sdk.session import ClientSession


@pytest.fixture(scope="module")
def private_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="module")
def public_key_b64(private_key):
    der = private_key.public_key().public_bytes(
        serialization.Encoding.DER,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return base64.b64encode(der).decode()


def decrypt_jwe(compact, private_key):
    """Decrypt an envelope with the matching private key."""
    pem = private_key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )
    return jwe.get_unverified_header(compact), jwe.decrypt(compact, pem)


class TestJwe:
    """Test the JWE envelope."""

    def test_round_trip_with_private_key(self, private_key, public_key_b64):
        compact = encrypt_jwe(b'{"hello":"world"}', load_public_key(public_key_b64), "kid-1")

        header, plaintext = decrypt_jwe(compact, private_key)

        assert header["alg"] == "RSA-OAEP"
        assert header["enc"] == "A256CBC-HS512"
        assert header["kid"] == "kid-1"
        assert plaintext == b'{"hello":"world"}'
        assert len(compact.split(".")) == 5

    def test_invalid_public_key(self):
        with pytest.raises(EncryptionFailed):
            load_public_key(base64.b64encode(b"not a key").decode())


class TestClientSession:
    """Test client API calls and the session encryptor."""

    @pytest.fixture
    def descriptor(self):
        return SessionDescriptor(
            client_session_id="cs-1",
            customer_id="cust-1",
            client_api_url="https://client.example.com/client",
        )

    @pytest.mark.asyncio
    async def test_encrypt_customer_input(self, descriptor, private_key, public_key_b64):
        calls = []

        def handler(request):
            calls.append(request)
            assert request.headers["Authorization"] == "GCS v1Client:cs-1"
            assert request.url.path == "/client/v1/cust-1/crypto/publickey"
            return httpx.Response(200, json={"keyId": "kid-1", "publicKey": public_key_b64})

        session = ClientSession(descriptor, http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
        request = PaymentRequest(DEFAULT_CARD_PRODUCT, clock=lambda: date(2025, 1, 1))
        request.set_value("cardNumber", "4111111111111111")
        request.set_value("expiryDate", "122025")

        encryptor = session.get_encryptor()
        first = await encryptor.encrypt(request)
        await encryptor.encrypt(request)

        assert len(calls) == 1
        _, plaintext = decrypt_jwe(first, private_key)
        payload = json.loads(plaintext)
        assert payload["clientSessionId"] == "cs-1"
        assert payload["paymentProductId"] == 1
        assert {"key": "cardNumber", "value": "4111111111111111"} in payload["paymentValues"]

    @pytest.mark.asyncio
    async def test_get_payment_product(self, descriptor):
        def handler(request):
            assert request.url.path == "/client/v1/cust-1/products/1"
            assert request.url.params["countryCode"] == "AU"
            assert request.url.params["currencyCode"] == "AUD"
            return httpx.Response(
                200,
                json={
                    "id": 1,
                    "fields": [{"id": "cardNumber", "dataRestrictions": {"isRequired": True, "validators": {"luhn": {}}}}],
                },
            )

        session = ClientSession(descriptor, http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))

        product = await session.get_payment_product(1)

        assert product.rule_for("cardNumber").validators == {"luhn": {}}

    @pytest.mark.asyncio
    async def test_client_api_error(self, descriptor):
        def handler(request):
            return httpx.Response(401, json={"errors": []})

        async with ClientSession(
            descriptor, http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler))
        ) as session:
            with pytest.raises(GatewayUnavailable):
                await session.get_public_key()
