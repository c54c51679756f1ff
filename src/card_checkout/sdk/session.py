"""Client-side session against the processor's client API.

A ClientSession is created from the SessionDescriptor the merchant
backend hands out. It fetches the encryption public key and payment
product definitions, and provides the encryptor used for tokenization.
"""

from dataclasses import dataclass
from typing import Optional

import httpx
import structlog

from card_checkout.models.exceptions import GatewayUnavailable
from card_checkout.sdk.base import (
    EncryptionSession,
    Encryptor,
    PaymentContext,
    PaymentGateway,
    SessionDescriptor,
)
from card_checkout.sdk.encryption import SessionEncryptor
from card_checkout.sdk.payment_request import PaymentProduct

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PublicKey:
    """Session encryption key served by the client API."""

    key_id: str
    public_key: str


class ClientSession(EncryptionSession):
    """
    Client API session scoped by a client session id.

    Requests are authenticated with ``GCS v1Client:<clientSessionId>``.
    The public key is fetched once per session.
    """

    def __init__(
        self,
        descriptor: SessionDescriptor,
        context: Optional[PaymentContext] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout_seconds: float = 10.0,
    ):
        self.descriptor = descriptor
        self.context = context or PaymentContext()
        self.http_client = http_client or httpx.AsyncClient(timeout=timeout_seconds)
        self._public_key: Optional[PublicKey] = None

    @property
    def customer_id(self) -> str:
        return self.descriptor.customer_id

    def _url(self, path: str) -> str:
        base = self.descriptor.client_api_url.rstrip("/")
        return f"{base}/v1/{self.descriptor.customer_id}{path}"

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"GCS v1Client:{self.descriptor.client_session_id}"}

    async def _get(self, path: str, params: Optional[dict] = None) -> dict:
        url = self._url(path)
        try:
            response = await self.http_client.get(url, headers=self._headers(), params=params)
        except httpx.TimeoutException as e:
            logger.error("client_api_timeout", path=path, error=str(e))
            raise GatewayUnavailable("Client API timeout") from e
        except httpx.RequestError as e:
            logger.error("client_api_request_error", path=path, error=str(e))
            raise GatewayUnavailable(f"Client API request error: {e}") from e

        if response.status_code >= 400:
            logger.warning("client_api_error", path=path, status_code=response.status_code)
            raise GatewayUnavailable(f"Client API error (status: {response.status_code})")

        return response.json()

    async def get_public_key(self) -> PublicKey:
        """Fetch (once) the public key used to encrypt customer input."""
        if self._public_key is None:
            data = await self._get("/crypto/publickey")
            self._public_key = PublicKey(key_id=data["keyId"], public_key=data["publicKey"])
            logger.info("client_public_key_loaded", key_id=self._public_key.key_id)
        return self._public_key

    async def get_payment_product(self, product_id: int) -> PaymentProduct:
        data = await self._get(
            f"/products/{product_id}",
            params={
                "countryCode": self.context.country_code,
                "currencyCode": self.context.currency_code,
                "amount": self.context.amount,
                "isRecurring": "false",
            },
        )
        return PaymentProduct.from_api(data)

    def get_encryptor(self) -> Optional[Encryptor]:
        return SessionEncryptor(self)

    async def close(self) -> None:
        """Close the HTTP client connection pool."""
        await self.http_client.aclose()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()


async def open_client_session(
    gateway: PaymentGateway,
    context: Optional[PaymentContext] = None,
    timeout_seconds: float = 10.0,
) -> ClientSession:
    """Create a session through the gateway and wrap it for client API use.

    Raises:
        SessionCreationError: If the processor refuses the session
        GatewayUnavailable: For transport errors
    """
    context = context or PaymentContext()
    descriptor = await gateway.create_session(context)

    logger.info(
        "client_session_opened",
        customer_id=descriptor.customer_id,
        client_api_url=descriptor.client_api_url,
    )
    return ClientSession(descriptor, context=context, timeout_seconds=timeout_seconds)
