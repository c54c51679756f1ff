"""Client core assembled from settings.

Wires the file-backed token store, the result stage, a client session
opened through the merchant backend, and both flows into one object.
"""

from dataclasses import dataclass
from typing import Optional

import structlog

from card_checkout.config import ClientSettings, settings
from card_checkout.flows.payment import PaymentSubmissionFlow
from card_checkout.flows.result_stage import ResultStage
from card_checkout.flows.tokenization import TokenizationFlow
from card_checkout.sdk.base import PaymentContext, PaymentGateway
from card_checkout.sdk.factory import get_gateway
from card_checkout.sdk.session import ClientSession, open_client_session
from card_checkout.storage.backends import FileBackend
from card_checkout.storage.token_store import TokenStore

logger = structlog.get_logger(__name__)


@dataclass
class CheckoutClient:
    """Everything a checkout page needs, sharing one storage directory."""

    gateway: PaymentGateway
    session: ClientSession
    store: TokenStore
    result_stage: ResultStage
    tokenization: TokenizationFlow
    payments: PaymentSubmissionFlow

    async def close(self) -> None:
        await self.session.close()
        await self.gateway.close()


async def build_checkout_client(
    gateway: Optional[PaymentGateway] = None,
    context: Optional[PaymentContext] = None,
    client_settings: Optional[ClientSettings] = None,
) -> CheckoutClient:
    """
    Open a client session and wire the client core around it.

    Args:
        gateway: Gateway used for session creation and payments
                 (defaults to the merchant backend client)
        context: Payment context for the session
        client_settings: Client settings (defaults to settings.client)

    Raises:
        SessionCreationError: If the processor refuses the session
        GatewayUnavailable: If the backend cannot be reached
    """
    client_settings = client_settings or settings.client
    gateway = gateway or get_gateway("checkout_api")

    backend = FileBackend(client_settings.storage_dir)
    store = TokenStore(backend)
    result_stage = ResultStage(backend)

    session = await open_client_session(gateway, context, timeout_seconds=client_settings.timeout_seconds)

    logger.info(
        "checkout_client_ready",
        storage_dir=client_settings.storage_dir,
        encryption_timeout_seconds=client_settings.encryption_timeout_seconds,
    )
    return CheckoutClient(
        gateway=gateway,
        session=session,
        store=store,
        result_stage=result_stage,
        tokenization=TokenizationFlow(
            store,
            session,
            encryption_timeout=client_settings.encryption_timeout_seconds,
        ),
        payments=PaymentSubmissionFlow(store, gateway, result_stage=result_stage),
    )
