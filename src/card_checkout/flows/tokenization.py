"""Card tokenization flow.

Turns user-entered card fields into a saved CardToken:

1. Local validation (field-keyed errors, no network call)
2. Payment product resolution (falls back to the built-in card product)
3. Collaborator request validation (vendor validator ids)
4. Encryption with a bounded wait
5. Token store write

The steps run strictly in this order. Raw card data only ever reaches
the PaymentRequest, which is cleared as soon as encryption finishes.
"""

import asyncio
from datetime import date
from typing import Callable, Optional

import structlog

from card_checkout.models.card import (
    CardInput,
    CardToken,
    clean_card_number,
    to_wire_expiry,
    validate_card_input,
)
from card_checkout.models.exceptions import (
    CheckoutError,
    CollaboratorValidationError,
    EmptyEncryptionResult,
    EncryptionFailed,
    EncryptionTimeout,
    SessionUnavailable,
    StorageFailure,
    ValidationError,
)
from card_checkout.models.outcomes import TokenizationResult
from card_checkout.sdk.base import EncryptionSession, Encryptor
from card_checkout.sdk.payment_request import DEFAULT_CARD_PRODUCT, PaymentProduct, PaymentRequest
from card_checkout.storage.token_store import TokenStore

logger = structlog.get_logger(__name__)

DEFAULT_ENCRYPTION_TIMEOUT_SECONDS = 5.0


def _consume_abandoned(task: asyncio.Task) -> None:
    """Retrieve the outcome of an encryption call nobody waits for any more."""
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.debug("abandoned_encryption_failed", error_type=type(error).__name__)


class TokenizationFlow:
    """
    Tokenize a card and save it as the single saved card.

    Args:
        store: Token store receiving the new token
        session: Client session used for product lookup and encryption
        encryption_timeout: Bound on the wait for the encryptor, in seconds
        clock: Source of today's date for expiry validation
        payment_product_id: Vendor payment product (1 = card)
    """

    def __init__(
        self,
        store: TokenStore,
        session: Optional[EncryptionSession],
        encryption_timeout: float = DEFAULT_ENCRYPTION_TIMEOUT_SECONDS,
        clock: Callable[[], date] = date.today,
        payment_product_id: int = DEFAULT_CARD_PRODUCT.product_id,
    ) -> None:
        self.store = store
        self.session = session
        self.encryption_timeout = encryption_timeout
        self.clock = clock
        self.payment_product_id = payment_product_id
        self._in_flight = False

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    async def tokenize(self, card: CardInput) -> TokenizationResult:
        """
        Run the full flow. Never raises for checkout errors.

        Returns:
            TokenizationResult with the saved token, or an error code:
            validation_error, session_unavailable,
            collaborator_validation_error, encryption_timeout,
            empty_encryption_result, encryption_failed, storage_failure,
            already_in_progress
        """
        if self._in_flight:
            logger.warning("tokenization_already_in_progress")
            return TokenizationResult.failure("already_in_progress", "A card is already being tokenized")

        self._in_flight = True
        try:
            token = await self._tokenize(card)
        except CheckoutError as e:
            logger.warning("tokenization_failed", error_code=e.error_code, error=str(e))
            return TokenizationResult.failure(
                e.error_code,
                str(e),
                field_errors=getattr(e, "field_errors", None),
            )
        finally:
            self._in_flight = False

        return TokenizationResult.success(token)

    async def _tokenize(self, card: CardInput) -> CardToken:
        field_errors = validate_card_input(card)
        if field_errors:
            raise ValidationError(field_errors)

        if self.session is None:
            raise SessionUnavailable('Session not initialized. Click "Retry" or refresh the page.')

        product = await self._resolve_product()

        request = PaymentRequest(product, clock=self.clock)
        request.set_value("cardNumber", clean_card_number(card.card_number))
        request.set_value("cvv", card.cvv)
        request.set_value("expiryDate", to_wire_expiry(card.expiry))
        request.set_value("cardholderName", card.holder_name)

        try:
            errors = request.validate()
            if errors:
                error_ids = [error.error_id for error in errors]
                logger.warning(
                    "collaborator_validation_failed",
                    error_ids=error_ids,
                    fields=[error.field_id for error in errors],
                )
                raise CollaboratorValidationError(error_ids, [error.message for error in errors])

            encryptor = self.session.get_encryptor()
            if encryptor is None:
                raise EncryptionFailed("Encryptor not available. Session may not be properly initialized.")

            encrypted = await self._encrypt(encryptor, request)
        finally:
            request.clear()

        token = CardToken.create(
            token=encrypted,
            card=card,
            customer_id=self.session.customer_id,
            payment_product_id=product.product_id,
        )

        if not self.store.save(token):
            raise StorageFailure("Failed to save card")

        logger.info(
            "card_tokenized",
            card_brand=token.card_brand.value,
            last4=token.last4,
            customer_id=token.customer_id,
        )
        return token

    async def _resolve_product(self) -> PaymentProduct:
        try:
            return await self.session.get_payment_product(self.payment_product_id)
        except Exception as e:
            logger.warning(
                "payment_product_unavailable",
                payment_product_id=self.payment_product_id,
                error=str(e),
            )
            return DEFAULT_CARD_PRODUCT

    async def _encrypt(self, encryptor: Encryptor, request: PaymentRequest) -> str:
        """
        Encrypt with a bounded wait.

        On timeout the collaborator call is abandoned, not cancelled: the
        task keeps running and its eventual result is discarded.
        """
        task = asyncio.ensure_future(encryptor.encrypt(request))
        done, _ = await asyncio.wait({task}, timeout=self.encryption_timeout)

        if task not in done:
            task.add_done_callback(_consume_abandoned)
            raise EncryptionTimeout("Payment encryption failed: Encryption timeout")

        try:
            encrypted = task.result()
        except EncryptionFailed:
            raise
        except Exception as e:
            raise EncryptionFailed(f"Payment encryption failed: {e}") from e

        if not encrypted:
            raise EmptyEncryptionResult("Payment encryption failed: Encryptor returned empty result")

        return encrypted
