"""Single-slot persistence for the saved card token.

The store holds at most one CardToken under a fixed key, serialized as
JSON. All operations are fail-soft: persistence problems are logged and
reported through the return value, never raised to the caller.
"""

import json
from typing import Any, Mapping, Optional, Union

import structlog

from card_checkout.models.card import CardToken
from card_checkout.models.exceptions import StorageFailure, ValidationError
from card_checkout.storage.backends import KeyValueBackend

logger = structlog.get_logger(__name__)

STORAGE_KEY = "worldline_card"


class TokenStore:
    """Repository for the single saved card token.

    Writes are last-writer-wins; saving a token replaces any previous one
    as a whole.
    """

    def __init__(self, backend: KeyValueBackend, key: str = STORAGE_KEY):
        """Initialize the store.

        Args:
            backend: Key-value backend holding the slot
            key: Storage key of the slot
        """
        self.backend = backend
        self.key = key

    def save(self, candidate: Union[CardToken, Mapping[str, Any]]) -> bool:
        """Persist a card token, replacing the current one.

        Args:
            candidate: CardToken, or a mapping in the persisted layout

        Returns:
            True if persisted, False if the backend failed. On False the
            token is not guaranteed to be persisted.

        Raises:
            ValidationError: If the candidate is not a valid card token
                (for example it lacks the opaque token)
        """
        if isinstance(candidate, CardToken):
            token = candidate
        else:
            token = CardToken.from_dict(candidate)

        try:
            self.backend.set(self.key, json.dumps(token.to_dict()))
        except StorageFailure as e:
            logger.error("card_token_save_failed", key=self.key, error=str(e))
            return False

        logger.info(
            "card_token_saved",
            card_brand=token.card_brand.value,
            last4=token.last4,
        )
        return True

    def load(self) -> Optional[CardToken]:
        """Load the saved card token.

        Returns:
            The CardToken, or None if the slot is empty, unreadable, or
            holds a structurally invalid value
        """
        try:
            raw = self.backend.get(self.key)
        except StorageFailure as e:
            logger.error("card_token_load_failed", key=self.key, error=str(e))
            return None

        if not raw:
            return None

        try:
            token = CardToken.from_dict(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning("card_token_invalid", key=self.key, error=str(e))
            return None

        logger.debug("card_token_loaded", card_brand=token.card_brand.value, last4=token.last4)
        return token

    def clear(self) -> bool:
        """Remove the saved card token. Clearing an empty slot succeeds.

        Returns:
            True if the slot is now empty, False if the backend failed
        """
        try:
            self.backend.delete(self.key)
        except StorageFailure as e:
            logger.error("card_token_clear_failed", key=self.key, error=str(e))
            return False

        logger.info("card_token_cleared")
        return True
