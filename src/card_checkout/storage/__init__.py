"""Client-local persistence for Card Checkout."""

from card_checkout.storage.backends import FileBackend, InMemoryBackend, KeyValueBackend
from card_checkout.storage.token_store import STORAGE_KEY, TokenStore

__all__ = [
    "FileBackend",
    "InMemoryBackend",
    "KeyValueBackend",
    "STORAGE_KEY",
    "TokenStore",
]
