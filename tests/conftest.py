"""Pytest configuration and shared fixtures for all tests.

This module provides shared test fixtures including:
- In-memory storage backends and token store
- Mock vault, encryption session and gateway wired together
- Sample card input and saved token
"""

from datetime import datetime, timezone

import pytest

from card_checkout.models.card import CardBrand, CardInput, CardToken
from card_checkout.sdk.mock import MockEncryptionSession, MockGateway, MockVault
from card_checkout.storage.backends import InMemoryBackend
from card_checkout.storage.token_store import TokenStore


@pytest.fixture
def backend():
    """Fresh in-memory key-value backend."""
    return InMemoryBackend()


@pytest.fixture
def store(backend):
    """Token store over the in-memory backend."""
    return TokenStore(backend)


@pytest.fixture
def vault():
    """Vault shared by the mock encryptor and the mock gateway."""
    return MockVault()


@pytest.fixture
def encryption_session(vault):
    """Mock client session with the default card product."""
    return MockEncryptionSession(vault=vault, customer_id="cust-1234")


@pytest.fixture
def gateway(vault):
    """Mock gateway sharing the vault with the encryption session."""
    return MockGateway(vault=vault)


@pytest.fixture
def visa_card():
    """Visa success test card as entered by a user."""
    return CardInput(
        card_number="4111 1111 1111 1111",
        expiry="12/25",
        cvv="123",
        holder_name="TEST USER",
    )


@pytest.fixture
def saved_token():
    """A saved Visa card token."""
    return CardToken(
        token="enc_opaque_value",
        masked_number="************1111",
        card_brand=CardBrand.VISA,
        holder_name="TEST USER",
        expiry="12/25",
        customer_id="cust-1234",
        created_at=datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc),
    )
