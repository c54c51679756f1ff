"""Processor test cards for sandbox and mock runs.

Expiry is in the display form MM/YY; the tokenization flow converts it to
MMYYYY before validation (e.g., "12/30" -> "122030").
"""

from dataclasses import dataclass
from typing import Optional

from card_checkout.models.card import CardInput


@dataclass(frozen=True)
class TestCard:
    """A named sandbox card."""

    __test__ = False

    name: str
    number: str
    expiry: str
    cvv: str
    holder: str = "TEST USER"

    def to_input(self) -> CardInput:
        return CardInput(
            card_number=self.number,
            expiry=self.expiry,
            cvv=self.cvv,
            holder_name=self.holder,
        )


TEST_CARDS: tuple[TestCard, ...] = (
    TestCard(name="Visa - Success", number="4111111111111111", expiry="12/30", cvv="123"),
    TestCard(name="Visa - Decline", number="4000000000000002", expiry="12/30", cvv="123"),
    TestCard(name="Mastercard - Success", number="5555555555554444", expiry="12/30", cvv="123"),
    TestCard(name="Mastercard - Decline", number="5105105105105100", expiry="12/30", cvv="123"),
    TestCard(name="American Express", number="378282246310005", expiry="12/30", cvv="1234"),
    TestCard(name="Discover", number="6011111111111117", expiry="12/30", cvv="123"),
)


def get_test_card(name: str) -> Optional[TestCard]:
    """Get a test card by name."""
    for card in TEST_CARDS:
        if card.name == name:
            return card
    return None
