"""Unit tests for card models and helpers."""

from datetime import datetime, timezone

import pytest

from card_checkout.models.card import (
    CardBrand,
    CardInput,
    CardToken,
    clean_card_number,
    detect_card_brand,
    mask_card_number,
    to_wire_expiry,
    validate_card_input,
)
from card_checkout.models.exceptions import ValidationError


class TestBrandDetection:
    """Test brand detection from leading digits."""

    @pytest.mark.parametrize(
        "card_number,expected",
        [
            ("4111111111111111", CardBrand.VISA),
            ("5105105105105100", CardBrand.MASTERCARD),
            ("5555555555554444", CardBrand.MASTERCARD),
            ("378282246310005", CardBrand.AMEX),
            ("341111111111111", CardBrand.AMEX),
            ("6011111111111117", CardBrand.DISCOVER),
            ("3530111333300000", CardBrand.UNKNOWN),
            ("5611111111111111", CardBrand.UNKNOWN),
        ],
    )
    def test_detect_card_brand(self, card_number, expected):
        assert detect_card_brand(card_number) == expected

    def test_detect_ignores_separators(self):
        assert detect_card_brand(" 4111-1111 1111 1111") == CardBrand.VISA


class TestMasking:
    """Test card number masking."""

    def test_mask_visa(self):
        assert mask_card_number("4111111111111111") == "************1111"

    def test_mask_amex_keeps_length(self):
        masked = mask_card_number("378282246310005")
        assert masked == "***********0005"
        assert len(masked) == 15

    def test_mask_strips_separators(self):
        assert mask_card_number("4111 1111-1111 1111") == "************1111"

    def test_clean_card_number(self):
        assert clean_card_number(" 4111 1111-1111\t1111 ") == "4111111111111111"


class TestWireExpiry:
    """Test display to wire expiry conversion."""

    def test_two_digit_year(self):
        assert to_wire_expiry("12/25") == "122025"

    def test_single_digit_month_kept(self):
        assert to_wire_expiry("01/30") == "012030"


class TestLocalValidation:
    """Test local shape checks."""

    def test_valid_input_has_no_errors(self, visa_card):
        assert validate_card_input(visa_card) == {}

    def test_all_fields_invalid(self):
        card = CardInput(card_number="4111", expiry="1225", cvv="12", holder_name="   ")

        errors = validate_card_input(card)

        assert errors == {
            "cardNumber": "Invalid card number",
            "expiryDate": "Format: MM/YY",
            "cvv": "CVV must be 3-4 digits",
            "cardHolder": "Card holder name required",
        }

    def test_non_digit_card_number(self):
        card = CardInput(card_number="4111abcd11111111", expiry="12/25", cvv="123", holder_name="A")
        assert "cardNumber" in validate_card_input(card)

    @pytest.mark.parametrize(
        "field,card",
        [
            ("cardNumber", CardInput("411111111111111\u00b2", "12/25", "123", "A")),
            ("cardNumber", CardInput("\u0664" * 16, "12/25", "123", "A")),
            ("expiryDate", CardInput("4111111111111111", "\u0661\u0662/25", "123", "A")),
            ("cvv", CardInput("4111111111111111", "12/25", "\u0661\u0662\u0663", "A")),
        ],
    )
    def test_non_ascii_digits_rejected(self, field, card):
        assert field in validate_card_input(card)

    def test_nineteen_digit_card_number_accepted(self):
        card = CardInput(card_number="4" * 19, expiry="12/25", cvv="1234", holder_name="A")
        assert validate_card_input(card) == {}

    def test_card_input_repr_hides_sensitive_fields(self, visa_card):
        text = repr(visa_card)
        assert "4111" not in text
        assert "123" not in text
        assert "12/25" not in text
        assert "TEST USER" in text


class TestCardToken:
    """Test the CardToken entity."""

    def test_create_from_card_input(self, visa_card):
        token = CardToken.create(token="enc_abc", card=visa_card, customer_id="cust-1")

        assert token.token == "enc_abc"
        assert token.masked_number == "************1111"
        assert token.card_brand == CardBrand.VISA
        assert token.holder_name == "TEST USER"
        assert token.expiry == "12/25"
        assert token.customer_id == "cust-1"
        assert token.created_at.tzinfo is not None
        assert token.payment_product_id == 1
        assert token.last4 == "1111"

    def test_empty_token_rejected(self, saved_token):
        data = saved_token.to_dict()
        data["token"] = ""

        with pytest.raises(ValidationError) as exc_info:
            CardToken.from_dict(data)

        assert "token" in exc_info.value.field_errors

    def test_invalid_expiry_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            CardToken(
                token="enc",
                masked_number="************1111",
                card_brand=CardBrand.VISA,
                holder_name="A",
                expiry="122025",
                customer_id="c",
                created_at=datetime.now(timezone.utc),
            )
        assert "expiry" in exc_info.value.field_errors

    def test_token_is_immutable(self, saved_token):
        with pytest.raises(AttributeError):
            saved_token.token = "other"

    def test_to_dict_layout(self, saved_token):
        data = saved_token.to_dict()

        assert data == {
            "token": "enc_opaque_value",
            "maskedNumber": "************1111",
            "cardBrand": "VISA",
            "holderName": "TEST USER",
            "expiry": "12/25",
            "customerId": "cust-1234",
            "createdAt": "2025-01-01T12:00:00+00:00",
            "paymentProductId": 1,
        }

    def test_from_dict_restores_token(self, saved_token):
        assert CardToken.from_dict(saved_token.to_dict()) == saved_token

    def test_from_dict_rejects_unknown_brand(self, saved_token):
        data = saved_token.to_dict()
        data["cardBrand"] = "DINERS"

        with pytest.raises(ValidationError):
            CardToken.from_dict(data)

    def test_from_dict_rejects_non_mapping(self):
        with pytest.raises(ValidationError):
            CardToken.from_dict(["not", "a", "token"])

    def test_display_and_repr_exclude_token(self, saved_token):
        assert "token" not in saved_token.to_display()
        assert "enc_opaque_value" not in repr(saved_token)
