"""Payment products and validated payment requests.

A payment product describes the fields the processor expects and the
validators that apply to each one. A PaymentRequest holds normalized field
values for one product and runs those validators before anything is
encrypted. Validator ids match the vendor's: luhn, expirationDate,
regularExpression, length, range, required.
"""

import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Optional

import structlog

logger = structlog.get_logger(__name__)

# User-facing messages for vendor validator ids.
VALIDATION_MESSAGES = {
    "luhn": "Invalid card number (failed checksum)",
    "expirationDate": "Card expired or invalid expiration date",
    "regularExpression": "Invalid format detected",
    "length": "Field length is incorrect",
    "range": "Value is outside the allowed range",
    "required": "This field is required",
}


def message_for(error_id: str) -> str:
    """Map a validator id to its user-facing message."""
    return VALIDATION_MESSAGES.get(error_id, f"Validation error: {error_id}")


def luhn_checksum_valid(digits: str) -> bool:
    """Return True if the digit string passes the Luhn (mod 10) check."""
    if not (digits.isascii() and digits.isdigit()):
        return False
    total = 0
    for index, char in enumerate(reversed(digits)):
        value = int(char)
        if index % 2 == 1:
            value *= 2
            if value > 9:
                value -= 9
        total += value
    return total % 10 == 0


def _expiration_date_valid(value: str, today: date) -> bool:
    """Validate an MMYYYY (or MMYY) expiry that is not in the past."""
    if not (value.isascii() and value.isdigit()) or len(value) not in (4, 6):
        return False
    month = int(value[:2])
    year = int(value[2:])
    if len(value) == 4:
        year += 2000
    if not 1 <= month <= 12:
        return False
    return (year, month) >= (today.year, today.month)


@dataclass(frozen=True)
class FieldRule:
    """Validation rules for one product field."""

    field_id: str
    required: bool = True
    validators: dict[str, dict[str, Any]] = field(default_factory=dict)

    def check(self, value: Optional[str], today: date) -> list[str]:
        """Return the ids of the validators the value fails."""
        if not value:
            return ["required"] if self.required else []

        failed = []
        for validator_id, params in self.validators.items():
            if validator_id == "luhn":
                ok = luhn_checksum_valid(value)
            elif validator_id == "length":
                min_length = params.get("minLength", 0)
                max_length = params.get("maxLength", len(value))
                ok = min_length <= len(value) <= max_length
            elif validator_id == "regularExpression":
                pattern = params.get("regularExpression")
                ok = pattern is None or re.fullmatch(pattern, value) is not None
            elif validator_id == "expirationDate":
                ok = _expiration_date_valid(value, today)
            elif validator_id == "range":
                try:
                    number = int(value)
                except ValueError:
                    ok = False
                else:
                    ok = params.get("minValue", number) <= number <= params.get("maxValue", number)
            else:
                logger.debug("unknown_validator_skipped", validator_id=validator_id, field_id=self.field_id)
                continue

            if not ok:
                failed.append(validator_id)
        return failed


@dataclass(frozen=True)
class PaymentProduct:
    """A processor payment product and its field rules."""

    product_id: int
    fields: tuple[FieldRule, ...] = ()

    def rule_for(self, field_id: str) -> Optional[FieldRule]:
        for rule in self.fields:
            if rule.field_id == field_id:
                return rule
        return None

    @classmethod
    def from_api(cls, data: dict) -> "PaymentProduct":
        """Build a product from the client API's product JSON."""
        rules = []
        for field_data in data.get("fields", []):
            restrictions = field_data.get("dataRestrictions", {})
            rules.append(
                FieldRule(
                    field_id=field_data["id"],
                    required=bool(restrictions.get("isRequired", False)),
                    validators=dict(restrictions.get("validators", {})),
                )
            )
        return cls(product_id=int(data["id"]), fields=tuple(rules))


# Used when the session cannot resolve the product; mirrors the vendor's card rules.
DEFAULT_CARD_PRODUCT = PaymentProduct(
    product_id=1,
    fields=(
        FieldRule(
            field_id="cardNumber",
            validators={
                "luhn": {},
                "length": {"minLength": 13, "maxLength": 19},
                "regularExpression": {"regularExpression": r"^[0-9]*$"},
            },
        ),
        FieldRule(
            field_id="expiryDate",
            validators={
                "expirationDate": {},
                "regularExpression": {"regularExpression": r"^(0[1-9]|1[0-2])[0-9]{4}$"},
            },
        ),
        FieldRule(
            field_id="cvv",
            validators={
                "length": {"minLength": 3, "maxLength": 4},
                "regularExpression": {"regularExpression": r"^[0-9]*$"},
            },
        ),
        FieldRule(
            field_id="cardholderName",
            validators={"length": {"minLength": 1, "maxLength": 51}},
        ),
    ),
)


@dataclass(frozen=True)
class RequestValidationError:
    """One failed validator on one field."""

    field_id: str
    error_id: str

    @property
    def message(self) -> str:
        return message_for(self.error_id)


class PaymentRequest:
    """Normalized field values for one payment product.

    Values are sensitive. ``clear`` drops them once the request has been
    encrypted.
    """

    def __init__(
        self,
        product: PaymentProduct,
        clock: Callable[[], date] = date.today,
    ) -> None:
        self.product = product
        self._clock = clock
        self._values: dict[str, str] = {}

    @property
    def payment_product_id(self) -> int:
        return self.product.product_id

    def set_value(self, field_id: str, value: str) -> None:
        self._values[field_id] = value

    def get_value(self, field_id: str) -> Optional[str]:
        return self._values.get(field_id)

    def values(self) -> dict[str, str]:
        """Return a copy of the values, for the encryptor only."""
        return dict(self._values)

    def validate(self) -> list[RequestValidationError]:
        """Run the product validators over the current values."""
        today = self._clock()
        errors = []
        for rule in self.product.fields:
            for error_id in rule.check(self._values.get(rule.field_id), today):
                errors.append(RequestValidationError(field_id=rule.field_id, error_id=error_id))
        return errors

    def is_valid(self) -> bool:
        return not self.validate()

    def clear(self) -> None:
        self._values.clear()

    def __repr__(self) -> str:
        return f"PaymentRequest(product_id={self.payment_product_id}, fields={sorted(self._values)})"
