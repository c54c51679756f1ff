"""Card token lifecycle flows."""

from card_checkout.flows.payment import PaymentSubmissionFlow, normalize_currency, to_minor_units
from card_checkout.flows.result_stage import ResultStage, StageState, StageView, describe
from card_checkout.flows.tokenization import TokenizationFlow

__all__ = [
    "PaymentSubmissionFlow",
    "ResultStage",
    "StageState",
    "StageView",
    "TokenizationFlow",
    "describe",
    "normalize_currency",
    "to_minor_units",
]
