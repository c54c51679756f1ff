"""Pydantic models for the merchant backend's JSON API."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SessionRequestJSON(BaseModel):
    """Payment context used to scope a client session."""

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={"example": {"countryCode": "AU", "currencyCode": "AUD", "amount": 10000}},
    )

    country_code: Optional[str] = Field(None, alias="countryCode", description="ISO 3166 country code")
    currency_code: Optional[str] = Field(None, alias="currencyCode", description="ISO 4217 currency code")
    amount: Optional[int] = Field(None, ge=0, description="Amount in minor units")


class SessionResponseJSON(BaseModel):
    """Client session credentials handed to the client core."""

    model_config = ConfigDict(populate_by_name=True)

    client_session_id: str = Field(..., alias="clientSessionId")
    customer_id: str = Field(..., alias="customerId")
    client_api_url: str = Field(..., alias="clientApiUrl")
    asset_url: Optional[str] = Field(None, alias="assetUrl")


class ChargeRequestJSON(BaseModel):
    """Charge of an encrypted card token."""

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "cardToken": "eyJhbGciOiJSU0EtT0FFUCIs...",
                "customerId": "cust-1234",
                "amount": 7799,
                "currency": "AUD",
                "cardHolder": "TEST USER",
            }
        },
    )

    card_token: str = Field(..., min_length=1, alias="cardToken", description="Encrypted customer input")
    customer_id: str = Field(..., min_length=1, alias="customerId", description="Session customer id")
    amount: int = Field(..., gt=0, description="Amount in minor units")
    currency: str = Field(..., min_length=3, max_length=3, description="ISO 4217 currency code")
    card_holder: Optional[str] = Field(None, alias="cardHolder", description="Card holder name")

    def __repr__(self) -> str:
        return f"ChargeRequestJSON(customer_id={self.customer_id!r}, amount={self.amount}, currency={self.currency!r})"


class CaptureRequestJSON(BaseModel):
    """Capture of an authorized payment."""

    amount: int = Field(..., gt=0, description="Amount to capture in minor units")
