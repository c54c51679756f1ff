"""Configuration management for Card Checkout."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class WorldlineSettings(BaseSettings):
    """Merchant credentials and endpoint for the Worldline server API."""

    merchant_id: str = Field(default="", description="PSPID of the merchant account")
    api_key_id: str = Field(default="", description="API key identifier")
    secret_api_key: str = Field(default="", description="API secret used for v1HMAC signing")
    api_url: str = Field(
        default="https://payment.preprod.anzworldline-solutions.com.au",
        description="Server API base URL",
    )
    integrator: str = Field(default="CardCheckout/1.0", description="Integrator name sent in meta info")
    timeout_seconds: float = Field(default=10.0, description="Request timeout")


class CheckoutSettings(BaseSettings):
    """Default payment context used for session creation."""

    country_code: str = Field(default="AU", description="ISO 3166 country code")
    currency_code: str = Field(default="AUD", description="ISO 4217 currency code")
    amount: int = Field(default=6767, description="Amount in minor units")


class ClientSettings(BaseSettings):
    """Settings for the client core (token store, flows, backend client)."""

    api_url: str = Field(
        default="http://localhost:3000/api",
        description="Merchant backend base URL",
    )
    storage_dir: str = Field(
        default=".card-checkout",
        description="Directory for the file-backed token store",
    )
    encryption_timeout_seconds: float = Field(
        default=5.0,
        description="Bound on the wait for the encryption collaborator",
    )
    timeout_seconds: float = Field(default=10.0, description="Backend request timeout")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Logging level")
    log_json: bool = Field(default=True, description="Render logs as JSON")
    service_name: str = Field(default="card-checkout", description="Service name")

    # Merchant backend
    server_port: int = Field(default=3000, description="Port for the merchant backend")
    cors_origins: list[str] = Field(
        default_factory=list,
        description="Allowed CORS origins (empty allows all, development only)",
    )
    gateway: str = Field(default="worldline", description="Payment gateway name")

    worldline: WorldlineSettings = Field(default_factory=WorldlineSettings)
    checkout: CheckoutSettings = Field(default_factory=CheckoutSettings)
    client: ClientSettings = Field(default_factory=ClientSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_nested_delimiter="__",
        extra="ignore",
    )


# Global settings instance
settings = Settings()
