"""Unit tests for configuration management."""

import os
from unittest.mock import patch

from card_checkout.config import Settings

CONFIG_ENV_PREFIXES = ("WORLDLINE__", "CHECKOUT__", "CLIENT__")


def clean_environ():
    """Environment without any Card Checkout overrides."""
    return {
        key: value
        for key, value in os.environ.items()
        if not key.upper().startswith(CONFIG_ENV_PREFIXES)
        and key.upper() not in {"GATEWAY", "LOG_LEVEL", "ENVIRONMENT", "SERVER_PORT", "CORS_ORIGINS"}
    }


def test_settings_default_values():
    """Test that Settings loads with default values."""
    with patch.dict(os.environ, clean_environ(), clear=True):
        settings = Settings(_env_file=None)

        assert settings.environment == "development"
        assert settings.log_level == "INFO"
        assert settings.service_name == "card-checkout"
        assert settings.server_port == 3000
        assert settings.gateway == "worldline"
        assert settings.cors_origins == []
        assert settings.worldline.api_url == "https://payment.preprod.anzworldline-solutions.com.au"
        assert settings.worldline.merchant_id == ""
        assert settings.worldline.secret_api_key == ""
        assert settings.checkout.country_code == "AU"
        assert settings.checkout.currency_code == "AUD"
        assert settings.checkout.amount == 6767
        assert settings.client.api_url == "http://localhost:3000/api"
        assert settings.client.encryption_timeout_seconds == 5.0


def test_settings_from_environment():
    """Test that Settings can be overridden by environment variables."""
    env_vars = {
        "LOG_LEVEL": "DEBUG",
        "GATEWAY": "mock",
        "SERVER_PORT": "8080",
        "CORS_ORIGINS": '["https://shop.example.com"]',
        "WORLDLINE__MERCHANT_ID": "merchant1",
        "WORLDLINE__API_KEY_ID": "key-id",
        "WORLDLINE__SECRET_API_KEY": "secret",
        "CHECKOUT__AMOUNT": "1000",
        "CLIENT__ENCRYPTION_TIMEOUT_SECONDS": "2.5",
    }

    with patch.dict(os.environ, env_vars, clear=False):
        settings = Settings(_env_file=None)

        assert settings.log_level == "DEBUG"
        assert settings.gateway == "mock"
        assert settings.server_port == 8080
        assert settings.cors_origins == ["https://shop.example.com"]
        assert settings.worldline.merchant_id == "merchant1"
        assert settings.worldline.secret_api_key == "secret"
        assert settings.checkout.amount == 1000
        assert settings.client.encryption_timeout_seconds == 2.5

