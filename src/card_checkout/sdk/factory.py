"""
Gateway factory for creating payment gateway instances.

This module provides configuration-based gateway selection: the merchant
backend uses the Worldline server API or the mock, and a client without
credentials goes through the merchant backend.
"""

from typing import Any

import structlog

from card_checkout.config import settings
from card_checkout.sdk.base import PaymentGateway
from card_checkout.sdk.checkout_api import CheckoutApiGateway
from card_checkout.sdk.mock import MockGateway
from card_checkout.sdk.worldline import WorldlineGateway

logger = structlog.get_logger(__name__)


class GatewayFactory:
    """Factory for creating payment gateway instances."""

    # Registry of available gateways
    _GATEWAYS: dict[str, type[PaymentGateway]] = {
        "worldline": WorldlineGateway,
        "checkout_api": CheckoutApiGateway,
        "mock": MockGateway,
    }

    @classmethod
    def create_gateway(
        cls,
        gateway_name: str,
        gateway_config: dict[str, Any] | None = None,
    ) -> PaymentGateway:
        """
        Create a payment gateway instance by name.

        Args:
            gateway_name: Name of the gateway (e.g., "worldline", "mock")
            gateway_config: Optional gateway-specific configuration.
                            If not provided, uses settings from global config.

        Returns:
            PaymentGateway instance

        Raises:
            ValueError: If gateway_name is not registered
        """
        gateway_name_lower = gateway_name.lower()

        if gateway_name_lower not in cls._GATEWAYS:
            available = ", ".join(sorted(cls._GATEWAYS))
            raise ValueError(f"Unknown gateway: {gateway_name}. Available gateways: {available}")

        gateway_class = cls._GATEWAYS[gateway_name_lower]

        if gateway_config is None:
            gateway_config = cls._get_default_config(gateway_name_lower)

        logger.info(
            "gateway_created",
            gateway_name=gateway_name_lower,
            gateway_class=gateway_class.__name__,
        )

        return gateway_class(**gateway_config)

    @classmethod
    def _get_default_config(cls, gateway_name: str) -> dict[str, Any]:
        """Get default configuration for a gateway from settings."""
        if gateway_name == "worldline":
            return {
                "merchant_id": settings.worldline.merchant_id,
                "api_key_id": settings.worldline.api_key_id,
                "secret_api_key": settings.worldline.secret_api_key,
                "api_url": settings.worldline.api_url,
                "integrator": settings.worldline.integrator,
                "timeout_seconds": settings.worldline.timeout_seconds,
            }
        if gateway_name == "checkout_api":
            return {
                "base_url": settings.client.api_url,
                "timeout_seconds": settings.client.timeout_seconds,
            }
        return {}


def get_gateway(
    gateway_name: str | None = None,
    gateway_config: dict[str, Any] | None = None,
) -> PaymentGateway:
    """
    Convenience function to create a payment gateway.

    Args:
        gateway_name: Name of gateway (defaults to settings.gateway)
        gateway_config: Optional gateway-specific config
    """
    if gateway_name is None:
        gateway_name = settings.gateway

    return GatewayFactory.create_gateway(gateway_name, gateway_config)
