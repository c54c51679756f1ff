"""FastAPI application entry point for the Card Checkout merchant backend."""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from card_checkout.api.routes import router
from card_checkout.config import settings
from card_checkout.logging_config import configure_logging
from card_checkout.sdk.base import PaymentGateway
from card_checkout.sdk.factory import get_gateway

# Configure logging at module level
configure_logging(settings.log_level, format_as_json=settings.log_json)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager.

    Creates the payment gateway on startup (unless one was injected) and
    closes its connection pool on shutdown.
    """
    logger.info("starting_card_checkout", environment=settings.environment, gateway=settings.gateway)

    if app.state.gateway is None:
        app.state.gateway = get_gateway()

    logger.info("card_checkout_started")

    yield

    logger.info("shutting_down_card_checkout")
    await app.state.gateway.close()
    logger.info("card_checkout_shutdown_complete")


def create_app(gateway: Optional[PaymentGateway] = None) -> FastAPI:
    """Build the application.

    Args:
        gateway: Gateway to use instead of the configured one
    """
    app = FastAPI(
        title="Card Checkout",
        description="Merchant backend for card tokenization and payments",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )
    app.state.gateway = gateway

    # Empty origin list allows all origins (development only)
    origins = settings.cors_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins or ["*"],
        allow_credentials=bool(origins),
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "X-Idempotency-Key", "X-Request-ID"],
    )

    app.include_router(router)

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {
            "status": "healthy",
            "service": settings.service_name,
            "environment": settings.environment,
        }

    @app.get("/")
    async def root() -> dict[str, str]:
        """Root endpoint."""
        return {
            "service": "Card Checkout",
            "version": "0.1.0",
            "status": "running",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "card_checkout.api.main:app",
        host="0.0.0.0",
        port=settings.server_port,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info",
    )
