"""FastAPI dependencies for the merchant backend."""

from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException, Request, status

from card_checkout.sdk.base import PaymentGateway


def get_payment_gateway(request: Request) -> PaymentGateway:
    """Provide the gateway created at application startup.

    Raises:
        HTTPException: 503 if the gateway is not initialized
    """
    gateway = getattr(request.app.state, "gateway", None)
    if gateway is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Payment gateway not initialized",
        )
    return gateway


# Type alias for gateway dependency
Gateway = Annotated[PaymentGateway, Depends(get_payment_gateway)]


async def get_idempotency_key(
    x_idempotency_key: Annotated[Optional[str], Header()] = None,
) -> Optional[str]:
    """Extract the optional idempotency key header."""
    if x_idempotency_key is not None and not x_idempotency_key.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Idempotency-Key must not be blank",
        )
    return x_idempotency_key


# Type alias for idempotency key dependency
IdempotencyKey = Annotated[Optional[str], Depends(get_idempotency_key)]
