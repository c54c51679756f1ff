"""Merchant backend (FastAPI) for Card Checkout."""
