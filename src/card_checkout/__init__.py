"""Card Checkout - card tokenization and payments against Worldline."""

__version__ = "0.1.0"
