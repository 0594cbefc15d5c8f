"""Crypto portfolio tracker: live market data reconciled with user holdings."""

__version__ = "0.1.0"
