"""Market data sources."""
from .coingecko import CoinGeckoClient

__all__ = ["CoinGeckoClient"]
