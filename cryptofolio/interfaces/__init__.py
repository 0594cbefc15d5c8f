"""Protocol interfaces for the portfolio core's collaborators."""
from .holdings_store import HoldingsStore
from .market_data import MarketDataSource

__all__ = ["HoldingsStore", "MarketDataSource"]
