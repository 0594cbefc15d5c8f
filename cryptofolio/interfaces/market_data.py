"""Market data protocol — coin list and global aggregates."""
from typing import Protocol

from ..models import MarketSnapshot


class MarketDataSource(Protocol):
    """Abstract interface for fetching a full market snapshot.

    Implementations raise ``NetworkError`` or ``DecodeError`` on failure.
    """

    async def fetch_snapshot(self) -> MarketSnapshot: ...
