"""Frozen data models for market data, holdings and derived stats."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Iterator, Mapping

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Coin:
    """One coin's market data at fetch time."""

    id: str
    symbol: str
    name: str
    image: str
    current_price: float
    market_cap: float
    total_volume: float
    price_change_percentage_24h: float
    market_cap_rank: int | None = None
    sparkline_7d: tuple[float, ...] = ()
    price_change_24h: float | None = None
    high_24h: float | None = None
    low_24h: float | None = None
    market_cap_change_24h: float | None = None
    market_cap_change_percentage_24h: float | None = None
    last_updated: str = ""


@dataclass(frozen=True)
class GlobalMarketData:
    """Market-wide aggregates (USD)."""

    total_market_cap: float
    total_volume: float
    market_cap_percentage: Mapping[str, float] = field(default_factory=dict)
    market_cap_change_percentage_24h_usd: float = 0.0

    @property
    def btc_dominance(self) -> float | None:
        return self.market_cap_percentage.get("btc")


@dataclass(frozen=True)
class MarketSnapshot:
    """One complete market fetch. Replaced wholesale on every refresh."""

    coins: tuple[Coin, ...] = ()
    global_data: GlobalMarketData | None = None
    fetched_at: datetime | None = None
    sequence: int = 0

    def coin(self, coin_id: str) -> Coin | None:
        for c in self.coins:
            if c.id == coin_id:
                return c
        return None

    def rank_order(self) -> list[Coin]:
        """Coins by market-cap rank; unranked last, fetch order breaks ties."""
        indexed = list(enumerate(self.coins))
        indexed.sort(
            key=lambda pair: (
                pair[1].market_cap_rank is None,
                pair[1].market_cap_rank or 0,
                pair[0],
            )
        )
        return [c for _, c in indexed]


@dataclass(frozen=True)
class HoldingsLedger:
    """Coin id → held quantity. Edits produce a new ledger."""

    holdings: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "holdings", MappingProxyType(dict(self.holdings))
        )

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> HoldingsLedger:
        """Build a ledger from stored data, dropping unusable quantities."""
        clean: dict[str, float] = {}
        for coin_id, value in raw.items():
            try:
                quantity = float(value)
            except (TypeError, ValueError):
                logger.warning("Dropping stored holding %s: %r is not a number", coin_id, value)
                continue
            if not math.isfinite(quantity) or quantity < 0:
                logger.warning("Dropping stored holding %s: invalid quantity %r", coin_id, value)
                continue
            clean[str(coin_id)] = quantity
        return cls(clean)

    def quantity(self, coin_id: str) -> float | None:
        return self.holdings.get(coin_id)

    def items(self):
        return self.holdings.items()

    def as_dict(self) -> dict[str, float]:
        return dict(self.holdings)

    def __contains__(self, coin_id: object) -> bool:
        return coin_id in self.holdings

    def __len__(self) -> int:
        return len(self.holdings)

    def __iter__(self) -> Iterator[str]:
        return iter(self.holdings)


@dataclass(frozen=True)
class PortfolioEntry:
    """A held coin enriched with live market data. Derived, never persisted."""

    coin: Coin
    quantity: float

    @property
    def coin_id(self) -> str:
        return self.coin.id

    @property
    def held_value(self) -> float:
        return self.quantity * self.coin.current_price

    @property
    def volume_exposure(self) -> float:
        return self.coin.total_volume * self.quantity


@dataclass(frozen=True)
class AggregateStats:
    """Portfolio-level metrics. ``None`` means not applicable."""

    total_value: float = 0.0
    total_volume: float = 0.0
    top_holding_dominance: float | None = None
    weighted_change_percent: float | None = None
    top_holding_id: str | None = None
    entry_count: int = 0
