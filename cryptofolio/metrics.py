"""Aggregate portfolio statistics over reconciled entries."""
from __future__ import annotations

from typing import Iterable

from .models import AggregateStats, PortfolioEntry


def _rank_key(entry: PortfolioEntry) -> tuple[bool, int]:
    rank = entry.coin.market_cap_rank
    return (rank is None, rank or 0)


def compute(entries: Iterable[PortfolioEntry]) -> AggregateStats:
    """Compute portfolio metrics from ``entries``.

    Ties for the top holding go to the better market-cap rank; unranked
    coins lose ties to ranked ones and otherwise keep their given order.
    Dominance and weighted change are ``None`` when the portfolio is worth
    nothing. No intermediate rounding is applied.
    """
    held = sorted((e for e in entries if e.quantity > 0), key=_rank_key)

    total_value = 0.0
    total_volume = 0.0
    top: PortfolioEntry | None = None
    for entry in held:
        value = entry.held_value
        total_value += value
        total_volume += entry.volume_exposure
        if top is None or value > top.held_value:
            top = entry

    if total_value == 0 or top is None:
        return AggregateStats(
            total_value=total_value,
            total_volume=total_volume,
            entry_count=len(held),
        )

    weighted_change = 0.0
    for entry in held:
        weight = entry.held_value / total_value
        weighted_change += weight * entry.coin.price_change_percentage_24h

    return AggregateStats(
        total_value=total_value,
        total_volume=total_volume,
        top_holding_dominance=top.held_value / total_value * 100,
        weighted_change_percent=weighted_change,
        top_holding_id=top.coin_id,
        entry_count=len(held),
    )
