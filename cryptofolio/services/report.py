"""Text rendering of the portfolio read model."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Iterable

from ..models import AggregateStats, GlobalMarketData, PortfolioEntry
from .controller import PortfolioController

_SORT_FUNCS: dict[str, Callable[[PortfolioEntry], Any]] = {
    "price": lambda e: e.coin.current_price,
    "value": lambda e: e.held_value,
    "rank": lambda e: (e.coin.market_cap_rank is None, e.coin.market_cap_rank or 0),
}
SORT_KEYS = tuple(_SORT_FUNCS)


def format_large_number(value: float) -> str:
    """Abbreviate a USD amount, e.g. ``$1.23Tr``, ``$4.56Bn``, ``$7.89M``."""
    if value >= 1_000_000_000_000:
        return f"${value / 1_000_000_000_000:.2f}Tr"
    if value >= 1_000_000_000:
        return f"${value / 1_000_000_000:.2f}Bn"
    if value >= 1_000_000:
        return f"${value / 1_000_000:.2f}M"
    return f"${value:,.2f}"


def format_percent(value: float | None) -> str:
    if value is None:
        return "N/A"
    return f"{value:.2f}%"


def filter_entries(
    entries: Iterable[PortfolioEntry], query: str = ""
) -> list[PortfolioEntry]:
    """Entries whose coin name or symbol contains ``query`` (case-insensitive)."""
    needle = query.strip().casefold()
    if not needle:
        return list(entries)
    return [
        e for e in entries
        if needle in e.coin.name.casefold() or needle in e.coin.symbol.casefold()
    ]


def sort_entries(
    entries: Iterable[PortfolioEntry], key: str = "price", ascending: bool = True
) -> list[PortfolioEntry]:
    if key not in _SORT_FUNCS:
        raise ValueError(f"Unknown sort key '{key}' (expected one of {SORT_KEYS})")
    return sorted(entries, key=_SORT_FUNCS[key], reverse=not ascending)


def _stats_lines(stats: AggregateStats) -> list[str]:
    return [
        f"Portfolio Value: {format_large_number(stats.total_value)}"
        f" ({format_percent(stats.weighted_change_percent)} 24h)",
        f"24h Volume: {format_large_number(stats.total_volume)}",
        f"Top Holding Dominance: {format_percent(stats.top_holding_dominance)}",
    ]


def _entry_line(entry: PortfolioEntry) -> str:
    coin = entry.coin
    return (
        f"  {coin.symbol.upper():<6} {entry.quantity:>14,.4f}"
        f"  {format_large_number(entry.held_value):>12}"
        f"  ${coin.current_price:,.2f}"
        f"  {coin.price_change_percentage_24h:+.2f}%"
    )


def _global_line(global_data: GlobalMarketData) -> str:
    return (
        f"Market Cap: {format_large_number(global_data.total_market_cap)}"
        f" ({format_percent(global_data.market_cap_change_percentage_24h_usd)})"
        f" · Volume: {format_large_number(global_data.total_volume)}"
        f" · BTC Dominance: {format_percent(global_data.btc_dominance)}"
    )


def build_portfolio_report(
    controller: PortfolioController,
    query: str = "",
    sort_key: str = "price",
    ascending: bool = True,
) -> str:
    """Render the controller's current view as a plain-text report."""
    lines = ["📊 Crypto Portfolio", ""]

    if controller.is_stale:
        reason = controller.last_error.message if controller.last_error else "unknown"
        lines += [f"⚠️ Market data may be stale ({reason})", ""]
    if controller.persist_error is not None:
        lines += [f"⚠️ Holdings not saved: {controller.persist_error.message}", ""]

    lines += _stats_lines(controller.current_stats())
    lines.append("")

    entries = sort_entries(
        filter_entries(controller.current_portfolio_view(), query),
        key=sort_key,
        ascending=ascending,
    )
    if entries:
        lines += [_entry_line(e) for e in entries]
    else:
        lines.append("No holdings.")

    global_data = controller.global_data()
    if global_data is not None:
        lines += ["", _global_line(global_data)]

    snapshot = controller.current_snapshot()
    fetched_at = snapshot.fetched_at if snapshot and snapshot.fetched_at else None
    stamp = (fetched_at or datetime.now(timezone.utc)).strftime("%Y-%m-%d %H:%M:%S")
    lines += ["", f"{stamp} UTC"]
    return "\n".join(lines)
