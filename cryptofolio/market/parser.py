"""Pure parsing functions for CoinGecko responses — no I/O."""
from __future__ import annotations

from typing import Any

from ..errors import DecodeError
from ..models import Coin, GlobalMarketData

_REQUIRED_COIN_FIELDS = ("id", "symbol", "name", "current_price")


def _optional_float(value: Any) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _float(value: Any, default: float = 0.0) -> float:
    result = _optional_float(value)
    return default if result is None else result


def parse_coin(item: dict[str, Any]) -> Coin:
    """Parse one ``/coins/markets`` element.

    Raises:
        DecodeError: if the element is not an object or lacks a required field.
    """
    if not isinstance(item, dict):
        raise DecodeError(f"Coin entry is not an object: {item!r}")
    missing = [k for k in _REQUIRED_COIN_FIELDS if item.get(k) is None]
    if missing:
        raise DecodeError(
            f"Coin entry {item.get('id', '?')!r} missing fields: {', '.join(missing)}"
        )

    price = _optional_float(item["current_price"])
    if price is None or price < 0:
        raise DecodeError(
            f"Coin {item['id']!r} has invalid current_price {item['current_price']!r}"
        )

    rank_raw = _optional_float(item.get("market_cap_rank"))
    sparkline_raw = (item.get("sparkline_in_7d") or {}).get("price") or []

    return Coin(
        id=str(item["id"]),
        symbol=str(item["symbol"]),
        name=str(item["name"]),
        image=str(item.get("image") or ""),
        current_price=price,
        market_cap=_float(item.get("market_cap")),
        total_volume=_float(item.get("total_volume")),
        price_change_percentage_24h=_float(item.get("price_change_percentage_24h")),
        market_cap_rank=int(rank_raw) if rank_raw is not None else None,
        sparkline_7d=tuple(
            p for p in (_optional_float(v) for v in sparkline_raw) if p is not None
        ),
        price_change_24h=_optional_float(item.get("price_change_24h")),
        high_24h=_optional_float(item.get("high_24h")),
        low_24h=_optional_float(item.get("low_24h")),
        market_cap_change_24h=_optional_float(item.get("market_cap_change_24h")),
        market_cap_change_percentage_24h=_optional_float(
            item.get("market_cap_change_percentage_24h")
        ),
        last_updated=str(item.get("last_updated") or ""),
    )


def parse_coins(data: Any) -> tuple[Coin, ...]:
    """Parse the ``/coins/markets`` array, rejecting duplicate ids."""
    if not isinstance(data, list):
        raise DecodeError("Expected a list of coins")

    coins: list[Coin] = []
    seen: set[str] = set()
    for item in data:
        coin = parse_coin(item)
        if coin.id in seen:
            raise DecodeError(f"Duplicate coin id {coin.id!r} in market data")
        seen.add(coin.id)
        coins.append(coin)
    return tuple(coins)


def parse_global(data: Any, vs_currency: str = "usd") -> GlobalMarketData:
    """Parse the ``/global`` response body.

    Example body::

        {"data": {"total_market_cap": {"usd": 2.4e12},
                  "total_volume": {"usd": 8.1e10},
                  "market_cap_percentage": {"btc": 54.1, "eth": 13.2},
                  "market_cap_change_percentage_24h_usd": -1.3}}
    """
    if not isinstance(data, dict) or not isinstance(data.get("data"), dict):
        raise DecodeError("Global response has no 'data' object")
    body = data["data"]

    def _by_currency(key: str) -> float:
        values = body.get(key) or {}
        if not isinstance(values, dict):
            raise DecodeError(f"Global field '{key}' is not an object")
        return _float(values.get(vs_currency))

    percentages = body.get("market_cap_percentage") or {}
    if not isinstance(percentages, dict):
        raise DecodeError("Global field 'market_cap_percentage' is not an object")

    return GlobalMarketData(
        total_market_cap=_by_currency("total_market_cap"),
        total_volume=_by_currency("total_volume"),
        market_cap_percentage={
            str(k): v
            for k, v in ((k, _optional_float(v)) for k, v in percentages.items())
            if v is not None
        },
        market_cap_change_percentage_24h_usd=_float(
            body.get("market_cap_change_percentage_24h_usd")
        ),
    )
