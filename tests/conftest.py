"""Shared test fixtures and sample data."""
from __future__ import annotations

import textwrap
from datetime import datetime, timezone
from pathlib import Path

import pytest

from cryptofolio.config import (
    AppConfig,
    ControllerConfig,
    MarketDataConfig,
    StorageConfig,
)
from cryptofolio.models import Coin, GlobalMarketData, HoldingsLedger, MarketSnapshot


def make_coin(
    coin_id: str,
    price: float,
    change: float = 0.0,
    volume: float = 1_000.0,
    rank: int | None = 1,
    symbol: str | None = None,
    name: str | None = None,
) -> Coin:
    return Coin(
        id=coin_id,
        symbol=symbol or coin_id[:3],
        name=name or coin_id.title(),
        image=f"https://img.example.com/{coin_id}.png",
        current_price=price,
        market_cap=price * 1_000_000,
        total_volume=volume,
        price_change_percentage_24h=change,
        market_cap_rank=rank,
        sparkline_7d=(price * 0.9, price),
    )


def make_snapshot(*coins: Coin, global_data: GlobalMarketData | None = None) -> MarketSnapshot:
    return MarketSnapshot(
        coins=tuple(coins),
        global_data=global_data,
        fetched_at=datetime(2024, 10, 20, 12, 0, tzinfo=timezone.utc),
    )


# ---------------------------------------------------------------------------
# Model fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def btc() -> Coin:
    return make_coin(
        "bitcoin", 60_000.0, change=2.0, volume=30_000_000_000.0, rank=1,
        symbol="btc", name="Bitcoin",
    )


@pytest.fixture()
def eth() -> Coin:
    return make_coin(
        "ethereum", 3_000.0, change=-4.0, volume=15_000_000_000.0, rank=2,
        symbol="eth", name="Ethereum",
    )


@pytest.fixture()
def sol() -> Coin:
    return make_coin(
        "solana", 150.0, change=5.0, volume=2_000_000_000.0, rank=5,
        symbol="sol", name="Solana",
    )


@pytest.fixture()
def sample_global() -> GlobalMarketData:
    return GlobalMarketData(
        total_market_cap=2_400_000_000_000.0,
        total_volume=81_000_000_000.0,
        market_cap_percentage={"btc": 54.1, "eth": 13.2},
        market_cap_change_percentage_24h_usd=-1.3,
    )


@pytest.fixture()
def sample_snapshot(btc: Coin, eth: Coin, sol: Coin, sample_global) -> MarketSnapshot:
    return make_snapshot(btc, eth, sol, global_data=sample_global)


@pytest.fixture()
def sample_ledger() -> HoldingsLedger:
    return HoldingsLedger({"bitcoin": 0.5, "ethereum": 2.0})


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_market_config() -> MarketDataConfig:
    return MarketDataConfig(
        base_url="https://api.example.com/api/v3",
        per_page=3,
        api_key="demo-key",
        request_timeout_seconds=5.0,
    )


@pytest.fixture()
def sample_storage_config(tmp_path: Path) -> StorageConfig:
    return StorageConfig(path=str(tmp_path / "holdings.json"))


@pytest.fixture()
def fast_controller_config() -> ControllerConfig:
    return ControllerConfig(
        fetch_timeout_seconds=0.5,
        save_retries=2,
        save_retry_delay_seconds=0.0,
        refresh_interval_minutes=1,
    )


@pytest.fixture()
def sample_app_config(
    sample_market_config: MarketDataConfig,
    sample_storage_config: StorageConfig,
    fast_controller_config: ControllerConfig,
) -> AppConfig:
    return AppConfig(
        market_data=sample_market_config,
        storage=sample_storage_config,
        controller=fast_controller_config,
    )


# ---------------------------------------------------------------------------
# Config YAML fixture
# ---------------------------------------------------------------------------

SAMPLE_YAML = textwrap.dedent("""\
    market_data:
      base_url: "https://api.example.com/api/v3/"
      vs_currency: usd
      per_page: 25
      sparkline: false
      api_key: "abc"
      request_timeout_seconds: 7
    storage:
      path: "/tmp/cryptofolio-test.json"
      key: holdings
    controller:
      fetch_timeout_seconds: 12
      save_retries: 3
      save_retry_delay_seconds: 1.5
      refresh_interval_minutes: 10
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file


# ---------------------------------------------------------------------------
# Sample CoinGecko payloads
# ---------------------------------------------------------------------------


@pytest.fixture()
def coingecko_markets_payload() -> list[dict]:
    return [
        {
            "id": "bitcoin",
            "symbol": "btc",
            "name": "Bitcoin",
            "image": "https://assets.example.com/btc.png",
            "current_price": 67187.0,
            "market_cap": 1327000000000,
            "market_cap_rank": 1,
            "total_volume": 23000000000,
            "high_24h": 68000.0,
            "low_24h": 66000.0,
            "price_change_24h": 850.5,
            "price_change_percentage_24h": 1.28,
            "market_cap_change_24h": 16000000000,
            "market_cap_change_percentage_24h": 1.22,
            "last_updated": "2024-10-20T12:00:00.000Z",
            "sparkline_in_7d": {"price": [62000.1, 63000.2, 67187.0]},
        },
        {
            "id": "ethereum",
            "symbol": "eth",
            "name": "Ethereum",
            "image": "https://assets.example.com/eth.png",
            "current_price": 2650.3,
            "market_cap": 319000000000,
            "market_cap_rank": 2,
            "total_volume": 12000000000,
            "high_24h": None,
            "low_24h": None,
            "price_change_24h": -20.1,
            "price_change_percentage_24h": -0.75,
            "market_cap_change_24h": None,
            "market_cap_change_percentage_24h": None,
            "last_updated": "2024-10-20T12:00:00.000Z",
            "sparkline_in_7d": {"price": []},
        },
    ]


@pytest.fixture()
def coingecko_global_payload() -> dict:
    return {
        "data": {
            "total_market_cap": {"usd": 2450000000000.0, "eur": 2250000000000.0},
            "total_volume": {"usd": 81000000000.0},
            "market_cap_percentage": {"btc": 54.2, "eth": 13.0},
            "market_cap_change_percentage_24h_usd": -1.25,
        }
    }
