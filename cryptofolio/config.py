"""Configuration loader — reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

COINGECKO_API_URL = "https://api.coingecko.com/api/v3"
DEFAULT_STORAGE_KEY = "portfolio_holdings"

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MarketDataConfig:
    base_url: str = COINGECKO_API_URL
    vs_currency: str = "usd"
    per_page: int = 10
    sparkline: bool = True
    api_key: str = ""
    request_timeout_seconds: float = 10.0


@dataclass(frozen=True)
class StorageConfig:
    path: str = "~/.cryptofolio/holdings.json"
    key: str = DEFAULT_STORAGE_KEY


@dataclass(frozen=True)
class ControllerConfig:
    fetch_timeout_seconds: float = 15.0
    save_retries: int = 2
    save_retry_delay_seconds: float = 0.5
    refresh_interval_minutes: int = 5


@dataclass(frozen=True)
class AppConfig:
    market_data: MarketDataConfig = field(default_factory=MarketDataConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    controller: ControllerConfig = field(default_factory=ControllerConfig)


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _build_market_data(raw: dict[str, Any]) -> MarketDataConfig:
    defaults = MarketDataConfig()
    return MarketDataConfig(
        base_url=str(raw.get("base_url", defaults.base_url)).rstrip("/"),
        vs_currency=str(raw.get("vs_currency", defaults.vs_currency)),
        per_page=int(raw.get("per_page", defaults.per_page)),
        sparkline=bool(raw.get("sparkline", defaults.sparkline)),
        api_key=str(raw.get("api_key", "") or ""),
        request_timeout_seconds=float(
            raw.get("request_timeout_seconds", defaults.request_timeout_seconds)
        ),
    )


def _build_storage(raw: dict[str, Any]) -> StorageConfig:
    return StorageConfig(
        path=str(raw.get("path", StorageConfig.path)),
        key=str(raw.get("key", DEFAULT_STORAGE_KEY)),
    )


def _build_controller(raw: dict[str, Any]) -> ControllerConfig:
    defaults = ControllerConfig()
    return ControllerConfig(
        fetch_timeout_seconds=float(
            raw.get("fetch_timeout_seconds", defaults.fetch_timeout_seconds)
        ),
        save_retries=int(raw.get("save_retries", defaults.save_retries)),
        save_retry_delay_seconds=float(
            raw.get("save_retry_delay_seconds", defaults.save_retry_delay_seconds)
        ),
        refresh_interval_minutes=int(
            raw.get("refresh_interval_minutes", defaults.refresh_interval_minutes)
        ),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (one level up from this package).
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    cfg = AppConfig(
        market_data=_build_market_data(raw.get("market_data") or {}),
        storage=_build_storage(raw.get("storage") or {}),
        controller=_build_controller(raw.get("controller") or {}),
    )

    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    md = cfg.market_data
    if not md.base_url:
        raise ValueError("market_data.base_url must not be empty")
    if md.per_page <= 0:
        raise ValueError("market_data.per_page must be positive")
    if md.request_timeout_seconds <= 0:
        raise ValueError("market_data.request_timeout_seconds must be positive")

    if not cfg.storage.path:
        raise ValueError("storage.path must not be empty")
    if not cfg.storage.key:
        raise ValueError("storage.key must not be empty")

    ctl = cfg.controller
    if ctl.fetch_timeout_seconds <= 0:
        raise ValueError("controller.fetch_timeout_seconds must be positive")
    if ctl.save_retries < 0:
        raise ValueError("controller.save_retries cannot be negative")
    if ctl.save_retry_delay_seconds < 0:
        raise ValueError("controller.save_retry_delay_seconds cannot be negative")
    if ctl.refresh_interval_minutes <= 0:
        raise ValueError("controller.refresh_interval_minutes must be positive")
