"""CoinGecko market data source."""
from __future__ import annotations

import asyncio
import logging
import ssl
from datetime import datetime, timezone
from typing import Any

import aiohttp
import certifi

from ..config import MarketDataConfig
from ..errors import DecodeError, FetchFailure, FetchTimeout, NetworkError
from ..models import Coin, GlobalMarketData, MarketSnapshot
from . import parser

logger = logging.getLogger(__name__)


class CoinGeckoClient:
    """Fetch the top coins by market cap plus global market aggregates."""

    def __init__(self, config: MarketDataConfig) -> None:
        self.base_url = config.base_url.rstrip("/")
        self.vs_currency = config.vs_currency
        self.per_page = config.per_page
        self.sparkline = config.sparkline
        self.api_key = config.api_key
        self.timeout = config.request_timeout_seconds

    def _params(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        params = dict(extra or {})
        if self.api_key:
            params["x_cg_demo_api_key"] = self.api_key
        return params

    async def _get_json(
        self, session: aiohttp.ClientSession, path: str, params: dict[str, str]
    ) -> Any:
        url = f"{self.base_url}{path}"
        logger.debug("GET %s", url)
        try:
            async with session.get(
                url,
                params=params,
                headers={"accept": "application/json"},
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as response:
                if not 200 <= response.status < 300:
                    raise NetworkError(f"HTTP {response.status} from {url}")
                try:
                    return await response.json(content_type=None)
                except ValueError as e:
                    raise DecodeError(f"Invalid JSON from {url}: {e}") from e
        except asyncio.TimeoutError as e:
            raise FetchTimeout(self.timeout) from e
        except (aiohttp.ClientError, OSError) as e:
            raise NetworkError(f"Request to {url} failed: {e}") from e

    async def fetch_coins(self, session: aiohttp.ClientSession) -> tuple[Coin, ...]:
        data = await self._get_json(
            session,
            "/coins/markets",
            self._params(
                {
                    "vs_currency": self.vs_currency,
                    "order": "market_cap_desc",
                    "per_page": str(self.per_page),
                    "page": "1",
                    "sparkline": "true" if self.sparkline else "false",
                }
            ),
        )
        return parser.parse_coins(data)

    async def fetch_global(self, session: aiohttp.ClientSession) -> GlobalMarketData:
        data = await self._get_json(session, "/global", self._params())
        return parser.parse_global(data, self.vs_currency)

    async def fetch_snapshot(self) -> MarketSnapshot:
        """Fetch a full market snapshot.

        The coin list is required; global aggregates are best effort and
        the snapshot carries ``global_data=None`` when they fail.

        Raises:
            NetworkError: transport failure or non-success status.
            DecodeError: the coin list could not be decoded.
        """
        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        async with aiohttp.ClientSession(connector=connector) as session:
            coins = await self.fetch_coins(session)

            global_data = None
            try:
                global_data = await self.fetch_global(session)
            except FetchFailure as e:
                logger.warning("Global market data unavailable: %s", e)

        logger.info("Fetched %d coins from CoinGecko", len(coins))
        return MarketSnapshot(
            coins=coins,
            global_data=global_data,
            fetched_at=datetime.now(timezone.utc),
        )
