"""CoinGecko REST client."""

import asyncio
from typing import Any, Dict, List, Optional
import aiohttp
from loguru import logger

from ..config import MarketDataConfig
from ..core.types import CoinTickers, TickerQuote, TopCoin, TrustScore
from ..core.utils import to_number
from .base import MarketDataError, MarketDataSource


def parse_ticker(raw: Dict[str, Any]) -> TickerQuote:
    """Build a TickerQuote from a CoinGecko ticker object."""
    converted_last = raw.get("converted_last") or {}
    converted_volume = raw.get("converted_volume") or {}
    market = raw.get("market") or {}
    return TickerQuote(
        base=str(raw.get("base") or ""),
        target=str(raw.get("target") or ""),
        market=str(market.get("name") or ""),
        volume=to_number(raw.get("volume")),
        trust_score=TrustScore.parse(raw.get("trust_score")),
        price=to_number(converted_last.get("usd")),
        converted_volume=to_number(converted_volume.get("usd")),
        trade_url=raw.get("trade_url"),
    )


def parse_market(raw: Dict[str, Any]) -> TopCoin:
    """Build a TopCoin from a CoinGecko markets entry."""
    return TopCoin(
        id=str(raw["id"]),
        name=str(raw.get("name") or raw["id"]),
        symbol=str(raw.get("symbol") or ""),
        market_cap=to_number(raw.get("market_cap")),
        last_updated=raw.get("last_updated"),
    )


class CoinGeckoClient(MarketDataSource):
    """aiohttp client for the CoinGecko tickers and markets endpoints."""

    def __init__(self, config: MarketDataConfig):
        self.config = config
        self.base_url = config.base_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=config.request_timeout_s)
        self.session: Optional[aiohttp.ClientSession] = None

    async def connect(self):
        """Open the HTTP session."""
        if self.session is None or self.session.closed:
            headers = {"accept": "application/json"}
            if self.config.api_key:
                headers["x-cg-demo-api-key"] = self.config.api_key
            self.session = aiohttp.ClientSession(headers=headers, timeout=self.timeout)
            logger.info(f"Market data session opened: {self.base_url}")

    async def close(self):
        """Close the HTTP session."""
        if self.session and not self.session.closed:
            await self.session.close()
            logger.info("Market data session closed")
        self.session = None

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """GET a JSON document, raising MarketDataError on any failure."""
        if self.session is None:
            await self.connect()

        url = f"{self.base_url}{path}"
        try:
            async with self.session.get(url, params=params) as response:
                if response.status != 200:
                    body = await response.text()
                    raise MarketDataError(f"GET {path} returned {response.status}: {body[:200]}")
                return await response.json()
        except asyncio.TimeoutError as e:
            raise MarketDataError(f"GET {path} timed out") from e
        except aiohttp.ClientError as e:
            raise MarketDataError(f"GET {path} failed: {e}") from e
        except ValueError as e:
            raise MarketDataError(f"GET {path} returned invalid JSON: {e}") from e

    async def fetch_tickers(self, coin_id: str) -> CoinTickers:
        """Fetch exchange ticker quotes for one asset."""
        data = await self._get(f"/coins/{coin_id}/tickers")
        if not isinstance(data, dict):
            raise MarketDataError(f"Unexpected tickers payload for {coin_id}")

        quotes = [parse_ticker(raw) for raw in data.get("tickers") or [] if isinstance(raw, dict)]
        return CoinTickers(coin_id=coin_id, name=str(data.get("name") or coin_id), quotes=quotes)

    async def fetch_ranked_coins(self, page: int = 1, per_page: int = 100) -> List[TopCoin]:
        """Fetch assets ranked by 24h volume."""
        params = {
            "vs_currency": self.config.vs_currency,
            "order": "volume_desc",
            "per_page": per_page,
            "page": page,
            "precision": "full",
        }
        data = await self._get("/coins/markets", params=params)
        if not isinstance(data, list):
            raise MarketDataError("Unexpected markets payload")

        try:
            return [parse_market(raw) for raw in data]
        except (KeyError, TypeError) as e:
            raise MarketDataError(f"Malformed markets entry: {e}") from e
