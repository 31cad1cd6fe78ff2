"""CoinGecko market data provider -- fetches per-coin documents via httpx.

One GET per asset against the public `/coins/{id}` endpoint, with market
data and the 7-day hourly sparkline included. A demo API key is optional.
"""

from __future__ import annotations

import logging
from decimal import Decimal

import httpx

from core.errors import FetchError
from core.models.market import AssetSymbol, asset_info

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.coingecko.com/api/v3"

# Only market data and the sparkline are needed
_COIN_PARAMS = {
    "localization": "false",
    "tickers": "false",
    "market_data": "true",
    "community_data": "false",
    "developer_data": "false",
    "sparkline": "true",
}


class CoinGeckoProvider:
    """Fetches raw coin documents from CoinGecko.

    Implements the MarketDataProvider protocol.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        api_key: str = "",
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        # Sent per request so an injected client gets them too
        self._headers = {"User-Agent": "Coinboard/0.1", "Accept": "application/json"}
        if api_key:
            self._headers["x-cg-demo-api-key"] = api_key
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def name(self) -> str:
        return "coingecko"

    def url_for(self, asset: AssetSymbol) -> str:
        return f"{self._base_url}/coins/{asset_info(asset).coin_id}"

    async def fetch_raw(self, asset: AssetSymbol) -> dict:
        """Fetch the coin document for one asset.

        Floats are decoded as Decimal so prices never pass through binary
        floating point.
        """
        url = self.url_for(asset)
        try:
            response = await self._client.get(url, params=_COIN_PARAMS, headers=self._headers)
        except httpx.HTTPError as exc:
            raise FetchError(asset, f"request failed: {exc.__class__.__name__}: {exc}") from exc

        if response.status_code != 200:
            logger.warning("CoinGecko returned %d for %s", response.status_code, asset.value)
            raise FetchError(asset, f"HTTP {response.status_code}")

        try:
            data = response.json(parse_float=Decimal)
        except ValueError as exc:
            raise FetchError(asset, "response body is not valid JSON") from exc

        if not isinstance(data, dict):
            raise FetchError(asset, "response body is not a JSON object")
        return data

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()
