# -*- coding: utf-8 -*-
"""
Price Service Module

ETH/USD price from CoinGecko with a small TTL cache. Used only to show USD
equivalents next to ETH amounts; a failed fetch keeps the last good price.
"""

import asyncio
import logging
import time
from decimal import Decimal
from typing import Any, Dict, Optional

import requests

from ..config.chest_config import (
    COINGECKO_API_KEY,
    COINGECKO_BASE_URL,
    MAX_RETRIES,
    PRICE_POLL_INTERVAL,
    REQUEST_TIMEOUT,
)
from .errors import FetchFailed

# Set up logging
logger = logging.getLogger(__name__)

CACHE_TTL_PRICES = 60  # seconds


class PriceCache:
    """Simple in-memory cache with TTL support"""

    def __init__(self):
        self._cache = {}
        self._timestamps = {}

    def get(self, key: str, ttl: int) -> Optional[Any]:
        """Get cached value if not expired"""
        if key in self._cache:
            if time.time() - self._timestamps[key] < ttl:
                return self._cache[key]
            self._cache.pop(key, None)
            self._timestamps.pop(key, None)
        return None

    def set(self, key: str, value: Any) -> None:
        """Store value in cache with current timestamp"""
        self._cache[key] = value
        self._timestamps[key] = time.time()

    def clear(self) -> None:
        self._cache.clear()
        self._timestamps.clear()


class CoinGeckoAPI:
    """CoinGecko API client with retries"""

    def __init__(self, api_key: Optional[str] = COINGECKO_API_KEY,
                 session: Optional[requests.Session] = None):
        self.api_key = api_key
        self.session = session or requests.Session()

        headers = {
            'User-Agent': 'ETHChests-Client/1.0',
            'Accept': 'application/json'
        }
        if api_key:
            headers['x-cg-pro-api-key'] = api_key
        self.session.headers.update(headers)
        logger.info(f"CoinGecko API initialized {'with API key' if api_key else 'using free tier'}")

    def _make_request(self, endpoint: str, params: Dict = None) -> Dict:
        """Make API request with retries; raises FetchFailed when all attempts fail"""
        url = f"{COINGECKO_BASE_URL}{endpoint}"

        for attempt in range(MAX_RETRIES):
            try:
                response = self.session.get(url, params=params or {}, timeout=REQUEST_TIMEOUT)
                response.raise_for_status()
                return response.json()
            except requests.exceptions.RequestException as e:
                logger.warning(f"CoinGecko request error on attempt {attempt + 1}: {e}")
                if attempt < MAX_RETRIES - 1:
                    time.sleep(2 ** attempt)
            except ValueError as e:
                raise FetchFailed(f"CoinGecko returned malformed JSON: {e}") from e

        raise FetchFailed(f"Failed to fetch {endpoint} after {MAX_RETRIES} attempts")

    def get_eth_usd(self) -> Decimal:
        data = self._make_request('/simple/price', {'ids': 'ethereum', 'vs_currencies': 'usd'})
        try:
            return Decimal(str(data['ethereum']['usd']))
        except (KeyError, TypeError, ArithmeticError) as e:
            raise FetchFailed(f"Unexpected CoinGecko payload: {data!r}") from e


class EthPriceFeed:
    """Periodically refreshed ETH/USD rate; keeps the last good value"""

    def __init__(self, api: Optional[CoinGeckoAPI] = None):
        self.api = api or CoinGeckoAPI()
        self.cache = PriceCache()
        self.price: Optional[Decimal] = None
        self.last_error: Optional[str] = None
        self._task: Optional[asyncio.Task] = None

    def refresh(self) -> Optional[Decimal]:
        cached = self.cache.get('eth_usd', CACHE_TTL_PRICES)
        if cached is not None:
            return cached

        try:
            price = self.api.get_eth_usd()
        except FetchFailed as e:
            self.last_error = str(e)
            logger.error(f"Error fetching ETH price: {e}")
            return self.price

        self.cache.set('eth_usd', price)
        self.price = price
        self.last_error = None
        logger.debug(f"ETH price: ${price}")
        return price

    async def poll_forever(self, interval: float = PRICE_POLL_INTERVAL) -> None:
        while True:
            await asyncio.to_thread(self.refresh)
            await asyncio.sleep(interval)

    def start(self, interval: float = PRICE_POLL_INTERVAL) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self.poll_forever(interval))
        return self._task

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None
