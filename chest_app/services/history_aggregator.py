"""
Historical Prize Aggregator

Polls the BaseScan logs API for PrizeAwarded events emitted by the chest
contract, decodes them with the shared decoder, and keeps a sorted, capped
collection that the UI filters by tier and paginates.
"""

import asyncio
import json
import logging
import math
import time
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Sequence, Union

import pandas as pd
import requests

from ..config.chest_config import (
    ALL_TIERS,
    BASE_SEPOLIA_EXPLORER,
    BASESCAN_API_KEY,
    BASESCAN_BASE_URL,
    CHEST_CONTRACT_ADDRESS,
    GENESIS_BLOCK,
    HISTORY_POLL_INTERVAL,
    ITEMS_PER_PAGE,
    MAX_HISTORY_ITEMS,
    MAX_RETRIES,
    RATE_LIMIT_DELAY,
    REQUEST_TIMEOUT,
)
from .decoders.abis import PRIZE_AWARDED
from .decoders.base import TIERS_BY_NAME, OutcomeEvent, format_address, tier_bounds
from .decoders.outcome_decoder import decode_outcome_record
from .errors import FetchFailed

logger = logging.getLogger(__name__)

NO_RECORDS_MESSAGE = "No records found"


class BaseScanClient:
    """Client for the BaseScan (Etherscan-compatible) logs API"""

    def __init__(self, api_key: Optional[str] = None, base_url: str = BASESCAN_BASE_URL,
                 session: Optional[requests.Session] = None):
        self.api_key = api_key if api_key is not None else BASESCAN_API_KEY
        self.base_url = base_url
        self.session = session or requests.Session()
        self.session.headers.update({
            'User-Agent': 'ETHChests-Client/1.0',
            'Accept': 'application/json',
        })
        self.rate_limit_delay = RATE_LIMIT_DELAY
        self.last_request_time = 0

        if self.api_key:
            masked_key = f"{self.api_key[:4]}...{self.api_key[-4:]}" if len(self.api_key) > 8 else "***"
            logger.info(f"BaseScanClient initialized with API key: {masked_key}")
        else:
            logger.warning("BaseScanClient initialized without API key! Set BASESCAN_API_KEY in .env")

    def _rate_limit(self):
        """Enforce rate limiting"""
        elapsed = time.time() - self.last_request_time
        if elapsed < self.rate_limit_delay:
            time.sleep(self.rate_limit_delay - elapsed)
        self.last_request_time = time.time()

    def get_logs(self, address: str, topic0: str, from_block: int, to_block: Union[int, str]) -> List[Dict]:
        """
        Fetch raw log records for one contract and event topic.

        Returns:
            List of records with topics, data, timeStamp and transactionHash

        Raises:
            FetchFailed on network errors, HTTP errors, malformed JSON or API errors
        """
        params = {
            'module': 'logs',
            'action': 'getLogs',
            'fromBlock': from_block,
            'toBlock': to_block,
            'address': address,
            'topic0': topic0,
            'apikey': self.api_key,
        }

        last_error = None
        for attempt in range(MAX_RETRIES):
            self._rate_limit()
            try:
                response = self.session.get(self.base_url, params=params, timeout=REQUEST_TIMEOUT)
                response.raise_for_status()
                data = response.json()
            except requests.exceptions.RequestException as e:
                last_error = e
                logger.warning(f"BaseScan request error on attempt {attempt + 1}: {e}")
                if attempt < MAX_RETRIES - 1:
                    time.sleep(2 ** attempt)
                continue
            except (json.JSONDecodeError, ValueError) as e:
                raise FetchFailed(f"BaseScan returned malformed JSON: {e}") from e

            return self._parse_response(data)

        raise FetchFailed(f"BaseScan unreachable after {MAX_RETRIES} attempts: {last_error}")

    def _parse_response(self, data) -> List[Dict]:
        if not isinstance(data, dict):
            raise FetchFailed("BaseScan response is not an object")

        result = data.get('result')
        if data.get('status') == '1':
            if not isinstance(result, list):
                raise FetchFailed("BaseScan result is not a list")
            logger.debug(f"BaseScan returned {len(result)} log records")
            return result

        message = str(data.get('message', 'Unknown error'))
        if NO_RECORDS_MESSAGE.lower() in message.lower() or result == []:
            return []

        raise FetchFailed(f"BaseScan API error: {message} - {result}")


def sort_events(events: Sequence[OutcomeEvent]) -> List[OutcomeEvent]:
    """Most recent first; equal timestamps ordered by tx hash ascending"""
    by_hash = sorted(events, key=lambda e: e.tx_hash)
    return sorted(by_hash, key=lambda e: e.timestamp, reverse=True)


def filter_by_tier(events: Sequence[OutcomeEvent], tier_name: str) -> List[OutcomeEvent]:
    """Events whose amount falls in the named tier; "All" returns everything"""
    if tier_name == ALL_TIERS:
        return list(events)
    if tier_name not in TIERS_BY_NAME:
        raise ValueError(f"Unknown prize tier: {tier_name}")

    lower, upper = tier_bounds(tier_name)
    return [
        e for e in events
        if e.amount >= lower and (upper is None or e.amount < upper)
    ]


def total_pages(count: int, page_size: int = ITEMS_PER_PAGE) -> int:
    if page_size <= 0:
        raise ValueError("page_size must be positive")
    return math.ceil(count / page_size)


def paginate(events: Sequence[OutcomeEvent], page_size: int = ITEMS_PER_PAGE,
             page_number: int = 1) -> List[OutcomeEvent]:
    """1-indexed fixed-size page; out-of-range page numbers give an empty page"""
    if page_size <= 0:
        raise ValueError("page_size must be positive")
    if page_number < 1:
        return []
    start = (page_number - 1) * page_size
    return list(events[start:start + page_size])


def page_window(current: int, total: int) -> List[Union[int, str]]:
    """
    Compact page list: first, last, current and its neighbours, with "..."
    marking the gap two pages away from current.
    """
    pages: List[Union[int, str]] = []
    for i in range(1, total + 1):
        if i in (1, total, current, current - 1, current + 1):
            pages.append(i)
        elif i in (current - 2, current + 2):
            if pages and pages[-1] == "...":
                continue
            pages.append("...")
    return pages


def format_time_ago(timestamp: int, now: Optional[float] = None) -> str:
    seconds = int((time.time() if now is None else now) - timestamp)
    if seconds < 60:
        return f"{seconds}s ago"
    if seconds < 3600:
        return f"{seconds // 60}m ago"
    if seconds < 86400:
        return f"{seconds // 3600}h ago"
    return f"{seconds // 86400}d ago"


def format_usd_value(eth_amount: Decimal, eth_price: Optional[Decimal]) -> str:
    if not eth_price:
        return ""
    usd_value = Decimal(eth_amount) * Decimal(eth_price)
    return f"(≈${usd_value:.2f})"


def to_dataframe(events: Sequence[OutcomeEvent], eth_price: Optional[Decimal] = None,
                 now: Optional[float] = None) -> pd.DataFrame:
    """Tabular view of a page of events for the UI"""
    columns = ['Player', 'Prize (ETH)', 'USD', 'Tier', 'When', 'Transaction']
    rows = []
    for event in events:
        tier = event.tier
        rows.append({
            'Player': format_address(event.player),
            'Prize (ETH)': str(event.amount),
            'USD': format_usd_value(event.amount, eth_price),
            'Tier': f"{tier.emoji} {tier.name}" if tier else "",
            'When': format_time_ago(event.timestamp, now),
            'Transaction': f"{BASE_SEPOLIA_EXPLORER}/tx/{event.tx_hash}",
        })
    return pd.DataFrame(rows, columns=columns)


class HistoryAggregator:
    """
    Holds the most recent PrizeAwarded events and refreshes them on a timer.

    A failed refresh keeps the previous collection and records last_error;
    the next scheduled poll retries independently.
    """

    def __init__(self, client: BaseScanClient, block_number: Callable[[], int],
                 contract_address: str = CHEST_CONTRACT_ADDRESS,
                 max_items: int = MAX_HISTORY_ITEMS):
        self.client = client
        self.block_number = block_number
        self.contract_address = contract_address
        self.max_items = max_items
        self.events: List[OutcomeEvent] = []
        self.last_error: Optional[str] = None
        self.last_refresh: Optional[datetime] = None
        self.loaded = False
        self._task: Optional[asyncio.Task] = None

    def refresh(self) -> bool:
        """Fetch, decode, sort and cap. Returns False on a recoverable fetch failure."""
        try:
            latest_block = self.block_number()
            records = self.client.get_logs(
                self.contract_address, PRIZE_AWARDED.topic_hex, GENESIS_BLOCK, latest_block
            )
        except FetchFailed as e:
            self.last_error = str(e)
            logger.error(f"History refresh failed, keeping {len(self.events)} events: {e}")
            return False

        decoded = {}
        skipped = 0
        for record in records:
            event = decode_outcome_record(record) if isinstance(record, dict) else None
            if event is None:
                skipped += 1
                continue
            decoded.setdefault(event.tx_hash, event)

        if skipped:
            logger.debug(f"Skipped {skipped} undecodable history records")

        self.events = sort_events(decoded.values())[:self.max_items]
        self.last_error = None
        self.last_refresh = datetime.now(timezone.utc)
        self.loaded = True
        logger.info(f"History refreshed: {len(self.events)} prize events")
        return True

    def filter_by_tier(self, tier_name: str) -> List[OutcomeEvent]:
        return filter_by_tier(self.events, tier_name)

    def page(self, tier_name: str = ALL_TIERS, page_number: int = 1,
             page_size: int = ITEMS_PER_PAGE) -> List[OutcomeEvent]:
        return paginate(self.filter_by_tier(tier_name), page_size, page_number)

    # ------------------------------------------------------------------
    # Polling loop
    # ------------------------------------------------------------------

    async def poll_forever(self, interval: float = HISTORY_POLL_INTERVAL) -> None:
        while True:
            try:
                await asyncio.to_thread(self.refresh)
            except Exception as e:
                # Ledger height lookups raise web3/requests errors; never end the loop on them
                self.last_error = str(e)
                logger.error(f"History poll error: {e}")
            await asyncio.sleep(interval)

    def start(self, interval: float = HISTORY_POLL_INTERVAL) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self.poll_forever(interval))
        return self._task

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None
