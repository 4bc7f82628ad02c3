"""Yahoo Finance market price feed."""
from __future__ import annotations

import asyncio
import logging
import math
import ssl
from typing import Any

import aiohttp
import certifi

from ..config import FeederConfig
from ..errors import FeedMalformed, FeedUnavailable

logger = logging.getLogger(__name__)

_HEADERS = {"User-Agent": "Mozilla/5.0 (compatible; floe-price-feeder)"}


def extract_price(data: Any) -> float:
    """Pull ``chart.result[0].meta.regularMarketPrice`` out of a chart payload.

    Raises:
        FeedMalformed: the field is missing, not a number, or not positive.
    """
    try:
        price = data["chart"]["result"][0]["meta"]["regularMarketPrice"]
    except (KeyError, IndexError, TypeError) as e:
        raise FeedMalformed(f"Price missing from market data: {e!r}") from e

    if isinstance(price, bool) or not isinstance(price, (int, float)):
        raise FeedMalformed(f"Invalid price returned from API: {price!r}")
    try:
        value = float(price)
    except OverflowError as e:
        raise FeedMalformed(f"Invalid price returned from API: {price!r}") from e
    if not math.isfinite(value) or value <= 0:
        raise FeedMalformed(f"Invalid price returned from API: {price!r}")
    return value


class YahooFinanceFeed:
    """Fetch the reference asset's current price from the Yahoo chart API.

    One request per call and no retry; the reconciliation loop retries on its
    next tick.
    """

    def __init__(self, config: FeederConfig) -> None:
        self.url = config.market_data_url
        self.timeout = config.request_timeout

    async def fetch_reference_price(self) -> float:
        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        try:
            async with aiohttp.ClientSession(connector=connector) as session:
                async with session.get(
                    self.url,
                    headers=_HEADERS,
                    timeout=aiohttp.ClientTimeout(total=self.timeout),
                ) as response:
                    if response.status != 200:
                        raise FeedUnavailable(
                            f"Yahoo Finance API returned status {response.status}"
                        )
                    try:
                        data = await response.json(content_type=None)
                    except ValueError as e:
                        raise FeedMalformed(f"Undecodable market data: {e}") from e
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            raise FeedUnavailable(f"Error fetching price from Yahoo Finance: {e}") from e

        price = extract_price(data)
        logger.info("Current market price: $%.2f", price)
        return price
