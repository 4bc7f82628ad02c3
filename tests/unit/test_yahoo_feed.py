"""Unit tests for the Yahoo Finance feed — payload parsing and error handling."""
from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from floe.config import FeederConfig
from floe.errors import FeedMalformed, FeedUnavailable
from floe.oracles.yahoo import YahooFinanceFeed, extract_price


def _chart(price) -> dict:
    return {"chart": {"result": [{"meta": {"regularMarketPrice": price}}], "error": None}}


def _mock_session(status: int = 200, payload=None, json_error: Exception | None = None) -> AsyncMock:
    mock_response = AsyncMock()
    mock_response.status = status
    if json_error is not None:
        mock_response.json = AsyncMock(side_effect=json_error)
    else:
        mock_response.json = AsyncMock(return_value=payload)
    mock_response.__aenter__ = AsyncMock(return_value=mock_response)
    mock_response.__aexit__ = AsyncMock(return_value=None)

    mock_session = AsyncMock()
    mock_session.get = MagicMock(return_value=mock_response)
    mock_session.__aenter__ = AsyncMock(return_value=mock_session)
    mock_session.__aexit__ = AsyncMock(return_value=None)
    return mock_session


@pytest.fixture()
def feed(sample_feeder_config: FeederConfig) -> YahooFinanceFeed:
    return YahooFinanceFeed(sample_feeder_config)


class TestExtractPrice:
    def test_reads_regular_market_price(self) -> None:
        assert extract_price(_chart(145.67)) == pytest.approx(145.67)

    def test_integer_price(self) -> None:
        assert extract_price(_chart(145)) == 145.0

    @pytest.mark.parametrize(
        "payload",
        [
            {},
            {"chart": {"result": []}},
            {"chart": {"result": None}},
            {"chart": {"result": [{"meta": {}}]}},
        ],
    )
    def test_missing_field(self, payload: dict) -> None:
        with pytest.raises(FeedMalformed):
            extract_price(payload)

    @pytest.mark.parametrize("price", [0, -1.5, None, "145.67", True, float("nan")])
    def test_invalid_price(self, price) -> None:
        with pytest.raises(FeedMalformed, match="Invalid price"):
            extract_price(_chart(price))

    def test_integer_too_large_for_float(self) -> None:
        with pytest.raises(FeedMalformed, match="Invalid price"):
            extract_price(_chart(10**400))


class TestFetchReferencePrice:
    @pytest.mark.asyncio
    async def test_success(self, feed: YahooFinanceFeed) -> None:
        mock_session = _mock_session(payload=_chart(145.67))

        with patch("floe.oracles.yahoo.aiohttp.ClientSession", return_value=mock_session):
            with patch("floe.oracles.yahoo.aiohttp.TCPConnector"):
                price = await feed.fetch_reference_price()

        assert price == pytest.approx(145.67)
        assert mock_session.get.call_args[0][0] == feed.url

    @pytest.mark.asyncio
    async def test_http_error(self, feed: YahooFinanceFeed) -> None:
        mock_session = _mock_session(status=429)

        with patch("floe.oracles.yahoo.aiohttp.ClientSession", return_value=mock_session):
            with patch("floe.oracles.yahoo.aiohttp.TCPConnector"):
                with pytest.raises(FeedUnavailable, match="status 429"):
                    await feed.fetch_reference_price()

    @pytest.mark.asyncio
    async def test_network_error(self, feed: YahooFinanceFeed) -> None:
        mock_session = AsyncMock()
        mock_session.get = MagicMock(side_effect=aiohttp.ClientConnectionError("down"))
        mock_session.__aenter__ = AsyncMock(return_value=mock_session)
        mock_session.__aexit__ = AsyncMock(return_value=None)

        with patch("floe.oracles.yahoo.aiohttp.ClientSession", return_value=mock_session):
            with patch("floe.oracles.yahoo.aiohttp.TCPConnector"):
                with pytest.raises(FeedUnavailable):
                    await feed.fetch_reference_price()

    @pytest.mark.asyncio
    async def test_undecodable_body(self, feed: YahooFinanceFeed) -> None:
        mock_session = _mock_session(json_error=ValueError("not json"))

        with patch("floe.oracles.yahoo.aiohttp.ClientSession", return_value=mock_session):
            with patch("floe.oracles.yahoo.aiohttp.TCPConnector"):
                with pytest.raises(FeedMalformed):
                    await feed.fetch_reference_price()

    @pytest.mark.asyncio
    async def test_missing_price(self, feed: YahooFinanceFeed) -> None:
        mock_session = _mock_session(payload={"chart": {"result": []}})

        with patch("floe.oracles.yahoo.aiohttp.ClientSession", return_value=mock_session):
            with patch("floe.oracles.yahoo.aiohttp.TCPConnector"):
                with pytest.raises(FeedMalformed):
                    await feed.fetch_reference_price()
