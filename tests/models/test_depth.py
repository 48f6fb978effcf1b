"""Tests for depth data models."""

from __future__ import annotations

import math

import pytest
from pydantic import ValidationError

from obdepth.models.api import MarketDepthResponse
from obdepth.models.depth import DEFAULT_PAIRS, DepthRecord, Market, Pair


class TestPair:
    def test_valid_pair(self) -> None:
        pair = Pair("BTC-BUSD")
        assert pair.is_valid
        assert pair.base == "BTC"
        assert pair.quote == "BUSD"

    @pytest.mark.parametrize("name", ["BTCBUSD", "BTC-", "-BUSD", "BTC-BUSD-X", ""])
    def test_invalid_pair(self, name: str) -> None:
        pair = Pair(name)
        assert not pair.is_valid
        assert pair.base == ""
        assert pair.quote == ""

    def test_pair_is_a_str(self) -> None:
        pair = Pair("ETH-BUSD")
        assert pair == "ETH-BUSD"
        assert {pair: 1}["ETH-BUSD"] == 1
        assert repr(pair) == "Pair('ETH-BUSD')"

    def test_default_pairs(self) -> None:
        assert len(DEFAULT_PAIRS) == 12
        assert all(p.is_valid and p.quote == "BUSD" for p in DEFAULT_PAIRS)
        assert list(DEFAULT_PAIRS) == sorted(DEFAULT_PAIRS)


class TestMarket:
    def test_values_are_api_identifiers(self) -> None:
        assert Market.BINANCE.value == "binance"
        assert Market("binance-usds-futures") is Market.BINANCE_USDS_FUTURES

    def test_unknown_market_rejected(self) -> None:
        with pytest.raises(ValueError):
            Market("nasdaq")


class TestDepthRecord:
    def test_from_tokens(self) -> None:
        record = DepthRecord.from_tokens("BTC-BUSD", ["100.0", "2.0", "101.0", "6.0"])
        assert record.pair == "BTC-BUSD"
        assert record.bid_price == 100.0
        assert record.bid_size == 2.0
        assert record.ask_price == 101.0
        assert record.ask_size == 6.0

    def test_spread_and_imbalance(self) -> None:
        record = DepthRecord.from_tokens("BTC-BUSD", ["100", "2", "101", "6"])
        assert record.spread_percentage == pytest.approx(0.01)
        assert record.imbalance == pytest.approx(-0.5)

    def test_zero_bid_spread_is_nan(self) -> None:
        record = DepthRecord.from_tokens("BTC-BUSD", ["0", "1", "1", "1"])
        assert math.isnan(record.spread_percentage)

    def test_zero_sizes_imbalance_is_nan(self) -> None:
        record = DepthRecord.from_tokens("BTC-BUSD", ["1", "0", "1", "0"])
        assert math.isnan(record.imbalance)

    def test_non_numeric_token_raises(self) -> None:
        with pytest.raises(ValueError):
            DepthRecord.from_tokens("BTC-BUSD", ["1", "abc", "1", "1"])

    def test_frozen(self) -> None:
        record = DepthRecord.from_tokens("BTC-BUSD", ["1", "1", "1", "1"])
        with pytest.raises(ValidationError):
            record.bid_price = 2.0  # type: ignore[misc]


class TestMarketDepthResponse:
    def test_parse_api_payload(self) -> None:
        response = MarketDepthResponse.model_validate(
            {
                "urls": [
                    {
                        "startTime": {"seconds": 1633824000, "iso": "2021-10-10T00:00:00.000Z"},
                        "url": "https://storage.example/depth.csv.gz",
                    }
                ],
                "expiration": "300 seconds",
            }
        )
        assert response.urls[0].url == "https://storage.example/depth.csv.gz"
        assert response.urls[0].start_time is not None
        assert response.urls[0].start_time.seconds == 1633824000

    def test_missing_urls_rejected(self) -> None:
        with pytest.raises(ValidationError):
            MarketDepthResponse.model_validate({"expiration": "300 seconds"})
