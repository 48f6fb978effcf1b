"""Tests for DepthCursor."""

from __future__ import annotations

import pytest

from obdepth.core.errors import CursorOutOfRangeError, ParseFailureError
from obdepth.data.depth_cursor import DepthCursor
from obdepth.models.depth import Pair

BTC = Pair("BTC-BUSD")
ETH = Pair("ETH-BUSD")


@pytest.fixture()
def cursor() -> DepthCursor:
    return DepthCursor(
        {
            BTC: ["100", "1", "101", "2", "102", "3", "103", "4"],
            ETH: ["10", "5", "11", "6", "12", "7", "13", "8"],
        }
    )


class TestDepthCursor:
    def test_starts_at_zero(self, cursor: DepthCursor) -> None:
        assert cursor.position == 0
        record = cursor.get_depth(BTC)
        assert (record.bid_price, record.bid_size, record.ask_price, record.ask_size) == (
            100.0,
            1.0,
            101.0,
            2.0,
        )

    def test_tick_moves_every_pair(self, cursor: DepthCursor) -> None:
        cursor.tick()
        assert cursor.position == 1
        assert cursor.get_depth(BTC).bid_price == 102.0
        assert cursor.get_depth(ETH).bid_price == 12.0

    def test_read_does_not_advance(self, cursor: DepthCursor) -> None:
        cursor.get_depth(BTC)
        cursor.get_depth(BTC)
        assert cursor.position == 0

    def test_past_end_raises(self, cursor: DepthCursor) -> None:
        cursor.tick()
        cursor.tick()
        with pytest.raises(CursorOutOfRangeError, match="minute 2"):
            cursor.get_depth(BTC)

    def test_unknown_pair_raises(self, cursor: DepthCursor) -> None:
        with pytest.raises(CursorOutOfRangeError, match="SOL-BUSD is not loaded"):
            cursor.get_depth(Pair("SOL-BUSD"))

    def test_non_numeric_value_raises(self) -> None:
        cursor = DepthCursor({BTC: ["100", "n/a", "101", "2"]})
        with pytest.raises(ParseFailureError):
            cursor.get_depth(BTC)

    def test_sees_pairs_added_later(self) -> None:
        series: dict[Pair, list[str]] = {}
        cursor = DepthCursor(series)
        series[BTC] = ["1", "2", "3", "4"]
        assert cursor.get_depth(BTC).ask_size == 4.0

    def test_alignment(self, cursor: DepthCursor) -> None:
        assert cursor.is_aligned()
        assert DepthCursor({}).is_aligned()
        assert not DepthCursor({BTC: ["1"] * 8, ETH: ["1"] * 4}).is_aligned()
