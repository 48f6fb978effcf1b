"""Shared test fixtures."""

from __future__ import annotations

import asyncio
import gzip
from collections.abc import Callable
from datetime import date, datetime, timezone
from pathlib import Path  # noqa: TCH003

import pytest

from obdepth.config.loader import ConfigLoader
from obdepth.models.depth import MINUTES_PER_DAY, Market, Pair


@pytest.fixture()
def config_dir(tmp_path: Path) -> Path:
    """Create a temp config directory with default.toml."""
    config = tmp_path / "config"
    config.mkdir()

    default_toml = config / "default.toml"
    default_toml.write_text(
        """\
[source]
base_url = "https://api.cryptochassis.com/v1"
request_timeout_seconds = 60.0
rate_limit_marker = "Too many requests, please try again later."

[retry]
max_attempts = 8
initial_backoff_seconds = 1.0
max_backoff_seconds = 30.0
backoff_multiplier = 2.0
jitter = true

[fetch]
max_concurrent_days = 30

[cache]
directory = "data"
keying = "market_date_range"

[pairs]
default = ["BTC-BUSD", "ETH-BUSD"]
"""
    )
    return config


@pytest.fixture()
def config_loader(config_dir: Path) -> ConfigLoader:
    """ConfigLoader with test config."""
    loader = ConfigLoader(config_dir=config_dir, env="test")
    loader.load()
    return loader


def day_start_epoch(day: date) -> int:
    return int(datetime(day.year, day.month, day.day, tzinfo=timezone.utc).timestamp())


@pytest.fixture()
def depth_rows() -> Callable[..., list[list[str]]]:
    """Builder for one day of per-minute depth rows (header first).

    Minute ``m`` quotes bid ``100+m`` / ask ``101+m``; ``skip`` drops minutes.
    """

    def build(
        day: date = date(2021, 10, 10),
        minutes: int = MINUTES_PER_DAY,
        skip: frozenset[int] = frozenset(),
        with_seconds: bool = False,
    ) -> list[list[str]]:
        start = day_start_epoch(day)
        rows = [["time_seconds", "bid_price_bid_size", "ask_price_ask_size"]]
        for m in range(minutes):
            if m not in skip:
                ts = start + m * 60
                rows.append([str(ts), f"{100 + m}_1.5", f"{101 + m}_0.5"])
            if with_seconds:
                rows.append([str(start + m * 60 + 30), "1_1", "2_2"])
        return rows

    return build


@pytest.fixture()
def depth_csv_gz(depth_rows: Callable[..., list[list[str]]]) -> Callable[..., bytes]:
    """Builder for a gzip-compressed depth file as served by the API."""

    def build(**kwargs: object) -> bytes:
        rows = depth_rows(**kwargs)
        text = "\n".join(",".join(row) for row in rows) + "\n"
        return gzip.compress(text.encode("utf-8"))

    return build


def day_tokens(day: date) -> list[str]:
    """A full day of tokens whose bid price encodes the day of month."""
    return [f"{day.day}.5", "1.0", f"{day.day}.6", "2.0"] * MINUTES_PER_DAY


class FakeDayFetcher:
    """In-memory DayFetchSource recording calls and concurrency."""

    tokens_for = staticmethod(day_tokens)

    def __init__(self) -> None:
        self.calls: list[tuple[Market, Pair, date]] = []
        self.empty_pairs: set[Pair] = set()
        self.failures: dict[Pair, Exception] = {}
        self.day_failures: dict[date, Exception] = {}
        self.delays: dict[date, float] = {}
        self.active = 0
        self.max_active = 0
        self.finished: list[date] = []

    async def fetch_day(self, market: Market, pair: Pair, day: date) -> list[str]:
        self.calls.append((market, pair, day))
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.delays.get(day, 0))
            if pair in self.failures:
                raise self.failures[pair]
            if day in self.day_failures:
                raise self.day_failures[day]
            if pair in self.empty_pairs:
                return []
            self.finished.append(day)
            return day_tokens(day)
        finally:
            self.active -= 1

    def pairs_fetched(self) -> list[Pair]:
        seen: list[Pair] = []
        for _, pair, _ in self.calls:
            if pair not in seen:
                seen.append(pair)
        return seen


@pytest.fixture()
def fake_fetcher() -> FakeDayFetcher:
    return FakeDayFetcher()
