"""Builds a DepthStore from configuration and runs one load."""

from __future__ import annotations

from datetime import date
from pathlib import Path

from obdepth.config.loader import ConfigLoader
from obdepth.core.logging import get_logger
from obdepth.data.cache_file import CacheKeying
from obdepth.data.cryptochassis import (
    CRYPTOCHASSIS_API_URL,
    RATE_LIMIT_MARKER,
    CryptoChassisClient,
    RetryPolicy,
)
from obdepth.data.day_fetcher import DayFetcher
from obdepth.data.depth_store import DEFAULT_MAX_CONCURRENT_DAYS, DepthStore
from obdepth.models.depth import DEFAULT_PAIRS, DepthRecord, Market, Pair

log = get_logger(__name__)


def build_client(config: ConfigLoader) -> CryptoChassisClient:
    config.validate_ranges()
    retry = RetryPolicy(
        max_attempts=int(config.get("retry.max_attempts", 8)),
        initial_backoff_seconds=float(config.get("retry.initial_backoff_seconds", 1.0)),
        max_backoff_seconds=float(config.get("retry.max_backoff_seconds", 30.0)),
        backoff_multiplier=float(config.get("retry.backoff_multiplier", 2.0)),
        jitter=bool(config.get("retry.jitter", True)),
    )
    return CryptoChassisClient(
        base_url=str(config.get("source.base_url", CRYPTOCHASSIS_API_URL)),
        timeout_seconds=float(config.get("source.request_timeout_seconds", 60.0)),
        retry_policy=retry,
        rate_limit_marker=str(config.get("source.rate_limit_marker", RATE_LIMIT_MARKER)),
    )


def build_store(
    config: ConfigLoader,
    market: Market,
    client: CryptoChassisClient | None = None,
) -> DepthStore:
    """Wire client → day fetcher → store from the [source]/[retry]/[fetch]/[cache] sections."""
    config.validate_ranges()
    default_pairs = config.get_list("pairs.default") or list(DEFAULT_PAIRS)
    return DepthStore(
        market=market,
        fetcher=DayFetcher(client or build_client(config)),
        cache_dir=Path(config.get("cache.directory", "data")),
        keying=CacheKeying(config.get("cache.keying", CacheKeying.MARKET_DATE_RANGE.value)),
        default_pairs=[Pair(p) for p in default_pairs],
        max_concurrent_days=int(config.get("fetch.max_concurrent_days", DEFAULT_MAX_CONCURRENT_DAYS)),
    )


async def run_load(
    config: ConfigLoader,
    market: Market,
    pairs: list[Pair],
    start: date,
    end: date,
    replay_minutes: int = 0,
) -> dict[Pair, list[DepthRecord]]:
    """Load the range, then replay the first ``replay_minutes`` of every pair."""
    client = build_client(config)
    try:
        store = build_store(config, market, client=client)
        records = await store.load(pairs, start, end)
    finally:
        await client.close()

    log.info(
        "app.loaded",
        market=market.value,
        pairs=len(records),
        start=str(start),
        end=str(end),
    )

    replay: dict[Pair, list[DepthRecord]] = {pair: [] for pair in records}
    for _ in range(replay_minutes):
        for pair in records:
            replay[pair].append(store.get_depth(pair))
        store.tick()
    return replay
