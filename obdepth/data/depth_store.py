"""Depth store — reconciles cached and remote depth series for a date range.

For a requested pair set and [start, end) range the store works out which
pairs are already in memory or on disk, fetches the rest day by day with
bounded parallelism, and appends each newly fetched pair to the cache file.
Loads are cumulative: pairs from earlier calls stay in memory.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Mapping, Sequence
from datetime import date, datetime, timedelta
from pathlib import Path
from types import MappingProxyType

from obdepth.core.errors import RangeMismatchError
from obdepth.core.logging import get_logger
from obdepth.data.cache_file import CacheFile, CacheKeying, cache_path
from obdepth.data.depth_cursor import DepthCursor
from obdepth.interfaces import DayFetchSource
from obdepth.models.depth import (
    DEFAULT_PAIRS,
    MINUTES_PER_DAY,
    VALUES_PER_MINUTE,
    DepthRecord,
    Market,
    Pair,
)

log = get_logger(__name__)

# A cached range may differ from the requested one by less than about a day.
RANGE_TOLERANCE_MINUTES = 1400
DEFAULT_MAX_CONCURRENT_DAYS = 30


def _as_date(value: date | datetime) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def days_in_range(start: date, end: date) -> list[date]:
    """Every calendar day in [start, end)."""
    return [start + timedelta(days=i) for i in range((end - start).days)]


class DepthStore:
    """In-memory depth map backed by an append-only cache file.

    One instance per session; the minute cursor starts at 0 on construction
    and is shared by every loaded pair.
    """

    def __init__(
        self,
        market: Market,
        fetcher: DayFetchSource,
        cache_dir: str | Path = "data",
        keying: CacheKeying = CacheKeying.MARKET_DATE_RANGE,
        default_pairs: Sequence[Pair] = DEFAULT_PAIRS,
        max_concurrent_days: int = DEFAULT_MAX_CONCURRENT_DAYS,
    ) -> None:
        if max_concurrent_days < 1:
            msg = f"max_concurrent_days must be >= 1, got {max_concurrent_days}"
            raise ValueError(msg)
        self._market = market
        self._fetcher = fetcher
        self._cache_dir = Path(cache_dir)
        self._keying = keying
        self._default_pairs = [Pair(p) for p in default_pairs]
        self._max_concurrent_days = max_concurrent_days
        self._records: dict[Pair, list[str]] = {}
        self._cursor = DepthCursor(self._records)

    @property
    def market(self) -> Market:
        return self._market

    @property
    def records(self) -> Mapping[Pair, list[str]]:
        """Read-only view of every pair loaded so far."""
        return MappingProxyType(self._records)

    def cache_file_for(self, start: date | datetime, end: date | datetime) -> CacheFile:
        return CacheFile(
            cache_path(self._cache_dir, self._market, _as_date(start), _as_date(end), self._keying)
        )

    async def load(
        self,
        pairs: Iterable[Pair | str],
        start: date | datetime,
        end: date | datetime,
    ) -> dict[Pair, list[str]]:
        """Load per-minute depth for ``pairs`` over [start, end).

        An empty ``pairs`` means every default pair (or, for an existing cache
        file, every pair its header declares).

        Returns:
            Every pair loaded by this store so far, not only this call's pairs.

        Raises:
            RangeMismatchError: the cache file holds a different range.
            CacheCorruptError: the cache file body is inconsistent.
            DepthError: any fetch failure; the load is aborted.
        """
        requested = [Pair(p) for p in pairs]
        start_day, end_day = _as_date(start), _as_date(end)
        expected_minutes = (end_day - start_day).days * MINUTES_PER_DAY
        cache = self.cache_file_for(start_day, end_day)

        if cache.exists():
            series, file_minutes = cache.read_body(requested)
            if file_minutes and abs(file_minutes - expected_minutes) >= RANGE_TOLERANCE_MINUTES:
                msg = (
                    f"Cache file {cache.path} holds {file_minutes} minutes per pair, "
                    f"but {start_day}..{end_day} spans {expected_minutes}"
                )
                raise RangeMismatchError(msg)
            self._records.update(series)

            candidates = requested or cache.read_header_pairs()
            pairs_to_load = [p for p in dict.fromkeys(candidates) if p not in self._records]
            if pairs_to_load:
                log.info(
                    "depth_store.missing_pairs",
                    path=str(cache.path),
                    pairs=[str(p) for p in pairs_to_load],
                )
        else:
            pairs_to_load = list(dict.fromkeys(requested or self._default_pairs))

        with cache.open_for_append() as writer:
            cache.append_header_if_new(writer, self._default_pairs)

            for pair in pairs_to_load:
                full_series = await self._fetch_range(pair, start_day, end_day)
                if not full_series:
                    log.info(
                        "depth_store.no_data",
                        market=self._market.value,
                        pair=str(pair),
                        start=str(start_day),
                        end=str(end_day),
                    )
                    continue
                if len(full_series) != expected_minutes * VALUES_PER_MINUTE:
                    log.warning(
                        "depth_store.partial_range",
                        pair=str(pair),
                        minutes=len(full_series) // VALUES_PER_MINUTE,
                        expected_minutes=expected_minutes,
                    )
                self._records[pair] = full_series
                cache.append_pair_line(writer, pair, full_series)

        if pairs_to_load:
            log.info("depth_store.written", path=str(cache.path), pairs=len(pairs_to_load))
        if not self._cursor.is_aligned():
            log.warning(
                "depth_store.misaligned_series",
                lengths={str(p): len(s) for p, s in self._records.items()},
            )
        return dict(self._records)

    async def _fetch_range(self, pair: Pair, start: date, end: date) -> list[str]:
        """Fetch every day of the range concurrently and join them in day order."""
        semaphore = asyncio.Semaphore(self._max_concurrent_days)

        async def fetch(day: date) -> list[str]:
            async with semaphore:
                log.info(
                    "depth_store.downloading",
                    market=self._market.value,
                    pair=str(pair),
                    day=day.isoformat(),
                )
                return await self._fetcher.fetch_day(self._market, pair, day)

        tasks = [asyncio.ensure_future(fetch(day)) for day in days_in_range(start, end)]
        try:
            per_day = await asyncio.gather(*tasks)
        except BaseException:
            # one failed day aborts the range; stop the sibling fetches too
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        return [token for day_tokens in per_day for token in day_tokens]

    def tick(self) -> None:
        """Advance the shared cursor by one minute."""
        self._cursor.tick()

    def get_depth(self, pair: Pair | str) -> DepthRecord:
        """Depth record of ``pair`` at the cursor's current minute."""
        return self._cursor.get_depth(Pair(pair))

    @property
    def position(self) -> int:
        return self._cursor.position
