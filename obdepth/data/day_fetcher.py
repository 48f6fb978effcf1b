"""Reduces one day of per-second depth rows to one sample per minute.

The crypto-chassis depth files are gzip-compressed CSV with one row per second:

    time_seconds,bid_price_bid_size,ask_price_ask_size
    1633824000,54968.99_1.52092,54969_0.00001
    1633824001,54968.99_0.00477,54969_0.15224

Only rows falling exactly on a minute boundary are kept. Each kept row becomes
four tokens (bid price, bid size, ask price, ask size), so a complete day is
always 4 * 1440 tokens.
"""

from __future__ import annotations

import csv
import gzip
import io
import zlib
from collections.abc import Iterable
from typing import TYPE_CHECKING

from obdepth.core.errors import IncompleteDayError, MalformedResponseError, ParseFailureError
from obdepth.core.logging import get_logger
from obdepth.models.depth import MINUTES_PER_DAY, VALUES_PER_MINUTE

if TYPE_CHECKING:
    from datetime import date

    from obdepth.interfaces import DepthSource
    from obdepth.models.depth import Market, Pair

log = get_logger(__name__)

HEADER_MARKER = "time_seconds"
PRICE_SIZE_SEPARATOR = "_"
TOKENS_PER_DAY = VALUES_PER_MINUTE * MINUTES_PER_DAY


def parse_depth_csv(raw: bytes) -> list[list[str]]:
    """Gunzip and split a depth file into CSV rows (variable field count)."""
    try:
        text = gzip.decompress(raw).decode("utf-8")
    except (OSError, EOFError, zlib.error, UnicodeDecodeError) as e:
        msg = f"Depth file is not valid gzip-compressed UTF-8: {e}"
        raise MalformedResponseError(msg) from e
    return list(csv.reader(io.StringIO(text)))


def _split_price_size(field: str, row: list[str]) -> list[str]:
    parts = field.split(PRICE_SIZE_SEPARATOR)
    if len(parts) != 2:
        msg = f"Expected <price>_<size>, got {field!r} in row {row}"
        raise ParseFailureError(msg)
    return parts


def reduce_to_minutes(rows: Iterable[list[str]]) -> list[str]:
    """Collapse per-second rows (ascending by time) into flat per-minute tokens.

    A missing minute is filled with a copy of the previous minute's sample, so
    a gap in the upstream sampling never shortens the output.
    """
    minutes: list[list[str]] = []
    prev_sample: list[str] = []
    prev_ts: int | None = None

    for row in rows:
        if not row or row[0] == HEADER_MARKER:
            continue
        try:
            ts = int(row[0])
        except ValueError as e:
            msg = f"Invalid epoch seconds {row[0]!r} in row {row}"
            raise ParseFailureError(msg) from e

        if prev_ts is not None and ts - prev_ts > 1:
            while prev_ts + 60 < ts:
                prev_ts += 60
                minutes.append(prev_sample)

        if ts % 60 == 0:
            if len(row) < 3:
                msg = f"Expected bid and ask columns in row {row}"
                raise ParseFailureError(msg)
            sample = _split_price_size(row[1], row) + _split_price_size(row[2], row)
            minutes.append(sample)
            prev_sample = sample
            prev_ts = ts

    return [token for sample in minutes for token in sample]


class DayFetcher:
    """Fetch one day of depth for one pair as flat per-minute tokens.

    Implements the DayFetchSource protocol from obdepth.interfaces.
    """

    def __init__(self, source: DepthSource) -> None:
        self._source = source

    async def fetch_day(self, market: Market, pair: Pair, day: date) -> list[str]:
        """Return exactly 4 * 1440 tokens, or [] when the day has no samples.

        Raises:
            IncompleteDayError: the day reduced to some other token count.
        """
        url = await self._source.resolve_download_url(market, pair, day)
        raw = await self._source.download(url)
        tokens = reduce_to_minutes(parse_depth_csv(raw))

        if not tokens:
            log.info("day_fetcher.empty_day", market=market.value, pair=str(pair), day=str(day))
            return []
        if len(tokens) != TOKENS_PER_DAY:
            msg = (
                f"Wrong number of depth tokens for {pair} on {day}: "
                f"{len(tokens)} (expected {TOKENS_PER_DAY})"
            )
            raise IncompleteDayError(msg)
        return tokens
