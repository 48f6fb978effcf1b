"""Flat-file depth cache — one CSV per date range (and market).

File layout:

    #,ADA-BUSD,BCH-BUSD,...
    BTC-BUSD,<bid price>,<bid size>,<ask price>,<ask size>,<bid price>,...
    ETH-BUSD,...

The header lists the default pair set, not necessarily the pairs present in
the body. Each body line holds one pair's whole range; every line carries the
same number of minutes. Lines are only ever appended.
"""

from __future__ import annotations

import contextlib
import csv
from collections.abc import Iterable, Iterator
from datetime import date
from enum import Enum
from pathlib import Path
from typing import TextIO

from obdepth.core.errors import CacheCorruptError, CacheIOError
from obdepth.core.logging import get_logger
from obdepth.models.depth import VALUES_PER_MINUTE, Market, Pair

log = get_logger(__name__)

HEADER_MARKER = "#"
FIELD_SEPARATOR = ","


class CacheKeying(str, Enum):
    """How a cache file path is derived from a load request."""

    # <dir>/<start>_<end>_depth.csv, shared by every market
    DATE_RANGE = "date_range"
    # <dir>/<market>/<start>_<end>_depth.csv
    MARKET_DATE_RANGE = "market_date_range"


def cache_path(
    directory: str | Path,
    market: Market,
    start: date,
    end: date,
    keying: CacheKeying = CacheKeying.MARKET_DATE_RANGE,
) -> Path:
    """Derive the cache file path; time-of-day and pair set never take part."""
    name = f"{start.isoformat()}_{end.isoformat()}_depth.csv"
    base = Path(directory)
    if keying == CacheKeying.MARKET_DATE_RANGE:
        base = base / market.value
    return base / name


class CacheFile:
    """Reader/appender for one depth cache file."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._created = False

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.exists()

    def read_header_pairs(self) -> list[Pair]:
        """Return the pairs declared on the header line, or [] if there is none."""
        try:
            with open(self._path, encoding="utf-8") as f:
                first_line = f.readline().rstrip("\r\n")
        except OSError as e:
            msg = f"Cannot read cache header {self._path}: {e}"
            raise CacheIOError(msg) from e

        fields = first_line.split(FIELD_SEPARATOR)
        if fields[0] != HEADER_MARKER:
            return []
        return [Pair(name.strip()) for name in fields[1:] if name.strip()]

    def read_body(
        self, filter_pairs: Iterable[Pair] = ()
    ) -> tuple[dict[Pair, list[str]], int]:
        """Read pair lines, optionally only those in ``filter_pairs``.

        Returns:
            The per-pair token series and the history length in minutes
            (0 when no non-empty line was read).

        Raises:
            CacheCorruptError: a line's token count is not a multiple of 4, or
                differs from the history length of an earlier line.
        """
        wanted = {Pair(p) for p in filter_pairs}
        series: dict[Pair, list[str]] = {}
        found: set[Pair] = set()
        history_length = 0

        try:
            with open(self._path, encoding="utf-8", newline="") as f:
                for row in csv.reader(f, skipinitialspace=True):
                    if not row or row[0] == HEADER_MARKER:
                        continue
                    pair = Pair(row[0])
                    if wanted and pair not in wanted:
                        continue

                    tokens = row[1:]
                    if len(tokens) % VALUES_PER_MINUTE != 0:
                        msg = (
                            f"Cache file is corrupted: {len(tokens)} values at pair "
                            f"{pair} is not a multiple of {VALUES_PER_MINUTE}"
                        )
                        raise CacheCorruptError(msg, pair=pair)

                    minutes = len(tokens) // VALUES_PER_MINUTE
                    if minutes:
                        if history_length and minutes != history_length:
                            msg = (
                                "Cache file is corrupted: history length is not "
                                f"consistent at pair {pair} ({minutes} != {history_length})"
                            )
                            raise CacheCorruptError(msg, pair=pair)
                        history_length = minutes

                    series[pair] = tokens

                    if wanted:
                        found.add(pair)
                        if found >= wanted:
                            break
        except OSError as e:
            msg = f"Cannot read cache file {self._path}: {e}"
            raise CacheIOError(msg) from e
        except csv.Error as e:
            msg = f"Cache file {self._path} is not valid CSV: {e}"
            raise CacheCorruptError(msg) from e

        log.debug(
            "cache_file.read",
            path=str(self._path),
            pairs=len(series),
            history_minutes=history_length,
        )
        return series, history_length

    @contextlib.contextmanager
    def open_for_append(self) -> Iterator[TextIO]:
        """Open the file for appending, creating it and its directory if needed."""
        existed = self.exists()
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            f = open(self._path, "a", encoding="utf-8", newline="")  # noqa: SIM115
        except OSError as e:
            msg = f"Cannot open cache file {self._path} for append: {e}"
            raise CacheIOError(msg) from e

        self._created = not existed
        try:
            yield f
        finally:
            f.close()

    def append_header_if_new(self, writer: TextIO, pairs: Iterable[Pair]) -> None:
        """Write the header line, only for a file created by open_for_append."""
        if not self._created:
            return
        self._write_line(writer, [HEADER_MARKER, *pairs])
        self._created = False

    def append_pair_line(self, writer: TextIO, pair: Pair, series: list[str]) -> None:
        """Append one pair line; callers must not append a pair twice."""
        self._write_line(writer, [pair, *series])
        log.debug("cache_file.appended", path=str(self._path), pair=str(pair), values=len(series))

    def _write_line(self, writer: TextIO, fields: Iterable[str]) -> None:
        try:
            writer.write(FIELD_SEPARATOR.join(fields) + "\n")
            writer.flush()
        except OSError as e:
            msg = f"Cannot write to cache file {self._path}: {e}"
            raise CacheIOError(msg) from e
