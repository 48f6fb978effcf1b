"""Minute-by-minute replay over loaded depth series."""

from __future__ import annotations

from collections.abc import Mapping

from obdepth.core.errors import CursorOutOfRangeError, ParseFailureError
from obdepth.models.depth import VALUES_PER_MINUTE, DepthRecord, Pair


class DepthCursor:
    """A single minute pointer shared by every pair in ``series``.

    Advancing moves all pairs together, so the series are only meaningful
    side by side when they were loaded over the same range.
    """

    def __init__(self, series: Mapping[Pair, list[str]]) -> None:
        self._series = series
        self._position = 0

    @property
    def position(self) -> int:
        """Current minute offset from the start of the loaded range."""
        return self._position

    def tick(self) -> None:
        """Advance one minute. Running past the end is reported on the next read."""
        self._position += 1

    def get_depth(self, pair: Pair) -> DepthRecord:
        """Return the record for ``pair`` at the current minute.

        Raises:
            CursorOutOfRangeError: ``pair`` is not loaded or its series has ended.
            ParseFailureError: one of the four values is not a number.
        """
        tokens = self._series.get(pair)
        if tokens is None:
            msg = f"Pair {pair} is not loaded"
            raise CursorOutOfRangeError(msg)

        offset = self._position * VALUES_PER_MINUTE
        if offset + VALUES_PER_MINUTE > len(tokens):
            msg = (
                f"Cursor at minute {self._position} is out of range for {pair} "
                f"({len(tokens) // VALUES_PER_MINUTE} minutes loaded)"
            )
            raise CursorOutOfRangeError(msg)

        values = tokens[offset : offset + VALUES_PER_MINUTE]
        try:
            return DepthRecord.from_tokens(pair, values)
        except ValueError as e:
            msg = f"Invalid depth values {values} for {pair} at minute {self._position}"
            raise ParseFailureError(msg) from e

    def is_aligned(self) -> bool:
        """True when every loaded series has the same length."""
        return len({len(tokens) for tokens in self._series.values()}) <= 1
