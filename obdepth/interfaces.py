"""Protocol interfaces between the depth loader components.

The store only needs something that yields one day of flat tokens, and the
day fetcher only needs something that resolves and downloads signed URLs, so
either side can be swapped for a fake in tests.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import date

    from obdepth.models.depth import Market, Pair


@runtime_checkable
class DepthSource(Protocol):
    """Protocol for the remote market-depth API."""

    async def resolve_download_url(self, market: Market, pair: Pair, day: date) -> str: ...

    async def download(self, url: str) -> bytes: ...


@runtime_checkable
class DayFetchSource(Protocol):
    """Protocol for anything that produces one day of per-minute depth tokens."""

    async def fetch_day(self, market: Market, pair: Pair, day: date) -> list[str]: ...
