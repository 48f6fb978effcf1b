"""Data pipeline: remote depth source, day reduction, file cache and store."""

from __future__ import annotations

from obdepth.data.cache_file import CacheFile, CacheKeying, cache_path
from obdepth.data.cryptochassis import CryptoChassisClient, RetryPolicy
from obdepth.data.day_fetcher import DayFetcher, parse_depth_csv, reduce_to_minutes
from obdepth.data.depth_cursor import DepthCursor
from obdepth.data.depth_store import DepthStore

__all__ = [
    "CacheFile",
    "CacheKeying",
    "CryptoChassisClient",
    "DayFetcher",
    "DepthCursor",
    "DepthStore",
    "RetryPolicy",
    "cache_path",
    "parse_depth_csv",
    "reduce_to_minutes",
]
