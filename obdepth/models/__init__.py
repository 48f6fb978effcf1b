from obdepth.models.api import DepthUrlWindow, MarketDepthResponse
from obdepth.models.depth import (
    DEFAULT_PAIRS,
    MINUTES_PER_DAY,
    VALUES_PER_MINUTE,
    DepthRecord,
    Market,
    Pair,
)

__all__ = [
    "DEFAULT_PAIRS",
    "MINUTES_PER_DAY",
    "VALUES_PER_MINUTE",
    "DepthRecord",
    "DepthUrlWindow",
    "Market",
    "MarketDepthResponse",
    "Pair",
]
