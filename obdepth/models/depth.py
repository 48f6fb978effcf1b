"""Depth data models: Pair, Market, DepthRecord."""

from __future__ import annotations

import math
from enum import Enum

from pydantic import BaseModel

PAIR_SEPARATOR = "-"
MINUTES_PER_DAY = 24 * 60
# bid price, bid size, ask price, ask size
VALUES_PER_MINUTE = 4


class Pair(str):
    """Base/quote currency pair such as BTC-BUSD."""

    __slots__ = ()

    @property
    def is_valid(self) -> bool:
        parts = self.split(PAIR_SEPARATOR)
        return len(parts) == 2 and all(parts)

    @property
    def base(self) -> str:
        if not self.is_valid:
            return ""
        return self.split(PAIR_SEPARATOR)[0]

    @property
    def quote(self) -> str:
        if not self.is_valid:
            return ""
        return self.split(PAIR_SEPARATOR)[1]

    def __repr__(self) -> str:
        return f"Pair({str.__repr__(self)})"


class Market(str, Enum):
    """Venues served by the crypto-chassis market-depth API."""

    BITFINEX = "bitfinex"
    BITMEX = "bitmex"
    BINANCE = "binance"
    BINANCE_COIN_FUTURES = "binance-coin-futures"
    BINANCE_USDS_FUTURES = "binance-usds-futures"
    BINANCE_US = "binance-us"
    BITSTAMP = "bitstamp"
    COINBASE = "coinbase"
    DERIBIT = "deribit"
    FTX = "ftx"
    FTX_US = "ftx-us"
    GATEIO = "gateio"
    GATEIO_PERPETUAL_FUTURES = "gateio-perpetual-futures"
    GEMINI = "gemini"
    HUOBI = "huobi"
    HUOBI_COIN_SWAP = "huobi-coin-swap"
    HUOBI_USDT_SWAP = "huobi-usdt-swap"
    KUCOIN = "kucoin"
    KRAKEN = "kraken"
    KRAKEN_FUTURES = "kraken-futures"
    OKEX = "okex"


# Pairs known to be available from crypto-chassis on binance.
DEFAULT_PAIRS: tuple[Pair, ...] = tuple(
    Pair(f"{base}-BUSD")
    for base in (
        "ADA",
        "BCH",
        "BNB",
        "BTC",
        "DOGE",
        "DOT",
        "EOS",
        "ETH",
        "LTC",
        "SOL",
        "UNI",
        "XRP",
    )
)


class DepthRecord(BaseModel):
    """Best bid/ask price and size for one pair at one minute."""

    pair: str
    bid_price: float
    bid_size: float
    ask_price: float
    ask_size: float

    @property
    def spread_percentage(self) -> float:
        """Ask/bid spread as a fraction of the bid price."""
        if self.bid_price == 0:
            return math.nan
        return (self.ask_price - self.bid_price) / self.bid_price

    @property
    def imbalance(self) -> float:
        """Size imbalance in [-1, 1]; positive when bids outweigh asks."""
        total = self.bid_size + self.ask_size
        if total == 0:
            return math.nan
        return (self.bid_size - self.ask_size) / total

    @classmethod
    def from_tokens(cls, pair: str, tokens: list[str]) -> DepthRecord:
        """Build a record from one minute's four stringified values."""
        bid_price, bid_size, ask_price, ask_size = (float(t) for t in tokens)
        return cls(
            pair=pair,
            bid_price=bid_price,
            bid_size=bid_size,
            ask_price=ask_price,
            ask_size=ask_size,
        )

    model_config = {"frozen": True}
