"""obdepth CLI entry point."""

from __future__ import annotations

import argparse
import asyncio
import sys
from datetime import date

from obdepth.config.loader import ConfigError, ConfigLoader
from obdepth.core.errors import DepthError
from obdepth.models.depth import Market, Pair


def _parse_pair(value: str) -> Pair:
    pair = Pair(value.upper())
    if not pair.is_valid:
        msg = f"invalid pair {value!r}, expected BASE-QUOTE (e.g. BTC-BUSD)"
        raise argparse.ArgumentTypeError(msg)
    return pair


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        msg = f"invalid date {value!r}, expected YYYY-MM-DD"
        raise argparse.ArgumentTypeError(msg) from e


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="obdepth",
        description="Historical order-book depth loader (crypto-chassis, 1-minute cadence)",
    )
    parser.add_argument(
        "--market",
        type=Market,
        default=Market.BINANCE,
        choices=list(Market),
        metavar="MARKET",
        help="Venue (default: binance)",
    )
    parser.add_argument(
        "--pairs",
        type=_parse_pair,
        nargs="*",
        default=[],
        help="Pairs to load, e.g. BTC-BUSD ETH-BUSD (default: all default pairs)",
    )
    parser.add_argument("--start", type=_parse_date, required=True, help="First day (YYYY-MM-DD)")
    parser.add_argument(
        "--end", type=_parse_date, required=True, help="Day after the last day (YYYY-MM-DD)"
    )
    parser.add_argument(
        "--config-dir",
        type=str,
        default="config",
        help="Config directory path (default: config)",
    )
    parser.add_argument(
        "--env",
        type=str,
        default=None,
        help="Environment name (default: from OBDEPTH_ENV)",
    )
    parser.add_argument(
        "--replay",
        type=int,
        default=0,
        metavar="N",
        help="Print the first N minutes of every loaded pair",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.end <= args.start:
        parser.error("--end must be after --start")

    from obdepth.app import run_load

    config = ConfigLoader(config_dir=args.config_dir, env=args.env)
    try:
        replay = asyncio.run(
            run_load(config, args.market, args.pairs, args.start, args.end, args.replay)
        )
    except ConfigError as e:
        print(f"Config error: {e}", file=sys.stderr)
        return 2
    except DepthError as e:
        print(f"Load failed [{e.kind.value}]: {e}", file=sys.stderr)
        return 1

    print(f"Loaded {len(replay)} pairs for {args.market.value} {args.start}..{args.end}")
    for pair, records in sorted(replay.items()):
        for minute, record in enumerate(records):
            print(
                f"{pair} +{minute}m bid={record.bid_price}@{record.bid_size} "
                f"ask={record.ask_price}@{record.ask_size} "
                f"spread={record.spread_percentage:.6f} imbalance={record.imbalance:.4f}"
            )
    return 0


if __name__ == "__main__":
    sys.exit(main())
