#!/usr/bin/env python3
"""
Single snapshot script
======================

Runs one refresh cycle against the configured market data sources and
prints the resulting snapshot in wire format.

Usage:
    # Default instrument from settings / .env
    python scripts/snapshot_once.py

    # Another symbol and interval
    python scripts/snapshot_once.py --symbol ETHUSDT --display ETH/USDT --interval 5m

    # Offline, synthetic data only
    python scripts/snapshot_once.py --sources synthetic --seed 42
"""

import argparse
import asyncio
import logging
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import orjson

from app.clients import SyntheticMarketData, create_market_data_source
from app.config import get_settings
from app.services import Publisher, RefreshPipeline, SnapshotStore
from core.models.converters import snapshot_to_wire

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Build and print one technical snapshot")
    parser.add_argument("--symbol", help="Exchange symbol, e.g. SOLUSDT")
    parser.add_argument("--display", help="Display symbol, e.g. SOL/USDT")
    parser.add_argument("--interval", help="Candle interval, e.g. 15m")
    parser.add_argument("--sources", help="Comma-separated sources: binance,coingecko,synthetic")
    parser.add_argument("--seed", type=int, help="Seed for synthetic data")
    return parser.parse_args()


async def run(args: argparse.Namespace) -> int:
    overrides = {}
    if args.symbol:
        overrides["symbol"] = args.symbol
    if args.display:
        overrides["display_symbol"] = args.display
    if args.interval:
        overrides["interval"] = args.interval
    if args.sources:
        overrides["market_data_sources"] = [s.strip() for s in args.sources.split(",") if s.strip()]

    settings = get_settings().model_copy(update=overrides)
    publisher = Publisher(SnapshotStore(), symbol=settings.display_symbol)
    pipeline = RefreshPipeline(
        source=create_market_data_source(settings, seed=args.seed),
        publisher=publisher,
        settings=settings,
        fallback_source=SyntheticMarketData(base_price=settings.fallback_price, seed=args.seed),
    )

    try:
        snapshot = await pipeline.run_cycle()
    finally:
        await pipeline.stop()

    if snapshot is None:
        logger.error("Refresh cycle produced no snapshot")
        return 1

    print(orjson.dumps(snapshot_to_wire(snapshot), option=orjson.OPT_INDENT_2).decode("utf-8"))
    return 0


def main():
    sys.exit(asyncio.run(run(parse_args())))


if __name__ == "__main__":
    main()
