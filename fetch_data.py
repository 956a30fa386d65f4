"""
Fetch every purchase transaction from Etherscan and write the cached snapshot
served by the HTTP function.

Usage: python fetch_data.py [--contract ADDRESS] [--output PATH]
"""

import argparse
import aiohttp
import asyncio
import logging
import sys

from handlers.scan_handler import ScanHandler
from services.cache.snapshot_cache import SnapshotCache
from utils.config import Config
from utils.exceptions import ScannerError
from utils.logger import setup_logging

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Build the purchase scanner snapshot")
    parser.add_argument('--contract', help="contract address (default: CONTRACT_ADDRESS or the sale contract)")
    parser.add_argument('--output', help="snapshot path (default: CACHE_PATH)")
    return parser.parse_args(argv)


async def build_snapshot(config: Config, contract: str = None, output: str = None) -> SnapshotCache:
    cache = SnapshotCache(output or config.cache_path, decimals=config.token_decimals)
    handler = ScanHandler(config, cache)

    snapshot = await handler.run_live_scan(contract)
    cache.save(snapshot)

    stats = snapshot.statistics
    logger.info(f"✅ Data saved to {cache.path}")
    logger.info(f"   - Total Transactions: {stats.total_transactions}")
    logger.info(f"   - Unique Buyers: {stats.unique_buyers}")
    logger.info(f"   - Total NFTs Sold: {stats.total_nfts_sold}")
    logger.info(f"   - Total {config.token_symbol}: {stats.total_sale_token_amount}")
    return cache


def run(argv=None) -> int:
    args = parse_args(argv)
    setup_logging()

    try:
        config = Config()
        asyncio.run(build_snapshot(config, args.contract, args.output))
    except (ScannerError, aiohttp.ClientError, asyncio.TimeoutError, OSError, ValueError) as e:
        logger.error(f"Error: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(run())
