from services.blockchain.etherscan_client import EtherscanService
from services.cache.snapshot_cache import SnapshotCache

__all__ = [
    'EtherscanService',
    'SnapshotCache',
]
