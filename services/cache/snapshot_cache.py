import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import orjson

from api.models.data_models import ScanSnapshot
from utils.config import Config
from utils.constants import TOKEN_DECIMALS

logger = logging.getLogger(__name__)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z')


def parse_iso_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class SnapshotCache:
    """Point-in-time JSON snapshot of the decoded transactions and their statistics"""

    def __init__(self, path: str, max_age_seconds: int = 0, decimals: int = TOKEN_DECIMALS):
        self.path = Path(path)
        self.max_age_seconds = max_age_seconds
        self.decimals = decimals

    @classmethod
    def from_config(cls, config: Config) -> 'SnapshotCache':
        return cls(config.cache_path, config.cache_max_age_seconds, config.token_decimals)

    def age_seconds(self, snapshot: ScanSnapshot, now: datetime = None) -> float:
        now = now or datetime.now(timezone.utc)
        return (now - parse_iso_timestamp(snapshot.generated_at)).total_seconds()

    def is_fresh(self, snapshot: ScanSnapshot, now: datetime = None) -> bool:
        if self.max_age_seconds <= 0:
            return True
        return self.age_seconds(snapshot, now) <= self.max_age_seconds

    def load(self, contract_address: str = None, now: datetime = None) -> Optional[ScanSnapshot]:
        """Return the snapshot, or None on any miss (absent, unreadable, stale, other contract)"""
        if not self.path.exists():
            logger.info(f"[Cache Miss] No snapshot at {self.path}")
            return None

        try:
            data = orjson.loads(self.path.read_bytes())
            snapshot = ScanSnapshot.from_dict(data, self.decimals)
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"[Cache Miss] Unreadable snapshot {self.path}: {e}")
            return None

        if contract_address and snapshot.contract_address.lower() != contract_address.lower():
            logger.info(f"[Cache Miss] Snapshot is for {snapshot.contract_address}, not {contract_address}")
            return None

        try:
            fresh = self.is_fresh(snapshot, now)
        except ValueError as e:
            logger.warning(f"[Cache Miss] Bad generatedAt in snapshot: {e}")
            return None

        if not fresh:
            logger.info(f"[Cache Miss] Snapshot from {snapshot.generated_at} is stale")
            return None

        logger.info(f"[Cache Hit] {len(snapshot.transactions)} transactions (generated: {snapshot.generated_at})")
        return snapshot

    def save(self, snapshot: ScanSnapshot) -> Path:
        """Write the snapshot atomically, creating the directory if needed"""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = orjson.dumps(snapshot.to_dict(), option=orjson.OPT_INDENT_2)

        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix='.snapshot-', suffix='.json')
        try:
            with os.fdopen(fd, 'wb') as f:
                f.write(payload)
            os.replace(tmp_path, self.path)
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

        logger.info(f"Snapshot saved to {self.path} ({len(snapshot.transactions)} transactions)")
        return self.path
