import logging
import time
from typing import Dict, Any, Mapping, Optional, Tuple

from api.models.data_models import ScanResult, ScanSnapshot, TransactionFilters
from core.analysis.purchase_analyzer import PurchaseAnalyzer
from core.analysis import views
from core.export import csv_export
from services.blockchain.etherscan_client import EtherscanService
from services.cache.snapshot_cache import SnapshotCache, utc_now_iso
from utils.config import Config
from utils.constants import VIEW_DEFAULTS
from utils.exceptions import ScannerError
from utils.web3_utils import is_valid_address

logger = logging.getLogger(__name__)

MISSING_KEY_ERROR = (
    'Etherscan API key not configured. '
    'Please run "python fetch_data.py" to generate cached data.'
)


class ScanHandler:
    """Serving boundary: cached snapshot first, live Etherscan scan as fallback.

    Public handle_* methods never raise; they return a JSON-ready payload and
    an HTTP status code.
    """

    def __init__(self, config: Config = None, cache: SnapshotCache = None):
        self.config = config or Config()
        self.cache = cache or SnapshotCache.from_config(self.config)
        self.analyzer = PurchaseAnalyzer(
            decimals=self.config.token_decimals,
            top_n=self.config.top_buyers,
            method_id=self.config.purchase_method_id
        )
        self.last_scan_stats: Dict[str, Any] = {}

    async def run_live_scan(self, contract_address: str = None) -> ScanSnapshot:
        """Fetch, decode and aggregate; raises on configuration or upstream errors"""
        contract_address = contract_address or self.config.contract_address
        start_time = time.time()

        service = EtherscanService(self.config)
        transactions = await service.fetch_purchase_transactions(contract_address, self.analyzer)
        statistics = self.analyzer.calculate_statistics(transactions)

        self.last_scan_stats = dict(service.stats, scan_time=time.time() - start_time)
        return ScanSnapshot(
            transactions=transactions,
            statistics=statistics,
            generated_at=utc_now_iso(),
            contract_address=contract_address,
        )

    async def scan(self, params: Mapping[str, Any]) -> ScanResult:
        """Cache-or-live scan as a ScanResult"""
        requested = (params.get('contractAddress') or '').strip() or None

        if requested and not is_valid_address(requested):
            return ScanResult(success=False, error=f"Invalid contract address: {requested}", status_code=400)

        snapshot = self.cache.load(requested or self.config.contract_address)
        if snapshot:
            return ScanResult(
                success=True,
                transactions=snapshot.transactions,
                statistics=snapshot.statistics,
                cached=True,
                cached_at=snapshot.generated_at,
            )

        logger.info("No cached data found, fetching from Etherscan API...")

        if not self.config.has_api_key():
            return ScanResult(success=False, error=MISSING_KEY_ERROR, status_code=500)

        try:
            snapshot = await self.run_live_scan(requested)
        except ScannerError as e:
            logger.error(f"Scan failed: {e}")
            return ScanResult(success=False, error=str(e), status_code=500)
        except Exception as e:
            logger.error(f"Scan failed: {e}", exc_info=True)
            return ScanResult(success=False, error=str(e) or 'Failed to fetch transactions', status_code=500)

        return ScanResult(
            success=True,
            transactions=snapshot.transactions,
            statistics=snapshot.statistics,
            cached=False,
        )

    async def handle_scan_request(self, params: Mapping[str, Any]) -> Tuple[Dict[str, Any], int]:
        result = await self.scan(params)
        return result.to_dict(), result.status_code

    async def handle_transactions_request(self, params: Mapping[str, Any]) -> Tuple[Dict[str, Any], int]:
        """Filtered, sorted, paginated transaction table"""
        result = await self.scan(params)
        if not result.success:
            return result.to_dict(), result.status_code

        try:
            filters = self._parse_filters(params)
            matched = views.filter_and_sort_transactions(result.transactions, filters)
            page = views.paginate(matched, *self._parse_paging(params, VIEW_DEFAULTS['transactions_per_page']))
        except ValueError as e:
            return self._bad_request(e)

        return {
            'success': True,
            'transactions': [tx.to_view_dict() for tx in page.items],
            'pagination': page.to_dict(),
            'filteredFrom': result.total_count,
            'cached': result.cached,
        }, 200

    async def handle_leaderboard_request(self, params: Mapping[str, Any]) -> Tuple[Dict[str, Any], int]:
        result = await self.scan(params)
        if not result.success:
            return result.to_dict(), result.status_code

        try:
            entries = views.build_leaderboard(
                result.transactions,
                self.config.token_price_usd,
                search_address=params.get('search'),
                decimals=self.config.token_decimals,
            )
            page = views.paginate(entries, *self._parse_paging(params, VIEW_DEFAULTS['leaderboard_per_page']))
        except ValueError as e:
            return self._bad_request(e)

        return {
            'success': True,
            'buyers': [entry.to_dict() for entry in page.items],
            'pagination': page.to_dict(),
            'cached': result.cached,
        }, 200

    async def handle_unused_nfts_request(self, params: Mapping[str, Any]) -> Tuple[Dict[str, Any], int]:
        result = await self.scan(params)
        if not result.success:
            return result.to_dict(), result.status_code

        try:
            ids = views.unused_nft_ids(result.transactions, self.config.max_nft_id, params.get('search'))
            page = views.paginate(ids, *self._parse_paging(params, VIEW_DEFAULTS['unused_nfts_per_page']))
        except ValueError as e:
            return self._bad_request(e)

        return {
            'success': True,
            'nftIds': page.items,
            'pagination': page.to_dict(),
            'maxNftId': self.config.max_nft_id,
        }, 200

    async def handle_export_request(self, kind: str,
                                    params: Mapping[str, Any]) -> Tuple[Optional[str], str, Dict[str, Any], int]:
        """CSV export of the filtered (not paginated) view.

        Returns (csv_text, filename, error_payload, status_code); csv_text is
        None when the export failed.
        """
        result = await self.scan(params)
        if not result.success:
            return None, '', result.to_dict(), result.status_code

        decimals = self.config.token_decimals
        try:
            if kind == 'transactions':
                matched = views.filter_and_sort_transactions(result.transactions, self._parse_filters(params))
                text = csv_export.transactions_to_csv(matched, self.config.token_price_usd, decimals)
            elif kind == 'leaderboard':
                entries = views.build_leaderboard(
                    result.transactions, self.config.token_price_usd, params.get('search'), decimals
                )
                text = csv_export.leaderboard_to_csv(entries, decimals)
            elif kind == 'unused-nfts':
                ids = views.unused_nft_ids(result.transactions, self.config.max_nft_id, params.get('search'))
                text = csv_export.unused_nfts_to_csv(ids)
            else:
                return None, '', {'success': False, 'error': f"Unknown export: {kind}"}, 404
        except ValueError as e:
            payload, status = self._bad_request(e)
            return None, '', payload, status

        return text, csv_export.export_filename(kind), {}, 200

    def _parse_filters(self, params: Mapping[str, Any]) -> TransactionFilters:
        return TransactionFilters(
            search_address=params.get('search') or None,
            nft_id=params.get('nftId') or None,
            sort_by=params.get('sortBy') or VIEW_DEFAULTS['sort_by'],
            sort_order=params.get('sortOrder') or VIEW_DEFAULTS['sort_order'],
        )

    def _parse_paging(self, params: Mapping[str, Any], default_per_page: int) -> Tuple[int, int]:
        try:
            page = int(params.get('page') or 1)
            per_page = int(params.get('perPage') or default_per_page)
        except (TypeError, ValueError):
            raise ValueError("page and perPage must be integers")
        return page, per_page

    def _bad_request(self, error: Exception) -> Tuple[Dict[str, Any], int]:
        logger.warning(f"Bad request: {error}")
        return {'success': False, 'error': str(error)}, 400

    def get_status(self) -> Dict[str, Any]:
        """Health summary for GET /"""
        return {
            'contract_address': self.config.contract_address,
            'api_key_configured': self.config.has_api_key(),
            'snapshot_present': self.cache.path.exists(),
            'snapshot_path': str(self.cache.path),
            'config_warnings': self.config.validate(),
            'last_scan': self.last_scan_stats,
        }

# Global instance
scan_handler = ScanHandler()
