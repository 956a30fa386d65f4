import aiohttp
import asyncio
import logging
import time
from typing import List, Dict, Any, Optional

import orjson

from api.models.data_models import RawTransaction, PurchaseTransaction
from core.analysis.purchase_analyzer import PurchaseAnalyzer
from utils.config import Config
from utils.constants import NO_TRANSACTIONS_MESSAGE, TXLIST_DEFAULTS
from utils.exceptions import EtherscanAPIError

logger = logging.getLogger(__name__)

class EtherscanService:
    """Etherscan V2 client for a contract's full transaction history"""

    def __init__(self, config: Config):
        self.config = config
        self.base_url = config.etherscan_endpoint
        self.page_size = config.page_size
        self.rate_limit_delay = config.rate_limit_delay

        self.stats = {
            "pages_fetched": 0,
            "raw_transactions": 0,
            "fetch_time": 0.0
        }

    def _build_params(self, address: str, page: int, offset: int) -> Dict[str, str]:
        params = {
            "chainid": self.config.chain_id,
            "module": TXLIST_DEFAULTS['module'],
            "action": TXLIST_DEFAULTS['action'],
            "address": address,
            "startblock": TXLIST_DEFAULTS['startblock'],
            "endblock": TXLIST_DEFAULTS['endblock'],
            "page": page,
            "offset": offset,
            "sort": TXLIST_DEFAULTS['sort'],
            "apikey": self.config.require_api_key(),
        }
        return {key: str(value) for key, value in params.items()}

    async def fetch_contract_transactions(self, session: aiohttp.ClientSession, address: str,
                                          page: int = 1, offset: Optional[int] = None) -> List[Dict[str, Any]]:
        """Fetch one txlist page; raises EtherscanAPIError on any non-success answer"""
        offset = offset or self.page_size
        params = self._build_params(address, page, offset)

        async with session.get(self.base_url, params=params) as response:
            if response.status != 200:
                raise EtherscanAPIError(f"Etherscan API error: {response.reason or response.status}")
            body = await response.read()

        try:
            data = orjson.loads(body)
        except orjson.JSONDecodeError as e:
            raise EtherscanAPIError("Invalid response from Etherscan API") from e

        if not isinstance(data, dict):
            raise EtherscanAPIError("Invalid response from Etherscan API")

        status = str(data.get('status', ''))
        message = str(data.get('message', ''))
        result = data.get('result')

        if status != '1':
            # Status 0 with "No transactions found" is an empty, successful page
            if message == NO_TRANSACTIONS_MESSAGE:
                logger.info(f"No transactions found for {address} (page {page})")
                return []
            error_detail = result if isinstance(result, str) else message
            raise EtherscanAPIError(f"Etherscan API error: {error_detail}")

        if not isinstance(result, list) or not all(isinstance(row, dict) for row in result):
            raise EtherscanAPIError("Invalid response from Etherscan API")

        return result

    async def fetch_all_transactions(self, address: str = None) -> List[RawTransaction]:
        """Page through the whole history; any failing page aborts the fetch"""
        address = address or self.config.contract_address
        self.config.require_api_key()

        start_time = time.time()
        transactions: List[RawTransaction] = []
        page = 1

        timeout = aiohttp.ClientTimeout(total=self.config.request_timeout)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            while True:
                batch = await self.fetch_contract_transactions(session, address, page, self.page_size)
                transactions.extend(RawTransaction.from_api(row) for row in batch)

                self.stats["pages_fetched"] = page
                logger.info(f"Fetched page {page}: {len(batch)} transactions ({len(transactions)} total)")

                # A short page is the last one
                if len(batch) < self.page_size:
                    break

                page += 1
                # Rate limiting
                await asyncio.sleep(self.rate_limit_delay)

        self.stats["raw_transactions"] = len(transactions)
        self.stats["fetch_time"] = time.time() - start_time
        logger.info(f"Fetched {len(transactions)} raw transactions for {address} "
                    f"in {self.stats['pages_fetched']} pages ({self.stats['fetch_time']:.2f}s)")

        return transactions

    async def fetch_purchase_transactions(self, address: str = None,
                                          analyzer: PurchaseAnalyzer = None) -> List[PurchaseTransaction]:
        """Fetch the full history and keep decoded, successful purchase calls"""
        analyzer = analyzer or PurchaseAnalyzer(
            decimals=self.config.token_decimals,
            top_n=self.config.top_buyers,
            method_id=self.config.purchase_method_id
        )
        raw_transactions = await self.fetch_all_transactions(address)
        return analyzer.decode_transactions(raw_transactions)
