import logging
from typing import List, Dict, Iterable, Optional

from api.models.data_models import (
    RawTransaction, PurchaseTransaction, BuyerAggregate, TopBuyer, ScanStatistics
)
from utils.constants import PURCHASE_METHOD_ID, SCAN_LIMITS, TOKEN_DECIMALS
from utils.web3_utils import decode_purchase_input, format_token_amount

logger = logging.getLogger(__name__)

class PurchaseAnalyzer:
    """Decodes purchase calls and aggregates them into scan statistics.

    Every aggregation pass builds its own buyer mapping from the list it is
    given, so results depend only on the input transactions.
    """

    def __init__(self, decimals: int = TOKEN_DECIMALS, top_n: int = SCAN_LIMITS['top_buyers'],
                 method_id: str = PURCHASE_METHOD_ID):
        self.decimals = decimals
        self.top_n = top_n
        self.method_id = method_id

    def decode_transaction(self, raw: RawTransaction) -> Optional[PurchaseTransaction]:
        """Decode one indexer record; failed or non-purchase calls return None"""
        if raw.failed:
            return None

        decoded = decode_purchase_input(raw.input, self.method_id)
        if decoded is None:
            return None

        try:
            block_number = int(raw.block_number)
            timestamp = int(raw.timestamp)
        except ValueError:
            logger.debug(f"Skipping {raw.hash}: bad block number or timestamp")
            return None

        return PurchaseTransaction.create(
            hash=raw.hash,
            from_address=raw.from_address,
            to_address=raw.to_address,
            nft_id=decoded.nft_id,
            sale_token_amount=decoded.sale_token_amount,
            block_number=block_number,
            timestamp=timestamp,
            decimals=self.decimals,
        )

    def decode_transactions(self, raw_transactions: Iterable[RawTransaction]) -> List[PurchaseTransaction]:
        """Decode and filter a raw transaction list, preserving order"""
        purchases = []
        failed = 0
        skipped = 0

        for raw in raw_transactions:
            if raw.failed:
                failed += 1
                continue
            purchase = self.decode_transaction(raw)
            if purchase is None:
                skipped += 1
                continue
            purchases.append(purchase)

        logger.info(f"Decoded {len(purchases)} purchase transactions")
        logger.debug(f"Skipped {failed} failed and {skipped} non-purchase transactions")
        return purchases

    def aggregate_buyers(self, transactions: Iterable[PurchaseTransaction]) -> Dict[str, BuyerAggregate]:
        """Per-buyer totals keyed by lowercase address (first-seen casing kept for display)"""
        buyers: Dict[str, BuyerAggregate] = {}

        for tx in transactions:
            key = tx.buyer_key
            aggregate = buyers.get(key)
            if aggregate is None:
                aggregate = buyers[key] = BuyerAggregate(address=tx.from_address)
            aggregate.add(tx)

        return buyers

    def rank_buyers(self, buyers: Dict[str, BuyerAggregate]) -> List[BuyerAggregate]:
        """All buyers by total amount, descending; ties keep first-seen order"""
        return sorted(buyers.values(), key=lambda b: b.total_amount, reverse=True)

    def calculate_statistics(self, transactions: List[PurchaseTransaction]) -> ScanStatistics:
        """Compute totals, unique counts and the top buyers"""
        buyers = self.aggregate_buyers(transactions)
        unique_nfts = {tx.nft_id for tx in transactions}
        total_amount = sum(tx.sale_token_amount_int for tx in transactions)

        top_buyers = [
            TopBuyer(
                address=buyer.address,
                total_amount=format_token_amount(buyer.total_amount, self.decimals),
                transaction_count=buyer.transaction_count,
            )
            for buyer in self.rank_buyers(buyers)[:self.top_n]
        ]

        statistics = ScanStatistics(
            total_transactions=len(transactions),
            unique_buyers=len(buyers),
            total_nfts_sold=len(unique_nfts),
            total_sale_token_amount=format_token_amount(total_amount, self.decimals),
            top_buyers=top_buyers,
        )

        logger.info(f"Statistics: {statistics.total_transactions} txs, {statistics.unique_buyers} buyers, "
                    f"{statistics.total_nfts_sold} NFTs, {statistics.total_sale_token_amount} tokens")
        return statistics
