"""
Dashboard views over decoded purchases: filtering, sorting, pagination,
the full buyer leaderboard and the list of NFT ids nobody has bought yet.
"""

import logging
import math
from decimal import Decimal
from typing import List, Optional, Sequence, Any

from api.models.data_models import (
    PurchaseTransaction, TransactionFilters, LeaderboardEntry, Page
)
from core.analysis.purchase_analyzer import PurchaseAnalyzer
from utils.constants import PAGE_SIZES, SORT_FIELDS, SORT_ORDERS, TOKEN_DECIMALS, SCAN_LIMITS
from utils.web3_utils import format_token_amount

logger = logging.getLogger(__name__)

_SORT_KEYS = {
    'timestamp': lambda tx: tx.timestamp,
    'amount': lambda tx: tx.sale_token_amount_int,
    'nftId': lambda tx: tx.nft_id_int,
    'blockNumber': lambda tx: tx.block_number,
}


def filter_and_sort_transactions(transactions: Sequence[PurchaseTransaction],
                                 filters: TransactionFilters) -> List[PurchaseTransaction]:
    """Apply buyer-address search, NFT id filter and sort order"""
    if filters.sort_by not in SORT_FIELDS:
        raise ValueError(f"Invalid sortBy '{filters.sort_by}', expected one of {', '.join(SORT_FIELDS)}")
    if filters.sort_order not in SORT_ORDERS:
        raise ValueError(f"Invalid sortOrder '{filters.sort_order}', expected asc or desc")

    result = list(transactions)

    if filters.search_address:
        search = filters.search_address.strip().lower()
        result = [tx for tx in result if search in tx.buyer_key]

    if filters.nft_id:
        nft_id = filters.nft_id.strip()
        result = [tx for tx in result if tx.nft_id == nft_id]

    result.sort(key=_SORT_KEYS[filters.sort_by], reverse=filters.sort_order == 'desc')
    return result


def paginate(items: Sequence[Any], page: int = 1, per_page: int = 20) -> Page:
    """Slice one page; page is clamped into range, per_page must be an allowed size"""
    if per_page not in PAGE_SIZES:
        raise ValueError(f"Invalid perPage {per_page}, expected one of {', '.join(map(str, PAGE_SIZES))}")

    total_items = len(items)
    total_pages = math.ceil(total_items / per_page)
    page = max(1, min(int(page), max(total_pages, 1)))

    start = (page - 1) * per_page
    return Page(
        items=list(items[start:start + per_page]),
        page=page,
        per_page=per_page,
        total_items=total_items,
        total_pages=total_pages,
    )


def usd_value(amount: int, price_usd: float, decimals: int = TOKEN_DECIMALS) -> float:
    """USD value of a base-unit amount, rounded to cents"""
    value = Decimal(amount).scaleb(-decimals) * Decimal(str(price_usd))
    return float(round(value, 2))


def build_leaderboard(transactions: Sequence[PurchaseTransaction], price_usd: float,
                      search_address: Optional[str] = None,
                      decimals: int = TOKEN_DECIMALS) -> List[LeaderboardEntry]:
    """Every buyer ranked by total amount; ranks are fixed before searching"""
    analyzer = PurchaseAnalyzer(decimals=decimals)
    ranked = analyzer.rank_buyers(analyzer.aggregate_buyers(transactions))

    entries = [
        LeaderboardEntry(
            rank=rank,
            address=buyer.address,
            total_amount=buyer.total_amount,
            total_amount_formatted=format_token_amount(buyer.total_amount, decimals),
            total_usd=usd_value(buyer.total_amount, price_usd, decimals),
            transaction_count=buyer.transaction_count,
            last_purchase=buyer.last_purchase,
        )
        for rank, buyer in enumerate(ranked, start=1)
    ]

    if search_address:
        search = search_address.strip().lower()
        entries = [entry for entry in entries if search in entry.address.lower()]

    return entries


def unused_nft_ids(transactions: Sequence[PurchaseTransaction],
                   max_nft_id: int = SCAN_LIMITS['max_nft_id'],
                   search: Optional[str] = None) -> List[int]:
    """NFT ids in 1..max_nft_id that no purchase has used"""
    used = set()
    for tx in transactions:
        try:
            used.add(tx.nft_id_int)
        except ValueError:
            continue

    unused = [nft_id for nft_id in range(1, max_nft_id + 1) if nft_id not in used]

    if search:
        search = search.strip()
        unused = [nft_id for nft_id in unused if search in str(nft_id)]

    return unused
