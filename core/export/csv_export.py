import csv
import logging
from datetime import date
from typing import List, Sequence

import pandas as pd

from api.models.data_models import PurchaseTransaction, LeaderboardEntry
from core.analysis.views import usd_value
from utils.constants import CSV_HEADERS, TOKEN_DECIMALS
from utils.web3_utils import format_timestamp, token_amount_to_units

logger = logging.getLogger(__name__)


def _to_csv(rows: List[list], kind: str) -> str:
    df = pd.DataFrame(rows, columns=CSV_HEADERS[kind], dtype=str)
    return df.to_csv(index=False, quoting=csv.QUOTE_ALL, lineterminator='\n')


def transactions_to_csv(transactions: Sequence[PurchaseTransaction], price_usd: float,
                        decimals: int = TOKEN_DECIMALS) -> str:
    """Transactions table in display order, amounts rounded to whole tokens / dollars"""
    rows = []
    for index, tx in enumerate(transactions, start=1):
        units = token_amount_to_units(tx.sale_token_amount, decimals)
        rows.append([
            index,
            tx.hash,
            tx.from_address,
            tx.nft_id,
            units,
            round(usd_value(tx.sale_token_amount_int, price_usd, decimals)),
            format_timestamp(tx.timestamp),
            tx.block_number,
        ])

    logger.info(f"Exporting {len(rows)} transactions to CSV")
    return _to_csv(rows, 'transactions')


def leaderboard_to_csv(entries: Sequence[LeaderboardEntry], decimals: int = TOKEN_DECIMALS) -> str:
    rows = [
        [
            entry.rank,
            entry.address,
            token_amount_to_units(entry.total_amount, decimals),
            round(entry.total_usd),
            entry.transaction_count,
            format_timestamp(entry.last_purchase),
        ]
        for entry in entries
    ]

    logger.info(f"Exporting {len(rows)} leaderboard rows to CSV")
    return _to_csv(rows, 'leaderboard')


def unused_nfts_to_csv(nft_ids: Sequence[int]) -> str:
    rows = [[nft_id, 'Available'] for nft_id in nft_ids]
    return _to_csv(rows, 'unused-nfts')


def export_filename(kind: str, today: date = None) -> str:
    today = today or date.today()
    return f"purchase-scanner-{kind}-{today.isoformat()}.csv"
