from dataclasses import dataclass, field
from typing import List, Dict, Optional, Any

from utils.constants import TOKEN_DECIMALS, VIEW_DEFAULTS
from utils.web3_utils import etherscan_address_url, etherscan_tx_url, format_token_amount


@dataclass
class RawTransaction:
    """Etherscan txlist record, only the fields the scanner consumes"""
    hash: str
    from_address: str
    to_address: str
    input: str
    block_number: str
    timestamp: str
    is_error: str = "0"

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'RawTransaction':
        """Create RawTransaction from an Etherscan result row"""
        return cls(
            hash=str(data.get('hash') or ''),
            from_address=str(data.get('from') or ''),
            to_address=str(data.get('to') or ''),
            input=str(data.get('input') or ''),
            block_number=str(data.get('blockNumber') or ''),
            timestamp=str(data.get('timeStamp') or ''),
            is_error=str(data.get('isError') or '0'),
        )

    @property
    def failed(self) -> bool:
        return self.is_error == "1"


@dataclass(frozen=True)
class PurchaseTransaction:
    hash: str
    from_address: str
    to_address: str
    nft_id: str
    sale_token_amount: str
    sale_token_amount_formatted: str
    block_number: int
    timestamp: int

    @classmethod
    def create(cls, hash: str, from_address: str, to_address: str, nft_id: int,
               sale_token_amount: int, block_number: int, timestamp: int,
               decimals: int = TOKEN_DECIMALS) -> 'PurchaseTransaction':
        """Build a record; the formatted amount is always derived here"""
        return cls(
            hash=hash,
            from_address=from_address,
            to_address=to_address,
            nft_id=str(nft_id),
            sale_token_amount=str(sale_token_amount),
            sale_token_amount_formatted=format_token_amount(sale_token_amount, decimals),
            block_number=int(block_number),
            timestamp=int(timestamp),
        )

    @property
    def sale_token_amount_int(self) -> int:
        return int(self.sale_token_amount)

    @property
    def nft_id_int(self) -> int:
        return int(self.nft_id)

    @property
    def buyer_key(self) -> str:
        return self.from_address.lower()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the camelCase wire format"""
        return {
            'hash': self.hash,
            'from': self.from_address,
            'to': self.to_address,
            'nftId': self.nft_id,
            'saleTokenAmount': self.sale_token_amount,
            'saleTokenAmountFormatted': self.sale_token_amount_formatted,
            'blockNumber': self.block_number,
            'timestamp': self.timestamp,
        }

    def to_view_dict(self) -> Dict[str, Any]:
        """Wire format plus explorer links for the transaction table"""
        return dict(
            self.to_dict(),
            etherscanUrl=etherscan_tx_url(self.hash),
            buyerUrl=etherscan_address_url(self.from_address),
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any], decimals: int = TOKEN_DECIMALS) -> 'PurchaseTransaction':
        """Create from wire format; a stored formatted amount is ignored and re-derived"""
        return cls.create(
            hash=data['hash'],
            from_address=data['from'],
            to_address=data.get('to', ''),
            nft_id=int(data['nftId']),
            sale_token_amount=int(data['saleTokenAmount']),
            block_number=int(data['blockNumber']),
            timestamp=int(data['timestamp']),
            decimals=decimals,
        )


@dataclass
class BuyerAggregate:
    address: str
    total_amount: int = 0
    transaction_count: int = 0
    last_purchase: int = 0

    def add(self, transaction: PurchaseTransaction):
        self.total_amount += transaction.sale_token_amount_int
        self.transaction_count += 1
        if transaction.timestamp > self.last_purchase:
            self.last_purchase = transaction.timestamp


@dataclass
class TopBuyer:
    address: str
    total_amount: str
    transaction_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'address': self.address,
            'totalAmount': self.total_amount,
            'transactionCount': self.transaction_count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TopBuyer':
        return cls(
            address=data['address'],
            total_amount=str(data['totalAmount']),
            transaction_count=int(data['transactionCount']),
        )


@dataclass
class ScanStatistics:
    total_transactions: int
    unique_buyers: int
    total_nfts_sold: int
    total_sale_token_amount: str
    top_buyers: List[TopBuyer] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return {
            'totalTransactions': self.total_transactions,
            'uniqueBuyers': self.unique_buyers,
            'totalNftsSold': self.total_nfts_sold,
            'totalSaleTokenAmount': self.total_sale_token_amount,
            'topBuyers': [buyer.to_dict() for buyer in self.top_buyers],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ScanStatistics':
        return cls(
            total_transactions=int(data['totalTransactions']),
            unique_buyers=int(data['uniqueBuyers']),
            total_nfts_sold=int(data['totalNftsSold']),
            total_sale_token_amount=str(data['totalSaleTokenAmount']),
            top_buyers=[TopBuyer.from_dict(b) for b in data.get('topBuyers', [])],
        )


@dataclass
class LeaderboardEntry:
    rank: int
    address: str
    total_amount: int
    total_amount_formatted: str
    total_usd: float
    transaction_count: int
    last_purchase: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'rank': self.rank,
            'address': self.address,
            'totalAmount': str(self.total_amount),
            'totalAmountFormatted': self.total_amount_formatted,
            'totalUsd': self.total_usd,
            'transactionCount': self.transaction_count,
            'lastPurchase': self.last_purchase,
            'etherscanUrl': etherscan_address_url(self.address),
        }


@dataclass
class TransactionFilters:
    search_address: Optional[str] = None
    nft_id: Optional[str] = None
    sort_by: str = VIEW_DEFAULTS['sort_by']
    sort_order: str = VIEW_DEFAULTS['sort_order']


@dataclass
class Page:
    items: List[Any]
    page: int
    per_page: int
    total_items: int
    total_pages: int

    @property
    def start_index(self) -> int:
        """1-based index of the first item shown, 0 when empty"""
        if not self.total_items:
            return 0
        return (self.page - 1) * self.per_page + 1

    @property
    def end_index(self) -> int:
        return min(self.page * self.per_page, self.total_items)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'page': self.page,
            'perPage': self.per_page,
            'totalItems': self.total_items,
            'totalPages': self.total_pages,
            'startIndex': self.start_index,
            'endIndex': self.end_index,
        }


@dataclass
class ScanSnapshot:
    transactions: List[PurchaseTransaction]
    statistics: ScanStatistics
    generated_at: str
    contract_address: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the cache file layout"""
        return {
            'transactions': [tx.to_dict() for tx in self.transactions],
            'statistics': self.statistics.to_dict(),
            'generatedAt': self.generated_at,
            'contractAddress': self.contract_address,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], decimals: int = TOKEN_DECIMALS) -> 'ScanSnapshot':
        return cls(
            transactions=[PurchaseTransaction.from_dict(tx, decimals) for tx in data['transactions']],
            statistics=ScanStatistics.from_dict(data['statistics']),
            generated_at=str(data['generatedAt']),
            contract_address=str(data['contractAddress']),
        )


@dataclass
class ScanResult:
    success: bool
    transactions: List[PurchaseTransaction] = field(default_factory=list)
    statistics: Optional[ScanStatistics] = None
    cached: bool = False
    cached_at: Optional[str] = None
    error: Optional[str] = None
    status_code: int = 200

    @property
    def total_count(self) -> int:
        return len(self.transactions)

    def to_dict(self) -> Dict[str, Any]:
        """Serving-boundary payload; status_code is transport metadata and not included"""
        if not self.success:
            return {'success': False, 'error': self.error}

        data = {
            'success': True,
            'transactions': [tx.to_dict() for tx in self.transactions],
            'totalCount': self.total_count,
            'statistics': self.statistics.to_dict() if self.statistics else None,
            'cached': self.cached,
        }
        if self.cached and self.cached_at:
            data['cachedAt'] = self.cached_at
        return data
