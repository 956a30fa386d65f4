from typing import Dict, Any, List, Tuple

# Sale contract (Ethereum mainnet)
CONTRACT_ADDRESS: str = '0x6716C707573988644b9b9F5a482021b3E09A68b1'

# purchase(uint256 nftId, uint256 saleTokenAmount)
PURCHASE_METHOD_ID: str = '0x70876c98'

TOKEN_DECIMALS: int = 18
TOKEN_SYMBOL: str = 'ZAMA'

# Fractional digits kept when formatting token amounts
DISPLAY_FRACTION_DIGITS: int = 6

# ABI words are 32 bytes = 64 hex chars
ABI_WORD_HEX_LENGTH: int = 64

# API Endpoints
API_ENDPOINTS: Dict[str, str] = {
    'etherscan_v2': 'https://api.etherscan.io/v2/api',
    'etherscan_tx': 'https://etherscan.io/tx/',
    'etherscan_address': 'https://etherscan.io/address/',
}

CHAIN_IDS: Dict[str, int] = {
    'ethereum': 1,
}

# Etherscan txlist query defaults
TXLIST_DEFAULTS: Dict[str, Any] = {
    'module': 'account',
    'action': 'txlist',
    'startblock': 0,
    'endblock': 99999999,
    'sort': 'desc',
}

NO_TRANSACTIONS_MESSAGE: str = 'No transactions found'

# Fetch / analysis limits
SCAN_LIMITS: Dict[str, Any] = {
    'page_size': 10000,          # Max allowed by Etherscan
    'rate_limit_delay': 0.25,    # Seconds between page requests
    'request_timeout': 60,
    'top_buyers': 5,
    'max_nft_id': 5500,
    'cache_max_age_seconds': 0,  # 0 = snapshot never expires
}

# Dashboard views
SORT_FIELDS: Tuple[str, ...] = ('timestamp', 'amount', 'nftId', 'blockNumber')
SORT_ORDERS: Tuple[str, ...] = ('asc', 'desc')
PAGE_SIZES: Tuple[int, ...] = (10, 20, 50, 100)

VIEW_DEFAULTS: Dict[str, Any] = {
    'sort_by': 'timestamp',
    'sort_order': 'desc',
    'transactions_per_page': 20,
    'leaderboard_per_page': 50,
    'unused_nfts_per_page': 100,
}

# CSV exports
CSV_HEADERS: Dict[str, List[str]] = {
    'transactions': [
        'No', 'Transaction Hash', 'Buyer Address', 'NFT ID',
        'Token Amount', 'USD Amount', 'Timestamp', 'Block Number'
    ],
    'leaderboard': [
        'Rank', 'Address', 'Total Tokens', 'Total USD', 'Transactions', 'Last Purchase'
    ],
    'unused-nfts': ['NFT ID', 'Status'],
}

DEFAULTS: Dict[str, Any] = {
    'token_price_usd': 0.005,
    'cache_path': 'data/transactions.json',
    'log_level': 'INFO',
    'environment': 'production',
}
