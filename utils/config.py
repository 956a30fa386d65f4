import os
from typing import List
import logging

from utils.constants import (
    API_ENDPOINTS, CHAIN_IDS, CONTRACT_ADDRESS, DEFAULTS, PURCHASE_METHOD_ID,
    SCAN_LIMITS, TOKEN_DECIMALS, TOKEN_SYMBOL
)
from utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

class Config:
    """Configuration for the purchase scanner, read from the environment once at construction"""

    def __init__(self):

        # Etherscan configuration
        self.etherscan_api_key = os.getenv('ETHERSCAN_API_KEY')
        self.etherscan_endpoint = os.getenv('ETHERSCAN_ENDPOINT', API_ENDPOINTS['etherscan_v2'])
        self.chain_id = int(os.getenv('CHAIN_ID', str(CHAIN_IDS['ethereum'])))

        # Sale contract
        self.contract_address = os.getenv('CONTRACT_ADDRESS', CONTRACT_ADDRESS)
        self.purchase_method_id = PURCHASE_METHOD_ID
        self.token_decimals = int(os.getenv('TOKEN_DECIMALS', str(TOKEN_DECIMALS)))
        self.token_symbol = os.getenv('TOKEN_SYMBOL', TOKEN_SYMBOL)
        self.token_price_usd = float(os.getenv('TOKEN_PRICE_USD', str(DEFAULTS['token_price_usd'])))
        self.max_nft_id = int(os.getenv('MAX_NFT_ID', str(SCAN_LIMITS['max_nft_id'])))

        # Fetch limits
        self.page_size = int(os.getenv('PAGE_SIZE', str(SCAN_LIMITS['page_size'])))
        self.rate_limit_delay = float(os.getenv('RATE_LIMIT_DELAY', str(SCAN_LIMITS['rate_limit_delay'])))
        self.request_timeout = float(os.getenv('REQUEST_TIMEOUT', str(SCAN_LIMITS['request_timeout'])))
        self.top_buyers = SCAN_LIMITS['top_buyers']

        # Snapshot cache
        self.cache_path = os.getenv('CACHE_PATH', DEFAULTS['cache_path'])
        self.cache_max_age_seconds = int(
            os.getenv('CACHE_MAX_AGE_SECONDS', str(SCAN_LIMITS['cache_max_age_seconds']))
        )

        # General settings
        self.environment = os.getenv('ENVIRONMENT', DEFAULTS['environment'])
        self.log_level = os.getenv('LOG_LEVEL', DEFAULTS['log_level'])

        logger.info(f"Etherscan endpoint: {self.etherscan_endpoint} (chain {self.chain_id})")
        logger.info(f"Contract: {self.contract_address}")
        logger.info(f"Snapshot cache: {self.cache_path} (max age {self.cache_max_age_seconds}s)")

    def has_api_key(self) -> bool:
        return bool(self.etherscan_api_key)

    def require_api_key(self) -> str:
        """Return the Etherscan API key or fail fast"""
        if not self.etherscan_api_key:
            raise ConfigurationError("ETHERSCAN_API_KEY environment variable is required")
        return self.etherscan_api_key

    def validate(self) -> List[str]:
        """Validate configuration and return any errors"""
        errors = []

        if not self.etherscan_api_key:
            errors.append("ETHERSCAN_API_KEY not configured (only cached snapshots can be served)")

        if self.page_size <= 0:
            errors.append("PAGE_SIZE must be positive")

        if self.rate_limit_delay < 0:
            errors.append("RATE_LIMIT_DELAY must not be negative")

        if self.token_decimals < 0:
            errors.append("TOKEN_DECIMALS must not be negative")

        if self.max_nft_id < 1:
            errors.append("MAX_NFT_ID must be at least 1")

        if self.token_price_usd < 0:
            errors.append("TOKEN_PRICE_USD must not be negative")

        return errors
