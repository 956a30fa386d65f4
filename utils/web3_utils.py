# utils/web3_utils.py - Call data decoding, token amount formatting and display helpers
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Union

from eth_abi import decode as abi_decode
from eth_abi.exceptions import DecodingError
from web3 import Web3

from utils.constants import (
    ABI_WORD_HEX_LENGTH, API_ENDPOINTS, DISPLAY_FRACTION_DIGITS,
    PURCHASE_METHOD_ID, TOKEN_DECIMALS
)

logger = logging.getLogger(__name__)

# "0x" + 4-byte selector
SELECTOR_PREFIX_LENGTH = 2 + 8

PURCHASE_ARGUMENT_TYPES = ["uint256", "uint256"]


@dataclass(frozen=True)
class DecodedPurchase:
    nft_id: int
    sale_token_amount: int


def is_purchase_transaction(input_data: str, method_id: str = PURCHASE_METHOD_ID) -> bool:
    """Check whether call data starts with the purchase selector"""
    if not isinstance(input_data, str):
        return False
    return input_data.lower().startswith(method_id.lower())


def decode_purchase_input(input_data: str, method_id: str = PURCHASE_METHOD_ID) -> Optional[DecodedPurchase]:
    """Decode purchase(uint256 nftId, uint256 saleTokenAmount) call data.

    Returns None when the selector does not match, the argument payload is
    shorter than two ABI words, or the words are not valid hex. Never raises:
    non-purchase calls are expected and simply skipped by callers.
    """
    if not is_purchase_transaction(input_data, method_id):
        return None

    data = input_data[SELECTOR_PREFIX_LENGTH:]
    if len(data) < 2 * ABI_WORD_HEX_LENGTH:
        return None

    try:
        nft_id, sale_token_amount = abi_decode(
            PURCHASE_ARGUMENT_TYPES, bytes.fromhex(data[:2 * ABI_WORD_HEX_LENGTH])
        )
    except (ValueError, DecodingError):
        logger.debug(f"Undecodable purchase payload: {input_data[:SELECTOR_PREFIX_LENGTH + 16]}...")
        return None

    return DecodedPurchase(nft_id=nft_id, sale_token_amount=sale_token_amount)


def parse_token_amount(amount: Union[int, str]) -> int:
    """Parse a base-unit amount given as int or decimal string"""
    if isinstance(amount, bool):
        raise ValueError("boolean is not a token amount")
    if isinstance(amount, int):
        return amount
    return int(str(amount).strip(), 10)


def format_token_amount(amount: Union[int, str], decimals: int = TOKEN_DECIMALS,
                        max_fraction_digits: Optional[int] = DISPLAY_FRACTION_DIGITS) -> str:
    """Scale a base-unit amount down by 10**decimals using integer arithmetic only.

    The fraction is zero-padded to ``decimals`` digits, cut to
    ``max_fraction_digits`` (None keeps all of them) and stripped of trailing
    zeros. Unparsable or negative input formats as "0".
    """
    try:
        value = parse_token_amount(amount)
    except (TypeError, ValueError):
        return '0'

    if value < 0:
        return '0'

    if decimals <= 0:
        return str(value)

    integer_part, fractional_part = divmod(value, 10 ** decimals)
    fractional_str = str(fractional_part).zfill(decimals)
    if max_fraction_digits is not None:
        fractional_str = fractional_str[:max_fraction_digits]
    fractional_str = fractional_str.rstrip('0')

    if fractional_str:
        return f"{integer_part}.{fractional_str}"
    return str(integer_part)


def token_amount_to_units(amount: Union[int, str], decimals: int = TOKEN_DECIMALS) -> int:
    """Whole token units, rounded half up, for CSV and USD columns"""
    try:
        value = parse_token_amount(amount)
    except (TypeError, ValueError):
        return 0
    if decimals <= 0:
        return value
    divisor = 10 ** decimals
    return (value + divisor // 2) // divisor


def format_timestamp(timestamp: int) -> str:
    """Format a unix timestamp as a readable UTC date string"""
    return datetime.fromtimestamp(int(timestamp), tz=timezone.utc).strftime("%b %d, %Y, %I:%M %p UTC")


def is_valid_address(address: str) -> bool:
    """Validate an Ethereum address (0x + 20 bytes hex); casing is not checksum-checked"""
    if not isinstance(address, str) or not address:
        return False
    return Web3.is_address(address.lower())


def etherscan_tx_url(tx_hash: str) -> str:
    return f"{API_ENDPOINTS['etherscan_tx']}{tx_hash}"


def etherscan_address_url(address: str) -> str:
    return f"{API_ENDPOINTS['etherscan_address']}{address}"
