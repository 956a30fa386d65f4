"""
Pytest fixtures for the purchase scanner. Builds Config from a patched
environment and provides factories for indexer rows and decoded purchases.
"""

from __future__ import annotations

import pytest

from api.models.data_models import PurchaseTransaction
from utils.config import Config
from utils.constants import CONTRACT_ADDRESS, PURCHASE_METHOD_ID

BUYER_A = "0xAbC0000000000000000000000000000000000001"
BUYER_B = "0x00000000000000000000000000000000000000b2"
ONE_TOKEN = 10 ** 18


def encode_purchase(nft_id: int, amount: int, method_id: str = PURCHASE_METHOD_ID) -> str:
    """Call data for purchase(uint256 nftId, uint256 saleTokenAmount)"""
    return f"{method_id}{nft_id:064x}{amount:064x}"


@pytest.fixture
def config(tmp_path, monkeypatch):
    """Config with a fake API key, no rate-limit delay and a temp snapshot path."""
    monkeypatch.setenv("ETHERSCAN_API_KEY", "test-key")
    monkeypatch.setenv("RATE_LIMIT_DELAY", "0")
    monkeypatch.setenv("CACHE_PATH", str(tmp_path / "data" / "transactions.json"))
    for name in ("CACHE_MAX_AGE_SECONDS", "CONTRACT_ADDRESS", "PAGE_SIZE", "ETHERSCAN_ENDPOINT",
                 "CHAIN_ID", "TOKEN_DECIMALS", "TOKEN_PRICE_USD", "MAX_NFT_ID"):
        monkeypatch.delenv(name, raising=False)
    return Config()


@pytest.fixture
def config_without_key(config, monkeypatch):
    config.etherscan_api_key = None
    return config


@pytest.fixture
def make_row():
    """Factory for Etherscan txlist rows."""
    counter = {"n": 0}

    def _make_row(nft_id=1, amount=ONE_TOKEN, buyer=BUYER_A, is_error="0",
                  input_data=None, block=100, timestamp=1_700_000_000):
        counter["n"] += 1
        return {
            "hash": f"0x{counter['n']:064x}",
            "from": buyer,
            "to": CONTRACT_ADDRESS.lower(),
            "input": input_data if input_data is not None else encode_purchase(nft_id, amount),
            "blockNumber": str(block),
            "timeStamp": str(timestamp),
            "isError": is_error,
        }

    return _make_row


@pytest.fixture
def make_purchase():
    """Factory for decoded PurchaseTransaction records."""
    counter = {"n": 0}

    def _make_purchase(nft_id=1, amount=ONE_TOKEN, buyer=BUYER_A, block=100, timestamp=1_700_000_000):
        counter["n"] += 1
        return PurchaseTransaction.create(
            hash=f"0x{counter['n']:064x}",
            from_address=buyer,
            to_address=CONTRACT_ADDRESS,
            nft_id=nft_id,
            sale_token_amount=amount,
            block_number=block,
            timestamp=timestamp,
        )

    return _make_purchase
