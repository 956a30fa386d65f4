"""
Tests for the Etherscan transaction fetcher. HTTP is replaced by a fake
session; pagination tests patch the single-page fetch coroutine.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import orjson
import pytest

from conftest import BUYER_A, encode_purchase
from services.blockchain.etherscan_client import EtherscanService
from utils.constants import CONTRACT_ADDRESS
from utils.exceptions import ConfigurationError, EtherscanAPIError


class FakeResponse:
    def __init__(self, body, status=200, reason="OK"):
        self.body = body if isinstance(body, bytes) else orjson.dumps(body)
        self.status = status
        self.reason = reason

    async def read(self):
        return self.body

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def get(self, url, params=None):
        self.calls.append((url, params))
        return self.responses.pop(0)


def rows(count):
    return [{"hash": f"0x{i:x}", "from": BUYER_A, "input": "0x", "isError": "0"} for i in range(count)]


async def test_request_parameters(config):
    service = EtherscanService(config)
    session = FakeSession(FakeResponse({"status": "1", "message": "OK", "result": []}))

    await service.fetch_contract_transactions(session, CONTRACT_ADDRESS, page=3, offset=10000)

    url, params = session.calls[0]
    assert url == "https://api.etherscan.io/v2/api"
    assert params == {
        "chainid": "1",
        "module": "account",
        "action": "txlist",
        "address": CONTRACT_ADDRESS,
        "startblock": "0",
        "endblock": "99999999",
        "page": "3",
        "offset": "10000",
        "sort": "desc",
        "apikey": "test-key",
    }


async def test_success_returns_result_rows(config):
    service = EtherscanService(config)
    session = FakeSession(FakeResponse({"status": "1", "message": "OK", "result": rows(3)}))

    result = await service.fetch_contract_transactions(session, CONTRACT_ADDRESS)

    assert len(result) == 3


async def test_no_transactions_found_is_empty_success(config):
    service = EtherscanService(config)
    session = FakeSession(FakeResponse({"status": "0", "message": "No transactions found", "result": []}))

    assert await service.fetch_contract_transactions(session, CONTRACT_ADDRESS) == []


@pytest.mark.parametrize(
    "response, message",
    [
        (FakeResponse({"status": "0", "message": "NOTOK", "result": "Invalid API Key"}), "Invalid API Key"),
        (FakeResponse({"status": "0", "message": "NOTOK", "result": None}), "NOTOK"),
        (FakeResponse({"status": "1", "message": "OK", "result": "oops"}), "Invalid response"),
        (FakeResponse(b"<html>bad gateway</html>"), "Invalid response"),
        (FakeResponse([1, 2, 3]), "Invalid response"),
        (FakeResponse({"status": "1", "message": "OK", "result": [{"hash": "0x1"}, "row"]}), "Invalid response"),
        (FakeResponse(b"", status=503, reason="Service Unavailable"), "Service Unavailable"),
    ],
)
async def test_error_responses_raise(config, response, message):
    service = EtherscanService(config)

    with pytest.raises(EtherscanAPIError, match=message):
        await service.fetch_contract_transactions(FakeSession(response), CONTRACT_ADDRESS)


async def test_pagination_stops_on_short_page(config):
    service = EtherscanService(config)
    service.rate_limit_delay = 0.25
    fetch_page = AsyncMock(side_effect=[rows(10000), rows(10000), rows(3421)])

    with patch.object(service, "fetch_contract_transactions", fetch_page), \
            patch("services.blockchain.etherscan_client.asyncio.sleep", new=AsyncMock()) as sleep:
        transactions = await service.fetch_all_transactions()

    assert fetch_page.await_count == 3
    assert [c.args[2] for c in fetch_page.await_args_list] == [1, 2, 3]
    assert [c.args for c in sleep.await_args_list].count((0.25,)) == 2
    assert len(transactions) == 23421
    assert service.stats["pages_fetched"] == 3
    assert service.stats["raw_transactions"] == 23421


async def test_single_short_page_makes_one_request(config):
    service = EtherscanService(config)
    fetch_page = AsyncMock(return_value=[])

    with patch.object(service, "fetch_contract_transactions", fetch_page):
        transactions = await service.fetch_all_transactions(CONTRACT_ADDRESS)

    assert transactions == []
    assert fetch_page.await_count == 1


async def test_failing_page_aborts_whole_fetch(config):
    service = EtherscanService(config)
    fetch_page = AsyncMock(side_effect=[rows(10000), EtherscanAPIError("Etherscan API error: rate limit")])

    with patch.object(service, "fetch_contract_transactions", fetch_page), \
            patch("services.blockchain.etherscan_client.asyncio.sleep", new=AsyncMock()):
        with pytest.raises(EtherscanAPIError, match="rate limit"):
            await service.fetch_all_transactions()


async def test_missing_api_key_fails_before_requests(config_without_key):
    service = EtherscanService(config_without_key)
    fetch_page = AsyncMock()

    with patch.object(service, "fetch_contract_transactions", fetch_page):
        with pytest.raises(ConfigurationError):
            await service.fetch_all_transactions()

    fetch_page.assert_not_awaited()


async def test_fetch_purchase_transactions_decodes_and_filters(config):
    service = EtherscanService(config)
    page = [
        {"hash": "0x1", "from": BUYER_A, "to": CONTRACT_ADDRESS, "input": encode_purchase(5, 10 ** 18),
         "blockNumber": "10", "timeStamp": "100", "isError": "0"},
        {"hash": "0x2", "from": BUYER_A, "to": CONTRACT_ADDRESS, "input": encode_purchase(6, 10 ** 18),
         "blockNumber": "11", "timeStamp": "101", "isError": "1"},
        {"hash": "0x3", "from": BUYER_A, "to": CONTRACT_ADDRESS, "input": "0x",
         "blockNumber": "12", "timeStamp": "102", "isError": "0"},
    ]

    with patch.object(service, "fetch_contract_transactions", AsyncMock(return_value=page)):
        purchases = await service.fetch_purchase_transactions()

    assert [tx.hash for tx in purchases] == ["0x1"]
    assert purchases[0].sale_token_amount_formatted == "1"
