"""
Tests for dashboard views: filters, sorting, pagination, leaderboard, unused NFT ids.
"""

from __future__ import annotations

import pytest

from api.models.data_models import TransactionFilters
from conftest import BUYER_A, BUYER_B, ONE_TOKEN
from core.analysis import views


@pytest.fixture
def transactions(make_purchase):
    return [
        make_purchase(nft_id=3, amount=2 * ONE_TOKEN, buyer=BUYER_A, block=10, timestamp=300),
        make_purchase(nft_id=1, amount=10 ** 30 + 1, buyer=BUYER_B, block=11, timestamp=100),
        make_purchase(nft_id=20, amount=10 ** 30, buyer=BUYER_A, block=12, timestamp=200),
    ]


def test_default_sort_is_newest_first(transactions):
    result = views.filter_and_sort_transactions(transactions, TransactionFilters())
    assert [tx.timestamp for tx in result] == [300, 200, 100]


@pytest.mark.parametrize(
    "sort_by, order, expected_nft_ids",
    [
        ("amount", "desc", ["1", "20", "3"]),
        ("amount", "asc", ["3", "20", "1"]),
        ("nftId", "asc", ["1", "3", "20"]),
        ("blockNumber", "desc", ["20", "1", "3"]),
    ],
)
def test_sorting(transactions, sort_by, order, expected_nft_ids):
    filters = TransactionFilters(sort_by=sort_by, sort_order=order)
    result = views.filter_and_sort_transactions(transactions, filters)
    assert [tx.nft_id for tx in result] == expected_nft_ids


def test_address_search_is_case_insensitive_substring(transactions):
    filters = TransactionFilters(search_address="ABC0000")
    result = views.filter_and_sort_transactions(transactions, filters)
    assert {tx.from_address for tx in result} == {BUYER_A}
    assert len(result) == 2


def test_nft_id_filter(transactions):
    result = views.filter_and_sort_transactions(transactions, TransactionFilters(nft_id="20"))
    assert [tx.nft_id for tx in result] == ["20"]


@pytest.mark.parametrize("filters", [TransactionFilters(sort_by="gas"), TransactionFilters(sort_order="up")])
def test_invalid_sort_rejected(transactions, filters):
    with pytest.raises(ValueError):
        views.filter_and_sort_transactions(transactions, filters)


def test_paginate_slices_and_reports_range():
    page = views.paginate(list(range(45)), page=3, per_page=20)
    assert page.items == list(range(40, 45))
    assert page.to_dict() == {
        "page": 3,
        "perPage": 20,
        "totalItems": 45,
        "totalPages": 3,
        "startIndex": 41,
        "endIndex": 45,
    }


def test_paginate_clamps_page():
    assert views.paginate(list(range(45)), page=99, per_page=20).page == 3
    assert views.paginate(list(range(45)), page=-1, per_page=20).page == 1
    empty = views.paginate([], page=5, per_page=10)
    assert (empty.page, empty.total_pages, empty.start_index, empty.end_index) == (1, 0, 0, 0)


def test_paginate_rejects_unknown_page_size():
    with pytest.raises(ValueError, match="perPage"):
        views.paginate([1, 2, 3], page=1, per_page=7)


def test_leaderboard_ranks_all_buyers(transactions):
    entries = views.build_leaderboard(transactions, price_usd=0.005)

    assert [e.address for e in entries] == [BUYER_A, BUYER_B]
    first = entries[0]
    assert first.rank == 1
    assert first.total_amount == 10 ** 30 + 2 * ONE_TOKEN
    assert first.total_amount_formatted == "1000000000002"
    assert first.transaction_count == 2
    assert first.last_purchase == 300
    assert first.total_usd == pytest.approx(5_000_000_000.01)


def test_leaderboard_search_keeps_overall_rank(transactions):
    entries = views.build_leaderboard(transactions, price_usd=0.005, search_address="b2")
    assert [(e.rank, e.address) for e in entries] == [(2, BUYER_B)]


def test_unused_nft_ids(transactions):
    unused = views.unused_nft_ids(transactions, max_nft_id=25)
    assert 1 not in unused and 3 not in unused and 20 not in unused
    assert len(unused) == 22
    assert views.unused_nft_ids(transactions, max_nft_id=25, search="2") == [2, 12, 21, 22, 23, 24, 25]
