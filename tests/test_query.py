"""Tests for the structured GraphQL query builder and response parser."""

from __future__ import annotations

import pytest

from interdependence.errors import LedgerUnavailableError
from interdependence.ledger.query import (
    MAX_PAGE_SIZE,
    TRANSACTIONS_DOCUMENT,
    LedgerTransaction,
    TransactionQuery,
    parse_transactions_page,
    signature_query,
)
from interdependence.tags import DOC_REF, DOC_TYPE


def test_signature_query_filters_type_reference_and_owner() -> None:
    request = signature_query("decl-1", "publisher-1").to_request()

    assert request["query"] == TRANSACTIONS_DOCUMENT
    assert request["variables"] == {
        "tags": [
            {"name": DOC_TYPE, "values": ["signature"]},
            {"name": DOC_REF, "values": ["decl-1"]},
        ],
        "owners": ["publisher-1"],
        "first": MAX_PAGE_SIZE,
    }


def test_hostile_values_never_reach_the_query_document() -> None:
    hostile = '"] } ) { transactions(owners: ["attacker"]'
    request = signature_query(hostile, "publisher-1").to_request()

    assert hostile not in request["query"]
    assert request["variables"]["tags"][1]["values"] == [hostile]


def test_signature_query_requires_publisher() -> None:
    with pytest.raises(ValueError):
        signature_query("decl-1", "")


def test_page_size_is_clamped_and_cursor_forwarded() -> None:
    query = TransactionQuery(page_size=1000).next_page("cursor-9")
    variables = query.to_request()["variables"]

    assert variables["first"] == MAX_PAGE_SIZE
    assert variables["after"] == "cursor-9"
    assert "owners" not in variables


def _edge(tx_id: str, cursor: str, owner: str = "pub") -> dict[str, object]:
    return {
        "cursor": cursor,
        "node": {
            "id": tx_id,
            "owner": {"address": owner},
            "tags": [{"name": "k", "value": "v"}],
        },
    }


def test_parse_page_with_continuation() -> None:
    body = {
        "data": {
            "transactions": {
                "pageInfo": {"hasNextPage": True},
                "edges": [_edge("a", "c1"), _edge("b", "c2")],
            }
        }
    }

    page = parse_transactions_page(body)

    assert page.transactions == (
        LedgerTransaction(id="a", tags={"k": "v"}, owner="pub"),
        LedgerTransaction(id="b", tags={"k": "v"}, owner="pub"),
    )
    assert page.next_cursor == "c2"


def test_parse_last_page_has_no_cursor() -> None:
    body = {
        "data": {
            "transactions": {
                "pageInfo": {"hasNextPage": False},
                "edges": [_edge("a", "c1")],
            }
        }
    }

    assert parse_transactions_page(body).next_cursor is None


def test_parse_skips_malformed_edges() -> None:
    body = {
        "data": {
            "transactions": {
                "pageInfo": {"hasNextPage": False},
                "edges": ["junk", {"cursor": "c", "node": {"tags": []}}, _edge("ok", "c")],
            }
        }
    }

    page = parse_transactions_page(body)

    assert [tx.id for tx in page.transactions] == ["ok"]


@pytest.mark.parametrize(
    "body",
    [
        [],
        {"errors": [{"message": "boom"}]},
        {"data": {}},
        {"data": {"transactions": {"edges": None}}},
    ],
)
def test_parse_rejects_unusable_responses(body: object) -> None:
    with pytest.raises(LedgerUnavailableError):
        parse_transactions_page(body)
