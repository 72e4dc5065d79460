"""Ledger client abstractions and the Arweave gateway implementation."""

from __future__ import annotations

from interdependence.ledger.arweave import ArweaveLedgerClient
from interdependence.ledger.base import (
    CONFIRMED_STATUS,
    LedgerClient,
    TransactionStatus,
)
from interdependence.ledger.query import (
    LedgerTransaction,
    TagFilter,
    TransactionPage,
    TransactionQuery,
    parse_transactions_page,
    signature_query,
)

__all__ = [
    "CONFIRMED_STATUS",
    "ArweaveLedgerClient",
    "LedgerClient",
    "LedgerTransaction",
    "TagFilter",
    "TransactionPage",
    "TransactionQuery",
    "TransactionStatus",
    "parse_transactions_page",
    "signature_query",
]
