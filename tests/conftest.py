"""Pytest configuration and fixtures."""

from __future__ import annotations

import asyncio
import inspect
import os
import sys
from typing import Any

import pytest

# Ensure src/ is on sys.path for tests so the src layout is used during test runs
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from interdependence.errors import LedgerUnavailableError  # noqa: E402
from interdependence.ledger.base import LedgerClient, TransactionStatus  # noqa: E402
from interdependence.ledger.query import (  # noqa: E402
    LedgerTransaction,
    TransactionQuery,
)
from interdependence.settings import DEFAULT_TRUSTED_PUBLISHER  # noqa: E402
from interdependence.tags import (  # noqa: E402
    DECLARATION_TYPE,
    DOC_REF,
    DOC_TYPE,
    SIG_ADDR,
    SIG_HANDLE,
    SIG_ISVERIFIED,
    SIG_NAME,
    SIGNATURE_TYPE,
)

TRUSTED = DEFAULT_TRUSTED_PUBLISHER


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "asyncio: mark test as requiring an event loop")


def pytest_pyfunc_call(pyfuncitem: Any) -> bool | None:
    """Execute async test functions without requiring pytest-asyncio."""

    if inspect.iscoroutinefunction(pyfuncitem.obj):
        call_kwargs = {
            name: pyfuncitem.funcargs[name]
            for name in pyfuncitem._fixtureinfo.argnames  # type: ignore[attr-defined]
        }

        event_loop = asyncio.new_event_loop()
        try:
            event_loop.run_until_complete(pyfuncitem.obj(**call_kwargs))
        finally:
            event_loop.close()
        return True
    return None


class FakeLedgerClient(LedgerClient):
    """In-memory ledger honouring the owner and tag filters of a query."""

    def __init__(self) -> None:
        self.statuses: dict[str, TransactionStatus] = {}
        self.tags: dict[str, dict[str, str]] = {}
        self.payloads: dict[str, str] = {}
        self.blocks: dict[str, int] = {}
        self.entries: list[LedgerTransaction] = []
        self.queries: list[TransactionQuery] = []
        self.calls: list[str] = []
        self.query_error: Exception | None = None

    def publish(
        self,
        tx_id: str,
        tags: dict[str, str],
        *,
        payload: str | None = None,
        block_id: str = "block-1",
        timestamp: int = 1_700_000_000,
        owner: str = TRUSTED,
    ) -> None:
        self.statuses[tx_id] = TransactionStatus(code=200, block_id=block_id)
        self.tags[tx_id] = dict(tags)
        self.blocks[block_id] = timestamp
        if payload is not None:
            self.payloads[tx_id] = payload
        self.entries.append(LedgerTransaction(id=tx_id, tags=dict(tags), owner=owner))

    def publish_declaration(self, tx_id: str, payload: str, **kwargs: Any) -> None:
        self.publish(tx_id, {DOC_TYPE: DECLARATION_TYPE}, payload=payload, **kwargs)

    def publish_signature(
        self,
        sig_id: str,
        ref: str,
        address: str,
        handle: str = "null",
        *,
        name: str = "Signer",
        verified: str = "false",
        owner: str = TRUSTED,
    ) -> None:
        self.publish(
            sig_id,
            {
                DOC_TYPE: SIGNATURE_TYPE,
                DOC_REF: ref,
                SIG_ADDR: address,
                SIG_HANDLE: handle,
                SIG_NAME: name,
                SIG_ISVERIFIED: verified,
            },
            block_id=f"block-{sig_id}",
            owner=owner,
        )

    async def get_confirmation_status(self, tx_id: str) -> TransactionStatus:
        self.calls.append("status")
        return self.statuses.get(tx_id, TransactionStatus(code=404))

    async def get_metadata_tags(self, tx_id: str) -> dict[str, str]:
        self.calls.append("tags")
        return dict(self.tags.get(tx_id, {}))

    async def get_payload(self, tx_id: str) -> str:
        self.calls.append("payload")
        if tx_id not in self.payloads:
            raise LedgerUnavailableError(f"No payload for {tx_id}")
        return self.payloads[tx_id]

    async def get_block_timestamp(self, block_id: str) -> int:
        self.calls.append("block")
        if block_id not in self.blocks:
            raise LedgerUnavailableError(f"No block {block_id}")
        return self.blocks[block_id]

    async def query_transactions(
        self, query: TransactionQuery
    ) -> list[LedgerTransaction]:
        self.calls.append("query")
        self.queries.append(query)
        if self.query_error is not None:
            raise self.query_error
        return [entry for entry in self.entries if _matches(entry, query)]


def _matches(entry: LedgerTransaction, query: TransactionQuery) -> bool:
    if query.owners and entry.owner not in query.owners:
        return False
    return all(entry.tags.get(tag.name) in tag.values for tag in query.tags)


@pytest.fixture
def ledger() -> FakeLedgerClient:
    """Return an empty in-memory ledger."""

    return FakeLedgerClient()


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep host configuration out of settings-driven tests."""

    for name in (
        "INTERDEPENDENCE_GATEWAY_URL",
        "INTERDEPENDENCE_SERVER_URL",
        "NEXT_PUBLIC_SERVER_URL",
        "INTERDEPENDENCE_TRUSTED_PUBLISHER",
        "INTERDEPENDENCE_TIMEOUT",
        "INTERDEPENDENCE_PAGE_SIZE",
        "INTERDEPENDENCE_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
