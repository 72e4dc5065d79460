"""Aggregate co-signature records for a declaration.

The ledger is append-only and anyone may publish signature-shaped entries, so
aggregation only trusts records owned by the configured publisher and
collapses repeated signers. When one address has several records, the one
that appears first in the query response wins. The gateway makes no ordering
promise, so which duplicate survives is accepted as nondeterministic; the
set of signers is not.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from interdependence.ledger.base import LedgerClient
from interdependence.ledger.query import MAX_PAGE_SIZE, signature_query
from interdependence.models import SignatureRecord
from interdependence.settings import InterdependenceSettings, get_settings
from interdependence.tags import DocumentTags, SIGNATURE_TYPE, signer_from_tags

LOGGER = logging.getLogger(__name__)

SkipHandler = Callable[[str, str], None]


async def collect_signatures(
    ledger: LedgerClient,
    tx_id: str,
    *,
    publisher: str,
    page_size: int = MAX_PAGE_SIZE,
    on_skipped: SkipHandler | None = None,
) -> list[SignatureRecord]:
    """Return the deduplicated signers of declaration ``tx_id``.

    Args:
        ledger: Ledger client used for the search query.
        tx_id: Declaration transaction id.
        publisher: Only signature records owned by this address are read.
        page_size: Results requested per query page.
        on_skipped: Optional hook called with ``(candidate_id, reason)`` for
            every candidate dropped as malformed or untrusted. Duplicates
            are not reported.

    Returns:
        Signature records in first-seen order, at most one per address. An
        empty list means the query succeeded and found nothing.

    Raises:
        LedgerUnavailableError: If the query itself fails.
        ValueError: If ``publisher`` is empty.
    """

    candidates = await ledger.query_transactions(
        signature_query(tx_id, publisher, page_size=page_size)
    )

    seen: set[str] = set()
    records: list[SignatureRecord] = []
    for candidate in candidates:
        document = DocumentTags.from_tags(candidate.tags)
        reason: str | None = None
        record: SignatureRecord | None = None
        if candidate.owner is not None and candidate.owner != publisher:
            reason = "not owned by the trusted publisher"
        elif document.doc_type != SIGNATURE_TYPE or document.reference != tx_id:
            reason = "document tags do not match query"
        else:
            record = signer_from_tags(candidate.id, candidate.tags)
            if record is None:
                reason = "missing signer tags"

        if record is None:
            LOGGER.warning(
                "Skipping malformed signature candidate",
                extra={"tx_id": tx_id, "candidate_id": candidate.id, "reason": reason},
            )
            if on_skipped is not None:
                on_skipped(candidate.id, reason or "malformed")
            continue

        if record.address in seen:
            LOGGER.debug(
                "Skipping duplicate signer",
                extra={"tx_id": tx_id, "candidate_id": candidate.id},
            )
            continue
        seen.add(record.address)
        records.append(record)

    LOGGER.debug(
        "Collected signatures",
        extra={
            "tx_id": tx_id,
            "candidate_count": len(candidates),
            "signature_count": len(records),
        },
    )
    return records


@dataclass(slots=True)
class SignatureAggregator:
    """Bind a ledger client and trusted publisher for repeated aggregation.

    Attributes:
        ledger: Ledger client used for search queries.
        publisher: Trusted publisher address; defaults to the configured one.
        page_size: Results requested per query page.
        on_skipped: Optional observability hook for malformed candidates.
    """

    ledger: LedgerClient
    publisher: str | None = None
    page_size: int | None = None
    on_skipped: SkipHandler | None = None
    settings: InterdependenceSettings | None = None

    def __post_init__(self) -> None:
        if self.publisher is None or self.page_size is None:
            settings_obj = self.settings or get_settings()
            if self.publisher is None:
                self.publisher = settings_obj.trusted_publisher
            if self.page_size is None:
                self.page_size = settings_obj.query_page_size

    async def collect(self, tx_id: str) -> list[SignatureRecord]:
        return await collect_signatures(
            self.ledger,
            tx_id,
            publisher=self.publisher or "",
            page_size=self.page_size or MAX_PAGE_SIZE,
            on_skipped=self.on_skipped,
        )
