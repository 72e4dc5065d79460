"""Reconstruct a declaration, its confirmation date and its signers."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Final

from interdependence.errors import DeclarationIntegrityError
from interdependence.ledger.base import LedgerClient
from interdependence.models import STATUS_OK, ResolvedDeclaration
from interdependence.settings import InterdependenceSettings
from interdependence.signatures import SignatureAggregator, SkipHandler
from interdependence.tags import is_declaration

LOGGER = logging.getLogger(__name__)

_MONTHS: Final[tuple[str, ...]] = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


def format_timestamp(unix_seconds: int) -> str:
    """Render a block timestamp as a long en-US date, e.g. ``November 14, 2023``.

    Month names are fixed rather than taken from the process locale so the
    output is identical on every host. Dates are computed in UTC.
    """

    moment = datetime.fromtimestamp(unix_seconds, tz=timezone.utc)
    return f"{_MONTHS[moment.month - 1]} {moment.day}, {moment.year}"


def parse_payload(tx_id: str, payload: str) -> dict[str, object]:
    """Parse a declaration body, which must be a JSON object.

    Raises:
        DeclarationIntegrityError: If the body is not a JSON object.
    """

    try:
        data: object = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise DeclarationIntegrityError(tx_id, "payload is not valid JSON") from exc
    if not isinstance(data, dict):
        raise DeclarationIntegrityError(tx_id, "payload is not a JSON object")
    return {str(key): value for key, value in data.items()}


@dataclass(slots=True)
class DeclarationResolver:
    """Resolve transaction ids into :class:`ResolvedDeclaration` views.

    Resolution is a short-circuiting sequence: confirmation status, type
    check, block timestamp, payload, signatures. Unconfirmed and mistyped
    transactions are ordinary results. Once a transaction is confirmed and
    tagged as a declaration, any failure to read or parse it is raised.

    Attributes:
        ledger: Ledger client shared by every step.
        publisher: Trusted publisher for signature records; defaults to the
            configured address.
        parallel_fetch: Fetch the block timestamp and payload concurrently.
        on_skipped: Observability hook forwarded to the aggregator.
        settings: Optional settings override.
    """

    ledger: LedgerClient
    publisher: str | None = None
    parallel_fetch: bool = False
    on_skipped: SkipHandler | None = None
    settings: InterdependenceSettings | None = None
    _aggregator: SignatureAggregator = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._aggregator = SignatureAggregator(
            self.ledger,
            publisher=self.publisher,
            on_skipped=self.on_skipped,
            settings=self.settings,
        )

    async def resolve(self, tx_id: str) -> ResolvedDeclaration:
        """Return the composite view for ``tx_id``.

        Returns:
            A view with status 200 and populated data when ``tx_id`` is a
            confirmed declaration, status 404 when it is confirmed but not a
            declaration, or the ledger's own status when unconfirmed.

        Raises:
            LedgerUnavailableError: If any ledger read fails.
            DeclarationIntegrityError: If a confirmed declaration's payload
                cannot be parsed.
        """

        status = await self.ledger.get_confirmation_status(tx_id)
        if not status.confirmed or status.block_id is None:
            LOGGER.info(
                "Declaration not confirmed",
                extra={"tx_id": tx_id, "status_code": status.code},
            )
            if status.code == STATUS_OK:
                return ResolvedDeclaration.not_found(tx_id)
            return ResolvedDeclaration.unconfirmed(tx_id, status.code)

        tags = await self.ledger.get_metadata_tags(tx_id)
        if not is_declaration(tags):
            LOGGER.info(
                "Transaction is not a declaration",
                extra={"tx_id": tx_id},
            )
            return ResolvedDeclaration.not_found(tx_id)

        if self.parallel_fetch:
            timestamp, payload = await self._fetch_concurrently(
                tx_id, status.block_id
            )
        else:
            timestamp = await self.ledger.get_block_timestamp(status.block_id)
            payload = await self.ledger.get_payload(tx_id)

        data = parse_payload(tx_id, payload)
        data["timestamp"] = format_timestamp(timestamp)

        signatures = await self._aggregator.collect(tx_id)
        LOGGER.info(
            "Declaration resolved",
            extra={"tx_id": tx_id, "signature_count": len(signatures)},
        )
        return ResolvedDeclaration(
            tx_id=tx_id,
            data=data,
            signatures=tuple(signatures),
            status=STATUS_OK,
        )

    async def _fetch_concurrently(self, tx_id: str, block_id: str) -> tuple[int, str]:
        """Fetch block timestamp and payload together.

        A failure in either fetch cancels the other; the first error is
        re-raised unwrapped so callers see the same exceptions as the
        sequential path.
        """

        try:
            async with asyncio.TaskGroup() as group:
                timestamp_task = group.create_task(
                    self.ledger.get_block_timestamp(block_id)
                )
                payload_task = group.create_task(self.ledger.get_payload(tx_id))
        except ExceptionGroup as exc:
            raise exc.exceptions[0] from None
        return timestamp_task.result(), payload_task.result()


async def resolve_declaration(
    ledger: LedgerClient,
    tx_id: str,
    *,
    publisher: str | None = None,
    settings: InterdependenceSettings | None = None,
) -> ResolvedDeclaration:
    """Resolve ``tx_id`` with a one-off :class:`DeclarationResolver`."""

    resolver = DeclarationResolver(ledger, publisher=publisher, settings=settings)
    return await resolver.resolve(tx_id)
