"""Arweave gateway implementation of :class:`LedgerClient`."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import cast
from urllib.parse import quote

import httpx

from interdependence.errors import LedgerUnavailableError
from interdependence.ledger.base import (
    CONFIRMED_STATUS,
    LedgerClient,
    TransactionStatus,
)
from interdependence.ledger.query import (
    LedgerTransaction,
    TransactionQuery,
    parse_transactions_page,
)
from interdependence.settings import InterdependenceSettings, get_settings
from interdependence.tags import b64url_decode, decode_tags

LOGGER = logging.getLogger(__name__)

# Upper bound on continuation requests for a single query.
MAX_QUERY_PAGES = 500


class ArweaveLedgerClient(LedgerClient):
    """Read declarations, signatures and blocks from an Arweave gateway.

    The client is constructed explicitly and passed to the components that
    need it. When ``client`` is supplied the caller keeps ownership of it and
    :meth:`aclose` leaves it open.
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        timeout_seconds: float | None = None,
        settings: InterdependenceSettings | None = None,
    ) -> None:
        settings_obj = settings or get_settings()
        self._base = (base_url or settings_obj.gateway_url).rstrip("/")
        self._timeout = timeout_seconds or settings_obj.request_timeout
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=self._timeout)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def get_confirmation_status(self, tx_id: str) -> TransactionStatus:
        """Return the confirmation status of ``tx_id``.

        Non-200 statuses (202 pending, 404 unknown, ...) are returned rather
        than raised so the resolver can surface them.

        Raises:
            LedgerUnavailableError: On transport failure or when a 200
                response does not name the confirming block.
        """

        url = f"{self._base}/tx/{quote(tx_id, safe='')}/status"
        response = await self._send("GET", url)
        if response.status_code != CONFIRMED_STATUS:
            LOGGER.debug(
                "Transaction not confirmed",
                extra={"tx_id": tx_id, "status_code": response.status_code},
            )
            return TransactionStatus(code=response.status_code)

        payload = _json_mapping(response, url)
        block_id = payload.get("block_indep_hash")
        if not isinstance(block_id, str) or not block_id:
            raise LedgerUnavailableError(
                f"Status for {tx_id} lacks a confirming block hash"
            )
        return TransactionStatus(code=CONFIRMED_STATUS, block_id=block_id)

    async def get_metadata_tags(self, tx_id: str) -> dict[str, str]:
        url = f"{self._base}/tx/{quote(tx_id, safe='')}"
        response = await self._send("GET", url, require_success=True)
        raw_tags = _json_mapping(response, url).get("tags", [])
        if not isinstance(raw_tags, list):
            raise LedgerUnavailableError(f"Tags for {tx_id} are not a list")
        entries = [
            cast(Mapping[str, object], entry)
            for entry in cast(list[object], raw_tags)
            if isinstance(entry, Mapping)
        ]
        return decode_tags(entries)

    async def get_payload(self, tx_id: str) -> str:
        """Fetch the transaction body and decode it as UTF-8 text.

        Raises:
            LedgerUnavailableError: If the body is not base64url UTF-8.
        """

        url = f"{self._base}/tx/{quote(tx_id, safe='')}/data"
        response = await self._send("GET", url, require_success=True)
        try:
            return b64url_decode(response.text.strip()).decode("utf-8")
        except (ValueError, UnicodeDecodeError) as exc:
            LOGGER.warning(
                "Transaction payload could not be decoded",
                extra={"tx_id": tx_id, "url": url},
                exc_info=exc,
            )
            raise LedgerUnavailableError(
                f"Payload for {tx_id} could not be decoded"
            ) from exc

    async def get_block_timestamp(self, block_id: str) -> int:
        url = f"{self._base}/block/hash/{quote(block_id, safe='')}"
        response = await self._send("GET", url, require_success=True)
        timestamp = _json_mapping(response, url).get("timestamp")
        if isinstance(timestamp, bool) or not isinstance(timestamp, (int, str)):
            raise LedgerUnavailableError(f"Block {block_id} has no timestamp")
        try:
            return int(timestamp)
        except ValueError as exc:
            raise LedgerUnavailableError(
                f"Block {block_id} has a non-numeric timestamp"
            ) from exc

    async def query_transactions(
        self, query: TransactionQuery
    ) -> list[LedgerTransaction]:
        """Run ``query`` and follow continuation cursors to the last page.

        Returns:
            All matching transactions in the order the gateway returned them.

        Raises:
            LedgerUnavailableError: If the gateway repeats a cursor or the
                result spans more than ``MAX_QUERY_PAGES`` pages.
        """

        url = f"{self._base}/graphql"
        results: list[LedgerTransaction] = []
        seen_cursors: set[str] = set()
        pages = 0
        current: TransactionQuery | None = query
        while current is not None:
            pages += 1
            if pages > MAX_QUERY_PAGES:
                raise LedgerUnavailableError(
                    f"Ledger query exceeded {MAX_QUERY_PAGES} pages"
                )
            response = await self._send(
                "POST",
                url,
                require_success=True,
                json=current.to_request(),
                headers={"Accept": "application/json"},
            )
            try:
                body: object = response.json()
            except ValueError as exc:
                raise LedgerUnavailableError("GraphQL response is not JSON") from exc
            page = parse_transactions_page(body)
            results.extend(page.transactions)
            if page.next_cursor is None:
                current = None
                continue
            if page.next_cursor in seen_cursors:
                LOGGER.warning(
                    "Ledger repeated a pagination cursor",
                    extra={"url": url, "cursor": page.next_cursor, "pages": pages},
                )
                raise LedgerUnavailableError(
                    f"Ledger repeated pagination cursor {page.next_cursor!r}"
                )
            seen_cursors.add(page.next_cursor)
            current = current.next_page(page.next_cursor)
        LOGGER.debug(
            "Ledger query completed",
            extra={"url": url, "result_count": len(results)},
        )
        return results

    async def _send(
        self,
        method: str,
        url: str,
        *,
        require_success: bool = False,
        **kwargs: object,
    ) -> httpx.Response:
        try:
            response = await self._client.request(  # type: ignore[arg-type]
                method, url, timeout=self._timeout, **kwargs
            )
            if require_success:
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            LOGGER.warning(
                "Ledger HTTP error",
                extra={"url": url, "status_code": exc.response.status_code},
                exc_info=exc,
            )
            raise LedgerUnavailableError(
                f"Ledger returned HTTP {exc.response.status_code} for {url}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            LOGGER.warning(
                "Ledger transport error",
                extra={"url": url, "error_type": type(exc).__name__},
                exc_info=exc,
            )
            raise LedgerUnavailableError(f"Ledger request to {url} failed") from exc
        return response


def _json_mapping(response: httpx.Response, url: str) -> dict[str, object]:
    """Decode a JSON object body, raising on anything else."""

    try:
        payload: object = response.json()
    except ValueError as exc:
        raise LedgerUnavailableError(f"Response from {url} is not JSON") from exc
    if not isinstance(payload, dict):
        raise LedgerUnavailableError(f"Response from {url} is not a JSON object")
    return cast(dict[str, object], payload)
