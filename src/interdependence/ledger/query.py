"""Structured GraphQL queries against the ledger's search interface.

Queries are built from typed filters and serialized in one place. Caller data
travels exclusively as GraphQL variables, so a hostile tag value (for example
a signer handle containing quotes) can never alter the query document.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace
from typing import Final, cast

from interdependence.errors import LedgerUnavailableError
from interdependence.tags import DOC_REF, DOC_TYPE, SIGNATURE_TYPE

__all__ = [
    "LedgerTransaction",
    "TagFilter",
    "TransactionPage",
    "TransactionQuery",
    "parse_transactions_page",
    "signature_query",
]

MAX_PAGE_SIZE: Final[int] = 100

TRANSACTIONS_DOCUMENT: Final[str] = """
query Transactions(
  $tags: [TagFilter!]
  $owners: [String!]
  $first: Int
  $after: String
) {
  transactions(tags: $tags, owners: $owners, first: $first, after: $after) {
    pageInfo {
      hasNextPage
    }
    edges {
      cursor
      node {
        id
        owner {
          address
        }
        tags {
          name
          value
        }
      }
    }
  }
}
""".strip()


@dataclass(frozen=True, slots=True)
class TagFilter:
    """Match transactions carrying tag ``name`` with any of ``values``."""

    name: str
    values: tuple[str, ...]

    def to_variable(self) -> dict[str, object]:
        return {"name": self.name, "values": list(self.values)}


@dataclass(frozen=True, slots=True)
class TransactionQuery:
    """Typed filter for the ledger's ``transactions`` search.

    Attributes:
        tags: Tag filters, all of which must match.
        owners: Publisher addresses allowed to own matching transactions.
        page_size: Number of results requested per page.
        after: Continuation cursor from a previous page.
    """

    tags: tuple[TagFilter, ...] = ()
    owners: tuple[str, ...] = ()
    page_size: int = MAX_PAGE_SIZE
    after: str | None = None

    def next_page(self, cursor: str) -> TransactionQuery:
        return replace(self, after=cursor)

    def to_request(self) -> dict[str, object]:
        """Serialize the query into a GraphQL request body.

        Returns:
            JSON-ready mapping with ``query`` and ``variables`` keys.
        """

        variables: dict[str, object] = {
            "tags": [tag.to_variable() for tag in self.tags],
            "first": max(1, min(self.page_size, MAX_PAGE_SIZE)),
        }
        if self.owners:
            variables["owners"] = list(self.owners)
        if self.after is not None:
            variables["after"] = self.after
        return {"query": TRANSACTIONS_DOCUMENT, "variables": variables}


@dataclass(frozen=True, slots=True)
class LedgerTransaction:
    """A transaction returned by the ledger's query interface."""

    id: str
    tags: dict[str, str] = field(default_factory=dict)
    owner: str | None = None


@dataclass(frozen=True, slots=True)
class TransactionPage:
    """One page of query results and the cursor to continue from."""

    transactions: tuple[LedgerTransaction, ...]
    next_cursor: str | None


def signature_query(
    tx_id: str, publisher: str, *, page_size: int = MAX_PAGE_SIZE
) -> TransactionQuery:
    """Build the query for signature records referencing ``tx_id``.

    Args:
        tx_id: Declaration transaction id being signed.
        publisher: Trusted publisher address; other owners are excluded.
        page_size: Results requested per page.

    Returns:
        Query filtering on document type, document reference and owner.

    Raises:
        ValueError: If ``publisher`` is empty, which would drop the owner
            filter.
    """

    if not publisher:
        raise ValueError("A trusted publisher address is required")
    return TransactionQuery(
        tags=(
            TagFilter(DOC_TYPE, (SIGNATURE_TYPE,)),
            TagFilter(DOC_REF, (tx_id,)),
        ),
        owners=(publisher,),
        page_size=page_size,
    )


def parse_transactions_page(body: object) -> TransactionPage:
    """Parse a GraphQL ``transactions`` response.

    Args:
        body: Decoded JSON response.

    Returns:
        The page of transactions. ``next_cursor`` is only set when the ledger
        reports more pages and the last edge carries a cursor.

    Raises:
        LedgerUnavailableError: If the response reports GraphQL errors or
            lacks the expected structure.
    """

    if not isinstance(body, Mapping):
        raise LedgerUnavailableError("GraphQL response is not an object")
    if body.get("errors"):
        raise LedgerUnavailableError(f"GraphQL query failed: {body['errors']!r}")

    data = body.get("data")
    transactions = data.get("transactions") if isinstance(data, Mapping) else None
    if not isinstance(transactions, Mapping):
        raise LedgerUnavailableError("GraphQL response missing data.transactions")

    edges = transactions.get("edges")
    if not isinstance(edges, list):
        raise LedgerUnavailableError("GraphQL response missing transaction edges")

    parsed: list[LedgerTransaction] = []
    last_cursor: str | None = None
    for edge in cast(list[object], edges):
        if not isinstance(edge, Mapping):
            continue
        cursor = edge.get("cursor")
        last_cursor = cursor if isinstance(cursor, str) else None
        node = edge.get("node")
        if not isinstance(node, Mapping) or not isinstance(node.get("id"), str):
            continue
        owner = node.get("owner")
        owner_address = owner.get("address") if isinstance(owner, Mapping) else None
        parsed.append(
            LedgerTransaction(
                id=node["id"],
                tags=_collect_plain_tags(node.get("tags")),
                owner=owner_address if isinstance(owner_address, str) else None,
            )
        )

    page_info = transactions.get("pageInfo")
    has_next = isinstance(page_info, Mapping) and page_info.get("hasNextPage") is True
    return TransactionPage(
        transactions=tuple(parsed),
        next_cursor=last_cursor if has_next else None,
    )


def _collect_plain_tags(raw: object) -> dict[str, str]:
    """Flatten GraphQL tags, which the gateway already returns decoded."""

    tags: dict[str, str] = {}
    if not isinstance(raw, Sequence):
        return tags
    for entry in raw:
        if not isinstance(entry, Mapping):
            continue
        name = entry.get("name")
        value = entry.get("value")
        if isinstance(name, str) and isinstance(value, str):
            tags[name] = value
    return tags
