"""Base types for read-only ledger clients."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from types import TracebackType

from interdependence.ledger.query import LedgerTransaction, TransactionQuery

CONFIRMED_STATUS = 200


@dataclass(frozen=True, slots=True)
class TransactionStatus:
    """Confirmation state of a transaction.

    Attributes:
        code: HTTP-style status code; 200 means confirmed.
        block_id: Hash of the confirming block, only set when confirmed.
    """

    code: int
    block_id: str | None = None

    @property
    def confirmed(self) -> bool:
        return self.code == CONFIRMED_STATUS and self.block_id is not None


class LedgerClient(ABC):
    """Abstract read-only client for the ledger.

    Implementations raise :class:`~interdependence.errors.LedgerUnavailableError`
    on transport or decoding failures and never retry.
    """

    @abstractmethod
    async def get_confirmation_status(self, tx_id: str) -> TransactionStatus:
        """Return whether ``tx_id`` is confirmed and by which block."""

    @abstractmethod
    async def get_metadata_tags(self, tx_id: str) -> dict[str, str]:
        """Return the decoded tag mapping of ``tx_id``."""

    @abstractmethod
    async def get_payload(self, tx_id: str) -> str:
        """Return the transaction body decoded as UTF-8 text."""

    @abstractmethod
    async def get_block_timestamp(self, block_id: str) -> int:
        """Return the unix timestamp embedded in block ``block_id``."""

    @abstractmethod
    async def query_transactions(
        self, query: TransactionQuery
    ) -> list[LedgerTransaction]:
        """Return every transaction matching ``query`` in response order."""

    async def aclose(self) -> None:
        """Release transport resources held by the client."""

    async def __aenter__(self) -> LedgerClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()
