"""Exception hierarchy shared by the ledger, resolver and relay layers.

"Not found" is deliberately absent: an unconfirmed or mistyped transaction is
a normal :class:`~interdependence.models.ResolvedDeclaration` state, never an
exception.
"""

from __future__ import annotations

__all__ = [
    "DeclarationIntegrityError",
    "InterdependenceError",
    "LedgerUnavailableError",
    "RelayUnavailableError",
    "SignatureSubmissionError",
    "WalletUnavailableError",
]


class InterdependenceError(Exception):
    """Base class for all errors raised by :mod:`interdependence`."""


class WalletUnavailableError(InterdependenceError, RuntimeError):
    """Raised when signing is requested without a wallet provider."""


class LedgerUnavailableError(InterdependenceError, RuntimeError):
    """Raised when a ledger read fails in transport or decoding.

    Callers decide whether to retry; nothing in this package does.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class DeclarationIntegrityError(InterdependenceError, ValueError):
    """Raised when a confirmed, declaration-tagged transaction is unreadable."""

    def __init__(self, tx_id: str, message: str) -> None:
        super().__init__(f"Declaration {tx_id}: {message}")
        self.tx_id = tx_id


class RelayUnavailableError(InterdependenceError, RuntimeError):
    """Raised when the relay server cannot accept a request."""

    def __init__(
        self, message: str, *, endpoint: str, status_code: int | None = None
    ) -> None:
        super().__init__(message)
        self.endpoint = endpoint
        self.status_code = status_code


class SignatureSubmissionError(RelayUnavailableError):
    """Raised when a signature was produced but the relay rejected it.

    The signature is not retracted. It is carried here so callers can retry
    the submission without prompting the wallet again.
    """

    def __init__(
        self,
        message: str,
        *,
        endpoint: str,
        signature: str,
        address: str,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, endpoint=endpoint, status_code=status_code)
        self.signature = signature
        self.address = address
