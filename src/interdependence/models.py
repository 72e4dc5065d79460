"""Pydantic models describing signature records and resolved declarations."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

ResolutionState = Literal["RESOLVED", "NOT_FOUND", "PENDING_OR_UNKNOWN"]

STATUS_OK = 200
STATUS_NOT_FOUND = 404


class SignatureRecord(BaseModel):
    """One signer's co-signature of a declaration, as read from the ledger."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str = Field(..., min_length=1, description="Signature transaction id.")
    address: str = Field(
        ..., min_length=1, description="Signer address; the deduplication key."
    )
    name: str = Field(..., description="Signer display name.")
    handle: str = Field(
        ...,
        description="Social handle, or 'UNSIGNED' when none was provided.",
    )
    verified: bool = Field(
        default=False,
        description="Whether the relay verified the signer's handle.",
    )

    def to_wire(self) -> dict[str, object]:
        """Return the record using the legacy front-end field names."""

        return {
            "SIG_ID": self.id,
            "SIG_ADDR": self.address,
            "SIG_NAME": self.name,
            "SIG_HANDLE": self.handle,
            "SIG_ISVERIFIED": self.verified,
        }


class ResolvedDeclaration(BaseModel):
    """Request-scoped view of a declaration and its deduplicated signers.

    Instances are rebuilt for every resolution and never cached. ``data`` is
    empty and ``signatures`` is empty unless ``status`` is 200.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    tx_id: str
    data: dict[str, object] = Field(default_factory=dict)
    signatures: tuple[SignatureRecord, ...] = ()
    status: int = STATUS_NOT_FOUND

    @property
    def state(self) -> ResolutionState:
        """Return the terminal state reached by the resolver."""

        if self.status == STATUS_OK:
            return "RESOLVED"
        if self.status == STATUS_NOT_FOUND:
            return "NOT_FOUND"
        return "PENDING_OR_UNKNOWN"

    @property
    def found(self) -> bool:
        return self.status == STATUS_OK

    @classmethod
    def not_found(cls, tx_id: str) -> ResolvedDeclaration:
        return cls(tx_id=tx_id, status=STATUS_NOT_FOUND)

    @classmethod
    def unconfirmed(cls, tx_id: str, status: int) -> ResolvedDeclaration:
        return cls(tx_id=tx_id, status=status)

    def to_wire(self) -> dict[str, object]:
        """Return a JSON-serialisable payload in the legacy front-end shape.

        Returns:
            Mapping with ``txId``, ``data``, ``sigs`` and ``status`` keys.
        """

        return {
            "txId": self.tx_id,
            "data": dict(self.data),
            "sigs": [record.to_wire() for record in self.signatures],
            "status": self.status,
        }
