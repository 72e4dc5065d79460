"""Typed view over the ledger's generic key/value tag mechanism.

Tag names are wire constants shared with every existing declaration and
signature on the ledger; changing them breaks interoperability.
"""

from __future__ import annotations

import base64
import binascii
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Final

from interdependence.errors import LedgerUnavailableError
from interdependence.models import SignatureRecord

DOC_TYPE: Final[str] = "interdependence_doc_type"
DOC_ORIGIN: Final[str] = "interdependence_doc_origin"
DOC_REF: Final[str] = "interdependence_doc_ref"
SIG_NAME: Final[str] = "interdependence_sig_name"
SIG_HANDLE: Final[str] = "interdependence_sig_handle"
SIG_ADDR: Final[str] = "interdependence_sig_addr"
SIG_ISVERIFIED: Final[str] = "interdependence_sig_verified"

DECLARATION_TYPE: Final[str] = "declaration"
SIGNATURE_TYPE: Final[str] = "signature"
NULL_HANDLE: Final[str] = "null"
UNSIGNED_HANDLE: Final[str] = "UNSIGNED"


@dataclass(frozen=True, slots=True)
class DocumentTags:
    """Document-level tags carried by declarations and signatures."""

    doc_type: str | None = None
    origin: str | None = None
    reference: str | None = None

    @classmethod
    def from_tags(cls, tags: Mapping[str, str]) -> DocumentTags:
        return cls(
            doc_type=tags.get(DOC_TYPE),
            origin=tags.get(DOC_ORIGIN),
            reference=tags.get(DOC_REF),
        )


def b64url_decode(value: str) -> bytes:
    """Decode unpadded base64url text as used by the Arweave HTTP API.

    Raises:
        ValueError: If ``value`` is not valid base64url.
    """

    padded = value + "=" * (-len(value) % 4)
    try:
        return base64.urlsafe_b64decode(padded.encode("ascii"))
    except (binascii.Error, UnicodeEncodeError) as exc:
        raise ValueError(f"Invalid base64url value: {value!r}") from exc


def decode_tags(raw_tags: Iterable[Mapping[str, object]]) -> dict[str, str]:
    """Decode a transaction's base64url tag list into a flat mapping.

    Args:
        raw_tags: Sequence of ``{"name": ..., "value": ...}`` entries as
            returned by ``GET /tx/{id}``.

    Returns:
        Mapping of UTF-8 tag names to UTF-8 values. A repeated name keeps its
        last value.

    Raises:
        LedgerUnavailableError: If a tag is not valid base64url UTF-8.
    """

    decoded: dict[str, str] = {}
    for entry in raw_tags:
        name = entry.get("name")
        value = entry.get("value")
        if not isinstance(name, str) or not isinstance(value, str):
            raise LedgerUnavailableError("Transaction tag is not a name/value pair")
        try:
            key = b64url_decode(name).decode("utf-8")
            decoded[key] = b64url_decode(value).decode("utf-8")
        except (ValueError, UnicodeDecodeError) as exc:
            raise LedgerUnavailableError("Transaction tag could not be decoded") from exc
    return decoded


def is_declaration(tags: Mapping[str, str]) -> bool:
    return tags.get(DOC_TYPE) == DECLARATION_TYPE


def is_signature(tags: Mapping[str, str]) -> bool:
    return tags.get(DOC_TYPE) == SIGNATURE_TYPE


def parse_verified(value: str | None) -> bool:
    """Return ``True`` only for the exact string ``"true"``."""

    return value == "true"


def normalize_handle(value: str) -> str:
    """Render the ledger's ``"null"`` handle as ``"UNSIGNED"``."""

    return UNSIGNED_HANDLE if value == NULL_HANDLE else value


def signer_from_tags(tx_id: str, tags: Mapping[str, str]) -> SignatureRecord | None:
    """Build a signature record from a candidate's tags.

    Args:
        tx_id: Transaction id of the signature candidate.
        tags: Decoded tag mapping of the candidate.

    Returns:
        The normalised record, or ``None`` when the signer address, handle or
        name tag is missing.
    """

    address = tags.get(SIG_ADDR)
    handle = tags.get(SIG_HANDLE)
    name = tags.get(SIG_NAME)
    if not address or handle is None or name is None:
        return None
    return SignatureRecord(
        id=tx_id,
        address=address,
        name=name,
        handle=normalize_handle(handle),
        verified=parse_verified(tags.get(SIG_ISVERIFIED)),
    )
