"""Tests for the tag schema codec."""

from __future__ import annotations

import base64

import pytest

from interdependence.errors import LedgerUnavailableError
from interdependence.tags import (
    DOC_ORIGIN,
    DOC_REF,
    DOC_TYPE,
    SIG_ADDR,
    SIG_HANDLE,
    SIG_ISVERIFIED,
    SIG_NAME,
    DocumentTags,
    b64url_decode,
    decode_tags,
    is_declaration,
    is_signature,
    normalize_handle,
    parse_verified,
    signer_from_tags,
)


def _b64(text: str) -> str:
    return base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii").rstrip("=")


def test_wire_tag_names_are_stable() -> None:
    assert DOC_TYPE == "interdependence_doc_type"
    assert DOC_ORIGIN == "interdependence_doc_origin"
    assert DOC_REF == "interdependence_doc_ref"
    assert SIG_NAME == "interdependence_sig_name"
    assert SIG_HANDLE == "interdependence_sig_handle"
    assert SIG_ADDR == "interdependence_sig_addr"
    assert SIG_ISVERIFIED == "interdependence_sig_verified"


def test_decode_tags_handles_unpadded_utf8() -> None:
    raw = [
        {"name": _b64(DOC_TYPE), "value": _b64("declaration")},
        {"name": _b64(SIG_NAME), "value": _b64("Zoë")},
    ]

    assert decode_tags(raw) == {DOC_TYPE: "declaration", SIG_NAME: "Zoë"}


def test_decode_tags_rejects_garbage() -> None:
    with pytest.raises(LedgerUnavailableError):
        decode_tags([{"name": "a", "value": _b64("x")}])

    invalid_utf8 = base64.urlsafe_b64encode(b"\xff\xfe").decode("ascii")
    with pytest.raises(LedgerUnavailableError):
        decode_tags([{"name": _b64("a"), "value": invalid_utf8}])

    with pytest.raises(LedgerUnavailableError):
        decode_tags([{"name": _b64("a"), "value": 7}])


def test_b64url_decode_rejects_non_ascii() -> None:
    with pytest.raises(ValueError):
        b64url_decode("é")


def test_type_predicates_require_exact_literals() -> None:
    assert is_declaration({DOC_TYPE: "declaration"})
    assert not is_declaration({DOC_TYPE: "Declaration"})
    assert not is_declaration({})
    assert is_signature({DOC_TYPE: "signature"})
    assert not is_signature({DOC_TYPE: "declaration"})


@pytest.mark.parametrize(
    ("value", "expected"),
    [("true", True), ("True", False), ("1", False), ("", False), (None, False)],
)
def test_parse_verified_only_accepts_true(value: str | None, expected: bool) -> None:
    assert parse_verified(value) is expected


def test_normalize_handle() -> None:
    assert normalize_handle("null") == "UNSIGNED"
    assert normalize_handle("bob") == "bob"
    assert normalize_handle("NULL") == "NULL"


def test_signer_from_tags_ignores_unknown_keys() -> None:
    record = signer_from_tags(
        "sig-1",
        {
            SIG_ADDR: "0xAAA",
            SIG_HANDLE: "null",
            SIG_NAME: "Alice",
            SIG_ISVERIFIED: "true",
            "App-Name": "something-else",
        },
    )

    assert record is not None
    assert record.id == "sig-1"
    assert record.address == "0xAAA"
    assert record.handle == "UNSIGNED"
    assert record.name == "Alice"
    assert record.verified is True


@pytest.mark.parametrize("missing", [SIG_ADDR, SIG_HANDLE, SIG_NAME])
def test_signer_from_tags_requires_signer_fields(missing: str) -> None:
    tags = {SIG_ADDR: "0xAAA", SIG_HANDLE: "bob", SIG_NAME: "Bob"}
    del tags[missing]

    assert signer_from_tags("sig-1", tags) is None


def test_signer_without_verified_flag_is_unverified() -> None:
    record = signer_from_tags(
        "sig-1", {SIG_ADDR: "0xAAA", SIG_HANDLE: "bob", SIG_NAME: "Bob"}
    )

    assert record is not None
    assert record.verified is False


def test_document_tags_extracts_origin_and_reference() -> None:
    document = DocumentTags.from_tags(
        {DOC_TYPE: "declaration", DOC_ORIGIN: "old-tx", DOC_REF: "ref", "x": "y"}
    )

    assert document == DocumentTags(
        doc_type="declaration", origin="old-tx", reference="ref"
    )
