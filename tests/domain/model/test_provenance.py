from __future__ import annotations

import pytest

from kycrecon.domain.model import (
    FieldProvenance,
    SourceRef,
    described_type,
    document_type_matches,
)
from tests.helpers.records import make_source


def test_upsert_replaces_entry_of_same_document() -> None:
    provenance = FieldProvenance[str]()
    source = make_source("doc-1")

    provenance.upsert("doc-1", "Singaporean", source)
    provenance.upsert("doc-1", "Singapore", source)

    assert len(provenance) == 1
    assert list(provenance.values()) == [("Singapore", source)]


def test_upsert_keeps_first_seen_order() -> None:
    provenance = FieldProvenance[str]()
    first = make_source("doc-1")
    second = make_source("doc-2")

    provenance.upsert("doc-1", "A", first)
    provenance.upsert("doc-2", "B", second)
    provenance.upsert("doc-1", "C", first)

    assert provenance.document_ids() == ("doc-1", "doc-2")
    assert [value for value, _ in provenance.values()] == ["C", "B"]


def test_upsert_rejects_mismatched_document_id() -> None:
    provenance = FieldProvenance[str]()

    with pytest.raises(ValueError, match="does not match"):
        provenance.upsert("doc-2", "A", make_source("doc-1"))


def test_values_returns_fresh_iterator() -> None:
    provenance = FieldProvenance[str]()
    provenance.upsert("doc-1", "A", make_source("doc-1"))

    assert list(provenance.values()) == list(provenance.values())


def test_empty_provenance() -> None:
    provenance = FieldProvenance[str]()

    assert provenance.is_empty()
    assert provenance.first() is None
    assert "doc-1" not in provenance


def test_copy_is_independent() -> None:
    provenance = FieldProvenance[str]()
    provenance.upsert("doc-1", "A", make_source("doc-1"))

    clone = provenance.copy()
    clone.upsert("doc-2", "B", make_source("doc-2"))

    assert len(provenance) == 1
    assert len(clone) == 2


def test_equality_ignores_insertion_order() -> None:
    left = FieldProvenance[str]()
    right = FieldProvenance[str]()
    left.upsert("doc-1", "A", make_source("doc-1"))
    left.upsert("doc-2", "B", make_source("doc-2"))
    right.upsert("doc-2", "B", make_source("doc-2"))
    right.upsert("doc-1", "A", make_source("doc-1"))

    assert left == right


def test_source_ref_rejects_blank_document_id() -> None:
    with pytest.raises(ValueError, match="document_id"):
        SourceRef(document_id="  ", document_name="x.pdf", document_type="passport")


def test_source_ref_describe_and_type_match() -> None:
    source = SourceRef(
        document_id="7",
        document_name="passport.pdf",
        document_type="identity_document(Passport)",
    )

    assert source.describe() == "passport.pdf (identity_document(Passport))"
    assert source.has_type("identity_document")
    assert source.has_type("nric", "PASSPORT")
    assert not source.has_type("proof_of_address")


def test_type_match_uses_whole_tokens() -> None:
    statement = make_source("8", document_type="financial_statement")

    assert not statement.has_type("fin")
    assert statement.has_type("financial_statement")
    assert described_type("fin (copy).pdf (identity_document(FIN))") == "identity_document(FIN)"
    assert described_type("final.pdf") == ""
    assert document_type_matches("identity_document(FIN)", "fin")
