"""Per-field source provenance.

A ``FieldProvenance`` records, for one logical field of one entity, which
document said what. Entries are keyed by document id so re-processing a
document replaces its own entry instead of adding a second one.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

_TYPE_TOKEN = re.compile(r"[a-z0-9_]+")


def document_type_matches(document_type: str, *candidates: str) -> bool:
    """Match whole tokens: ``identity_document(Passport)`` counts as ``passport``.

    ``financial_statement`` never counts as ``fin``.
    """
    tokens = set(_TYPE_TOKEN.findall(document_type.lower()))
    return any(candidate.lower() in tokens for candidate in candidates)


def described_type(description: str) -> str:
    """Recover the document type from a ``SourceRef.describe()`` string, or ``""``."""
    if not description.endswith(")"):
        return ""
    _, separator, tail = description.rpartition(" (")
    return tail[:-1] if separator else ""


@dataclass(frozen=True, slots=True)
class SourceRef:
    """One document contribution."""

    document_id: str
    document_name: str
    document_type: str

    def __post_init__(self) -> None:
        if not self.document_id.strip():
            raise ValueError("document_id must not be blank")

    def describe(self) -> str:
        """Return a one-line provenance description for scalar ``*_source`` fields."""
        if self.document_type:
            return f"{self.document_name} ({self.document_type})"
        return self.document_name

    def has_type(self, *document_types: str) -> bool:
        return document_type_matches(self.document_type, *document_types)


@dataclass(frozen=True, slots=True)
class ProvenanceEntry[T]:
    value: T
    source: SourceRef


@dataclass(eq=False, slots=True)
class FieldProvenance[T]:
    """Mapping of document id to the value extracted from that document.

    An empty map means the field was never observed. There is no
    removal operation: merges only add or replace the entry of the document
    being merged.
    """

    _entries: dict[str, ProvenanceEntry[T]] = field(
        default_factory=dict["str", "ProvenanceEntry[T]"]
    )

    def upsert(self, document_id: str, value: T, source: SourceRef) -> None:
        if document_id != source.document_id:
            raise ValueError(
                f"document_id {document_id!r} does not match source {source.document_id!r}"
            )
        # assigning to an existing key keeps its position
        self._entries[document_id] = ProvenanceEntry(value=value, source=source)

    def values(self) -> Iterator[tuple[T, SourceRef]]:
        """Yield distinct ``(value, source)`` pairs in first-seen order.

        Pairs are distinct by construction since every source belongs to exactly
        one document key. Every call returns a fresh iterator.
        """

        for entry in self._entries.values():
            yield entry.value, entry.source

    def is_empty(self) -> bool:
        return not self._entries

    def get(self, document_id: str) -> ProvenanceEntry[T] | None:
        return self._entries.get(document_id)

    def first(self) -> ProvenanceEntry[T] | None:
        """Return the earliest recorded entry, or ``None`` for an empty field."""
        return next(iter(self._entries.values()), None)

    def document_ids(self) -> tuple[str, ...]:
        return tuple(self._entries)

    def sources(self) -> tuple[SourceRef, ...]:
        return tuple(entry.source for entry in self._entries.values())

    def entries(self) -> tuple[ProvenanceEntry[T], ...]:
        return tuple(self._entries.values())

    def copy(self) -> FieldProvenance[T]:
        return FieldProvenance(_entries=dict(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, document_id: object) -> bool:
        return document_id in self._entries

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FieldProvenance):
            return NotImplemented
        # dict equality ignores insertion order
        return self._entries == other._entries  # pyright: ignore[reportUnknownMemberType]

    def __repr__(self) -> str:
        values = ", ".join(f"{doc}={entry.value!r}" for doc, entry in self._entries.items())
        return f"FieldProvenance({values})"
