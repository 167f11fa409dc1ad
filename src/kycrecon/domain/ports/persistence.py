"""Ports for persisting entity records and registered documents."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from kycrecon.domain.model import EntityKey, EntityRecord, EntityRole, SourceRef


class PersistenceConflictError(RuntimeError):
    """The stored record changed since it was loaded; reload and retry."""

    def __init__(self, key: EntityKey, *, expected: int, actual: int | None) -> None:
        super().__init__(f"Version conflict for {key}: expected {expected}, found {actual}")
        self.key = key
        self.expected = expected
        self.actual = actual


class EntityNotFoundError(LookupError):
    def __init__(self, key: EntityKey) -> None:
        super().__init__(f"No record for {key}")
        self.key = key


@runtime_checkable
class EntityRepository(Protocol):
    """Versioned record store keyed by ``EntityKey``.

    ``save`` compares the record's ``version`` with the stored one and raises
    ``PersistenceConflictError`` on mismatch; on success the stored version is
    incremented and written back onto the record. There is no delete.
    """

    def load(self, key: EntityKey) -> EntityRecord | None: ...

    def save(self, record: EntityRecord) -> None: ...

    def list_records(
        self, client_id: str | None = None, role: EntityRole | None = None
    ) -> list[EntityRecord]: ...


@runtime_checkable
class DocumentRepository(Protocol):
    """Registry of documents seen per client, used for summaries."""

    def add(self, client_id: str, source: SourceRef) -> None: ...

    def count(self, client_id: str | None = None) -> int: ...
