"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import func, insert, select, update
from sqlalchemy.exc import IntegrityError

from kycrecon.adapters.sqlalchemy.mappings import (
    TABLE_BY_ROLE,
    document_table,
    record_to_row,
    row_to_record,
)
from kycrecon.domain.model import EntityRole
from kycrecon.domain.ports.persistence import PersistenceConflictError

if TYPE_CHECKING:
    from collections.abc import Callable

    from sqlalchemy import ColumnElement, Table
    from sqlalchemy.orm import Session

    from kycrecon.domain.model import EntityKey, EntityRecord, SourceRef

log = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


def _key_clause(table: Table, key: EntityKey) -> ColumnElement[bool]:
    clause = (table.c.client_id == key.client_id) & (table.c.name == key.name)
    if key.role.is_company_scoped:
        clause = clause & (table.c.company_name == key.company_name)
    return clause


class SqlAlchemyEntityRepository:
    """Versioned record store; one table per role.

    ``version`` 0 means "never saved". Every successful save bumps the stored
    version and writes it back onto the record, so a record can be saved again
    in the same unit of work.
    """

    def __init__(self, session: Session, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self.session = session
        self._clock = clock

    def load(self, key: EntityKey) -> EntityRecord | None:
        table = TABLE_BY_ROLE[key.role]
        row = self.session.execute(select(table).where(_key_clause(table, key))).mappings().first()
        return row_to_record(key.role, row) if row is not None else None

    def save(self, record: EntityRecord) -> None:
        key = record.key
        table = TABLE_BY_ROLE[key.role]
        now = self._clock()
        values = record_to_row(record)
        values["updated_at"] = now
        values["version"] = record.version + 1

        if record.version == 0:
            stored = self._stored_version(table, key)
            if stored is not None:
                raise PersistenceConflictError(key, expected=0, actual=stored)
            try:
                self.session.execute(insert(table).values(**values))
            except IntegrityError as exc:
                # another writer inserted the key after the version check
                raise PersistenceConflictError(key, expected=0, actual=None) from exc
        else:
            result = self.session.execute(
                update(table)
                .where(table.c.id == record.id)
                .where(table.c.version == record.version)
                .values(**values)
            )
            if result.rowcount != 1:  # pyright: ignore[reportAttributeAccessIssue]
                actual = self._stored_version(table, key)
                raise PersistenceConflictError(key, expected=record.version, actual=actual)

        record.version += 1
        record.updated_at = now
        log.debug("Saved %s at version %d", key, record.version)

    def list_records(
        self,
        client_id: str | None = None,
        role: EntityRole | None = None,
    ) -> list[EntityRecord]:
        roles = [role] if role is not None else list(EntityRole)
        records: list[EntityRecord] = []
        for current in roles:
            table = TABLE_BY_ROLE[current]
            stmt = select(table).order_by(table.c.created_at, table.c.name)
            if client_id is not None:
                stmt = stmt.where(table.c.client_id == client_id)
            records.extend(
                row_to_record(current, row) for row in self.session.execute(stmt).mappings()
            )
        return records

    def _stored_version(self, table: Table, key: EntityKey) -> int | None:
        stmt = select(table.c.version).where(_key_clause(table, key))
        return self.session.execute(stmt).scalar_one_or_none()


class SqlAlchemyDocumentRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, client_id: str, source: SourceRef) -> None:
        """Register ``source``; re-registering a known document updates its name/type."""

        existing = self.session.execute(
            select(document_table.c.id)
            .where(document_table.c.client_id == client_id)
            .where(document_table.c.document_id == source.document_id)
        ).scalar_one_or_none()
        values = {
            "document_name": source.document_name,
            "document_type": source.document_type,
        }
        if existing is None:
            self.session.execute(
                insert(document_table).values(
                    client_id=client_id, document_id=source.document_id, **values
                )
            )
        else:
            self.session.execute(
                update(document_table).where(document_table.c.id == existing).values(**values)
            )

    def count(self, client_id: str | None = None) -> int:
        stmt = select(func.count()).select_from(document_table)
        if client_id is not None:
            stmt = stmt.where(document_table.c.client_id == client_id)
        return int(self.session.execute(stmt).scalar_one())
