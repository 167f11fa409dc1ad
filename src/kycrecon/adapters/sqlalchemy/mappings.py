"""SQLAlchemy table metadata and row conversion for entity records.

Records are persisted through Core tables rather than mapped classes: the
engine returns fresh copies on every merge, so the adapter serializes whole
records at the boundary. Provenance maps, sets and discrepancy lists are
stored as JSON text.
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import fields
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Final, cast

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Dialect,
    Enum,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
)

from kycrecon.domain.model import (
    RECORD_TYPE_BY_ROLE,
    Discrepancy,
    EntityKey,
    EntityRole,
    FieldProvenance,
    SourceRef,
    VerificationStatus,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from sqlalchemy.engine import RowMapping

    from kycrecon.domain.model import EntityRecord

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


def _source_payload(source: SourceRef) -> dict[str, str]:
    return {
        "document_id": source.document_id,
        "document_name": source.document_name,
        "document_type": source.document_type,
    }


def _source_from_payload(payload: Mapping[str, Any]) -> SourceRef:
    return SourceRef(
        document_id=str(payload["document_id"]),
        document_name=str(payload.get("document_name") or ""),
        document_type=str(payload.get("document_type") or ""),
    )


def _load_list(value: str | None) -> list[Any]:
    if value is None:
        return []
    loaded = json.loads(value)
    if not isinstance(loaded, list):
        log.warning("Ignoring non-list JSON column payload: %r", value[:80])
        return []
    return cast(list[Any], loaded)


class ProvenanceType(TypeDecorator[FieldProvenance[str]]):
    """``FieldProvenance[str]`` as an ordered JSON list of entries."""

    impl = Text
    cache_ok = True

    def process_bind_param(
        self, value: FieldProvenance[str] | None, dialect: Dialect
    ) -> str | None:
        _ = dialect
        if value is None:
            return None
        payload = [
            {**_source_payload(entry.source), "value": entry.value} for entry in value.entries()
        ]
        return json.dumps(payload)

    def process_result_value(self, value: str | None, dialect: Dialect) -> FieldProvenance[str]:
        _ = dialect
        provenance = FieldProvenance[str]()
        for item in _load_list(value):
            source = _source_from_payload(item)
            provenance.upsert(source.document_id, str(item["value"]), source)
        return provenance


class StringSetType(TypeDecorator[set[str]]):
    impl = Text
    cache_ok = True

    def process_bind_param(self, value: set[str] | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return json.dumps(sorted(value))

    def process_result_value(self, value: str | None, dialect: Dialect) -> set[str]:
        _ = dialect
        return {item for item in _load_list(value) if isinstance(item, str)}


class DiscrepancyListType(TypeDecorator[list[Discrepancy]]):
    impl = Text
    cache_ok = True

    def process_bind_param(self, value: list[Discrepancy] | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        payload = [
            {
                "field": discrepancy.field,
                "values": list(discrepancy.values),
                "sources": [_source_payload(source) for source in discrepancy.sources],
            }
            for discrepancy in value
        ]
        return json.dumps(payload)

    def process_result_value(self, value: str | None, dialect: Dialect) -> list[Discrepancy]:
        _ = dialect
        return [
            Discrepancy(
                field=str(item["field"]),
                values=tuple(str(text) for text in item["values"]),
                sources=tuple(_source_from_payload(source) for source in item["sources"]),
            )
            for item in _load_list(value)
        ]


metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_N_name)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }
)


def _record_columns() -> list[Column[Any]]:
    return [
        Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
        Column("client_id", String, nullable=False),
        Column("name", String, nullable=False),
        Column(
            "verification_status",
            Enum(VerificationStatus, native_enum=False),
            nullable=False,
            default=VerificationStatus.PENDING,
        ),
        Column("kyc_status", Text, nullable=True),
        Column("created_at", UTCDateTime, nullable=False),
        Column("updated_at", UTCDateTime, nullable=True),
        Column("version", Integer, nullable=False, default=1),
    ]


def _scalar_columns() -> list[Column[Any]]:
    columns: list[Column[Any]] = [Column("company_name", String, nullable=False)]
    for name in ("id_number", "id_type", "nationality", "address", "phone", "email"):
        columns.append(Column(name, Text, nullable=True))
        columns.append(Column(f"{name}_source", Text, nullable=True))
    return columns


individual_table = Table(
    "individual",
    metadata,
    *_record_columns(),
    Column("full_name", ProvenanceType, nullable=False),
    Column("alternative_names", StringSetType, nullable=False),
    Column("id_numbers", ProvenanceType, nullable=False),
    Column("id_types", ProvenanceType, nullable=False),
    Column("nationalities", ProvenanceType, nullable=False),
    Column("addresses", ProvenanceType, nullable=False),
    Column("emails", ProvenanceType, nullable=False),
    Column("phones", ProvenanceType, nullable=False),
    Column("roles", ProvenanceType, nullable=False),
    Column("shares_owned", ProvenanceType, nullable=False),
    Column("price_per_share", ProvenanceType, nullable=False),
    Column("discrepancies", DiscrepancyListType, nullable=False),
    UniqueConstraint("client_id", "name"),
)

company_table = Table(
    "company",
    metadata,
    *_record_columns(),
    Column("company_name", ProvenanceType, nullable=False),
    Column("alternative_names", StringSetType, nullable=False),
    Column("registration_number", ProvenanceType, nullable=False),
    Column("jurisdiction", ProvenanceType, nullable=False),
    Column("address", ProvenanceType, nullable=False),
    Column("company_activities", ProvenanceType, nullable=False),
    Column("shares_issued", ProvenanceType, nullable=False),
    Column("price_per_share", ProvenanceType, nullable=False),
    Column("directors", StringSetType, nullable=False),
    Column("shareholders", StringSetType, nullable=False),
    Column("discrepancies", DiscrepancyListType, nullable=False),
    UniqueConstraint("client_id", "name"),
)

director_table = Table(
    "director",
    metadata,
    *_record_columns(),
    *_scalar_columns(),
    UniqueConstraint("client_id", "company_name", "name"),
)

shareholder_table = Table(
    "shareholder",
    metadata,
    *_record_columns(),
    *_scalar_columns(),
    Column("shares_owned", Text, nullable=True),
    Column("shares_owned_source", Text, nullable=True),
    Column("price_per_share", Text, nullable=True),
    Column("price_per_share_source", Text, nullable=True),
    Column("is_company", Boolean, nullable=False, default=False),
    UniqueConstraint("client_id", "company_name", "name"),
)

document_table = Table(
    "document",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("client_id", String, nullable=False),
    Column("document_id", String, nullable=False),
    Column("document_name", String, nullable=False),
    Column("document_type", String, nullable=False),
    UniqueConstraint("client_id", "document_id"),
)

TABLE_BY_ROLE: Final[dict[EntityRole, Table]] = {
    EntityRole.INDIVIDUAL: individual_table,
    EntityRole.COMPANY: company_table,
    EntityRole.DIRECTOR: director_table,
    EntityRole.SHAREHOLDER: shareholder_table,
}

# record attributes that are not stored under their own column name
_KEY_ATTRIBUTES: Final = frozenset({"key"})


def record_to_row(record: EntityRecord) -> dict[str, Any]:
    """Flatten ``record`` into column values for its role table."""

    row: dict[str, Any] = {
        spec.name: getattr(record, spec.name)
        for spec in fields(record)
        if spec.name not in _KEY_ATTRIBUTES
    }
    row["client_id"] = record.key.client_id
    row["name"] = record.key.name
    if record.key.role.is_company_scoped:
        row["company_name"] = record.key.company_name
    return row


def row_to_record(role: EntityRole, row: RowMapping) -> EntityRecord:
    record_type = RECORD_TYPE_BY_ROLE[role]
    key = EntityKey(
        client_id=row["client_id"],
        role=role,
        name=row["name"],
        company_name=row["company_name"] if role.is_company_scoped else None,
    )
    values = {
        spec.name: row[spec.name]
        for spec in fields(record_type)
        if spec.name not in _KEY_ATTRIBUTES
    }
    return record_type(key=key, **values)

