"""Entity records for the four tracked roles.

Individuals and companies keep every observed value per document
(``FieldProvenance``). Directors and shareholders are role-attached to one
company and keep a single chosen value per field plus a free-text description
of where it came from.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import UTC, datetime
from typing import TYPE_CHECKING, ClassVar

from kycrecon.domain.model.entity import Entity
from kycrecon.domain.model.enums import EntityRole, VerificationStatus
from kycrecon.domain.model.provenance import FieldProvenance

if TYPE_CHECKING:
    from kycrecon.domain.model.keys import EntityKey
    from kycrecon.domain.model.provenance import SourceRef


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(frozen=True, slots=True)
class Discrepancy:
    """Disagreement between two or more sources for one field."""

    field: str
    values: tuple[str, ...]
    sources: tuple[SourceRef, ...]

    def describe(self) -> str:
        return f"Discrepancy in {self.field}: {' vs '.join(self.values)}"


@dataclass(kw_only=True)
class EntityRecord(Entity):
    """State shared by every record shape."""

    key: EntityKey
    verification_status: VerificationStatus = VerificationStatus.PENDING
    kyc_status: str | None = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime | None = None
    version: int = 0

    def __post_init__(self) -> None:
        if self.key.role is not self.ROLE:
            raise ValueError(f"{type(self).__name__} requires a {self.ROLE} key, got {self.key.role}")

    @property
    def name(self) -> str:
        return self.key.name

    @property
    def discrepancy_list(self) -> tuple[Discrepancy, ...]:
        return ()

    def copy(self) -> EntityRecord:
        """Return a copy whose containers can be mutated without touching ``self``."""

        values: dict[str, object] = {}
        for spec in fields(self):
            value = getattr(self, spec.name)
            if isinstance(value, FieldProvenance):
                value = value.copy()  # pyright: ignore[reportUnknownMemberType]
            elif isinstance(value, set):
                value = set(value)  # pyright: ignore[reportUnknownArgumentType]
            elif isinstance(value, list):
                value = list(value)  # pyright: ignore[reportUnknownArgumentType]
            values[spec.name] = value
        return type(self)(**values)


@dataclass(kw_only=True)
class MultiSourceRecord(EntityRecord):
    """Record whose tracked attributes keep one value per source document."""

    alternative_names: set[str] = field(default_factory=set["str"])
    discrepancies: list[Discrepancy] = field(default_factory=list["Discrepancy"])

    @property
    def discrepancy_list(self) -> tuple[Discrepancy, ...]:
        return tuple(self.discrepancies)

    def provenance_fields(self) -> dict[str, FieldProvenance[str]]:
        """Attribute name -> provenance map, in declaration order."""
        return {
            spec.name: value
            for spec in fields(self)
            if isinstance(value := getattr(self, spec.name), FieldProvenance)
        }

    def all_sources(self) -> tuple[SourceRef, ...]:
        seen: dict[str, SourceRef] = {}
        for provenance in self.provenance_fields().values():
            for source in provenance.sources():
                seen.setdefault(source.document_id, source)
        return tuple(seen.values())


@dataclass(kw_only=True)
class IndividualRecord(MultiSourceRecord):
    ROLE: ClassVar[EntityRole] = EntityRole.INDIVIDUAL

    full_name: FieldProvenance[str] = field(default_factory=FieldProvenance[str])
    id_numbers: FieldProvenance[str] = field(default_factory=FieldProvenance[str])
    id_types: FieldProvenance[str] = field(default_factory=FieldProvenance[str])
    nationalities: FieldProvenance[str] = field(default_factory=FieldProvenance[str])
    addresses: FieldProvenance[str] = field(default_factory=FieldProvenance[str])
    emails: FieldProvenance[str] = field(default_factory=FieldProvenance[str])
    phones: FieldProvenance[str] = field(default_factory=FieldProvenance[str])
    roles: FieldProvenance[str] = field(default_factory=FieldProvenance[str])
    shares_owned: FieldProvenance[str] = field(default_factory=FieldProvenance[str])
    price_per_share: FieldProvenance[str] = field(default_factory=FieldProvenance[str])


@dataclass(kw_only=True)
class CompanyRecord(MultiSourceRecord):
    ROLE: ClassVar[EntityRole] = EntityRole.COMPANY

    company_name: FieldProvenance[str] = field(default_factory=FieldProvenance[str])
    registration_number: FieldProvenance[str] = field(default_factory=FieldProvenance[str])
    jurisdiction: FieldProvenance[str] = field(default_factory=FieldProvenance[str])
    address: FieldProvenance[str] = field(default_factory=FieldProvenance[str])
    company_activities: FieldProvenance[str] = field(default_factory=FieldProvenance[str])
    shares_issued: FieldProvenance[str] = field(default_factory=FieldProvenance[str])
    price_per_share: FieldProvenance[str] = field(default_factory=FieldProvenance[str])
    # weak references by name; the company does not own these records
    directors: set[str] = field(default_factory=set["str"])
    shareholders: set[str] = field(default_factory=set["str"])


@dataclass(kw_only=True)
class ScalarRecord(EntityRecord):
    """Company-scoped record holding one chosen value per field."""

    id_number: str | None = None
    id_number_source: str | None = None
    id_type: str | None = None
    id_type_source: str | None = None
    nationality: str | None = None
    nationality_source: str | None = None
    address: str | None = None
    address_source: str | None = None
    phone: str | None = None
    phone_source: str | None = None
    email: str | None = None
    email_source: str | None = None

    @property
    def company_name(self) -> str:
        # guaranteed by EntityKey validation for company-scoped roles
        return self.key.company_name or ""


@dataclass(kw_only=True)
class DirectorRecord(ScalarRecord):
    ROLE: ClassVar[EntityRole] = EntityRole.DIRECTOR


@dataclass(kw_only=True)
class ShareholderRecord(ScalarRecord):
    ROLE: ClassVar[EntityRole] = EntityRole.SHAREHOLDER

    shares_owned: str | None = None
    shares_owned_source: str | None = None
    price_per_share: str | None = None
    price_per_share_source: str | None = None
    is_company: bool = False


RECORD_TYPE_BY_ROLE: dict[EntityRole, type[EntityRecord]] = {
    EntityRole.INDIVIDUAL: IndividualRecord,
    EntityRole.COMPANY: CompanyRecord,
    EntityRole.DIRECTOR: DirectorRecord,
    EntityRole.SHAREHOLDER: ShareholderRecord,
}


def new_record(key: EntityKey, *, created_at: datetime | None = None) -> EntityRecord:
    """Create an empty ``pending`` record for ``key``."""

    record_type = RECORD_TYPE_BY_ROLE[key.role]
    if created_at is None:
        return record_type(key=key)
    return record_type(key=key, created_at=created_at)
