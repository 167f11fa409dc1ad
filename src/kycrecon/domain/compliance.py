"""Compliance evaluation.

Reads a finished record and reports what is missing for its role. The result
is advisory only: applying ``suggest_status`` is an explicit status update.
Presence is independent of discrepancies; a disputed field still counts as
present and the dispute is reported separately.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import TYPE_CHECKING

from kycrecon.domain.model import (
    EntityRole,
    FieldProvenance,
    MultiSourceRecord,
    ScalarRecord,
    VerificationStatus,
    described_type,
    document_type_matches,
)
from kycrecon.domain.reconciliation.fields import FieldKind, field_spec

if TYPE_CHECKING:
    from kycrecon.domain.model import Discrepancy, EntityRecord

COMPLETE = "Complete"

_PERSON_FIELDS = ("id_number", "id_type", "nationality", "address", "phone", "email")


@dataclass(frozen=True, slots=True)
class DocumentRequirement:
    """At least one source of ``field`` must come from a document of one of ``document_types``.

    Types match whole tokens of the source's document type. Scalar records
    recover the type from their ``*_source`` description; the document name
    never counts.
    """

    label: str
    field: str
    document_types: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class LocalPhoneRule:
    """Nationals of ``nationality`` must list a phone number with ``prefix``."""

    nationality: str
    prefix: str

    def message(self) -> str:
        return f"Local ({self.prefix}) phone number required for {self.nationality.title()} nationals"


_IDENTITY = DocumentRequirement(
    "identification document", "id_number", ("identity_document", "nric", "passport", "fin")
)
_ADDRESS_PROOF = DocumentRequirement("proof of address", "address", ("proof_of_address",))

DEFAULT_REQUIRED_FIELDS: Mapping[EntityRole, tuple[str, ...]] = MappingProxyType(
    {
        EntityRole.INDIVIDUAL: _PERSON_FIELDS,
        EntityRole.DIRECTOR: _PERSON_FIELDS,
        EntityRole.SHAREHOLDER: (*_PERSON_FIELDS, "shares_owned", "price_per_share"),
        EntityRole.COMPANY: ("registration_number", "jurisdiction", "address", "director", "shareholder"),
    }
)

DEFAULT_REQUIRED_DOCUMENTS: Mapping[EntityRole, tuple[DocumentRequirement, ...]] = MappingProxyType(
    {
        EntityRole.INDIVIDUAL: (_IDENTITY, _ADDRESS_PROOF),
        EntityRole.DIRECTOR: (_IDENTITY, _ADDRESS_PROOF),
        EntityRole.SHAREHOLDER: (_IDENTITY, _ADDRESS_PROOF),
        EntityRole.COMPANY: (),
    }
)


@dataclass(frozen=True, slots=True, kw_only=True)
class CompliancePolicy:
    required_fields: Mapping[EntityRole, tuple[str, ...]] = field(
        default_factory=lambda: DEFAULT_REQUIRED_FIELDS
    )
    required_documents: Mapping[EntityRole, tuple[DocumentRequirement, ...]] = field(
        default_factory=lambda: DEFAULT_REQUIRED_DOCUMENTS
    )
    phone_rules: tuple[LocalPhoneRule, ...] = (LocalPhoneRule("singapore", "+65"),)

    def fields_for(self, role: EntityRole) -> tuple[str, ...]:
        return self.required_fields.get(role, ())

    def documents_for(self, role: EntityRole) -> tuple[DocumentRequirement, ...]:
        return self.required_documents.get(role, ())

    def with_required_fields(self, role: EntityRole, fields: tuple[str, ...]) -> CompliancePolicy:
        """Return a copy requiring ``fields`` for ``role``; unknown fields raise ``ValueError``."""

        unknown = [name for name in fields if field_spec(role, name) is None]
        if unknown:
            raise ValueError(f"Unknown {role} fields: {', '.join(unknown)}")
        updated = dict(self.required_fields)
        updated[role] = fields
        return replace(self, required_fields=MappingProxyType(updated))


DEFAULT_COMPLIANCE_POLICY = CompliancePolicy()


@dataclass(frozen=True, slots=True, kw_only=True)
class ComplianceResult:
    role: EntityRole
    missing_fields: frozenset[str]
    missing_documents: frozenset[str]
    notes: tuple[str, ...]
    discrepancies: tuple[Discrepancy, ...]
    advisory_text: str

    @property
    def is_complete(self) -> bool:
        return self.advisory_text == COMPLETE


def evaluate(
    record: EntityRecord,
    role: EntityRole | None = None,
    *,
    policy: CompliancePolicy = DEFAULT_COMPLIANCE_POLICY,
) -> ComplianceResult:
    """Compute missing fields, missing documents and an advisory for ``record``.

    ``role`` defaults to the record's own role; passing a different one raises
    ``ValueError``.
    """

    role = role or record.role
    if role is not record.role:
        raise ValueError(f"cannot evaluate a {record.role} record as {role}")

    missing_fields = [name for name in policy.fields_for(role) if not _present(record, name)]
    missing_documents = [
        requirement.label
        for requirement in policy.documents_for(role)
        if not _has_document(record, requirement)
    ]
    notes = [rule.message() for rule in policy.phone_rules if _violates(record, rule)]
    discrepancies = record.discrepancy_list

    sentences = [f"Missing {name}" for name in missing_fields]
    sentences += [f"Missing {label}" for label in missing_documents]
    sentences += notes
    sentences += [discrepancy.describe() for discrepancy in discrepancies]

    return ComplianceResult(
        role=role,
        missing_fields=frozenset(missing_fields),
        missing_documents=frozenset(missing_documents),
        notes=tuple(notes),
        discrepancies=discrepancies,
        advisory_text="; ".join(sentences) if sentences else COMPLETE,
    )


def suggest_status(result: ComplianceResult) -> VerificationStatus:
    """Map an evaluation to the status a reviewer would most likely set."""

    if result.discrepancies:
        return VerificationStatus.NOT_VERIFIED
    if result.missing_fields or result.missing_documents or result.notes:
        return VerificationStatus.PENDING
    return VerificationStatus.VERIFIED


def _values(record: EntityRecord, name: str) -> list[str]:
    spec = field_spec(record.role, name)
    if spec is None:
        return []
    value = getattr(record, spec.attribute)
    match spec.kind:
        case FieldKind.PROVENANCE:
            return [text for text, _source in value.values() if text.strip()]
        case FieldKind.MEMBER:
            return sorted(value)
        case FieldKind.SCALAR | FieldKind.FLAG:
            return [str(value)] if value is not None and str(value).strip() else []


def _present(record: EntityRecord, name: str) -> bool:
    return bool(_values(record, name))


def _has_document(record: EntityRecord, requirement: DocumentRequirement) -> bool:
    spec = field_spec(record.role, requirement.field)
    if spec is None:
        return False
    if isinstance(record, MultiSourceRecord):
        provenance: FieldProvenance[str] = getattr(record, spec.attribute)
        return any(source.has_type(*requirement.document_types) for source in provenance.sources())
    if isinstance(record, ScalarRecord):
        document_type = described_type(getattr(record, spec.source_attribute) or "")
        return document_type_matches(document_type, *requirement.document_types)
    return False


def _violates(record: EntityRecord, rule: LocalPhoneRule) -> bool:
    nationalities = _values(record, "nationality")
    phones = _values(record, "phone")
    if not phones or not any(rule.nationality in value.lower() for value in nationalities):
        return False
    return not any(rule.prefix in phone for phone in phones)
