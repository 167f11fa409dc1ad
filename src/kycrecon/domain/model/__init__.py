"""Public domain model surface."""

from __future__ import annotations

from kycrecon.domain.model.entity import Entity
from kycrecon.domain.model.enums import Comparison, DocumentType, EntityRole, VerificationStatus
from kycrecon.domain.model.keys import (
    EntityKey,
    NameNormalizer,
    casefold_name,
    company_key,
    director_key,
    exact_name,
    individual_key,
    shareholder_key,
)
from kycrecon.domain.model.provenance import (
    FieldProvenance,
    ProvenanceEntry,
    SourceRef,
    described_type,
    document_type_matches,
)
from kycrecon.domain.model.records import (
    RECORD_TYPE_BY_ROLE,
    CompanyRecord,
    DirectorRecord,
    Discrepancy,
    EntityRecord,
    IndividualRecord,
    MultiSourceRecord,
    ScalarRecord,
    ShareholderRecord,
    new_record,
)

__all__ = [  # noqa: RUF022
    # base
    "Entity",
    # enums
    "Comparison",
    "DocumentType",
    "EntityRole",
    "VerificationStatus",
    # identity
    "EntityKey",
    "NameNormalizer",
    "casefold_name",
    "exact_name",
    "individual_key",
    "company_key",
    "director_key",
    "shareholder_key",
    # provenance
    "SourceRef",
    "ProvenanceEntry",
    "FieldProvenance",
    "described_type",
    "document_type_matches",
    # records
    "Discrepancy",
    "EntityRecord",
    "MultiSourceRecord",
    "ScalarRecord",
    "IndividualRecord",
    "CompanyRecord",
    "DirectorRecord",
    "ShareholderRecord",
    "RECORD_TYPE_BY_ROLE",
    "new_record",
]
