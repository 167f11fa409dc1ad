"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class EntityRole(StrEnum):
    """Discriminator for the four tracked record shapes."""

    INDIVIDUAL = "individual"
    COMPANY = "company"
    DIRECTOR = "director"
    SHAREHOLDER = "shareholder"

    @property
    def is_company_scoped(self) -> bool:
        """Director/shareholder records are attached to exactly one company."""
        return self in (EntityRole.DIRECTOR, EntityRole.SHAREHOLDER)


class VerificationStatus(StrEnum):
    PENDING = "pending"
    VERIFIED = "verified"
    NOT_VERIFIED = "not_verified"
    BENEFICIAL_OWNERSHIP_INCOMPLETE = "beneficial_ownership_incomplete"

    @classmethod
    def parse(cls, value: str) -> VerificationStatus:
        """Parse a status, accepting the legacy ``notverified`` spelling."""

        normalized = value.strip().lower().replace("-", "_")
        if normalized == "notverified":
            return cls.NOT_VERIFIED
        return cls(normalized)


class DocumentType(StrEnum):
    """Document classifications assigned upstream before extraction."""

    IDENTITY_DOCUMENT = "identity_document"
    PROOF_OF_ADDRESS = "proof_of_address"
    COMPANY_REGISTRY = "company_registry"
    SHAREHOLDER_REGISTRY = "shareholder_registry"
    DIRECTOR_REGISTRY = "director_registry"
    DIRECTOR_APPOINTMENT = "director_appointment"
    COMPANY_PROFILE = "company_profile"
    FINANCIAL_STATEMENT = "financial_statement"
    BENEFICIAL_OWNER_DECLARATION = "beneficial_owner_declaration"
    ORGANIZATIONAL_CHART = "organizational_chart"
    CERTIFICATE_OF_INCORPORATION = "certificate_of_incorporation"
    MEMORANDUM_OF_ASSOCIATION = "memorandum_of_association"
    OTHER = "other"
    UNKNOWN = "unknown"


class Comparison(StrEnum):
    """How values of a field are normalized before discrepancy comparison."""

    TEXT = "text"
    IDENTIFIER = "identifier"
    NUMERIC = "numeric"
    NONE = "none"  # multi-valued; never flagged
