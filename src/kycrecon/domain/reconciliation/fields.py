"""Field registry: which guess fields each role tracks and how.

Guess field names are singular (``nationality``); multi-source record
attributes are plural where the source data is (``nationalities``).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from kycrecon.domain.model import Comparison, EntityRole


class FieldKind(StrEnum):
    PROVENANCE = "provenance"  # FieldProvenance upsert
    MEMBER = "member"  # add-only set membership
    SCALAR = "scalar"  # overwrite value and ``<attribute>_source``
    FLAG = "flag"  # boolean attribute, no source


@dataclass(frozen=True, slots=True)
class FieldSpec:
    name: str
    attribute: str
    kind: FieldKind
    comparison: Comparison = Comparison.NONE

    @property
    def scalar(self) -> bool:
        return self.kind in (FieldKind.SCALAR, FieldKind.FLAG)

    @property
    def source_attribute(self) -> str:
        return f"{self.attribute}_source"


def _provenance(name: str, attribute: str, comparison: Comparison) -> FieldSpec:
    return FieldSpec(name, attribute, FieldKind.PROVENANCE, comparison)


def _member(name: str, attribute: str) -> FieldSpec:
    return FieldSpec(name, attribute, FieldKind.MEMBER)


def _scalar(name: str) -> FieldSpec:
    return FieldSpec(name, name, FieldKind.SCALAR)


_INDIVIDUAL_FIELDS = (
    _provenance("full_name", "full_name", Comparison.TEXT),
    _member("alternative_name", "alternative_names"),
    _provenance("id_number", "id_numbers", Comparison.IDENTIFIER),
    _provenance("id_type", "id_types", Comparison.TEXT),
    _provenance("nationality", "nationalities", Comparison.TEXT),
    _provenance("address", "addresses", Comparison.TEXT),
    _provenance("email", "emails", Comparison.TEXT),
    _provenance("phone", "phones", Comparison.IDENTIFIER),
    _provenance("role", "roles", Comparison.NONE),
    _provenance("shares_owned", "shares_owned", Comparison.NUMERIC),
    _provenance("price_per_share", "price_per_share", Comparison.NUMERIC),
)

_COMPANY_FIELDS = (
    _provenance("company_name", "company_name", Comparison.TEXT),
    _member("alternative_name", "alternative_names"),
    _provenance("registration_number", "registration_number", Comparison.IDENTIFIER),
    _provenance("jurisdiction", "jurisdiction", Comparison.TEXT),
    _provenance("address", "address", Comparison.TEXT),
    _provenance("company_activities", "company_activities", Comparison.NONE),
    _provenance("shares_issued", "shares_issued", Comparison.NUMERIC),
    _provenance("price_per_share", "price_per_share", Comparison.NUMERIC),
    _member("director", "directors"),
    _member("shareholder", "shareholders"),
)

_DIRECTOR_FIELDS = tuple(
    _scalar(name) for name in ("id_number", "id_type", "nationality", "address", "phone", "email")
)

_SHAREHOLDER_FIELDS = (
    *_DIRECTOR_FIELDS,
    _scalar("shares_owned"),
    _scalar("price_per_share"),
    FieldSpec("is_company", "is_company", FieldKind.FLAG),
)

FIELDS_BY_ROLE: dict[EntityRole, dict[str, FieldSpec]] = {
    EntityRole.INDIVIDUAL: {spec.name: spec for spec in _INDIVIDUAL_FIELDS},
    EntityRole.COMPANY: {spec.name: spec for spec in _COMPANY_FIELDS},
    EntityRole.DIRECTOR: {spec.name: spec for spec in _DIRECTOR_FIELDS},
    EntityRole.SHAREHOLDER: {spec.name: spec for spec in _SHAREHOLDER_FIELDS},
}


def field_spec(role: EntityRole, name: str) -> FieldSpec | None:
    """Return the spec for guess field ``name`` on ``role``, or ``None`` if not tracked."""
    return FIELDS_BY_ROLE[role].get(name)


def provenance_fields(role: EntityRole) -> tuple[FieldSpec, ...]:
    return tuple(spec for spec in FIELDS_BY_ROLE[role].values() if spec.kind is FieldKind.PROVENANCE)
