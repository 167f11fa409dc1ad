"""Discrepancy detection over multi-source records.

The detector only flags disagreement; it never picks a winning value.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from kycrecon.domain.model import Comparison, Discrepancy

from .fields import provenance_fields
from .normalize import normalize_value

if TYPE_CHECKING:
    from kycrecon.domain.model import FieldProvenance, MultiSourceRecord


def detect_field_discrepancy(
    field: str,
    provenance: FieldProvenance[str],
    comparison: Comparison,
) -> Discrepancy | None:
    """Return a discrepancy if the field's sources disagree after normalization."""

    if comparison is Comparison.NONE or len(provenance) < 2:
        return None

    raw_values: dict[str, None] = {}
    normalized: set[str] = set()
    for value, _source in provenance.values():
        raw_values.setdefault(value, None)
        normalized.add(normalize_value(value, comparison))

    if len(normalized) <= 1:
        return None
    return Discrepancy(field=field, values=tuple(raw_values), sources=provenance.sources())


def detect_discrepancies(record: MultiSourceRecord) -> list[Discrepancy]:
    """Recompute the full discrepancy list for ``record`` in field registry order."""

    discrepancies: list[Discrepancy] = []
    for spec in provenance_fields(record.role):
        provenance: FieldProvenance[str] = getattr(record, spec.attribute)
        found = detect_field_discrepancy(spec.name, provenance, spec.comparison)
        if found is not None:
            discrepancies.append(found)
    return discrepancies
