"""Aggregate counts over persisted records."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from kycrecon.domain.model import EntityRole, VerificationStatus

if TYPE_CHECKING:
    from collections.abc import Iterable

    from kycrecon.domain.model import EntityRecord


@dataclass(frozen=True, slots=True, kw_only=True)
class KycSummary:
    total_entities: int
    entities_with_discrepancies: int
    total_documents: int
    by_role: dict[EntityRole, int] = field(default_factory=dict["EntityRole", "int"])
    with_discrepancies_by_role: dict[EntityRole, int] = field(
        default_factory=dict["EntityRole", "int"]
    )
    by_status: dict[VerificationStatus, int] = field(
        default_factory=dict["VerificationStatus", "int"]
    )

    def count(self, role: EntityRole) -> int:
        return self.by_role.get(role, 0)

    def as_dict(self) -> dict[str, int]:
        """Flat view using the dashboard's historical key names."""

        return {
            "total_entities": self.total_entities,
            "total_individuals": self.count(EntityRole.INDIVIDUAL),
            "total_companies": self.count(EntityRole.COMPANY),
            "total_directors": self.count(EntityRole.DIRECTOR),
            "total_shareholders": self.count(EntityRole.SHAREHOLDER),
            "total_documents": self.total_documents,
            "entities_with_discrepancies": self.entities_with_discrepancies,
            "individuals_with_discrepancies": self.with_discrepancies_by_role.get(
                EntityRole.INDIVIDUAL, 0
            ),
            "companies_with_discrepancies": self.with_discrepancies_by_role.get(
                EntityRole.COMPANY, 0
            ),
        }


def summarize_records(records: Iterable[EntityRecord], *, total_documents: int) -> KycSummary:
    by_role: Counter[EntityRole] = Counter()
    flagged: Counter[EntityRole] = Counter()
    by_status: Counter[VerificationStatus] = Counter()
    for record in records:
        by_role[record.role] += 1
        by_status[record.verification_status] += 1
        if record.discrepancy_list:
            flagged[record.role] += 1
    return KycSummary(
        total_entities=sum(by_role.values()),
        entities_with_discrepancies=sum(flagged.values()),
        total_documents=total_documents,
        by_role=dict(by_role),
        with_discrepancies_by_role=dict(flagged),
        by_status=dict(by_status),
    )
