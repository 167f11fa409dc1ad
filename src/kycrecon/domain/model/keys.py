"""Entity identity keys.

Two extraction results refer to the same entity iff their client id, role and
name (plus owning company for directors/shareholders) match under the active
name normalizer. The default normalizer is exact matching.
"""

from __future__ import annotations

import unicodedata
from collections.abc import Callable
from dataclasses import dataclass, replace

from kycrecon.domain.model.enums import EntityRole

type NameNormalizer = Callable[[str], str]


def exact_name(name: str) -> str:
    return name


def casefold_name(name: str) -> str:
    """Case/whitespace-insensitive identity; opt-in via ``KYC_NAME_MATCHING=normalized``."""
    text = unicodedata.normalize("NFKC", name).casefold()
    return " ".join(text.split())


@dataclass(frozen=True, slots=True)
class EntityKey:
    """``(client_id, role, name)`` plus the owning company for company-scoped roles."""

    client_id: str
    role: EntityRole
    name: str
    company_name: str | None = None

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValueError("entity name must not be blank")
        if self.role.is_company_scoped:
            if not self.company_name or not self.company_name.strip():
                raise ValueError(f"{self.role} keys require a company_name")
        elif self.company_name is not None:
            raise ValueError(f"{self.role} keys must not carry a company_name")

    def normalized(self, normalizer: NameNormalizer = exact_name) -> EntityKey:
        company_name = normalizer(self.company_name) if self.company_name else None
        return replace(self, name=normalizer(self.name), company_name=company_name)

    def __str__(self) -> str:
        scope = f"{self.company_name}/" if self.company_name else ""
        return f"{self.client_id}:{self.role}:{scope}{self.name}"


def individual_key(client_id: str, name: str) -> EntityKey:
    return EntityKey(client_id=client_id, role=EntityRole.INDIVIDUAL, name=name)


def company_key(client_id: str, name: str) -> EntityKey:
    return EntityKey(client_id=client_id, role=EntityRole.COMPANY, name=name)


def director_key(client_id: str, company_name: str, name: str) -> EntityKey:
    return EntityKey(
        client_id=client_id, role=EntityRole.DIRECTOR, name=name, company_name=company_name
    )


def shareholder_key(client_id: str, company_name: str, name: str) -> EntityKey:
    return EntityKey(
        client_id=client_id, role=EntityRole.SHAREHOLDER, name=name, company_name=company_name
    )
