"""Lock policy: which roles refuse automated merges once ``not_verified``."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from kycrecon.domain.model import EntityRole

DEFAULT_LOCKED_ROLES = frozenset({EntityRole.DIRECTOR, EntityRole.SHAREHOLDER})


@dataclass(frozen=True, slots=True)
class LockPolicy:
    """Per-role lock switch.

    Director and shareholder records lock by default; individual and company
    records keep accepting new sources regardless of status.
    """

    locked_roles: frozenset[EntityRole] = field(default=DEFAULT_LOCKED_ROLES)

    @classmethod
    def for_roles(cls, roles: Iterable[EntityRole | str]) -> LockPolicy:
        return cls(locked_roles=frozenset(EntityRole(role) for role in roles))

    def locks(self, role: EntityRole) -> bool:
        return role in self.locked_roles


DEFAULT_LOCK_POLICY = LockPolicy()
