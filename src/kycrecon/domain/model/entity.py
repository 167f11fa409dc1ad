"""
Base building blocks:
identity and the role discriminator contract.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar
from uuid import UUID, uuid4

if TYPE_CHECKING:
    from kycrecon.domain.model.enums import EntityRole


def new_id() -> UUID:
    return uuid4()


@dataclass(eq=False, kw_only=True)
class Entity:
    """Internal identity exists immediately in the domain."""

    id: UUID = field(default_factory=new_id)

    # class-level discriminator; subclasses must override
    ROLE: ClassVar[EntityRole]

    @property
    def role(self) -> EntityRole:
        return self.ROLE
