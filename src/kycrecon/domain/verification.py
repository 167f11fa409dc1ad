"""Verification state machine.

Statuses only change through an explicit status update; the merge engine
reads the state but never transitions it. Every status is reachable from
every other status so a reviewer can always correct a mistake.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from kycrecon.domain.model import VerificationStatus

if TYPE_CHECKING:
    from kycrecon.domain.model import EntityRole
    from kycrecon.domain.reconciliation.policy import LockPolicy


@dataclass(frozen=True, slots=True)
class VerificationState:
    status: VerificationStatus = VerificationStatus.PENDING

    @classmethod
    def parse(cls, value: str | VerificationStatus) -> VerificationState:
        if isinstance(value, VerificationStatus):
            return cls(value)
        return cls(VerificationStatus.parse(value))

    @property
    def is_locked(self) -> bool:
        return self.status is VerificationStatus.NOT_VERIFIED

    def transition_to(self, status: VerificationStatus) -> VerificationState:
        return VerificationState(status)

    def allows_merge(self, *, batch_is_empty: bool, role: EntityRole, policy: LockPolicy) -> bool:
        """Single lock check used by the merge engine. Empty batches always pass."""
        if batch_is_empty:
            return True
        return not (self.is_locked and policy.locks(role))
