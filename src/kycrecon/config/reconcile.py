"""Reconciliation and compliance policy settings."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final, Literal

from kycrecon.domain.compliance import DEFAULT_COMPLIANCE_POLICY, CompliancePolicy
from kycrecon.domain.model import EntityRole, casefold_name, exact_name
from kycrecon.domain.reconciliation.policy import DEFAULT_LOCKED_ROLES, LockPolicy

from .env import env_int, env_list, optional_env
from .errors import ConfigurationError

if TYPE_CHECKING:
    from kycrecon.domain.model import NameNormalizer

DEFAULT_MAX_CONFLICT_RETRIES: Final[int] = 3

type NameMatching = Literal["exact", "normalized"]


@dataclass(frozen=True, slots=True)
class ReconcileConfig:
    locked_roles: frozenset[EntityRole] = field(default=DEFAULT_LOCKED_ROLES)
    name_matching: NameMatching = "exact"
    max_conflict_retries: int = DEFAULT_MAX_CONFLICT_RETRIES
    compliance: CompliancePolicy = field(default=DEFAULT_COMPLIANCE_POLICY)

    def lock_policy(self) -> LockPolicy:
        return LockPolicy(locked_roles=self.locked_roles)

    def name_normalizer(self) -> NameNormalizer:
        return casefold_name if self.name_matching == "normalized" else exact_name


def _parse_roles(name: str, values: tuple[str, ...]) -> frozenset[EntityRole]:
    roles: set[EntityRole] = set()
    for value in values:
        try:
            roles.add(EntityRole(value))
        except ValueError as exc:
            raise ConfigurationError(f"{name}: unknown role {value!r}", variable=name) from exc
    return frozenset(roles)


def _name_matching() -> NameMatching:
    value = (optional_env("KYC_NAME_MATCHING") or "exact").lower()
    if value == "exact":
        return "exact"
    if value == "normalized":
        return "normalized"
    raise ConfigurationError(
        f"KYC_NAME_MATCHING must be 'exact' or 'normalized', got {value!r}",
        variable="KYC_NAME_MATCHING",
    )


def _compliance_policy() -> CompliancePolicy:
    """Apply ``KYC_REQUIRED_FIELDS_<ROLE>`` overrides to the default policy."""

    policy = DEFAULT_COMPLIANCE_POLICY
    for role in EntityRole:
        name = f"KYC_REQUIRED_FIELDS_{role.upper()}"
        if optional_env(name) is None:
            continue
        try:
            policy = policy.with_required_fields(role, env_list(name, ()))
        except ValueError as exc:
            raise ConfigurationError(f"{name}: {exc}", variable=name) from exc
    return policy


def get_reconcile_config() -> ReconcileConfig:
    locked = env_list("KYC_LOCKED_ROLES", tuple(sorted(DEFAULT_LOCKED_ROLES)))
    return ReconcileConfig(
        locked_roles=_parse_roles("KYC_LOCKED_ROLES", locked),
        name_matching=_name_matching(),
        max_conflict_retries=env_int("KYC_MAX_CONFLICT_RETRIES", DEFAULT_MAX_CONFLICT_RETRIES),
        compliance=_compliance_policy(),
    )
