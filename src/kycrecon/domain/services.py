"""Application services over the persistence ports.

Each entity is reconciled in its own unit of work so one entity's failure or
conflict never rolls back another's. Writes for the same key are serialized
through ``KeyedLocks``; writers in other processes are caught by the
repository's version check and retried with a fresh load.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from kycrecon.domain.compliance import DEFAULT_COMPLIANCE_POLICY, evaluate
from kycrecon.domain.locks import KeyedLocks
from kycrecon.domain.model import (
    CompanyRecord,
    EntityKey,
    EntityRole,
    IndividualRecord,
    VerificationStatus,
    company_key,
    exact_name,
    new_record,
)
from kycrecon.domain.ports.persistence import EntityNotFoundError, PersistenceConflictError
from kycrecon.domain.reconciliation import (
    DEFAULT_LOCK_POLICY,
    MergeFailure,
    group_by_entity,
    merge,
)
from kycrecon.domain.reporting import summarize_records
from kycrecon.domain.role_assignment import MISSING_ALL, director_guesses, shareholder_guesses
from kycrecon.domain.verification import VerificationState

DEFAULT_MAX_CONFLICT_RETRIES = 3

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from kycrecon.domain.compliance import CompliancePolicy, ComplianceResult
    from kycrecon.domain.model import EntityRecord, NameNormalizer, SourceRef
    from kycrecon.domain.ports.unit_of_work import KycUnitOfWork
    from kycrecon.domain.reconciliation import FieldGuess, LockPolicy, MergeError
    from kycrecon.domain.reporting import KycSummary

    type UnitOfWorkFactory = Callable[[], KycUnitOfWork]

log = logging.getLogger(__name__)

_LOCKS: KeyedLocks[EntityKey] = KeyedLocks()


def _locks_or_default(locks: KeyedLocks[EntityKey] | None) -> KeyedLocks[EntityKey]:
    # an idle KeyedLocks is falsy, so test for None explicitly
    return _LOCKS if locks is None else locks


@dataclass(slots=True)
class ReconcileResult:
    """Outcome of a reconciliation run, one bucket per entity key."""

    saved: list[EntityKey] = field(default_factory=list["EntityKey"])
    unchanged: list[EntityKey] = field(default_factory=list["EntityKey"])
    failures: list[MergeError] = field(default_factory=list["MergeError"])
    conflicts: list[EntityKey] = field(default_factory=list["EntityKey"])

    @property
    def ok(self) -> bool:
        return not self.failures and not self.conflicts

    def extend(self, other: ReconcileResult) -> None:
        self.saved.extend(other.saved)
        self.unchanged.extend(other.unchanged)
        self.failures.extend(other.failures)
        self.conflicts.extend(other.conflicts)


def register_documents(
    client_id: str,
    documents: Iterable[SourceRef],
    *,
    unit_of_work_factory: UnitOfWorkFactory,
) -> int:
    registered = 0
    with unit_of_work_factory() as uow:
        for source in documents:
            uow.repositories.documents.add(client_id, source)
            registered += 1
        uow.commit()
    return registered


def reconcile_guesses(
    guesses: Iterable[FieldGuess],
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    lock_policy: LockPolicy = DEFAULT_LOCK_POLICY,
    normalizer: NameNormalizer = exact_name,
    max_conflict_retries: int = DEFAULT_MAX_CONFLICT_RETRIES,
    locks: KeyedLocks[EntityKey] | None = None,
) -> ReconcileResult:
    """Load, merge and save every entity referenced by ``guesses``."""

    active_locks = _locks_or_default(locks)
    result = ReconcileResult()
    for key, batch in group_by_entity(guesses, normalizer=normalizer).items():
        with active_locks.hold(key):
            _reconcile_entity(
                key,
                batch,
                result,
                unit_of_work_factory=unit_of_work_factory,
                lock_policy=lock_policy,
                normalizer=normalizer,
                max_conflict_retries=max_conflict_retries,
            )
    log.info(
        "Reconciled %d entities: saved=%d unchanged=%d failed=%d conflicts=%d",
        len(result.saved) + len(result.unchanged) + len(result.failures) + len(result.conflicts),
        len(result.saved),
        len(result.unchanged),
        len(result.failures),
        len(result.conflicts),
    )
    return result


def _reconcile_entity(
    key: EntityKey,
    batch: list[FieldGuess],
    result: ReconcileResult,
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    lock_policy: LockPolicy,
    normalizer: NameNormalizer,
    max_conflict_retries: int,
) -> None:
    for attempt in range(max_conflict_retries + 1):
        with unit_of_work_factory() as uow:
            existing = uow.repositories.entities.load(key)
            outcome = merge(existing, batch, key=key, policy=lock_policy, normalizer=normalizer)
            if isinstance(outcome, MergeFailure):
                log.warning("Merge failed for %s: %s", key, outcome.error.reason)
                result.failures.append(outcome.error)
                return
            if not outcome.changed:
                result.unchanged.append(key)
                return
            try:
                uow.repositories.entities.save(outcome.record)
                uow.commit()
            except PersistenceConflictError:
                uow.rollback()
                log.warning(
                    "Version conflict for %s (attempt %d/%d)",
                    key,
                    attempt + 1,
                    max_conflict_retries + 1,
                )
                continue
            result.saved.append(key)
            return
    result.conflicts.append(key)


def _update_record(
    key: EntityKey,
    change: Callable[[EntityRecord | None], EntityRecord | None],
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    max_conflict_retries: int,
) -> EntityRecord | None:
    """Apply ``change`` to the stored record and save, retrying on conflicts.

    ``change`` returns the record to save or ``None`` to leave storage untouched.
    """

    attempt = 0
    while True:
        with unit_of_work_factory() as uow:
            updated = change(uow.repositories.entities.load(key))
            if updated is None:
                return None
            try:
                uow.repositories.entities.save(updated)
                uow.commit()
            except PersistenceConflictError:
                uow.rollback()
                if attempt >= max_conflict_retries:
                    raise
                attempt += 1
                log.warning("Version conflict updating %s; reloading", key)
                continue
            return updated


def update_verification_status(
    key: EntityKey,
    status: VerificationStatus | str,
    kyc_status: str | None = None,
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    normalizer: NameNormalizer = exact_name,
    max_conflict_retries: int = DEFAULT_MAX_CONFLICT_RETRIES,
    locks: KeyedLocks[EntityKey] | None = None,
) -> EntityRecord:
    """Set a record's verification status; every transition is allowed.

    Raises ``EntityNotFoundError`` for unknown keys.
    """

    target = status if isinstance(status, VerificationStatus) else VerificationStatus.parse(status)
    lookup = key.normalized(normalizer)

    def change(record: EntityRecord | None) -> EntityRecord:
        if record is None:
            raise EntityNotFoundError(lookup)
        state = VerificationState(record.verification_status).transition_to(target)
        updated = record.copy()
        updated.verification_status = state.status
        if kyc_status is not None:
            updated.kyc_status = kyc_status
        return updated

    active_locks = _locks_or_default(locks)
    with active_locks.hold(lookup):
        updated = _update_record(
            lookup,
            change,
            unit_of_work_factory=unit_of_work_factory,
            max_conflict_retries=max_conflict_retries,
        )
    if updated is None:  # change() never declines
        raise EntityNotFoundError(lookup)
    log.info("Set %s verification status to %s", lookup, updated.verification_status)
    return updated


def load_record(
    key: EntityKey,
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    normalizer: NameNormalizer = exact_name,
) -> EntityRecord:
    lookup = key.normalized(normalizer)
    with unit_of_work_factory() as uow:
        record = uow.repositories.entities.load(lookup)
    if record is None:
        raise EntityNotFoundError(lookup)
    return record


def evaluate_compliance(
    key: EntityKey,
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    policy: CompliancePolicy = DEFAULT_COMPLIANCE_POLICY,
    normalizer: NameNormalizer = exact_name,
) -> ComplianceResult:
    """Read-only compliance query; raises ``EntityNotFoundError`` for unknown keys."""

    record = load_record(key, unit_of_work_factory=unit_of_work_factory, normalizer=normalizer)
    return evaluate(record, key.role, policy=policy)


def summarize(
    client_id: str | None = None,
    *,
    unit_of_work_factory: UnitOfWorkFactory,
) -> KycSummary:
    with unit_of_work_factory() as uow:
        records = uow.repositories.entities.list_records(client_id)
        total_documents = uow.repositories.documents.count(client_id)
    return summarize_records(records, total_documents=total_documents)


def assign_company_roles(
    client_id: str,
    company_name: str,
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    lock_policy: LockPolicy = DEFAULT_LOCK_POLICY,
    compliance_policy: CompliancePolicy = DEFAULT_COMPLIANCE_POLICY,
    normalizer: NameNormalizer = exact_name,
    max_conflict_retries: int = DEFAULT_MAX_CONFLICT_RETRIES,
    locks: KeyedLocks[EntityKey] | None = None,
) -> ReconcileResult:
    """Refresh the director and shareholder records of one company.

    Listed names with a matching record receive scalar guesses; names without
    one get an empty record flagged as missing all information. Saved records
    get their ``kyc_status`` refreshed from a compliance evaluation.
    """

    company = load_record(
        company_key(client_id, company_name),
        unit_of_work_factory=unit_of_work_factory,
        normalizer=normalizer,
    )
    if not isinstance(company, CompanyRecord):
        raise TypeError(f"expected a company record for {company.key}")

    with unit_of_work_factory() as uow:
        individuals = [
            record
            for record in uow.repositories.entities.list_records(client_id, EntityRole.INDIVIDUAL)
            if isinstance(record, IndividualRecord)
        ]
        companies = [
            record
            for record in uow.repositories.entities.list_records(client_id, EntityRole.COMPANY)
            if isinstance(record, CompanyRecord) and record.key != company.key
        ]

    directors = director_guesses(company, individuals)
    shareholders = shareholder_guesses(company, individuals, companies)
    result = reconcile_guesses(
        [*directors.guesses, *shareholders.guesses],
        unit_of_work_factory=unit_of_work_factory,
        lock_policy=lock_policy,
        normalizer=normalizer,
        max_conflict_retries=max_conflict_retries,
        locks=locks,
    )

    merged = list(result.saved)
    for key in [*directors.unmatched, *shareholders.unmatched]:
        created = _ensure_placeholder(
            key.normalized(normalizer),
            unit_of_work_factory=unit_of_work_factory,
            max_conflict_retries=max_conflict_retries,
            locks=locks,
        )
        (result.saved if created else result.unchanged).append(key)

    for key in merged:
        _refresh_kyc_status(
            key,
            compliance_policy,
            unit_of_work_factory=unit_of_work_factory,
            max_conflict_retries=max_conflict_retries,
            locks=locks,
        )
    return result


def _ensure_placeholder(
    key: EntityKey,
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    max_conflict_retries: int,
    locks: KeyedLocks[EntityKey] | None,
) -> bool:
    def change(record: EntityRecord | None) -> EntityRecord | None:
        if record is not None:
            return None
        placeholder = new_record(key)
        placeholder.kyc_status = MISSING_ALL
        return placeholder

    with _locks_or_default(locks).hold(key):
        created = _update_record(
            key,
            change,
            unit_of_work_factory=unit_of_work_factory,
            max_conflict_retries=max_conflict_retries,
        )
    return created is not None


def _refresh_kyc_status(
    key: EntityKey,
    policy: CompliancePolicy,
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    max_conflict_retries: int,
    locks: KeyedLocks[EntityKey] | None,
) -> None:
    def change(record: EntityRecord | None) -> EntityRecord | None:
        if record is None:
            return None
        advisory = evaluate(record, policy=policy).advisory_text
        if advisory == record.kyc_status:
            return None
        updated = record.copy()
        updated.kyc_status = advisory
        return updated

    with _locks_or_default(locks).hold(key):
        _update_record(
            key,
            change,
            unit_of_work_factory=unit_of_work_factory,
            max_conflict_retries=max_conflict_retries,
        )
