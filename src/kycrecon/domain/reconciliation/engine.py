"""Merge engine.

``merge`` folds one entity's batch of field guesses into its current record.
It is a pure function: the input record is copied, never mutated, and every
problem with the guesses or the record's state comes back as a ``MergeFailure``
instead of an exception. Handing ``merge`` a record stored under a different
key is a caller error and raises ``ValueError``. Callers load the record before
and persist the result after.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import TYPE_CHECKING

from kycrecon.domain.model import MultiSourceRecord, exact_name, new_record
from kycrecon.domain.verification import VerificationState

from .contracts import (
    LockedRecord,
    MalformedGuess,
    MergeFailure,
    MergeSuccess,
    RoleMismatch,
)
from .discrepancy import detect_discrepancies
from .fields import FieldKind, field_spec
from .policy import DEFAULT_LOCK_POLICY

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence
    from datetime import datetime

    from kycrecon.domain.model import EntityKey, EntityRecord, NameNormalizer

    from .contracts import FieldGuess, MergeError, MergeOutcome
    from .fields import FieldSpec
    from .policy import LockPolicy

log = logging.getLogger(__name__)

_TRUE_FLAGS = frozenset({"true", "yes", "y", "1"})


def merge(
    existing: EntityRecord | None,
    batch: Sequence[FieldGuess],
    *,
    key: EntityKey,
    policy: LockPolicy = DEFAULT_LOCK_POLICY,
    normalizer: NameNormalizer = exact_name,
    now: datetime | None = None,
) -> MergeOutcome:
    """Merge ``batch`` into ``existing`` (or a new empty record for ``key``).

    Checks run in order: well-formedness, role, lock. The first failing check
    decides the outcome and nothing is applied. Raises ``ValueError`` when
    ``existing`` belongs to a different key.
    """

    if existing is not None and existing.key != key:
        raise ValueError(f"record key {existing.key} does not match merge key {key}")

    record = existing if existing is not None else new_record(key, created_at=now)

    error = _validate(batch, key=key, normalizer=normalizer)
    if error is not None:
        return MergeFailure(error=error)

    state = VerificationState(record.verification_status)
    if not state.allows_merge(batch_is_empty=not batch, role=key.role, policy=policy):
        log.info("Rejected merge of %d guesses into locked record %s", len(batch), key)
        return MergeFailure(
            error=LockedRecord(key=key, reason=f"{key.role} record is {record.verification_status}")
        )

    if not batch:
        return MergeSuccess(record=record, changed=existing is None)

    updated = record.copy()
    for guess in batch:
        spec = field_spec(key.role, guess.field)
        if spec is not None:
            _apply(updated, spec, guess)

    if isinstance(updated, MultiSourceRecord):
        updated.discrepancies = detect_discrepancies(updated)

    changed = existing is None or updated != existing
    log.debug("Merged %d guesses into %s (changed=%s)", len(batch), key, changed)
    return MergeSuccess(record=updated, changed=changed)


def merge_batch(
    existing_by_key: Mapping[EntityKey, EntityRecord],
    batch: Iterable[FieldGuess],
    *,
    policy: LockPolicy = DEFAULT_LOCK_POLICY,
    normalizer: NameNormalizer = exact_name,
    now: datetime | None = None,
) -> dict[EntityKey, MergeOutcome]:
    """Group ``batch`` by entity and merge each group independently.

    A failure for one entity never affects the outcome of another.
    """

    outcomes: dict[EntityKey, MergeOutcome] = {}
    for key, guesses in group_by_entity(batch, normalizer=normalizer).items():
        outcomes[key] = merge(
            existing_by_key.get(key),
            guesses,
            key=key,
            policy=policy,
            normalizer=normalizer,
            now=now,
        )
    return outcomes


def group_by_entity(
    batch: Iterable[FieldGuess],
    *,
    normalizer: NameNormalizer = exact_name,
) -> dict[EntityKey, list[FieldGuess]]:
    grouped: defaultdict[EntityKey, list[FieldGuess]] = defaultdict(list)
    for guess in batch:
        grouped[guess.entity_key.normalized(normalizer)].append(guess)
    return dict(grouped)


def _validate(
    batch: Sequence[FieldGuess],
    *,
    key: EntityKey,
    normalizer: NameNormalizer,
) -> MergeError | None:
    for guess in batch:
        reason = _malformed_reason(guess)
        if reason is None and guess.entity_key.normalized(normalizer) != key:
            reason = f"guess targets {guess.entity_key}, not {key}"
        if reason is not None:
            return MalformedGuess(key=key, guess=guess, reason=reason)

    for guess in batch:
        if field_spec(key.role, guess.field) is None:
            return RoleMismatch(
                key=key,
                field=guess.field,
                reason=f"{guess.field!r} is not a {key.role} field",
            )
    return None


def _malformed_reason(guess: FieldGuess) -> str | None:
    if guess.source is None:
        return "missing document id"
    if not guess.field or not guess.field.strip():
        return "missing field"
    if guess.value is None or not guess.value.strip():
        return f"missing value for {guess.field!r}"
    return None


def _apply(record: EntityRecord, spec: FieldSpec, guess: FieldGuess) -> None:
    value = guess.value
    source = guess.source
    if value is None or source is None:
        return  # rejected by _validate
    match spec.kind:
        case FieldKind.PROVENANCE:
            getattr(record, spec.attribute).upsert(source.document_id, value, source)
        case FieldKind.MEMBER:
            getattr(record, spec.attribute).add(value.strip())
        case FieldKind.SCALAR:
            setattr(record, spec.attribute, value.strip())
            setattr(record, spec.source_attribute, source.describe())
        case FieldKind.FLAG:
            setattr(record, spec.attribute, value.strip().lower() in _TRUE_FLAGS)
