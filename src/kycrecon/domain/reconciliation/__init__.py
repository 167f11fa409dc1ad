"""Reconciliation core: fold per-document field guesses into entity records.

Flow per entity:
1) group guesses by entity key
2) validate shape and role
3) consult the verification lock
4) upsert provenance / overwrite scalars on a copy
5) recompute discrepancies
"""

from __future__ import annotations

from .contracts import (
    FieldGuess,
    LockedRecord,
    MalformedGuess,
    MergeError,
    MergeErrorKind,
    MergeFailure,
    MergeOutcome,
    MergeSuccess,
    RoleMismatch,
)
from .discrepancy import detect_discrepancies, detect_field_discrepancy
from .engine import group_by_entity, merge, merge_batch
from .fields import FIELDS_BY_ROLE, FieldKind, FieldSpec, field_spec
from .policy import DEFAULT_LOCK_POLICY, LockPolicy

__all__ = [
    "DEFAULT_LOCK_POLICY",
    "FIELDS_BY_ROLE",
    "FieldGuess",
    "FieldKind",
    "FieldSpec",
    "LockPolicy",
    "LockedRecord",
    "MalformedGuess",
    "MergeError",
    "MergeErrorKind",
    "MergeFailure",
    "MergeOutcome",
    "MergeSuccess",
    "RoleMismatch",
    "detect_discrepancies",
    "detect_field_discrepancy",
    "field_spec",
    "group_by_entity",
    "merge",
    "merge_batch",
]
