"""Shared merge contracts.

This module intentionally holds only:
- the ``FieldGuess`` input shape produced by extraction adapters
- the tagged-union ``MergeError`` and ``MergeOutcome`` result types
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from kycrecon.domain.model import EntityKey, EntityRecord, SourceRef


@dataclass(frozen=True, slots=True, kw_only=True)
class FieldGuess:
    """One value for one field of one entity, as read from one document.

    ``source`` and ``value`` are optional at the type level so adapters can pass
    incomplete extractions through; the engine reports them as malformed.
    """

    entity_key: EntityKey
    field: str
    value: str | None
    source: SourceRef | None

    @property
    def document_id(self) -> str | None:
        return self.source.document_id if self.source is not None else None


class MergeErrorKind(StrEnum):
    LOCKED = "locked"
    ROLE_MISMATCH = "role_mismatch"
    MALFORMED_GUESS = "malformed_guess"


@dataclass(frozen=True, slots=True, kw_only=True)
class LockedRecord:
    """The record is ``not_verified`` and its role is locked."""

    key: EntityKey
    reason: str
    kind: Literal[MergeErrorKind.LOCKED] = MergeErrorKind.LOCKED


@dataclass(frozen=True, slots=True, kw_only=True)
class RoleMismatch:
    """A guess names a field the entity's role does not track."""

    key: EntityKey
    field: str
    reason: str
    kind: Literal[MergeErrorKind.ROLE_MISMATCH] = MergeErrorKind.ROLE_MISMATCH


@dataclass(frozen=True, slots=True, kw_only=True)
class MalformedGuess:
    """A guess is missing its document id, field or value."""

    key: EntityKey
    guess: FieldGuess
    reason: str
    kind: Literal[MergeErrorKind.MALFORMED_GUESS] = MergeErrorKind.MALFORMED_GUESS


type MergeError = LockedRecord | RoleMismatch | MalformedGuess


@dataclass(frozen=True, slots=True, kw_only=True)
class MergeSuccess:
    record: EntityRecord
    changed: bool
    status: Literal["ok"] = "ok"


@dataclass(frozen=True, slots=True, kw_only=True)
class MergeFailure:
    error: MergeError
    status: Literal["error"] = "error"

    @property
    def key(self) -> EntityKey:
        return self.error.key


type MergeOutcome = MergeSuccess | MergeFailure
