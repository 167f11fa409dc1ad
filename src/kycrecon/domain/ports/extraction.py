"""Port for sources of per-document field guesses."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from kycrecon.domain.model import SourceRef
    from kycrecon.domain.reconciliation.contracts import FieldGuess


@dataclass(slots=True)
class ExtractionBatch:
    """Guesses produced for one client plus the documents they came from."""

    client_id: str
    guesses: list[FieldGuess] = field(default_factory=list["FieldGuess"])
    documents: list[SourceRef] = field(default_factory=list["SourceRef"])


@runtime_checkable
class ExtractionSource(Protocol):
    """Callable port yielding the guesses extracted for a client."""

    def __call__(self, *, client_id: str) -> ExtractionBatch: ...


__all__ = ["ExtractionBatch", "ExtractionSource"]
