"""Domain port definitions for adapters."""

from __future__ import annotations

from .extraction import ExtractionBatch, ExtractionSource
from .persistence import (
    DocumentRepository,
    EntityNotFoundError,
    EntityRepository,
    PersistenceConflictError,
)
from .unit_of_work import KycRepositories, KycUnitOfWork, RepositoryCollection, UnitOfWork

__all__ = [
    "DocumentRepository",
    "EntityNotFoundError",
    "EntityRepository",
    "ExtractionBatch",
    "ExtractionSource",
    "KycRepositories",
    "KycUnitOfWork",
    "PersistenceConflictError",
    "RepositoryCollection",
    "UnitOfWork",
]
