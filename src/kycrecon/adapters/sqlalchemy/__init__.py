"""SQLAlchemy adapter package for kycrecon."""

from __future__ import annotations

from .mappings import TABLE_BY_ROLE, metadata
from .repositories import SqlAlchemyDocumentRepository, SqlAlchemyEntityRepository
from .unit_of_work import (
    SqlAlchemyKycUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "TABLE_BY_ROLE",
    "SqlAlchemyDocumentRepository",
    "SqlAlchemyEntityRepository",
    "SqlAlchemyKycUnitOfWork",
    "StartupError",
    "configured_engine",
    "is_started",
    "metadata",
    "shutdown",
    "startup",
]
