"""Application orchestration entry points."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from kycrecon.adapters.extraction import JsonFileExtractionSource
from kycrecon.adapters.sqlalchemy.unit_of_work import SqlAlchemyKycUnitOfWork, is_started, startup
from kycrecon.config import get_reconcile_config
from kycrecon.domain.services import (
    assign_company_roles,
    evaluate_compliance,
    reconcile_guesses,
    register_documents,
    summarize,
    update_verification_status,
)

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from kycrecon.config import ReconcileConfig
    from kycrecon.domain.compliance import ComplianceResult
    from kycrecon.domain.model import EntityKey, EntityRecord, VerificationStatus
    from kycrecon.domain.ports.extraction import ExtractionSource
    from kycrecon.domain.ports.unit_of_work import KycUnitOfWork
    from kycrecon.domain.reporting import KycSummary
    from kycrecon.domain.services import ReconcileResult

    type UnitOfWorkFactory = Callable[[], KycUnitOfWork]


log = getLogger(__name__)


def _resolve(
    unit_of_work_factory: UnitOfWorkFactory | None,
    config: ReconcileConfig | None,
) -> tuple[UnitOfWorkFactory, ReconcileConfig]:
    if unit_of_work_factory is None:
        if not is_started():
            startup()
        unit_of_work_factory = SqlAlchemyKycUnitOfWork
    return unit_of_work_factory, config or get_reconcile_config()


def ingest_extraction(
    client_id: str,
    *,
    paths: tuple[Path, ...] = (),
    source: ExtractionSource | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: ReconcileConfig | None = None,
) -> ReconcileResult:
    """Register the documents of an extraction run and reconcile its guesses."""

    uow_factory, settings = _resolve(unit_of_work_factory, config)
    effective_source = source or JsonFileExtractionSource(paths)
    batch = effective_source(client_id=client_id)
    log.info(
        "Starting reconciliation for client %s: guesses=%d, documents=%d",
        client_id,
        len(batch.guesses),
        len(batch.documents),
    )

    register_documents(client_id, batch.documents, unit_of_work_factory=uow_factory)
    result = reconcile_guesses(
        batch.guesses,
        unit_of_work_factory=uow_factory,
        lock_policy=settings.lock_policy(),
        normalizer=settings.name_normalizer(),
        max_conflict_retries=settings.max_conflict_retries,
    )

    log.info(
        "Finished reconciliation for client %s: saved=%d, unchanged=%d, failed=%d, conflicts=%d",
        client_id,
        len(result.saved),
        len(result.unchanged),
        len(result.failures),
        len(result.conflicts),
    )
    return result


def refresh_company_roles(
    client_id: str,
    company_name: str,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: ReconcileConfig | None = None,
) -> ReconcileResult:
    uow_factory, settings = _resolve(unit_of_work_factory, config)
    return assign_company_roles(
        client_id,
        company_name,
        unit_of_work_factory=uow_factory,
        lock_policy=settings.lock_policy(),
        compliance_policy=settings.compliance,
        normalizer=settings.name_normalizer(),
        max_conflict_retries=settings.max_conflict_retries,
    )


def set_verification_status(
    key: EntityKey,
    status: VerificationStatus | str,
    kyc_status: str | None = None,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: ReconcileConfig | None = None,
) -> EntityRecord:
    uow_factory, settings = _resolve(unit_of_work_factory, config)
    return update_verification_status(
        key,
        status,
        kyc_status,
        unit_of_work_factory=uow_factory,
        normalizer=settings.name_normalizer(),
        max_conflict_retries=settings.max_conflict_retries,
    )


def get_compliance(
    key: EntityKey,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: ReconcileConfig | None = None,
) -> ComplianceResult:
    uow_factory, settings = _resolve(unit_of_work_factory, config)
    return evaluate_compliance(
        key,
        unit_of_work_factory=uow_factory,
        policy=settings.compliance,
        normalizer=settings.name_normalizer(),
    )


def get_summary(
    client_id: str | None = None,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> KycSummary:
    uow_factory, _settings = _resolve(unit_of_work_factory, None)
    return summarize(client_id, unit_of_work_factory=uow_factory)
