from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import TYPE_CHECKING

import pytest

from kycrecon.domain.locks import KeyedLocks
from kycrecon.domain.model import (
    DirectorRecord,
    EntityKey,
    IndividualRecord,
    ShareholderRecord,
    VerificationStatus,
    casefold_name,
    company_key,
    director_key,
    individual_key,
    shareholder_key,
)
from kycrecon.domain.ports.persistence import EntityNotFoundError, PersistenceConflictError
from kycrecon.domain.reconciliation import LockedRecord
from kycrecon.domain.role_assignment import MISSING_ALL
from kycrecon.domain.services import (
    assign_company_roles,
    evaluate_compliance,
    load_record,
    reconcile_guesses,
    register_documents,
    summarize,
    update_verification_status,
)
from tests.helpers.records import CLIENT_ID, guesses_from, make_guess, make_source
from tests.helpers.unit_of_work import InMemoryStore, unit_of_work_factory

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from tests.helpers.unit_of_work import FakeUnitOfWork

JANE = individual_key(CLIENT_ID, "Jane Tan")
ACME = company_key(CLIENT_ID, "Acme")


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def uow_factory(store: InMemoryStore) -> Callable[[], FakeUnitOfWork]:
    return unit_of_work_factory(store)


def test_reconcile_saves_new_records_and_skips_unchanged(
    uow_factory: Callable[[], FakeUnitOfWork],
) -> None:
    batch = guesses_from(JANE, make_source("D1"), nationality="Singapore", email="j@example.com")

    first = reconcile_guesses(batch, unit_of_work_factory=uow_factory)
    second = reconcile_guesses(batch, unit_of_work_factory=uow_factory)

    assert first.saved == [JANE]
    assert second.saved == []
    assert second.unchanged == [JANE]
    record = load_record(JANE, unit_of_work_factory=uow_factory)
    assert record.version == 1


def test_failures_are_isolated_per_entity(uow_factory: Callable[[], FakeUnitOfWork]) -> None:
    john = individual_key(CLIENT_ID, "John Lim")
    batch = [make_guess(JANE, "email", None), make_guess(john, "email", "john@example.com")]

    result = reconcile_guesses(batch, unit_of_work_factory=uow_factory)

    assert result.saved == [john]
    assert [error.key for error in result.failures] == [JANE]
    assert not result.ok
    with pytest.raises(EntityNotFoundError):
        load_record(JANE, unit_of_work_factory=uow_factory)


def test_locked_shareholder_unlocks_after_status_update(
    uow_factory: Callable[[], FakeUnitOfWork],
) -> None:
    key = shareholder_key(CLIENT_ID, "Acme", "Jane Tan")
    reconcile_guesses(
        [make_guess(key, "shares_owned", "100", make_source("D1"))],
        unit_of_work_factory=uow_factory,
    )
    update_verification_status(
        key, VerificationStatus.NOT_VERIFIED, unit_of_work_factory=uow_factory
    )

    locked = reconcile_guesses(
        [make_guess(key, "shares_owned", "500", make_source("D2"))],
        unit_of_work_factory=uow_factory,
    )

    assert len(locked.failures) == 1
    assert isinstance(locked.failures[0], LockedRecord)
    stored = load_record(key, unit_of_work_factory=uow_factory)
    assert isinstance(stored, ShareholderRecord)
    assert stored.shares_owned == "100"

    updated = update_verification_status(
        key, "pending", "Re-review requested", unit_of_work_factory=uow_factory
    )
    assert updated.verification_status is VerificationStatus.PENDING
    assert updated.kyc_status == "Re-review requested"

    unlocked = reconcile_guesses(
        [make_guess(key, "shares_owned", "500", make_source("D2"))],
        unit_of_work_factory=uow_factory,
    )
    assert unlocked.saved == [key]
    stored = load_record(key, unit_of_work_factory=uow_factory)
    assert isinstance(stored, ShareholderRecord)
    assert stored.shares_owned == "500"


def test_status_update_of_unknown_entity(uow_factory: Callable[[], FakeUnitOfWork]) -> None:
    with pytest.raises(EntityNotFoundError) as exc:
        update_verification_status(JANE, "verified", unit_of_work_factory=uow_factory)

    assert exc.value.key == JANE


def test_status_update_normalizes_name(uow_factory: Callable[[], FakeUnitOfWork]) -> None:
    folded = individual_key(CLIENT_ID, "jane tan")
    reconcile_guesses(
        [make_guess(JANE, "email", "j@example.com")],
        unit_of_work_factory=uow_factory,
        normalizer=casefold_name,
    )

    record = update_verification_status(
        JANE, "verified", unit_of_work_factory=uow_factory, normalizer=casefold_name
    )

    assert record.key == folded
    assert record.verification_status is VerificationStatus.VERIFIED


def test_version_conflict_is_retried(
    store: InMemoryStore, uow_factory: Callable[[], FakeUnitOfWork]
) -> None:
    store.injected_conflicts = 2

    result = reconcile_guesses(
        [make_guess(JANE, "email", "j@example.com")], unit_of_work_factory=uow_factory
    )

    assert result.saved == [JANE]
    assert store.saves == 3


def test_persistent_conflict_is_reported(
    store: InMemoryStore, uow_factory: Callable[[], FakeUnitOfWork]
) -> None:
    store.injected_conflicts = 10

    result = reconcile_guesses(
        [make_guess(JANE, "email", "j@example.com")],
        unit_of_work_factory=uow_factory,
        max_conflict_retries=2,
    )

    assert result.conflicts == [JANE]
    assert result.saved == []
    assert store.saves == 3


def test_status_update_gives_up_after_retries(
    store: InMemoryStore, uow_factory: Callable[[], FakeUnitOfWork]
) -> None:
    reconcile_guesses([make_guess(JANE, "email", "j@example.com")], unit_of_work_factory=uow_factory)
    store.injected_conflicts = 10

    with pytest.raises(PersistenceConflictError):
        update_verification_status(
            JANE, "verified", unit_of_work_factory=uow_factory, max_conflict_retries=1
        )


def test_concurrent_merges_of_one_entity_keep_every_source(
    uow_factory: Callable[[], FakeUnitOfWork],
) -> None:
    def worker(index: int) -> None:
        reconcile_guesses(
            [make_guess(JANE, "address", f"{index} Main St", make_source(f"D{index}"))],
            unit_of_work_factory=uow_factory,
        )

    threads = [threading.Thread(target=worker, args=(index,)) for index in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    record = load_record(JANE, unit_of_work_factory=uow_factory)
    assert isinstance(record, IndividualRecord)
    assert len(record.addresses) == 8
    assert len(record.discrepancies) == 1
    assert record.version == 8


def test_summary_and_documents(uow_factory: Callable[[], FakeUnitOfWork]) -> None:
    register_documents(
        CLIENT_ID, [make_source("D1"), make_source("D2")], unit_of_work_factory=uow_factory
    )
    register_documents("other", [make_source("D1")], unit_of_work_factory=uow_factory)
    reconcile_guesses(
        [
            make_guess(JANE, "nationality", "Singapore", make_source("D1")),
            make_guess(JANE, "nationality", "Malaysia", make_source("D2")),
            make_guess(ACME, "jurisdiction", "Singapore", make_source("D1")),
        ],
        unit_of_work_factory=uow_factory,
    )

    summary = summarize(CLIENT_ID, unit_of_work_factory=uow_factory)

    assert summary.total_entities == 2
    assert summary.entities_with_discrepancies == 1
    assert summary.total_documents == 2
    assert summarize(unit_of_work_factory=uow_factory).total_documents == 3


def test_evaluate_compliance_is_read_only(
    store: InMemoryStore, uow_factory: Callable[[], FakeUnitOfWork]
) -> None:
    reconcile_guesses([make_guess(JANE, "email", "j@example.com")], unit_of_work_factory=uow_factory)
    commits = store.commits

    result = evaluate_compliance(JANE, unit_of_work_factory=uow_factory)

    assert "email" not in result.missing_fields
    assert "phone" in result.missing_fields
    assert store.commits == commits


def test_assign_company_roles(uow_factory: Callable[[], FakeUnitOfWork]) -> None:
    passport = make_source("D1", name="passport.pdf", document_type="identity_document")
    bill = make_source("D2", name="bill.pdf", document_type="proof_of_address")
    registry = make_source("D3", name="registry.pdf", document_type="company_registry")
    reconcile_guesses(
        [
            *guesses_from(
                JANE,
                passport,
                id_number="S1234567A",
                nationality="Singaporean",
                phone="+65 9123 4567",
                email="jane@example.com",
            ),
            make_guess(JANE, "address", "1 Main St", bill),
            *guesses_from(ACME, registry, director="Jane Tan", shareholder="Jane Tan (60%)"),
            make_guess(ACME, "director", "John Lim", registry),
        ],
        unit_of_work_factory=uow_factory,
    )

    result = assign_company_roles(CLIENT_ID, "Acme", unit_of_work_factory=uow_factory)

    jane_director = director_key(CLIENT_ID, "Acme", "Jane Tan")
    john_director = director_key(CLIENT_ID, "Acme", "John Lim")
    jane_shareholder = shareholder_key(CLIENT_ID, "Acme", "Jane Tan")
    assert set(result.saved) == {jane_director, john_director, jane_shareholder}

    director = load_record(jane_director, unit_of_work_factory=uow_factory)
    assert isinstance(director, DirectorRecord)
    assert director.id_type == "NRIC"
    assert director.address_source == "bill.pdf (proof_of_address)"
    assert director.kyc_status == "Complete"

    shareholder = load_record(jane_shareholder, unit_of_work_factory=uow_factory)
    assert isinstance(shareholder, ShareholderRecord)
    assert shareholder.shares_owned == "60%"
    assert shareholder.kyc_status == "Missing price_per_share"

    placeholder = load_record(john_director, unit_of_work_factory=uow_factory)
    assert placeholder.kyc_status == MISSING_ALL

    again = assign_company_roles(CLIENT_ID, "Acme", unit_of_work_factory=uow_factory)
    assert again.saved == []


class RecordingLocks(KeyedLocks[EntityKey]):
    def __init__(self) -> None:
        super().__init__()
        self.held: list[EntityKey] = []

    @contextmanager
    def hold(self, key: EntityKey) -> Iterator[None]:
        self.held.append(key)
        with super().hold(key):
            yield


def test_injected_locks_guard_every_write(uow_factory: Callable[[], FakeUnitOfWork]) -> None:
    locks = RecordingLocks()
    assert len(locks) == 0
    registry = make_source("D3", name="registry.pdf", document_type="company_registry")

    reconcile_guesses(
        [
            make_guess(JANE, "email", "jane@example.com", make_source("D1")),
            make_guess(ACME, "director", "John Lim", registry),
        ],
        unit_of_work_factory=uow_factory,
        locks=locks,
    )
    update_verification_status(
        JANE, VerificationStatus.VERIFIED, unit_of_work_factory=uow_factory, locks=locks
    )
    assign_company_roles(CLIENT_ID, "Acme", unit_of_work_factory=uow_factory, locks=locks)

    john_director = director_key(CLIENT_ID, "Acme", "John Lim")
    assert locks.held == [JANE, ACME, JANE, john_director]
    assert len(locks) == 0
