from __future__ import annotations

from datetime import UTC, datetime

import pytest

from kycrecon.domain.model import (
    CompanyRecord,
    DirectorRecord,
    IndividualRecord,
    ShareholderRecord,
    VerificationStatus,
    casefold_name,
    company_key,
    director_key,
    individual_key,
    shareholder_key,
)
from kycrecon.domain.reconciliation import (
    FieldGuess,
    LockedRecord,
    LockPolicy,
    MalformedGuess,
    MergeFailure,
    MergeSuccess,
    RoleMismatch,
    group_by_entity,
    merge,
    merge_batch,
)
from tests.helpers.records import CLIENT_ID, guesses_from, make_guess, make_source

JANE = individual_key(CLIENT_ID, "Jane Tan")
ACME = company_key(CLIENT_ID, "Acme")


def _merged(outcome: MergeSuccess | MergeFailure) -> MergeSuccess:
    assert isinstance(outcome, MergeSuccess), outcome
    return outcome


def _provenance_entries(record: IndividualRecord) -> set[tuple[str, str]]:
    return {
        (document_id, name)
        for name, provenance in record.provenance_fields().items()
        for document_id in provenance.document_ids()
    }


def test_merge_into_missing_record_creates_it() -> None:
    now = datetime(2026, 1, 1, tzinfo=UTC)
    batch = guesses_from(JANE, make_source("D1"), nationality="Singapore", email="jane@example.com")

    outcome = _merged(merge(None, batch, key=JANE, now=now))

    record = outcome.record
    assert isinstance(record, IndividualRecord)
    assert outcome.changed
    assert record.created_at == now
    assert record.verification_status is VerificationStatus.PENDING
    assert list(record.emails.values()) == [("jane@example.com", make_source("D1"))]


def test_nationality_variants_from_two_documents_are_flagged() -> None:
    first = _merged(
        merge(None, [make_guess(JANE, "nationality", "Singaporean", make_source("D1"))], key=JANE)
    )
    second = _merged(
        merge(
            first.record,
            [make_guess(JANE, "nationality", "Singapore", make_source("D2"))],
            key=JANE,
        )
    )

    record = second.record
    assert isinstance(record, IndividualRecord)
    assert len(record.nationalities) == 2
    assert len(record.discrepancies) == 1
    assert record.discrepancies[0].field == "nationality"
    assert record.discrepancies[0].values == ("Singaporean", "Singapore")


def test_merging_same_document_twice_is_idempotent() -> None:
    batch = guesses_from(
        JANE,
        make_source("D1"),
        nationality="Singapore",
        id_number="S1234567A",
        address="1 Main St",
    )
    once = _merged(merge(None, batch, key=JANE)).record
    twice = merge(once, batch, key=JANE)

    assert isinstance(twice, MergeSuccess)
    assert not twice.changed
    assert twice.record == once


def test_merge_never_drops_provenance_entries() -> None:
    base = _merged(
        merge(
            None,
            guesses_from(JANE, make_source("D1"), nationality="Singapore", phone="+65 9123 4567"),
            key=JANE,
        )
    ).record
    assert isinstance(base, IndividualRecord)

    updated = _merged(
        merge(
            base,
            guesses_from(JANE, make_source("D2"), nationality="Malaysia", email="j@example.com"),
            key=JANE,
        )
    ).record
    assert isinstance(updated, IndividualRecord)

    assert _provenance_entries(base) <= _provenance_entries(updated)


def test_merge_does_not_mutate_input_record() -> None:
    base = _merged(
        merge(None, [make_guess(JANE, "address", "1 Main St", make_source("D1"))], key=JANE)
    ).record
    assert isinstance(base, IndividualRecord)

    merge(base, [make_guess(JANE, "address", "2 Side Rd", make_source("D2"))], key=JANE)

    assert len(base.addresses) == 1
    assert base.discrepancies == []


def test_case_variants_of_company_name_do_not_conflict() -> None:
    batch = [
        make_guess(ACME, "company_name", "Acme Corp", make_source("D1")),
        make_guess(ACME, "company_name", "acme corp ", make_source("D2")),
    ]

    record = _merged(merge(None, batch, key=ACME)).record

    assert isinstance(record, CompanyRecord)
    assert record.discrepancies == []


def test_different_company_names_produce_one_discrepancy() -> None:
    batch = [
        make_guess(ACME, "company_name", "Acme Corp", make_source("D1")),
        make_guess(ACME, "company_name", "Acme Corporation", make_source("D2")),
    ]

    record = _merged(merge(None, batch, key=ACME)).record

    assert isinstance(record, CompanyRecord)
    assert len(record.discrepancies) == 1
    assert record.discrepancies[0].values == ("Acme Corp", "Acme Corporation")


def test_resolved_disagreement_clears_discrepancy() -> None:
    first = _merged(
        merge(
            None,
            [
                make_guess(JANE, "nationality", "Singapore", make_source("D1")),
                make_guess(JANE, "nationality", "Malaysia", make_source("D2")),
            ],
            key=JANE,
        )
    ).record
    assert isinstance(first, IndividualRecord)
    assert first.discrepancies

    # D2 reprocessed with a corrected value
    second = _merged(
        merge(first, [make_guess(JANE, "nationality", "Singapore", make_source("D2"))], key=JANE)
    ).record

    assert isinstance(second, IndividualRecord)
    assert second.discrepancies == []


def test_company_members_are_add_only() -> None:
    source = make_source("D1", document_type="director_registry")
    first = _merged(merge(None, guesses_from(ACME, source, director="Jane Tan"), key=ACME)).record
    second = _merged(
        merge(first, guesses_from(ACME, make_source("D2"), director="John Lim"), key=ACME)
    ).record

    assert isinstance(second, CompanyRecord)
    assert second.directors == {"Jane Tan", "John Lim"}


def test_scalar_fields_overwrite_with_source_description() -> None:
    key = director_key(CLIENT_ID, "Acme", "Jane Tan")
    first = _merged(
        merge(None, [make_guess(key, "phone", "+65 1111", make_source("D1", name="a.pdf"))], key=key)
    ).record
    second = _merged(
        merge(
            first,
            [make_guess(key, "phone", "+65 2222", make_source("D2", name="b.pdf"))],
            key=key,
        )
    ).record

    assert isinstance(second, DirectorRecord)
    assert second.phone == "+65 2222"
    assert second.phone_source == "b.pdf (identity_document)"


def test_scalar_whitespace_does_not_count_as_a_change() -> None:
    key = director_key(CLIENT_ID, "Acme", "Jane Tan")
    source = make_source("D1", name="a.pdf")
    first = _merged(merge(None, [make_guess(key, "phone", "+65 1111", source)], key=key)).record

    again = _merged(merge(first, [make_guess(key, "phone", " +65 1111\n", source)], key=key))

    assert isinstance(again.record, DirectorRecord)
    assert again.record.phone == "+65 1111"
    assert not again.changed


def test_shareholder_flag_field() -> None:
    key = shareholder_key(CLIENT_ID, "Acme", "Holdco")

    record = _merged(merge(None, [make_guess(key, "is_company", "true")], key=key)).record

    assert isinstance(record, ShareholderRecord)
    assert record.is_company


def test_locked_shareholder_rejects_merge() -> None:
    key = shareholder_key(CLIENT_ID, "Acme", "Jane Tan")
    record = ShareholderRecord(
        key=key,
        verification_status=VerificationStatus.NOT_VERIFIED,
        shares_owned="100",
        shares_owned_source="register.pdf",
    )

    outcome = merge(record, [make_guess(key, "shares_owned", "500")], key=key)

    assert isinstance(outcome, MergeFailure)
    assert isinstance(outcome.error, LockedRecord)
    assert outcome.key == key
    assert record.shares_owned == "100"


def test_locked_record_accepts_empty_batch() -> None:
    key = shareholder_key(CLIENT_ID, "Acme", "Jane Tan")
    record = ShareholderRecord(key=key, verification_status=VerificationStatus.NOT_VERIFIED)

    outcome = merge(record, [], key=key)

    assert isinstance(outcome, MergeSuccess)
    assert not outcome.changed
    assert outcome.record is record


def test_individual_records_stay_open_by_default() -> None:
    record = IndividualRecord(key=JANE, verification_status=VerificationStatus.NOT_VERIFIED)

    outcome = merge(record, [make_guess(JANE, "email", "jane@example.com")], key=JANE)

    assert isinstance(outcome, MergeSuccess)


def test_lock_policy_can_lock_individuals() -> None:
    record = IndividualRecord(key=JANE, verification_status=VerificationStatus.NOT_VERIFIED)
    policy = LockPolicy.for_roles(["individual"])

    outcome = merge(record, [make_guess(JANE, "email", "jane@example.com")], key=JANE, policy=policy)

    assert isinstance(outcome, MergeFailure)
    assert isinstance(outcome.error, LockedRecord)


def test_unknown_field_for_role_is_rejected_without_partial_write() -> None:
    key = director_key(CLIENT_ID, "Acme", "Jane Tan")
    batch = [make_guess(key, "email", "jane@example.com"), make_guess(key, "shares_owned", "10")]

    outcome = merge(None, batch, key=key)

    assert isinstance(outcome, MergeFailure)
    assert isinstance(outcome.error, RoleMismatch)
    assert outcome.error.field == "shares_owned"


@pytest.mark.parametrize(
    ("field", "value", "reason"),
    [
        ("email", None, "missing value"),
        ("email", "   ", "missing value"),
        ("", "x", "missing field"),
    ],
)
def test_malformed_guesses_are_reported(field: str, value: str | None, reason: str) -> None:
    outcome = merge(None, [make_guess(JANE, field, value)], key=JANE)

    assert isinstance(outcome, MergeFailure)
    assert isinstance(outcome.error, MalformedGuess)
    assert reason in outcome.error.reason


def test_guess_without_source_is_malformed() -> None:
    sourceless = FieldGuess(entity_key=JANE, field="email", value="x", source=None)

    outcome = merge(None, [sourceless], key=JANE)

    assert isinstance(outcome, MergeFailure)
    assert outcome.error.reason == "missing document id"


def test_malformed_is_reported_before_lock() -> None:
    key = shareholder_key(CLIENT_ID, "Acme", "Jane Tan")
    record = ShareholderRecord(key=key, verification_status=VerificationStatus.NOT_VERIFIED)

    outcome = merge(record, [make_guess(key, "shares_owned", None)], key=key)

    assert isinstance(outcome, MergeFailure)
    assert isinstance(outcome.error, MalformedGuess)


def test_merge_rejects_record_of_other_key() -> None:
    record = IndividualRecord(key=individual_key(CLIENT_ID, "John Lim"))

    with pytest.raises(ValueError, match="does not match"):
        merge(record, [], key=JANE)


def test_merge_batch_isolates_failures_per_entity() -> None:
    john = individual_key(CLIENT_ID, "John Lim")
    batch = [
        make_guess(JANE, "email", None),
        make_guess(john, "email", "john@example.com"),
    ]

    outcomes = merge_batch({}, batch)

    assert isinstance(outcomes[JANE], MergeFailure)
    assert isinstance(outcomes[john], MergeSuccess)


def test_group_by_entity_with_normalized_names() -> None:
    shouty = individual_key(CLIENT_ID, "JANE  TAN")
    batch = [make_guess(JANE, "email", "a@example.com"), make_guess(shouty, "phone", "+65 1")]

    exact = group_by_entity(batch)
    folded = group_by_entity(batch, normalizer=casefold_name)

    assert len(exact) == 2
    assert list(folded) == [individual_key(CLIENT_ID, "jane tan")]
    assert len(folded[individual_key(CLIENT_ID, "jane tan")]) == 2
