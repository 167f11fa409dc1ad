"""Project individual and company records onto director/shareholder guesses.

A company lists its directors and shareholders by name. For each listed name
the matching multi-source record supplies one value per field (its first
recorded source) which becomes a scalar guess for the company-scoped record.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from kycrecon.domain.model import SourceRef, director_key, shareholder_key
from kycrecon.domain.reconciliation.contracts import FieldGuess

if TYPE_CHECKING:
    from collections.abc import Iterable

    from kycrecon.domain.model import (
        CompanyRecord,
        EntityKey,
        FieldProvenance,
        IndividualRecord,
    )

log = logging.getLogger(__name__)

_SHARE_SUFFIX = re.compile(r"^(.+?)\s*\(([^)]+)\)$")

# (nationality hints, [(pattern, id type), ...])
_ID_PATTERNS: tuple[tuple[tuple[str, ...], tuple[tuple[re.Pattern[str], str], ...]], ...] = (
    (
        ("singapore", "sg", "sgp"),
        ((re.compile(r"^[STFG]\d{7}[A-Z]$"), "NRIC"), (re.compile(r"^[A-Z]\d{7}[A-Z]$"), "FIN")),
    ),
    (("malaysia", "my", "mys"), ((re.compile(r"^\d{6}-\d{2}-\d{4}$"), "Malaysian IC"),)),
    (("indonesia", "id", "idn"), ((re.compile(r"^\d{16}$"), "KTP"),)),
    (("china", "cn", "chn"), ((re.compile(r"^\d{17}[0-9X]$"), "Chinese ID Card"),)),
    (
        ("india", "in", "ind"),
        ((re.compile(r"^[A-Z]{5}\d{4}[A-Z]$"), "PAN Card"), (re.compile(r"^\d{12}$"), "Aadhaar")),
    ),
)
_PASSPORT = re.compile(r"^[A-Z]\d{7,9}$")

INFERRED_ID_TYPE = "Inferred from nationality"
DECLARATION = "Declaration"
MISSING_ALL = "Missing all required information"


def infer_id_type(nationality: str | None, id_number: str | None) -> str:
    """Guess the id document type from nationality and id number shape."""

    if not nationality or not id_number:
        return "Unknown"
    hint = nationality.strip().lower()
    for hints, patterns in _ID_PATTERNS:
        # long names match by substring, country codes exactly
        if hints[0] in hint or hint in hints[1:]:
            for pattern, id_type in patterns:
                if pattern.match(id_number):
                    return id_type
    if _PASSPORT.match(id_number):
        return "Passport"
    return "National ID"


@dataclass(frozen=True, slots=True)
class ShareholderReference:
    name: str
    declared_share: str | None = None


def parse_shareholder_reference(entry: str) -> ShareholderReference:
    """Split ``"Jane Tan (60%)"`` into the name and the declared share text."""

    match = _SHARE_SUFFIX.match(entry.strip())
    if match is None:
        return ShareholderReference(entry.strip())
    return ShareholderReference(match.group(1).strip(), match.group(2).strip())


@dataclass(slots=True)
class RoleAssignment:
    """Guesses for matched names plus keys for names with no matching record."""

    guesses: list[FieldGuess] = field(default_factory=list["FieldGuess"])
    unmatched: list[EntityKey] = field(default_factory=list["EntityKey"])

    def keys(self) -> list[EntityKey]:
        seen = dict.fromkeys(guess.entity_key for guess in self.guesses)
        seen.update(dict.fromkeys(self.unmatched))
        return list(seen)


def director_guesses(
    company: CompanyRecord,
    individuals: Iterable[IndividualRecord],
) -> RoleAssignment:
    by_name = {individual.name: individual for individual in individuals}
    assignment = RoleAssignment()
    for name in sorted(company.directors):
        key = director_key(company.key.client_id, company.name, name)
        individual = by_name.get(name)
        if individual is None:
            log.info("Director %s of %s has no individual record", name, company.name)
            assignment.unmatched.append(key)
            continue
        assignment.guesses.extend(_person_guesses(key, individual))
    return assignment


def shareholder_guesses(
    company: CompanyRecord,
    individuals: Iterable[IndividualRecord],
    companies: Iterable[CompanyRecord] = (),
) -> RoleAssignment:
    """Shareholder names match individuals, then companies, case-insensitively."""

    people = {individual.name.strip().lower(): individual for individual in individuals}
    corporates = {other.name.strip().lower(): other for other in companies}
    declaration = SourceRef(
        document_id=f"declaration:{company.name}", document_name=DECLARATION, document_type=""
    )
    assignment = RoleAssignment()
    for entry in sorted(company.shareholders):
        reference = parse_shareholder_reference(entry)
        key = shareholder_key(company.key.client_id, company.name, reference.name)
        lookup = reference.name.lower()
        individual = people.get(lookup)
        corporate = corporates.get(lookup) if individual is None else None
        guesses: list[FieldGuess] = []

        if individual is not None:
            guesses.extend(_person_guesses(key, individual))
            shares = individual.shares_owned
            price = individual.price_per_share
        elif corporate is not None:
            guesses.extend(_corporate_guesses(key, corporate))
            shares = corporate.shares_issued
            price = corporate.price_per_share
        else:
            log.info("Shareholder %s of %s has no matching record", reference.name, company.name)
            shares = price = None

        is_company = individual is None
        if reference.declared_share is not None:
            guesses.append(_guess(key, "shares_owned", reference.declared_share, declaration))
        elif shares is not None:
            guesses.extend(_first(key, "shares_owned", shares))
        if price is not None:
            guesses.extend(_first(key, "price_per_share", price))
        if is_company:
            guesses.append(_guess(key, "is_company", "true", declaration))

        if individual is None and corporate is None and reference.declared_share is None:
            assignment.unmatched.append(key)
            continue
        assignment.guesses.extend(guesses)
    return assignment


def _guess(key: EntityKey, field_name: str, value: str, source: SourceRef) -> FieldGuess:
    return FieldGuess(entity_key=key, field=field_name, value=value, source=source)


def _first(key: EntityKey, field_name: str, provenance: FieldProvenance[str]) -> list[FieldGuess]:
    entry = provenance.first()
    if entry is None:
        return []
    return [_guess(key, field_name, entry.value, entry.source)]


def _person_guesses(key: EntityKey, individual: IndividualRecord) -> list[FieldGuess]:
    guesses = [
        *_first(key, "id_number", individual.id_numbers),
        *_first(key, "nationality", individual.nationalities),
        *_first(key, "address", individual.addresses),
        *_first(key, "phone", individual.phones),
        *_first(key, "email", individual.emails),
    ]
    id_type = _first(key, "id_type", individual.id_types)
    nationality = individual.nationalities.first()
    id_number = individual.id_numbers.first()
    if not id_type and nationality is not None and id_number is not None:
        inferred = SourceRef(
            document_id=nationality.source.document_id,
            document_name=INFERRED_ID_TYPE,
            document_type="",
        )
        id_type = [
            _guess(key, "id_type", infer_id_type(nationality.value, id_number.value), inferred)
        ]
    return [*guesses, *id_type]


def _corporate_guesses(key: EntityKey, corporate: CompanyRecord) -> list[FieldGuess]:
    guesses = [
        *_first(key, "id_number", corporate.registration_number),
        *_first(key, "nationality", corporate.jurisdiction),
        *_first(key, "address", corporate.address),
    ]
    registration = corporate.registration_number.first()
    if registration is not None:
        system = SourceRef(
            document_id=registration.source.document_id, document_name="System", document_type=""
        )
        guesses.append(_guess(key, "id_type", "Registration Number", system))
    return guesses
