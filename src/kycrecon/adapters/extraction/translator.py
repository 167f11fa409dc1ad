"""Translate extraction payloads into field guesses."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from kycrecon.domain.model import SourceRef, company_key, individual_key
from kycrecon.domain.ports.extraction import ExtractionBatch
from kycrecon.domain.reconciliation.contracts import FieldGuess

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

    from kycrecon.domain.model import EntityKey

    from .schema import (
        DocumentMeta,
        ExtractedCompany,
        ExtractedIndividual,
        ExtractedValue,
        ExtractionPayload,
    )

log = logging.getLogger(__name__)

# payload attribute -> guess field
_INDIVIDUAL_FIELDS = {
    "full_names": "full_name",
    "id_numbers": "id_number",
    "id_types": "id_type",
    "nationalities": "nationality",
    "addresses": "address",
    "emails": "email",
    "phones": "phone",
    "shares_owned": "shares_owned",
    "price_per_share": "price_per_share",
}

_COMPANY_FIELDS = {
    "company_names": "company_name",
    "registration_number": "registration_number",
    "jurisdiction": "jurisdiction",
    "address": "address",
    "company_activities": "company_activities",
    "shares_issued": "shares_issued",
    "price_per_share": "price_per_share",
}


def source_from(meta: DocumentMeta, *, document_name: str | None = None) -> SourceRef | None:
    """Build a ``SourceRef``; ``None`` when the document id is missing or blank."""

    if meta.document_id is None or not meta.document_id.strip():
        return None
    return SourceRef(
        document_id=meta.document_id.strip(),
        document_name=meta.document_name or document_name or "",
        document_type=meta.document_type or "",
    )


def translate_payload(payload: ExtractionPayload, *, client_id: str) -> ExtractionBatch:
    batch = ExtractionBatch(client_id=client_id)
    document = source_from(payload.document) if payload.document is not None else None
    for individual in payload.individuals:
        batch.guesses.extend(translate_individual(individual, client_id=client_id, document=document))
    for company in payload.companies:
        batch.guesses.extend(translate_company(company, client_id=client_id, document=document))

    seen: dict[str, SourceRef] = {}
    if document is not None:
        seen[document.document_id] = document
    for guess in batch.guesses:
        if guess.source is not None:
            seen.setdefault(guess.source.document_id, guess.source)
    batch.documents = list(seen.values())
    log.info(
        "Translated %d individuals and %d companies into %d guesses from %d documents",
        len(payload.individuals),
        len(payload.companies),
        len(batch.guesses),
        len(batch.documents),
    )
    return batch


def translate_individual(
    individual: ExtractedIndividual,
    *,
    client_id: str,
    document: SourceRef | None = None,
) -> list[FieldGuess]:
    if not individual.full_name.strip():
        log.warning("Skipping individual without a name")
        return []
    key = individual_key(client_id, individual.full_name.strip())
    guesses = list(_sourced_guesses(key, individual, _INDIVIDUAL_FIELDS))
    sources_by_name = {
        guess.source.document_name: guess.source for guess in guesses if guess.source is not None
    }
    fallback = document or next(iter(sources_by_name.values()), None)

    if not individual.full_names:
        guesses.extend(_unsourced(key, "full_name", [individual.full_name.strip()], fallback))
    guesses.extend(_unsourced(key, "alternative_name", individual.alternative_names, fallback))

    for document_name, role in individual.roles.items():
        if isinstance(role, str):
            source = sources_by_name.get(document_name, fallback)
            guesses.extend(_unsourced(key, "role", [role], source))
        else:
            guesses.append(_guess(key, "role", role, document_name))
    return guesses


def translate_company(
    company: ExtractedCompany,
    *,
    client_id: str,
    document: SourceRef | None = None,
) -> list[FieldGuess]:
    if not company.company_name.strip():
        log.warning("Skipping company without a name")
        return []
    key = company_key(client_id, company.company_name.strip())
    guesses = list(_sourced_guesses(key, company, _COMPANY_FIELDS))
    fallback = document or next((guess.source for guess in guesses if guess.source), None)

    if not company.company_names:
        guesses.extend(_unsourced(key, "company_name", [company.company_name.strip()], fallback))
    guesses.extend(_unsourced(key, "alternative_name", company.alternative_names, fallback))
    guesses.extend(_unsourced(key, "director", company.directors, fallback))
    guesses.extend(_unsourced(key, "shareholder", company.shareholders, fallback))
    return guesses


def _guess(key: EntityKey, field: str, extracted: ExtractedValue, document_name: str) -> FieldGuess:
    return FieldGuess(
        entity_key=key,
        field=field,
        value=extracted.value,
        source=source_from(extracted, document_name=document_name),
    )


def _sourced_guesses(
    key: EntityKey,
    model: ExtractedIndividual | ExtractedCompany,
    fields: Mapping[str, str],
) -> Iterator[FieldGuess]:
    for attribute, field in fields.items():
        values: dict[str, ExtractedValue] = getattr(model, attribute)
        for document_name, extracted in values.items():
            yield _guess(key, field, extracted, document_name)


def _unsourced(
    key: EntityKey,
    field: str,
    values: list[str],
    source: SourceRef | None,
) -> list[FieldGuess]:
    """Guesses for values the payload reports without a document of their own."""

    cleaned = [value.strip() for value in values if value.strip()]
    if cleaned and source is None:
        log.warning("Skipping %d %s values for %s: no source document", len(cleaned), field, key)
        return []
    return [FieldGuess(entity_key=key, field=field, value=value, source=source) for value in cleaned]
