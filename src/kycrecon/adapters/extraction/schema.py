"""Pydantic models for the document extraction payload.

One payload describes the individuals and companies found in one or more
documents. Per-field values are maps from document name to the extracted
value plus its source document.
"""

from __future__ import annotations

import logging
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

log = logging.getLogger(__name__)


class ExtractionBaseModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)
    _logged_extra_keys: ClassVar[set[str]] = set()

    def model_post_init(self, _context: object, /) -> None:
        extras = self.__pydantic_extra__
        if not extras:
            return
        new_keys = set(extras).difference(self._logged_extra_keys)
        if not new_keys:
            return
        self._logged_extra_keys.update(new_keys)
        log.warning(
            "Extraction %s: unmodeled keys: %s",
            type(self).__name__,
            ", ".join(sorted(new_keys)),
        )


class DocumentMeta(ExtractionBaseModel):
    document_id: str | None = Field(default=None, alias="documentId")
    document_name: str = Field(default="", alias="documentName")
    document_type: str | None = Field(default=None, alias="documentType")

    @field_validator("document_id", mode="before")
    @classmethod
    def _coerce_id(cls, value: object) -> object:
        # upstream ids are database integers
        return str(value) if isinstance(value, int) else value


class ExtractedValue(DocumentMeta):
    value: str | None = None

    @field_validator("value", mode="before")
    @classmethod
    def _coerce_value(cls, value: object) -> object:
        if isinstance(value, int | float) and not isinstance(value, bool):
            return str(value)
        return value


type SourcedValues = dict[str, ExtractedValue]


class ExtractedIndividual(ExtractionBaseModel):
    full_name: str
    alternative_names: list[str] = Field(default_factory=list["str"])
    full_names: SourcedValues = Field(default_factory=dict)
    id_numbers: SourcedValues = Field(default_factory=dict)
    id_types: SourcedValues = Field(default_factory=dict)
    nationalities: SourcedValues = Field(default_factory=dict)
    addresses: SourcedValues = Field(default_factory=dict)
    emails: SourcedValues = Field(default_factory=dict)
    phones: SourcedValues = Field(default_factory=dict)
    # roles are sometimes reported as bare strings keyed by document name
    roles: dict[str, ExtractedValue | str] = Field(default_factory=dict)
    shares_owned: SourcedValues = Field(default_factory=dict)
    price_per_share: SourcedValues = Field(default_factory=dict)


class ExtractedCompany(ExtractionBaseModel):
    company_name: str
    alternative_names: list[str] = Field(default_factory=list["str"])
    company_names: SourcedValues = Field(default_factory=dict)
    registration_number: SourcedValues = Field(default_factory=dict)
    jurisdiction: SourcedValues = Field(default_factory=dict)
    address: SourcedValues = Field(default_factory=dict)
    company_activities: SourcedValues = Field(default_factory=dict)
    shares_issued: SourcedValues = Field(default_factory=dict)
    price_per_share: SourcedValues = Field(default_factory=dict)
    directors: list[str] = Field(default_factory=list["str"])
    shareholders: list[str] = Field(default_factory=list["str"])


class ExtractionPayload(ExtractionBaseModel):
    """Top-level payload; ``document`` is set when the payload covers one document."""

    document: DocumentMeta | None = None
    individuals: list[ExtractedIndividual] = Field(default_factory=list["ExtractedIndividual"])
    companies: list[ExtractedCompany] = Field(default_factory=list["ExtractedCompany"])
