"""Extraction payload adapter package."""

from __future__ import annotations

from .loader import JsonFileExtractionSource, load_payload
from .schema import (
    DocumentMeta,
    ExtractedCompany,
    ExtractedIndividual,
    ExtractedValue,
    ExtractionPayload,
)
from .translator import (
    source_from,
    translate_company,
    translate_individual,
    translate_payload,
)

__all__ = [
    "DocumentMeta",
    "ExtractedCompany",
    "ExtractedIndividual",
    "ExtractedValue",
    "ExtractionPayload",
    "JsonFileExtractionSource",
    "load_payload",
    "source_from",
    "translate_company",
    "translate_individual",
    "translate_payload",
]
