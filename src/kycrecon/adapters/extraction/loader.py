"""File-backed extraction source."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from kycrecon.domain.ports.extraction import ExtractionBatch

from .schema import ExtractionPayload
from .translator import translate_payload

if TYPE_CHECKING:
    from pathlib import Path

    from kycrecon.domain.model import SourceRef

log = logging.getLogger(__name__)


def load_payload(path: Path) -> ExtractionPayload:
    """Read a JSON extraction payload; raises ``pydantic.ValidationError`` on bad shape."""

    with path.open(encoding="utf-8") as handle:
        raw = json.load(handle)
    return ExtractionPayload.model_validate(raw)


@dataclass(slots=True, frozen=True)
class JsonFileExtractionSource:
    """``ExtractionSource`` reading one or more payload files for a client."""

    paths: tuple[Path, ...]

    def __call__(self, *, client_id: str) -> ExtractionBatch:
        merged = ExtractionBatch(client_id=client_id)
        documents: dict[str, SourceRef] = {}
        for path in self.paths:
            batch = translate_payload(load_payload(path), client_id=client_id)
            merged.guesses.extend(batch.guesses)
            for source in batch.documents:
                documents.setdefault(source.document_id, source)
        merged.documents = list(documents.values())
        log.info("Loaded %d guesses from %d files", len(merged.guesses), len(self.paths))
        return merged
