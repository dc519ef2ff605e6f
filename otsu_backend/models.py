"""Value objects passed between the ingestion, imaging and packaging stages."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .imaging.formats import FormatTag


@dataclass(frozen=True, slots=True)
class StoredImage:
    """An upload persisted inside a request's scratch space."""

    path: Path
    format_tag: FormatTag
    original_filename: str | None
    size_bytes: int


@dataclass(frozen=True, slots=True)
class ProcessingResult:
    """Threshold plus encoded output, ready to hand back to the caller."""

    threshold_value: float
    encoded_bytes: bytes
    mime_type: str
    payload_base64: str

    @property
    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.payload_base64}"


@dataclass(frozen=True, slots=True)
class ConversionOutcome:
    result: ProcessingResult
    output_filename: str
    width: int
    height: int


__all__ = ["ConversionOutcome", "ProcessingResult", "StoredImage"]
