"""Turn encoded output bytes into a self-describing, text-safe payload."""

from __future__ import annotations

import base64
from pathlib import Path

from .errors import IOFailure
from .imaging.formats import FormatTag
from .models import ProcessingResult
from .utils.log_utils import logger


def package(encoded: bytes, format_tag: FormatTag, threshold: int | float = 0) -> ProcessingResult:
    """Wrap ``encoded`` with its mime type and a standard base64 payload."""
    return ProcessingResult(
        threshold_value=float(threshold),
        encoded_bytes=encoded,
        mime_type=format_tag.mime_type,
        payload_base64=base64.b64encode(encoded).decode("ascii"),
    )


def read_and_package(path: Path, format_tag: FormatTag, threshold: int | float = 0) -> ProcessingResult:
    """Read an encoded output file back from disk and package it.

    Raises:
        IOFailure: If the file cannot be read.
    """
    try:
        encoded = path.read_bytes()
    except OSError as exc:
        logger.error(f"Failed to read processed image {path.name}: {exc}")
        raise IOFailure("Failed to read processed image") from exc
    return package(encoded, format_tag, threshold)


__all__ = ["package", "read_and_package"]
