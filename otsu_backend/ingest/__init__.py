"""Upload ingestion into request-scoped scratch storage."""

from .manager import IMAGE_FIELD, UploadPart, UploadStream, ingest, parts_from_file, read_chunks
from .storage import ScratchSpace, scratch_space


__all__ = [
    "IMAGE_FIELD",
    "ScratchSpace",
    "UploadPart",
    "UploadStream",
    "ingest",
    "parts_from_file",
    "read_chunks",
    "scratch_space",
]
