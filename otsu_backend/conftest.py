# Test configuration utilities.
# Ensures the repository root is on sys.path so that 'otsu_backend' can be imported
# when running pytest without installing the package.
from __future__ import annotations

from collections.abc import AsyncIterator, Callable, Sequence
from io import BytesIO
import os
from pathlib import Path
import sys

import numpy as np
from PIL import Image
import pytest


# Keep test runs from writing the rotating debug log into the working tree.
os.environ.setdefault("OTSU_LOG_FILE", "")

ROOT = Path(__file__).parent.parent.resolve()
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from otsu_backend.config.settings import (  # noqa: E402
    DEFAULT_CHUNK_SIZE,
    OtsuSettings,
    ProcessingSettings,
    ServerSettings,
)
from otsu_backend.ingest.manager import UploadPart  # noqa: E402


PartSpec = tuple[str, str | None, Sequence[bytes | BaseException]]


def _encode_image(pixels: np.ndarray, fmt: str) -> bytes:
    buffer = BytesIO()
    Image.fromarray(pixels).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def encode_image() -> Callable[[np.ndarray, str], bytes]:
    """Encode a numpy pixel array as ``fmt`` (e.g. ``"PNG"``) bytes."""
    return _encode_image


@pytest.fixture
def scratch_root(tmp_path: Path) -> Path:
    root = tmp_path / "scratch"
    root.mkdir()
    return root


@pytest.fixture
def settings(tmp_path: Path, scratch_root: Path) -> OtsuSettings:
    return OtsuSettings(
        env_file=tmp_path / ".env",
        server=ServerSettings(host="127.0.0.1", port=8080, cors_origins=("*",)),
        processing=ProcessingSettings(
            scratch_root=scratch_root,
            chunk_size=DEFAULT_CHUNK_SIZE,
            jpeg_quality=75,
        ),
    )


@pytest.fixture
def make_stream() -> Callable[[Sequence[PartSpec]], AsyncIterator[UploadPart]]:
    """Build an upload stream from ``(name, filename, chunks)`` tuples.

    An exception instance among the chunks is raised when the reader reaches it,
    which mimics a stream that breaks off mid-upload.
    """

    def factory(parts: Sequence[PartSpec]) -> AsyncIterator[UploadPart]:
        async def chunks(items: Sequence[bytes | BaseException]) -> AsyncIterator[bytes]:
            for item in items:
                if isinstance(item, BaseException):
                    raise item
                yield item

        async def stream() -> AsyncIterator[UploadPart]:
            for name, filename, items in parts:
                yield UploadPart(name=name, filename=filename, chunks=chunks(items))

        return stream()

    return factory
