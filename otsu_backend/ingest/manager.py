"""Persist the uploaded ``image`` field into a request's scratch space."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterable, AsyncIterator, Awaitable
from dataclasses import dataclass
import os
from pathlib import Path
from typing import Protocol

import aiofiles

from otsu_backend.config.settings import DEFAULT_CHUNK_SIZE
from otsu_backend.errors import IOFailure, NoImageField
from otsu_backend.imaging.formats import FormatTag
from otsu_backend.models import StoredImage
from otsu_backend.utils.log_utils import logger

from .storage import ScratchSpace


IMAGE_FIELD = "image"


class ChunkReader(Protocol):
    def read(self, size: int = -1) -> Awaitable[bytes]: ...


@dataclass(slots=True)
class UploadPart:
    """One multipart field: its name, optional original filename and body chunks.

    The chunk iterator raises `MalformedStream` for framing errors and
    `IOFailure` when the body ends early (e.g. the client disconnected).
    """

    name: str
    filename: str | None
    chunks: AsyncIterator[bytes]


UploadStream = AsyncIterable[UploadPart]


async def read_chunks(reader: ChunkReader, chunk_size: int = DEFAULT_CHUNK_SIZE) -> AsyncIterator[bytes]:
    """Yield successive ``chunk_size`` reads from ``reader`` until it is exhausted."""
    while True:
        chunk = await reader.read(chunk_size)
        if not chunk:
            return
        yield chunk


async def parts_from_file(path: Path, chunk_size: int = DEFAULT_CHUNK_SIZE) -> AsyncIterator[UploadPart]:
    """Present a local file as a single-part upload stream named ``image``."""
    async with aiofiles.open(path, "rb") as handle:
        yield UploadPart(name=IMAGE_FIELD, filename=path.name, chunks=read_chunks(handle, chunk_size))


async def _drain(part: UploadPart) -> None:
    async for _ in part.chunks:
        pass


async def _persist(part: UploadPart, scratch: ScratchSpace) -> StoredImage:
    partial = scratch.allocate("upload", ".part")
    total_bytes = 0
    completed = False
    try:
        async with aiofiles.open(partial, "wb") as handle:
            async for chunk in part.chunks:
                await handle.write(chunk)
                total_bytes += len(chunk)
            await handle.flush()
            await asyncio.to_thread(os.fsync, handle.fileno())
        completed = True
    except OSError as exc:
        logger.error(f"Write error while storing upload: {exc}")
        raise IOFailure("Error writing to temporary file") from exc
    finally:
        if not completed:
            scratch.discard(partial)

    logger.info(f"Received {total_bytes} bytes for image")

    # Decoders pick their plugin from the extension, so the final name carries it.
    format_tag = FormatTag.from_filename(part.filename)
    destination = scratch.allocate("input", format_tag.extension)
    try:
        os.replace(partial, destination)
    except OSError as exc:
        scratch.discard(partial)
        logger.error(f"Failed to move upload into place: {exc}")
        raise IOFailure("Failed to prepare image file") from exc

    return StoredImage(
        path=destination,
        format_tag=format_tag,
        original_filename=part.filename,
        size_bytes=total_bytes,
    )


async def ingest(
    stream: UploadStream,
    scratch: ScratchSpace,
    *,
    field_name: str = IMAGE_FIELD,
) -> StoredImage:
    """Consume ``stream`` and store the first ``field_name`` part in ``scratch``.

    Chunks are written in arrival order. Other fields are drained and ignored,
    as are repeated ``field_name`` parts after the first.

    Raises:
        NoImageField: If no part named ``field_name`` arrives.
        MalformedStream: Propagated from the stream on framing errors.
        IOFailure: If storing the data fails or the stream ends prematurely.
    """
    stored: StoredImage | None = None
    async for part in stream:
        logger.debug(f"Processing field: {part.name}")
        if part.name != field_name:
            await _drain(part)
            continue
        if stored is not None:
            logger.warning(f"Ignoring repeated '{field_name}' field")
            await _drain(part)
            continue
        if part.filename:
            logger.info(f"Original filename: {part.filename}")
        stored = await _persist(part, scratch)

    if stored is None:
        raise NoImageField()
    return stored


__all__ = [
    "IMAGE_FIELD",
    "UploadPart",
    "UploadStream",
    "ingest",
    "parts_from_file",
    "read_chunks",
]
