"""Adapt Starlette's multipart form parsing to the ingestion part stream."""

from __future__ import annotations

from collections.abc import AsyncIterator
import contextlib

from starlette.datastructures import FormData, UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.formparsers import MultiPartException
from starlette.requests import ClientDisconnect, Request

from otsu_backend.config.settings import DEFAULT_CHUNK_SIZE
from otsu_backend.errors import IOFailure, MalformedStream
from otsu_backend.ingest.manager import UploadPart, UploadStream, read_chunks
from otsu_backend.utils.log_utils import logger


async def _single_chunk(data: bytes) -> AsyncIterator[bytes]:
    yield data


async def _iter_parts(form: FormData, chunk_size: int) -> AsyncIterator[UploadPart]:
    for name, value in form.multi_items():
        if isinstance(value, UploadFile):
            yield UploadPart(name=name, filename=value.filename, chunks=read_chunks(value, chunk_size))
        else:
            yield UploadPart(name=name, filename=None, chunks=_single_chunk(value.encode("utf-8")))


@contextlib.asynccontextmanager
async def multipart_parts(
    request: Request, chunk_size: int = DEFAULT_CHUNK_SIZE
) -> AsyncIterator[UploadStream]:
    """Parse the request body and yield its fields as an upload stream.

    Starlette's spooled upload files are closed when the context exits.

    Raises:
        MalformedStream: If the multipart framing is invalid.
        IOFailure: If the client disconnects before the body is complete.
    """
    try:
        form = await request.form()
    except ClientDisconnect as exc:
        logger.warning("Client disconnected during upload")
        raise IOFailure("Upload interrupted before completion") from exc
    except MultiPartException as exc:
        logger.warning(f"Multipart error: {exc.message}")
        raise MalformedStream() from exc
    except StarletteHTTPException as exc:
        # Starlette reports multipart parse errors as a 400 when running inside an app.
        logger.warning(f"Multipart error: {exc.detail}")
        raise MalformedStream() from exc

    try:
        yield _iter_parts(form, chunk_size)
    finally:
        await form.close()


__all__ = ["multipart_parts"]
