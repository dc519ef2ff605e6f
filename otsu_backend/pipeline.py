"""End-to-end conversion of one upload: ingest, threshold, re-encode, package."""

from __future__ import annotations

import asyncio
import contextlib

from .config.settings import OtsuSettings, get_settings
from .imaging.binarize import apply_threshold
from .imaging.codec import ImageCodec, PillowCodec, save_encoded
from .imaging.histogram import build_histogram
from .imaging.otsu import solve_threshold
from .ingest.manager import UploadStream, ingest
from .ingest.storage import ScratchSpace, scratch_space
from .models import ConversionOutcome, StoredImage
from .packaging import read_and_package
from .utils.log_utils import logger


def convert_stored_image(
    stored: StoredImage,
    scratch: ScratchSpace,
    codec: ImageCodec,
) -> ConversionOutcome:
    """Binarize ``stored`` with Otsu's threshold and package the encoded result.

    CPU-bound; the async entry point runs it in a worker thread.
    """
    gray = codec.decode_grayscale(stored)
    height, width = gray.shape
    logger.info(f"Image loaded successfully, size: {width}x{height}")

    level = solve_threshold(build_histogram(gray))
    logger.info(f"Threshold applied: {level}")
    binary = apply_threshold(gray, level)
    encoded = codec.encode(binary, stored.format_tag)

    output_path = save_encoded(encoded, scratch, stored.format_tag)
    result = read_and_package(output_path, stored.format_tag, level)

    return ConversionOutcome(
        result=result,
        output_filename=output_path.name,
        width=width,
        height=height,
    )


async def process_upload(
    stream: UploadStream,
    settings: OtsuSettings | None = None,
    codec: ImageCodec | None = None,
) -> ConversionOutcome:
    """Run the full pipeline for one upload inside its own scratch scope.

    Every temporary file created along the way is removed before this returns
    or raises.
    """
    settings = settings or get_settings()
    codec = codec or PillowCodec(jpeg_quality=settings.processing.jpeg_quality)
    with scratch_space(settings.processing.scratch_root) as scratch:
        stored = await ingest(stream, scratch)
        worker = asyncio.ensure_future(
            asyncio.to_thread(convert_stored_image, stored, scratch, codec)
        )
        try:
            outcome = await asyncio.shield(worker)
        except asyncio.CancelledError:
            # The thread cannot be interrupted; keep the scratch space until it returns.
            logger.info("Request cancelled; waiting for conversion worker to finish")
            with contextlib.suppress(Exception):
                await worker
            raise
    logger.info(f"Successfully processed image with threshold: {outcome.result.threshold_value}")
    return outcome


__all__ = ["convert_stored_image", "process_upload"]
