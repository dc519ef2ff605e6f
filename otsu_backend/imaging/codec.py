"""Decode uploads to grayscale and encode binarized buffers, backed by Pillow.

Grayscale conversion uses Pillow's ``convert("L")``, i.e. the ITU-R 601-2 luma
transform ``L = R * 299/1000 + G * 587/1000 + B * 114/1000``. Transparent
images are first composited onto a white background so that fully transparent
pixels read as white rather than as whatever colour they happen to store.
Integer images (16-bit PNGs open as "I" or "I;16") keep the high byte of
their 16-bit value. Float images whose values all lie in ``[0, 1]`` are
scaled by 255; other float images are rounded and clipped to ``[0, 255]``.
"""

from __future__ import annotations

from io import BytesIO
from pathlib import Path
from typing import Protocol

import numpy as np
from PIL import Image, UnidentifiedImageError

from otsu_backend.config.settings import DEFAULT_JPEG_QUALITY
from otsu_backend.errors import EncodeFailure, IOFailure, UnreadableImage
from otsu_backend.ingest.storage import ScratchSpace
from otsu_backend.models import StoredImage
from otsu_backend.utils.log_utils import logger

from .binarize import BACKGROUND, FOREGROUND
from .formats import FormatTag


_TRANSPARENT_MODES = {"RGBA", "LA", "PA", "La", "RGBa"}


class ImageCodec(Protocol):
    """Decode a stored upload to grayscale and encode a two-level result."""

    def decode_grayscale(self, stored: StoredImage) -> np.ndarray: ...

    def encode(self, binary: np.ndarray, format_tag: FormatTag) -> bytes: ...


def _has_transparency(image: Image.Image) -> bool:
    return image.mode in _TRANSPARENT_MODES or "transparency" in image.info


def _to_luma(image: Image.Image) -> np.ndarray:
    if image.mode == "I" or image.mode.startswith("I;16"):
        wide = np.asarray(image).astype(np.int64).clip(0, 0xFFFF)
        return (wide >> 8).astype(np.uint8)
    if image.mode == "F":
        values = np.asarray(image, dtype=np.float64)
        if values.size and float(np.nanmax(values)) <= 1.0:
            values = values * 255.0
        return np.clip(np.rint(np.nan_to_num(values)), 0, 255).astype(np.uint8)
    if _has_transparency(image):
        rgba = image.convert("RGBA")
        background = Image.new("RGBA", rgba.size, (255, 255, 255, 255))
        image = Image.alpha_composite(background, rgba)
    if image.mode != "L":
        image = image.convert("L")
    return np.asarray(image, dtype=np.uint8).copy()


class PillowCodec:
    """`ImageCodec` implementation for JPEG and PNG containers."""

    def __init__(self, jpeg_quality: int = DEFAULT_JPEG_QUALITY) -> None:
        if not 1 <= jpeg_quality <= 95:
            raise ValueError("jpeg_quality must be in [1, 95]")
        self.jpeg_quality = jpeg_quality

    def decode_grayscale(self, stored: StoredImage) -> np.ndarray:
        """Read ``stored`` from disk and return an HxW ``uint8`` luma array.

        Raises:
            UnreadableImage: If the file is not a supported image or has zero area.
        """
        try:
            with Image.open(stored.path) as image:
                image.load()
                width, height = image.size
                if width == 0 or height == 0:
                    raise UnreadableImage("Image processing failed: image has zero area")
                logger.debug(f"Decoded {image.format} image ({image.mode}) of {width}x{height}")
                gray = _to_luma(image)
        except UnreadableImage:
            raise
        except (UnidentifiedImageError, Image.DecompressionBombError) as exc:
            logger.warning(f"Rejected upload {stored.path.name}: {exc}")
            raise UnreadableImage("Image processing failed: unsupported or corrupt image") from exc
        except (OSError, ValueError, SyntaxError) as exc:
            logger.warning(f"Failed to decode {stored.path.name}: {exc}")
            raise UnreadableImage("Image processing failed: unsupported or corrupt image") from exc
        return gray

    def encode(self, binary: np.ndarray, format_tag: FormatTag) -> bytes:
        """Encode a two-level buffer as single-channel PNG or JPEG bytes.

        Raises:
            EncodeFailure: If the buffer is not a 2-D two-level ``uint8`` array or
                Pillow cannot write it.
        """
        if binary.ndim != 2 or binary.dtype != np.uint8:
            raise EncodeFailure("Image processing failed: output buffer has the wrong shape")
        if binary.size and not np.isin(binary, (BACKGROUND, FOREGROUND)).all():
            raise EncodeFailure("Image processing failed: output buffer is not two-level")

        buffer = BytesIO()
        try:
            image = Image.fromarray(binary)
            if format_tag is FormatTag.PNG:
                image.save(buffer, format=format_tag.pil_format)
            else:
                image.save(buffer, format=format_tag.pil_format, quality=self.jpeg_quality)
        except (OSError, ValueError, KeyError) as exc:
            logger.error(f"Failed to encode {format_tag.pil_format} output: {exc}")
            raise EncodeFailure() from exc
        return buffer.getvalue()


def save_encoded(encoded: bytes, scratch: ScratchSpace, format_tag: FormatTag) -> Path:
    """Write encoded output into ``scratch`` as ``processed_<hex><ext>``.

    Raises:
        IOFailure: If the file cannot be written, including when the scratch
            directory was already removed because the request was cancelled.
    """
    if not scratch.directory.is_dir():
        logger.debug("Scratch space removed before output could be written")
        raise IOFailure("Failed to write processed image")
    output_path = scratch.allocate("processed", format_tag.extension)
    try:
        output_path.write_bytes(encoded)
    except OSError as exc:
        logger.error(f"Failed to write processed image {output_path.name}: {exc}")
        raise IOFailure("Failed to write processed image") from exc
    return output_path


__all__ = ["ImageCodec", "PillowCodec", "save_encoded"]
