"""Output format selection from an upload's original filename."""

from __future__ import annotations

from enum import Enum


class FormatTag(str, Enum):
    """Container family used to decode an upload and to re-encode the result."""

    JPEG = "jpeg"
    PNG = "png"

    @classmethod
    def from_filename(cls, filename: str | None) -> FormatTag:
        """``.png`` (any case) selects PNG; every other name, or none, selects JPEG."""
        if filename and filename.lower().endswith(".png"):
            return cls.PNG
        return cls.JPEG

    @property
    def extension(self) -> str:
        return ".png" if self is FormatTag.PNG else ".jpg"

    @property
    def mime_type(self) -> str:
        return "image/png" if self is FormatTag.PNG else "image/jpeg"

    @property
    def pil_format(self) -> str:
        """Format name understood by ``PIL.Image.Image.save``."""
        return "PNG" if self is FormatTag.PNG else "JPEG"


__all__ = ["FormatTag"]
