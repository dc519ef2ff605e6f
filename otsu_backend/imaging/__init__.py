"""Histogram, Otsu threshold and binarization helpers.

The Pillow codec lives in :mod:`otsu_backend.imaging.codec` and is imported
from there directly.
"""

from .binarize import apply_threshold
from .formats import FormatTag
from .histogram import build_histogram
from .otsu import between_class_variance, solve_threshold


__all__ = [
    "FormatTag",
    "apply_threshold",
    "between_class_variance",
    "build_histogram",
    "solve_threshold",
]
