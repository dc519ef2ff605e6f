"""Intensity histogram of an 8-bit grayscale buffer."""

from __future__ import annotations

import numpy as np


HISTOGRAM_BINS = 256


def build_histogram(gray: np.ndarray) -> np.ndarray:
    """Count how many pixels take each of the 256 intensity levels.

    Args:
        gray: HxW ``uint8`` array.

    Returns:
        np.ndarray: ``int64`` array of length 256 whose sum equals ``gray.size``.

    Raises:
        ValueError: If ``gray`` is not a two-dimensional ``uint8`` array.
    """
    if gray.ndim != 2:
        raise ValueError("Grayscale buffers must be HxW arrays.")
    if gray.dtype != np.uint8:
        raise ValueError(f"Grayscale buffers must be uint8, got {gray.dtype}.")
    return np.bincount(gray.ravel(), minlength=HISTOGRAM_BINS).astype(np.int64)


__all__ = ["HISTOGRAM_BINS", "build_histogram"]
