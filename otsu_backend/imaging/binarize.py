"""Apply a global threshold to a grayscale buffer."""

from __future__ import annotations

import numpy as np


FOREGROUND = 255
BACKGROUND = 0


def apply_threshold(gray: np.ndarray, level: int) -> np.ndarray:
    """Map pixels strictly above ``level`` to 255 and all others to 0.

    The input is left untouched; the result is a new ``uint8`` array with the
    same shape.
    """
    if not 0 <= int(level) <= 255:
        raise ValueError(f"Threshold level must be in [0, 255], got {level}.")
    if gray.ndim != 2:
        raise ValueError("Grayscale buffers must be HxW arrays.")
    return np.where(gray > int(level), FOREGROUND, BACKGROUND).astype(np.uint8)


__all__ = ["BACKGROUND", "FOREGROUND", "apply_threshold"]
