"""Otsu's global threshold selection.

For every candidate level ``t`` the histogram is split into a background class
``[0, t]`` and a foreground class ``(t, 255]``. The chosen level maximises the
between-class variance ``w_bg * w_fg * (mu_bg - mu_fg) ** 2``.

Scores are compared as exact integer fractions: with ``T`` pixels in total,
``S`` the intensity sum, and ``n_bg``/``s_bg`` the background count and sum,

    variance(t) = (T * s_bg - n_bg * S) ** 2 / (T ** 2 * n_bg * n_fg)

so equal variances compare equal and ties always resolve to the smallest ``t``.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from .histogram import HISTOGRAM_BINS


def _as_counts(histogram: np.ndarray | Sequence[int]) -> list[int]:
    counts = [int(value) for value in np.asarray(histogram).ravel()]
    if len(counts) != HISTOGRAM_BINS:
        raise ValueError(f"Histogram must have {HISTOGRAM_BINS} bins, got {len(counts)}.")
    if any(value < 0 for value in counts):
        raise ValueError("Histogram counts must be non-negative.")
    return counts


def between_class_variance(histogram: np.ndarray | Sequence[int], level: int) -> float:
    """Return the between-class variance obtained by splitting at ``level``.

    An empty class contributes zero variance, so a split that leaves either side
    without pixels scores ``0.0``.
    """
    if not 0 <= level < HISTOGRAM_BINS:
        raise ValueError(f"Threshold level must be in [0, 255], got {level}.")
    counts = _as_counts(histogram)
    total = sum(counts)
    weighted_total = sum(index * count for index, count in enumerate(counts))
    n_bg = sum(counts[: level + 1])
    s_bg = sum(index * counts[index] for index in range(level + 1))
    n_fg = total - n_bg
    if n_bg == 0 or n_fg == 0:
        return 0.0
    numerator = (total * s_bg - n_bg * weighted_total) ** 2
    return numerator / (total**2 * n_bg * n_fg)


def solve_threshold(histogram: np.ndarray | Sequence[int]) -> int:
    """Return the level in ``[0, 255]`` that maximises between-class variance.

    Histograms whose mass sits in a single bin (or that are empty) have no
    split with positive variance and yield ``0``.
    """
    counts = _as_counts(histogram)
    total = sum(counts)
    weighted_total = sum(index * count for index, count in enumerate(counts))

    best_level = 0
    best_numerator = 0
    best_denominator = 1
    n_bg = 0
    s_bg = 0
    for level, count in enumerate(counts):
        n_bg += count
        s_bg += level * count
        n_fg = total - n_bg
        if n_bg == 0:
            continue
        if n_fg == 0:
            break
        numerator = (total * s_bg - n_bg * weighted_total) ** 2
        denominator = n_bg * n_fg
        # numerator / denominator > best_numerator / best_denominator
        if numerator * best_denominator > best_numerator * denominator:
            best_level = level
            best_numerator = numerator
            best_denominator = denominator
    return best_level


__all__ = ["between_class_variance", "solve_threshold"]
