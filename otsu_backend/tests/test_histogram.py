from __future__ import annotations

import numpy as np
import pytest

from otsu_backend.imaging.histogram import HISTOGRAM_BINS, build_histogram


def test_histogram_counts_every_pixel_once() -> None:
    gray = np.array([[0, 0, 7], [255, 7, 7]], dtype=np.uint8)
    hist = build_histogram(gray)

    assert hist.shape == (HISTOGRAM_BINS,)
    assert hist[0] == 2
    assert hist[7] == 3
    assert hist[255] == 1
    assert hist.sum() == gray.size


def test_histogram_ignores_traversal_order() -> None:
    rng = np.random.default_rng(7)
    gray = rng.integers(0, 256, size=(31, 17), dtype=np.uint8)

    assert np.array_equal(build_histogram(gray), build_histogram(gray.T.copy()))
    assert np.array_equal(build_histogram(gray), build_histogram(gray[::-1, ::-1]))


def test_histogram_rejects_colour_and_wide_buffers() -> None:
    with pytest.raises(ValueError):
        build_histogram(np.zeros((2, 2, 3), dtype=np.uint8))
    with pytest.raises(ValueError):
        build_histogram(np.zeros((2, 2), dtype=np.uint16))
