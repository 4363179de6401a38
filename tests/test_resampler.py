import math

import numpy as np
import pytest

from resampler import axis_ratio, destination_size, resample


def test_identity_at_scale_one():
    grid = np.arange(12, dtype=np.int32).reshape(3, 4)
    out = resample(grid, 3, 4, 1.0)
    assert np.array_equal(out, grid)
    assert out is not grid


def test_input_is_not_modified():
    grid = np.arange(20, dtype=np.int32).reshape(4, 5)
    before = grid.copy()
    resample(grid, 2, 2, 2.0)
    assert np.array_equal(grid, before)


def test_exact_corner_hits():
    grid = np.array([[1, 2, 3], [4, 5, 6], [7, 8, 9]], dtype=np.int32)
    assert resample(grid, 2, 2, 1.5).tolist() == [[1, 3], [7, 9]]


def test_interpolates_between_columns():
    grid = np.array([[0, 10, 20], [100, 110, 120]], dtype=np.int32)
    out = resample(grid, 2, 5, 0.6)
    assert out.tolist() == [[0, 5, 10, 15, 20], [100, 105, 110, 115, 120]]


def test_output_shape_and_dtype():
    grid = np.random.default_rng(1).integers(0, 255, size=(37, 53), dtype=np.int32)
    out = resample(grid, 12, 17, 3.0)
    assert out.shape == (12, 17)
    assert out.dtype == np.int32


def test_single_destination_sample():
    grid = np.array([[9, 1], [1, 1]], dtype=np.int32)
    assert resample(grid, 1, 1, 2.0).tolist() == [[9]]


def test_rejects_empty_destination():
    with pytest.raises(ValueError):
        resample(np.zeros((4, 4), dtype=np.int32), 0, 2, 2.0)


@pytest.mark.parametrize("shape,dest", [((10, 10), (3, 3)), ((31, 17), (9, 5)), ((64, 80), (21, 26)),
                                        ((5, 7), (4, 6))])
def test_never_overshoots_corners(shape, dest):
    rng = np.random.default_rng(sum(shape))
    grid = rng.integers(0, 255, size=shape, dtype=np.int32)
    dest_h, dest_w = dest
    out = resample(grid, dest_h, dest_w, 2.0)
    xratio = axis_ratio(shape[1], dest_w)
    yratio = axis_ratio(shape[0], dest_h)
    for h in range(dest_h):
        ys = {math.floor(h * yratio), min(math.ceil(h * yratio), shape[0] - 1)}
        for w in range(dest_w):
            xs = {math.floor(w * xratio), min(math.ceil(w * xratio), shape[1] - 1)}
            corners = [grid[y, x] for y in ys for x in xs]
            assert min(corners) <= out[h, w] <= max(corners)


def test_constant_grid_stays_constant():
    grid = np.full((13, 29), 254, dtype=np.int32)
    assert np.all(resample(grid, 5, 11, 2.5) == 254)


def test_axis_ratio_never_indexes_past_last_sample():
    for src in range(2, 60):
        for dest in range(2, src + 1):
            assert math.ceil(axis_ratio(src, dest) * (dest - 1)) <= src - 1


def test_axis_ratio_degenerate_axes():
    assert axis_ratio(10, 1) == 0.0
    assert axis_ratio(1, 1) == 0.0


def test_destination_size_floors():
    assert destination_size(4, 2, 1.0) == (4, 2)
    assert destination_size(10, 7, 3.0) == (3, 2)
    assert destination_size(3, 3, 4.0) == (0, 0)
