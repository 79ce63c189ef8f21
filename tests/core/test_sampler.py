"""双線形サンプラーに関するテスト群。"""

from __future__ import annotations

import dataclasses

import numpy as np
import pytest

from polyflow.core.fields import Grid
from polyflow.core.sampler import ScalarSampler, VectorSampler

_GRID = Grid(origin_x=0.0, origin_y=0.0, step=1.0, columns=3, rows=3)
_VALUES = np.arange(9, dtype=np.float64).reshape(3, 3)


def test_scalar_sampler_interpolates_bilinearly() -> None:
    s = ScalarSampler(_GRID, _VALUES)
    assert s(0.5, 0.5) == pytest.approx((0.0 + 1.0 + 3.0 + 4.0) / 4.0)
    assert s(1.0, 1.0) == pytest.approx(4.0)
    assert s(0.25, 0.0) == pytest.approx(0.25)
    assert s.sample(0.0, 1.5) == pytest.approx(4.5)


def test_scalar_sampler_is_bounded_by_grid_values() -> None:
    s = ScalarSampler(_GRID, _VALUES)
    rng = np.random.default_rng(1)
    for x, y in rng.uniform(0.0, 1.999, size=(100, 2)):
        v = s(float(x), float(y))
        assert _VALUES.min() <= v <= _VALUES.max()


def test_scalar_sampler_outside_is_neutral() -> None:
    s = ScalarSampler(_GRID, _VALUES)
    assert s(-0.1, 0.5) == 0.0
    assert s(0.5, 5.0) == 0.0
    assert s(2.0, 0.5) == 0.0
    assert s(float("nan"), 0.5) == 0.0


def test_vector_sampler_interpolates_both_components() -> None:
    s = VectorSampler(_GRID, _VALUES, -_VALUES)
    gx, gy = s(0.5, 0.5)
    assert gx == pytest.approx(2.0)
    assert gy == pytest.approx(-2.0)
    assert s(10.0, 10.0) == (0.0, 0.0)


def test_samplers_are_immutable() -> None:
    s = ScalarSampler(_GRID, _VALUES)
    with pytest.raises(dataclasses.FrozenInstanceError):
        s.values = np.zeros((3, 3))  # type: ignore[misc]


@pytest.mark.parametrize(
    ("x", "y"),
    [(-0.5, 1.0), (1.0, -0.5), (2.0, 1.0), (1.0, 2.0), (50.0, 50.0), (float("nan"), 1.0)],
)
def test_vector_sampler_outside_is_zero_vector(x: float, y: float) -> None:
    s = VectorSampler(_GRID, _VALUES + 1.0, _VALUES + 1.0)
    assert s(x, y) == (0.0, 0.0)
