"""seed 点列生成（乱数源・Poisson-disk・ジッター格子・辺サンプル）に関するテスト群。"""

from __future__ import annotations

import math

import numpy as np
import pytest

from polyflow.core.geometry import BBox, as_polygon, point_in_polygon
from polyflow.core.seeding import edge_samples, jittered_grid_seeds, make_rng, poisson_in_polygon

_SQUARE = as_polygon([(0.0, 0.0), (100.0, 0.0), (100.0, 100.0), (0.0, 100.0)])
_L_SHAPE = as_polygon(
    [(0.0, 0.0), (80.0, 0.0), (80.0, 30.0), (30.0, 30.0), (30.0, 90.0), (0.0, 90.0)]
)


def test_make_rng_is_reproducible_and_in_unit_interval() -> None:
    a = make_rng(42)
    b = make_rng(42)
    xs = [a() for _ in range(50)]
    assert xs == [b() for _ in range(50)]
    assert all(0.0 <= x < 1.0 for x in xs)


def test_poisson_samples_are_inside_and_spaced() -> None:
    pts = poisson_in_polygon(8.0, _L_SHAPE, make_rng(3))
    assert len(pts) > 10
    for x, y in pts:
        assert point_in_polygon(x, y, _L_SHAPE)
    arr = np.asarray(pts)
    for i in range(len(arr)):
        d = np.hypot(arr[i + 1 :, 0] - arr[i, 0], arr[i + 1 :, 1] - arr[i, 1])
        assert np.all(d >= 8.0 - 1e-9)


def test_poisson_is_reproducible_and_respects_cap() -> None:
    a = poisson_in_polygon(6.0, _SQUARE, make_rng(1))
    b = poisson_in_polygon(6.0, _SQUARE, make_rng(1))
    assert a == b
    capped = poisson_in_polygon(6.0, _SQUARE, make_rng(1), max_samples=5)
    assert len(capped) == 5


def test_poisson_rejects_non_positive_distance() -> None:
    assert poisson_in_polygon(0.0, _SQUARE, make_rng(0)) == []
    assert poisson_in_polygon(5.0, as_polygon([(0.0, 0.0), (1.0, 1.0)]), make_rng(0)) == []


def test_jittered_grid_seeds_inside_and_capped() -> None:
    pts = jittered_grid_seeds(_L_SHAPE, 10.0, make_rng(2))
    assert len(pts) > 0
    for x, y in pts:
        assert point_in_polygon(x, y, _L_SHAPE)
    capped = jittered_grid_seeds(_L_SHAPE, 10.0, make_rng(2), max_seeds=3)
    assert capped == pts[:3]


def test_jittered_grid_seeds_uses_explicit_bounds() -> None:
    pts = jittered_grid_seeds(_SQUARE, 10.0, make_rng(2), jitter=0.0, bounds=BBox(40.0, 40.0, 60.0, 60.0))
    assert pts == [(x, y) for y in (40.0, 50.0, 60.0) for x in (40.0, 50.0, 60.0)]


def test_edge_samples_have_outward_normals_for_both_orientations() -> None:
    for poly in (_SQUARE, _SQUARE[::-1].copy()):
        samples = list(edge_samples(poly, 50.0))
        assert len(samples) == 12
        for x, y, nx, ny in samples:
            assert math.hypot(nx, ny) == pytest.approx(1.0)
            assert point_in_polygon(x - nx * 0.5, y - ny * 0.5, poly) or (x, y) in {
                (0.0, 0.0),
                (100.0, 0.0),
                (100.0, 100.0),
                (0.0, 100.0),
            }
            assert not point_in_polygon(x + nx * 0.5, y + ny * 0.5, poly)


def test_edge_samples_bottom_edge_normal_points_down() -> None:
    samples = list(edge_samples(_SQUARE, 50.0))
    bottom = [s for s in samples[:3]]
    for x, y, nx, ny in bottom:
        assert y == 0.0
        assert (nx, ny) == pytest.approx((0.0, -1.0))
