"""clip_flow mode のテスト。"""

from __future__ import annotations

import numpy as np
import pytest

from polyflow.core.context import RenderContext
from polyflow.core.geometry import as_polygon
from polyflow.core.modes.clip_flow import ClipFlowParams, clip_flow, turn_reach
from polyflow.core.seeding import make_rng

_SQUARE = as_polygon([(0.0, 0.0), (100.0, 0.0), (100.0, 100.0), (0.0, 100.0)])


def _ctx() -> RenderContext:
    return RenderContext(
        canvas=None,
        rng=make_rng(0),
        sdf_step=8.0,
        margin=12.0,
        max_grid_samples=1_000_000,
        max_contour_levels=512,
        min_polygon_area=4.0,
        max_seeds=20000,
    )


def test_each_chord_runs_boundary_to_boundary() -> None:
    out = clip_flow(_SQUARE, ClipFlowParams().normalized(), _ctx())
    lines = list(out)
    assert len(lines) == 7
    ys = sorted(float(line[0, 1]) for line in lines)
    assert ys == pytest.approx([2.0, 18.0, 34.0, 50.0, 66.0, 82.0, 98.0])
    for line in lines:
        np.testing.assert_allclose(line[0], (0.0, line[0, 1]), rtol=0.0, atol=1e-9)
        np.testing.assert_allclose(line[-1], (100.0, line[0, 1]), rtol=0.0, atol=1e-9)


def test_params_are_clamped() -> None:
    p = ClipFlowParams(spacing=0.0, falloff_near=100.0, falloff_far=0.0).normalized()
    assert p.spacing == 1.0
    assert p.falloff_near == 4.0
    assert p.falloff_far == 0.15


def test_turn_reach_scales_with_spacing_and_falloff() -> None:
    near, far = turn_reach(16.0, 100.0, 1.0, 1.0)
    assert near == pytest.approx(60.8)
    assert far == pytest.approx(158.08)
    near2, far2 = turn_reach(16.0, 100.0, 2.0, 0.25)
    assert near2 == pytest.approx(2.0 * near)
    assert far2 < far


@pytest.mark.parametrize(
    "kwargs",
    [{"spacing": float("inf")}, {"spacing": float("nan")}, {"angle": float("inf")}, {"falloff_far": float("nan")}],
)
def test_non_finite_params_are_rejected(kwargs: dict[str, float]) -> None:
    with pytest.raises(ValueError):
        ClipFlowParams(**kwargs).normalized()
