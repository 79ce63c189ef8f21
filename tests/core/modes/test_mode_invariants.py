"""全 mode に共通する性質（退化入力・内側保持・決定性）のテスト群。"""

from __future__ import annotations

import math

import numpy as np
import pytest

from polyflow.core.context import RenderContext
from polyflow.core.geometry import as_polygon, point_in_polygon
from polyflow.core.modes.clip_flow import ClipFlowParams, clip_flow
from polyflow.core.modes.contours import ContoursParams, contours
from polyflow.core.modes.flow import FlowParams, flow
from polyflow.core.modes.guided import GuidedParams, guided
from polyflow.core.modes.ink_ribbons import InkRibbonsParams, ink_ribbons
from polyflow.core.modes.noise_dashed_flow import NoiseDashedFlowParams, noise_dashed_flow
from polyflow.core.modes.skin_flow import SkinFlowParams, skin_flow
from polyflow.core.seeding import make_rng

_SQUARE = as_polygon([(0.0, 0.0), (100.0, 0.0), (100.0, 100.0), (0.0, 100.0)])
_TALL = as_polygon([(0.0, 0.0), (60.0, 0.0), (60.0, 300.0), (0.0, 300.0)])
_TINY = as_polygon([(10.0, 10.0), (11.0, 10.0), (10.0, 11.0)])
_UNIT_TRIANGLE = as_polygon([(0.0, 0.0), (1.0, 0.0), (0.0, 1.0)])
_L_SHAPE = as_polygon(
    [(0.0, 0.0), (200.0, 0.0), (200.0, 80.0), (80.0, 80.0), (80.0, 200.0), (0.0, 200.0)]
)
_STAR = as_polygon(
    [
        (
            120.0 + (100.0 if k % 2 == 0 else 45.0) * math.cos(math.pi / 2.0 + k * math.pi / 5.0),
            120.0 + (100.0 if k % 2 == 0 else 45.0) * math.sin(math.pi / 2.0 + k * math.pi / 5.0),
        )
        for k in range(10)
    ]
)

_MODES = [
    pytest.param(flow, FlowParams(), _SQUARE, True, id="flow"),
    pytest.param(flow, FlowParams(orthogonal=True), _SQUARE, True, id="flow-orthogonal"),
    pytest.param(guided, GuidedParams(), _SQUARE, True, id="guided"),
    pytest.param(clip_flow, ClipFlowParams(), _SQUARE, False, id="clip_flow"),
    pytest.param(noise_dashed_flow, NoiseDashedFlowParams(), _SQUARE, False, id="noise_dashed_flow"),
    pytest.param(
        noise_dashed_flow,
        NoiseDashedFlowParams(even=False, jitter=0.5, random_phase=True),
        _SQUARE,
        False,
        id="noise_dashed_flow-grid",
    ),
    pytest.param(ink_ribbons, InkRibbonsParams(), _TALL, True, id="ink_ribbons"),
    pytest.param(skin_flow, SkinFlowParams(max_steps=300), _SQUARE, True, id="skin_flow"),
    pytest.param(contours, ContoursParams(gap=10.0), _SQUARE, False, id="contours"),
]


def _ctx(seed: int = 0) -> RenderContext:
    return RenderContext(
        canvas=None,
        rng=make_rng(seed),
        sdf_step=8.0,
        margin=12.0,
        max_grid_samples=1_000_000,
        max_contour_levels=512,
        min_polygon_area=4.0,
        max_seeds=20000,
    )


@pytest.mark.parametrize(("func", "params", "polygon", "strictly_inside"), _MODES)
def test_mode_output_stays_within_polygon(func, params, polygon, strictly_inside) -> None:
    out = func(polygon, params.normalized(), _ctx())
    assert len(out) > 0
    for line in out:
        assert line.shape[0] >= 2
    mins = polygon.min(axis=0) - 1e-6
    maxs = polygon.max(axis=0) + 1e-6
    assert np.all(out.coords >= mins)
    assert np.all(out.coords <= maxs)
    if strictly_inside:
        for x, y in out.coords:
            assert point_in_polygon(x, y, polygon)


@pytest.mark.parametrize(("func", "params", "polygon", "strictly_inside"), _MODES)
def test_mode_is_deterministic_for_same_seed(func, params, polygon, strictly_inside) -> None:
    a = func(polygon, params.normalized(), _ctx(5))
    b = func(polygon, params.normalized(), _ctx(5))
    assert np.array_equal(a.coords, b.coords)
    assert np.array_equal(a.offsets, b.offsets)


@pytest.mark.parametrize(("func", "params", "polygon", "strictly_inside"), _MODES)
def test_tiny_polygon_renders_nothing(func, params, polygon, strictly_inside) -> None:
    out = func(_TINY, params.normalized(), _ctx())
    assert len(out) == 0
    assert out.n_vertices == 0


@pytest.mark.parametrize(("func", "params", "polygon", "strictly_inside"), _MODES)
def test_empty_polygon_renders_nothing(func, params, polygon, strictly_inside) -> None:
    out = func(as_polygon([]), params.normalized(), _ctx())
    assert len(out) == 0


@pytest.mark.parametrize(("func", "params", "polygon", "strictly_inside"), _MODES)
def test_unit_right_triangle_renders_nothing(func, params, polygon, strictly_inside) -> None:
    out = func(_UNIT_TRIANGLE, params.normalized(), _ctx())
    assert len(out) == 0
    assert out.n_vertices == 0


@pytest.mark.parametrize("shape", [pytest.param(_L_SHAPE, id="l_shape"), pytest.param(_STAR, id="star")])
@pytest.mark.parametrize(("func", "params", "polygon", "strictly_inside"), _MODES)
def test_concave_polygon_output_stays_inside(func, params, polygon, strictly_inside, shape) -> None:
    out = func(shape, params.normalized(), _ctx(3))
    assert len(out) > 0
    mins = shape.min(axis=0) - 1e-6
    maxs = shape.max(axis=0) + 1e-6
    assert np.all(out.coords >= mins)
    assert np.all(out.coords <= maxs)
    if strictly_inside:
        for x, y in out.coords:
            assert point_in_polygon(x, y, shape)

    again = func(shape, params.normalized(), _ctx(3))
    assert np.array_equal(out.coords, again.coords)
    assert np.array_equal(out.offsets, again.offsets)
