"""公開 API（render / M / sink / mode デコレータ）のテスト群。"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import numpy as np
import pytest

from polyflow import M, DrawingSink, PolylineCollector, mode, render
from polyflow.core.mode_registry import mode_registry
from polyflow.core.parameters import ParamMeta
from polyflow.core.polylines import polylines_from_lines
from polyflow.core.runtime_config import set_config_path

_SQUARE = [(0.0, 0.0), (100.0, 0.0), (100.0, 100.0), (0.0, 100.0)]
_TINY = [(10.0, 10.0), (11.0, 10.0), (10.0, 11.0)]
_UNIT_TRIANGLE = [(0.0, 0.0), (1.0, 0.0), (0.0, 1.0)]


@pytest.fixture(autouse=True)
def _isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    set_config_path(None)
    yield
    set_config_path(None)


class _RecordingSink:
    def __init__(self) -> None:
        self.polylines: list[np.ndarray] = []
        self.segments: list[tuple[tuple[float, float], tuple[float, float]]] = []

    def polyline(self, points: np.ndarray) -> None:
        self.polylines.append(np.asarray(points))

    def segment(self, a: tuple[float, float], b: tuple[float, float]) -> None:
        self.segments.append((a, b))


def test_render_contours_returns_polylines() -> None:
    out = render("contours", _SQUARE, seed=1, gap=10.0)
    assert len(out) > 0
    assert np.all(np.diff(out.offsets) == 2)


def test_render_unknown_mode_raises_key_error() -> None:
    with pytest.raises(KeyError):
        render("no_such_mode", _SQUARE)


def test_render_unknown_param_raises_value_error() -> None:
    with pytest.raises(ValueError):
        render("contours", _SQUARE, spacing=3.0)


def test_render_rejects_malformed_polygon() -> None:
    with pytest.raises(ValueError):
        render("contours", [[0.0, 0.0, 0.0, 0.0]])


def test_render_rejects_non_positive_canvas() -> None:
    with pytest.raises(ValueError):
        render("contours", _SQUARE, canvas=(0.0, 100.0))


@pytest.mark.parametrize("polygon", [_TINY, _UNIT_TRIANGLE], ids=["tiny", "unit_triangle"])
@pytest.mark.parametrize("name", ["flow", "guided", "clip_flow", "noise_dashed_flow", "ink_ribbons", "skin_flow", "contours"])
def test_tiny_polygon_renders_nothing_for_every_mode(name: str, polygon: list[tuple[float, float]]) -> None:
    sink = _RecordingSink()
    out = render(name, polygon, seed=0, sink=sink)
    assert len(out) == 0
    assert sink.polylines == []
    assert sink.segments == []


def test_render_is_deterministic_for_same_seed() -> None:
    a = render("noise_dashed_flow", _SQUARE, seed=3)
    b = render("noise_dashed_flow", _SQUARE, seed=3)
    assert np.array_equal(a.coords, b.coords)
    assert np.array_equal(a.offsets, b.offsets)


def test_canvas_clamps_field_range() -> None:
    free = render("contours", _SQUARE, seed=0, gap=10.0)
    clamped = render("contours", _SQUARE, seed=0, gap=10.0, canvas=(100.0, 100.0))
    assert len(clamped) > 0
    assert np.all(clamped.coords >= 0.0)
    assert np.all(clamped.coords <= 100.0)
    assert len(free) > 0


def test_sink_receives_segments_and_polylines() -> None:
    sink = _RecordingSink()
    out = render("contours", _SQUARE, seed=0, gap=20.0, sink=sink)
    assert len(sink.segments) == len(out)
    assert sink.polylines == []

    sink = _RecordingSink()
    out = render("flow", _SQUARE, seed=0, sink=sink)
    assert len(sink.polylines) == len(out)
    assert sink.segments == []


def test_polyline_collector_rebuilds_render_output() -> None:
    collector = PolylineCollector()
    assert isinstance(collector, DrawingSink)
    out = render("contours", _SQUARE, seed=0, gap=20.0, sink=collector)
    assert len(collector) == len(out)
    rebuilt = collector.result()
    assert np.array_equal(rebuilt.coords, out.coords)
    assert np.array_equal(rebuilt.offsets, out.offsets)


def test_mode_namespace_calls_render() -> None:
    via_m = M.contours(_SQUARE, gap=10.0, seed=2)
    direct = render("contours", _SQUARE, gap=10.0, seed=2)
    assert np.array_equal(via_m.coords, direct.coords)
    assert "contours" in dir(M)
    with pytest.raises(AttributeError):
        M.no_such_mode  # noqa: B018


def test_user_defined_mode_is_renderable() -> None:
    @dataclass(frozen=True)
    class BoxParams:
        inset: float = 5.0

    @mode(params=BoxParams, meta={"inset": ParamMeta(kind="float", ui_min=0.0, ui_max=50.0)})
    def api_test_box(polygon, params, ctx):
        mins = polygon.min(axis=0) + params.inset
        maxs = polygon.max(axis=0) - params.inset
        box = np.asarray(
            [[mins[0], mins[1]], [maxs[0], mins[1]], [maxs[0], maxs[1]], [mins[0], maxs[1]], [mins[0], mins[1]]]
        )
        return polylines_from_lines([box])

    assert "api_test_box" in mode_registry
    out = render("api_test_box", _SQUARE, inset="10")
    np.testing.assert_allclose(out.coords[0], (10.0, 10.0), rtol=0.0, atol=0.0)
    np.testing.assert_allclose(M.api_test_box(_SQUARE).coords[0], (5.0, 5.0), rtol=0.0, atol=0.0)
