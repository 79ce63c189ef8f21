"""RenderContext の生成と描画可否判定に関するテスト群。"""

from __future__ import annotations

from pathlib import Path

import pytest

from polyflow.core.context import RenderContext
from polyflow.core.geometry import as_polygon
from polyflow.core.runtime_config import runtime_config, set_config_path

_SQUARE = as_polygon([(0.0, 0.0), (100.0, 0.0), (100.0, 100.0), (0.0, 100.0)])


@pytest.fixture(autouse=True)
def _isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    set_config_path(None)
    yield
    set_config_path(None)


def test_create_uses_runtime_config_defaults() -> None:
    ctx = RenderContext.create(seed=1)
    cfg = runtime_config()
    assert ctx.canvas is None
    assert ctx.sdf_step == cfg.sdf_step
    assert ctx.margin == cfg.field_margin
    assert ctx.max_seeds == cfg.max_seeds
    assert ctx.min_polygon_area == cfg.min_polygon_area


def test_same_seed_gives_same_random_sequence() -> None:
    a = RenderContext.create(seed=9)
    b = RenderContext.create(seed=9)
    assert [a.rng() for _ in range(5)] == [b.rng() for _ in range(5)]


def test_config_seed_and_canvas_apply_when_not_given(tmp_path: Path) -> None:
    cfg_path = tmp_path / "cfg.yaml"
    cfg_path.write_text("render:\n  seed: 4\n  canvas_size: [50, 60]\n", encoding="utf-8")
    set_config_path(cfg_path)

    ctx = RenderContext.create()
    assert ctx.canvas == (50.0, 60.0)
    ref = RenderContext.create(seed=4)
    assert ctx.rng() == ref.rng()

    explicit = RenderContext.create(seed=4, canvas=(10, 20))
    assert explicit.canvas == (10.0, 20.0)


def test_invalid_canvas_is_rejected() -> None:
    with pytest.raises(ValueError):
        RenderContext.create(canvas=(-1.0, 10.0))


def test_is_drawable() -> None:
    ctx = RenderContext.create(seed=0)
    assert ctx.is_drawable(_SQUARE)
    assert not ctx.is_drawable(as_polygon([(10.0, 10.0), (11.0, 10.0), (10.0, 11.0)]))
    assert not ctx.is_drawable(as_polygon([]))


def test_scalar_field_uses_context_resolution() -> None:
    ctx = RenderContext.create(seed=0)
    assert ctx.scalar_field(_SQUARE).grid.step == ctx.sdf_step
    assert ctx.scalar_field(_SQUARE, 4.0).grid.step == 4.0
    clamped = RenderContext.create(seed=0, canvas=(100.0, 100.0)).scalar_field(_SQUARE)
    assert clamped.grid.origin_x == 0.0
