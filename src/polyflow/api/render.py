# どこで: `src/polyflow/api/render.py`。
# 何を: mode 名と多角形から Polylines を生成する公開関数 render と、描画 sink を提供する。
# なぜ: 引数検証・コンテキスト生成・mode 実行・sink への転送を 1 つの入口に揃えるため。

from __future__ import annotations

import logging
import time
from typing import Any, Protocol, Sequence, runtime_checkable

import numpy as np

from polyflow.core.context import RenderContext
from polyflow.core.geometry import as_polygon
from polyflow.core.mode_registry import mode_registry
from polyflow.core.polylines import Polylines, iter_polylines, polylines_from_lines

# mode 実装モジュールをインポートしてレジストリに登録させる。
from polyflow.core.modes import clip_flow as _mode_clip_flow  # noqa: F401
from polyflow.core.modes import contours as _mode_contours  # noqa: F401
from polyflow.core.modes import flow as _mode_flow  # noqa: F401
from polyflow.core.modes import guided as _mode_guided  # noqa: F401
from polyflow.core.modes import ink_ribbons as _mode_ink_ribbons  # noqa: F401
from polyflow.core.modes import noise_dashed_flow as _mode_noise_dashed_flow  # noqa: F401
from polyflow.core.modes import skin_flow as _mode_skin_flow  # noqa: F401

_logger = logging.getLogger(__name__)

Point = tuple[float, float]


@runtime_checkable
class DrawingSink(Protocol):
    """render 結果を受け取る描画先。"""

    def polyline(self, points: np.ndarray) -> None: ...

    def segment(self, a: Point, b: Point) -> None: ...


class PolylineCollector:
    """受け取った線をためて Polylines にまとめる sink。"""

    def __init__(self) -> None:
        self._lines: list[np.ndarray] = []

    def polyline(self, points: np.ndarray) -> None:
        self._lines.append(np.array(points, dtype=np.float64).reshape(-1, 2))

    def segment(self, a: Point, b: Point) -> None:
        self._lines.append(np.asarray([a, b], dtype=np.float64))

    def __len__(self) -> int:
        return len(self._lines)

    def result(self) -> Polylines:
        return polylines_from_lines(self._lines)


def _emit(polylines: Polylines, sink: DrawingSink) -> None:
    """2 点の線は segment、それ以外は polyline として sink へ流す。"""
    for line in iter_polylines(polylines):
        if line.shape[0] == 2:
            sink.segment((float(line[0, 0]), float(line[0, 1])), (float(line[1, 0]), float(line[1, 1])))
        elif line.shape[0] > 2:
            sink.polyline(line)


def render(
    name: str,
    polygon: Sequence[Sequence[float]] | np.ndarray,
    *,
    canvas: tuple[float, float] | None = None,
    seed: int | None = None,
    sink: DrawingSink | None = None,
    **params: Any,
) -> Polylines:
    """mode を 1 回実行して結果の Polylines を返す。

    Parameters
    ----------
    name : str
        mode 名（例: "flow", "contours"）。
    polygon : array-like
        shape (N,2) / (N,3) の単純閉多角形。
    canvas : tuple[float, float] or None, optional
        (width, height)。距離場の範囲をクランプする。
    seed : int or None, optional
        乱数 seed。同じ seed と入力なら結果は同一になる。
    sink : DrawingSink or None, optional
        指定すると結果を sink へも流す。
    **params : Any
        mode 固有の引数（既定値を上書き）。

    Returns
    -------
    Polylines
        生成された線。退化した多角形では空。

    Raises
    ------
    KeyError
        未登録の mode 名。
    ValueError
        未知の引数、型変換できない値、不正な形状の polygon。
    """
    spec = mode_registry.get(name)
    resolved = mode_registry.resolve_params(name, params)
    poly = as_polygon(polygon)
    ctx = RenderContext.create(seed=seed, canvas=canvas)

    t0 = time.perf_counter()
    out = spec.func(poly, resolved, ctx)
    _logger.debug(
        "render %s: lines=%d vertices=%d elapsed=%.1fms",
        name,
        len(out),
        out.n_vertices,
        (time.perf_counter() - t0) * 1000.0,
    )
    if sink is not None:
        _emit(out, sink)
    return out


__all__ = ["DrawingSink", "PolylineCollector", "render"]
