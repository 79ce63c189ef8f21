"""
どこで: `src/polyflow/core/fields.py`。
何を: 多角形を覆う格子（Grid）と、その上の符号付き距離場・勾配場を構築する。
なぜ: streamline と contour が同じ離散場を入力として使うため。
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

import numpy as np
from numba import njit  # type: ignore[attr-defined]

from polyflow.core.geometry import _signed_distance_njit, polygon_bbox
from polyflow.core.sampler import ScalarSampler, VectorSampler

_logger = logging.getLogger(__name__)

# bbox の外側に取る余白（world 単位）。
FIELD_MARGIN = 12.0


@dataclass(frozen=True, slots=True)
class Grid:
    """world 空間上の軸平行な格子。

    Parameters
    ----------
    origin_x, origin_y : float
        格子点 (0, 0) の world 座標。
    step : float
        格子間隔。
    columns, rows : int
        x / y 方向の格子点数。
    """

    origin_x: float
    origin_y: float
    step: float
    columns: int
    rows: int

    def __post_init__(self) -> None:
        if not math.isfinite(self.step) or self.step <= 0.0:
            raise ValueError(f"grid step は正の有限値である必要がある: got={self.step!r}")
        if self.columns < 0 or self.rows < 0:
            raise ValueError("grid columns/rows は 0 以上である必要がある")

    @property
    def max_x(self) -> float:
        return self.origin_x + (self.columns - 1) * self.step

    @property
    def max_y(self) -> float:
        return self.origin_y + (self.rows - 1) * self.step

    @property
    def shape(self) -> tuple[int, int]:
        """値配列の shape（rows, columns）。"""
        return (self.rows, self.columns)

    @property
    def size(self) -> int:
        return self.rows * self.columns

    def point(self, i: int, j: int) -> tuple[float, float]:
        """格子点 (i, j) の world 座標を返す。"""
        return (self.origin_x + i * self.step, self.origin_y + j * self.step)

    @classmethod
    def covering(
        cls,
        polygon: np.ndarray,
        step: float,
        canvas: tuple[float, float] | None = None,
        *,
        margin: float = FIELD_MARGIN,
    ) -> Grid:
        """多角形 bbox に余白を足し、step の倍数へ外側スナップした格子を返す。

        canvas=(w, h) を与えた場合は [0,w]×[0,h] にクランプする。
        """
        step = float(step)
        bb = polygon_bbox(polygon)
        min_x = math.floor((bb.min_x - margin) / step) * step
        min_y = math.floor((bb.min_y - margin) / step) * step
        max_x = math.ceil((bb.max_x + margin) / step) * step
        max_y = math.ceil((bb.max_y + margin) / step) * step
        if canvas is not None:
            width, height = float(canvas[0]), float(canvas[1])
            min_x = max(0.0, min_x)
            min_y = max(0.0, min_y)
            max_x = min(width, max_x)
            max_y = min(height, max_y)
        columns = max(0, int(math.floor((max_x - min_x) / step)) + 1)
        rows = max(0, int(math.floor((max_y - min_y) / step)) + 1)
        return cls(origin_x=min_x, origin_y=min_y, step=step, columns=columns, rows=rows)


@dataclass(frozen=True, slots=True)
class ScalarField:
    """Grid と符号付き距離値（shape (rows, columns)、読み取り専用）。"""

    grid: Grid
    values: np.ndarray

    def __post_init__(self) -> None:
        values = np.asarray(self.values, dtype=np.float64)
        if values.shape != self.grid.shape:
            raise ValueError(
                f"values の shape が grid と一致しない: values={values.shape}, grid={self.grid.shape}"
            )
        values.setflags(write=False)
        object.__setattr__(self, "values", values)

    def max_value(self) -> float:
        """場の最大値（空なら 0）。"""
        if self.values.size == 0:
            return 0.0
        return float(np.max(self.values))

    def sampler(self) -> ScalarSampler:
        return ScalarSampler(self.grid, self.values)


@dataclass(frozen=True, slots=True)
class VectorField:
    """Grid と差分勾配 (gx, gy)。境界セルは 0。"""

    grid: Grid
    gx: np.ndarray
    gy: np.ndarray

    def __post_init__(self) -> None:
        gx = np.asarray(self.gx, dtype=np.float64)
        gy = np.asarray(self.gy, dtype=np.float64)
        if gx.shape != self.grid.shape or gy.shape != self.grid.shape:
            raise ValueError("gx/gy の shape が grid と一致しない")
        gx.setflags(write=False)
        gy.setflags(write=False)
        object.__setattr__(self, "gx", gx)
        object.__setattr__(self, "gy", gy)

    def sampler(self) -> VectorSampler:
        return VectorSampler(self.grid, self.gx, self.gy)


@njit(cache=True)  # type: ignore[misc]
def _signed_distance_grid_njit(
    polygon: np.ndarray,
    origin_x: float,
    origin_y: float,
    step: float,
    columns: int,
    rows: int,
) -> np.ndarray:
    out = np.empty((rows, columns), dtype=np.float64)
    for j in range(rows):
        y = origin_y + j * step
        for i in range(columns):
            x = origin_x + i * step
            out[j, i] = _signed_distance_njit(polygon, x, y)
    return out


def _bounded_step(
    polygon: np.ndarray,
    step: float,
    canvas: tuple[float, float] | None,
    margin: float,
    max_samples: int | None,
) -> Grid:
    grid = Grid.covering(polygon, step, canvas, margin=margin)
    if max_samples is None or grid.size <= max_samples:
        return grid
    # サンプル数が上限を超える場合は step を粗くして格子に収める。
    # step が bbox + 余白の幅に達すると格子は最小（3x3 以下）になり、それ以上は縮まない。
    bb = polygon_bbox(polygon)
    extent = max(bb.max_x - bb.min_x, bb.max_y - bb.min_y) + 2.0 * margin
    coarse = float(step)
    while grid.size > max_samples and coarse < extent:
        coarse = min(extent, coarse * math.sqrt(grid.size / float(max_samples)) * 1.01)
        grid = Grid.covering(polygon, coarse, canvas, margin=margin)
    _logger.warning(
        "距離場の格子が上限を超えたため step を粗くします: step=%.3f -> %.3f (samples=%d, max_samples=%d)",
        step,
        coarse,
        grid.size,
        max_samples,
    )
    return grid


def build_scalar_field(
    step: float,
    polygon: np.ndarray,
    canvas: tuple[float, float] | None = None,
    *,
    margin: float = FIELD_MARGIN,
    max_samples: int | None = None,
) -> ScalarField:
    """多角形の符号付き距離場を格子上に構築する。

    Parameters
    ----------
    step : float
        格子間隔。
    polygon : np.ndarray
        shape (N,2) の多角形（`as_polygon` で正規化済み）。
    canvas : tuple[float, float] or None, optional
        (width, height)。与えると格子範囲を [0,w]×[0,h] にクランプする。
    margin : float, optional
        bbox の外側へ取る余白。
    max_samples : int or None, optional
        格子点数の上限。超える場合は step を粗くする。

    Returns
    -------
    ScalarField
        内側が正、外側が負の距離場。

    Notes
    -----
    退化多角形でも例外は出さない。空なら 0x0 の空格子になる。1〜2 点なら点または線分までの
    距離を負号付きで持つ全点負の場、面積 0 ならゼロ交差を持たない一様符号の場になる
    （描画可否の判定は呼び出し側で行う）。
    """
    if max_samples is not None and max_samples < 1:
        raise ValueError(f"max_samples は 1 以上である必要がある: got={max_samples!r}")
    if polygon.shape[0] == 0:
        empty = Grid(origin_x=0.0, origin_y=0.0, step=float(step), columns=0, rows=0)
        return ScalarField(empty, np.zeros(empty.shape, dtype=np.float64))
    grid = _bounded_step(polygon, step, canvas, float(margin), max_samples)
    if grid.size == 0:
        return ScalarField(grid, np.zeros(grid.shape, dtype=np.float64))
    values = _signed_distance_grid_njit(
        np.ascontiguousarray(polygon, dtype=np.float64),
        float(grid.origin_x),
        float(grid.origin_y),
        float(grid.step),
        int(grid.columns),
        int(grid.rows),
    )
    return ScalarField(grid, values)


def gradient_field(field: ScalarField) -> VectorField:
    """中心差分で勾配場を作る（内部セルのみ、境界セルは 0）。"""
    grid = field.grid
    f = field.values
    gx = np.zeros(grid.shape, dtype=np.float64)
    gy = np.zeros(grid.shape, dtype=np.float64)
    if grid.columns >= 3 and grid.rows >= 3:
        inv = 1.0 / (2.0 * grid.step)
        gx[1:-1, 1:-1] = (f[1:-1, 2:] - f[1:-1, :-2]) * inv
        gy[1:-1, 1:-1] = (f[2:, 1:-1] - f[:-2, 1:-1]) * inv
    return VectorField(grid, gx, gy)


__all__ = [
    "FIELD_MARGIN",
    "Grid",
    "ScalarField",
    "VectorField",
    "build_scalar_field",
    "gradient_field",
]
