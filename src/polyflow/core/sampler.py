# どこで: `src/polyflow/core/sampler.py`。
# 何を: 格子値を任意座標で双線形補間する値型サンプラーを提供する。
# なぜ: 場の参照をクロージャではなく不変な値として受け渡すため。

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from polyflow.core.fields import Grid


def _cell_of(grid: Grid, x: float, y: float) -> tuple[int, int, float, float] | None:
    """(x, y) を含むセル (i, j) と端数 (tx, ty) を返す。格子外なら None。"""
    fx = (x - grid.origin_x) / grid.step
    fy = (y - grid.origin_y) / grid.step
    if not (math.isfinite(fx) and math.isfinite(fy)):
        return None
    i = math.floor(fx)
    j = math.floor(fy)
    if i < 0 or j < 0 or i >= grid.columns - 1 or j >= grid.rows - 1:
        return None
    return i, j, fx - i, fy - j


@dataclass(frozen=True, slots=True)
class ScalarSampler:
    """スカラー格子の双線形サンプラー。格子外では 0.0 を返す。"""

    grid: Grid
    values: np.ndarray

    def sample(self, x: float, y: float) -> float:
        cell = _cell_of(self.grid, float(x), float(y))
        if cell is None:
            return 0.0
        i, j, tx, ty = cell
        v = self.values
        return float(
            v[j, i] * (1.0 - tx) * (1.0 - ty)
            + v[j, i + 1] * tx * (1.0 - ty)
            + v[j + 1, i] * (1.0 - tx) * ty
            + v[j + 1, i + 1] * tx * ty
        )

    def __call__(self, x: float, y: float) -> float:
        return self.sample(x, y)


@dataclass(frozen=True, slots=True)
class VectorSampler:
    """2 成分格子 (gx, gy) の双線形サンプラー。格子外では (0.0, 0.0) を返す。"""

    grid: Grid
    gx: np.ndarray
    gy: np.ndarray

    def sample(self, x: float, y: float) -> tuple[float, float]:
        cell = _cell_of(self.grid, float(x), float(y))
        if cell is None:
            return (0.0, 0.0)
        i, j, tx, ty = cell
        w00 = (1.0 - tx) * (1.0 - ty)
        w10 = tx * (1.0 - ty)
        w01 = (1.0 - tx) * ty
        w11 = tx * ty
        gx = self.gx
        gy = self.gy
        return (
            float(gx[j, i] * w00 + gx[j, i + 1] * w10 + gx[j + 1, i] * w01 + gx[j + 1, i + 1] * w11),
            float(gy[j, i] * w00 + gy[j, i + 1] * w10 + gy[j + 1, i] * w01 + gy[j + 1, i + 1] * w11),
        )

    def __call__(self, x: float, y: float) -> tuple[float, float]:
        return self.sample(x, y)


__all__ = ["ScalarSampler", "VectorSampler"]
