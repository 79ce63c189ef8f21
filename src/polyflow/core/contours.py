"""
marching squares による等値線抽出。

各 2×2 セルの 4 サンプルから内外コード（4bit）を作り、交差辺の線形補間点を結ぶ線分を
コールバックへ逐次渡す。線分は収集しないため、メモリはセル 1 個分で済む。

サドル（コード 5 / 10）は常に同じ対角で分割する（中心値による曖昧性解消はしない）。
チェッカーボード状の場では、見た目は繋がっていても位相的に誤った等値線になり得る。
"""

from __future__ import annotations

import math
from typing import Callable

import numpy as np

from polyflow.core.fields import Grid, ScalarField

Point = tuple[float, float]
SegmentEmitter = Callable[[Point, Point], None]

_INTERP_EPS = 1e-12

# コード -> 結ぶ辺のペア列。辺は 0=top, 1=right, 2=bottom, 3=left。
_CASES: dict[int, tuple[tuple[int, int], ...]] = {
    1: ((3, 0),),
    14: ((3, 0),),
    2: ((0, 1),),
    13: ((0, 1),),
    3: ((3, 1),),
    12: ((3, 1),),
    4: ((1, 2),),
    11: ((1, 2),),
    5: ((3, 0), (1, 2)),
    6: ((0, 2),),
    9: ((0, 2),),
    7: ((3, 2),),
    8: ((3, 2),),
    10: ((3, 2), (0, 1)),
}


def _interp(ax: float, ay: float, bx: float, by: float, va: float, vb: float) -> Point:
    t = va / (va - vb + _INTERP_EPS)
    return (ax + t * (bx - ax), ay + t * (by - ay))


def march_grid(grid: Grid, values: np.ndarray, iso_level: float, emit: SegmentEmitter) -> int:
    """格子値 values の iso_level 等値線を線分として emit へ流す。

    Returns
    -------
    int
        emit した線分数。
    """
    step = grid.step
    iso = float(iso_level)
    count = 0
    for j in range(grid.rows - 1):
        row0 = values[j]
        row1 = values[j + 1]
        y = grid.origin_y + j * step
        for i in range(grid.columns - 1):
            v_tl = float(row0[i]) - iso
            v_tr = float(row0[i + 1]) - iso
            v_br = float(row1[i + 1]) - iso
            v_bl = float(row1[i]) - iso
            code = 0
            if v_tl > 0.0:
                code |= 1
            if v_tr > 0.0:
                code |= 2
            if v_br > 0.0:
                code |= 4
            if v_bl > 0.0:
                code |= 8
            if code == 0 or code == 15:
                continue
            x = grid.origin_x + i * step
            edges = (
                _interp(x, y, x + step, y, v_tl, v_tr),
                _interp(x + step, y, x + step, y + step, v_tr, v_br),
                _interp(x, y + step, x + step, y + step, v_bl, v_br),
                _interp(x, y, x, y + step, v_tl, v_bl),
            )
            for ea, eb in _CASES[code]:
                a = edges[ea]
                b = edges[eb]
                # -inf を含むセル（空多角形の場）では補間点が非有限になる。
                if not (math.isfinite(a[0]) and math.isfinite(a[1]) and math.isfinite(b[0]) and math.isfinite(b[1])):
                    continue
                emit(a, b)
                count += 1
    return count


def march(field: ScalarField, iso_level: float, emit: SegmentEmitter) -> int:
    """ScalarField の等値線を抽出する（`march_grid` の薄いラッパ）。"""
    return march_grid(field.grid, field.values, iso_level, emit)


def contour_segments(field: ScalarField, iso_level: float) -> list[tuple[Point, Point]]:
    """等値線の線分をリストで返す。"""
    out: list[tuple[Point, Point]] = []
    march(field, iso_level, lambda a, b: out.append((a, b)))
    return out


def iso_levels(
    field: ScalarField,
    gap: float,
    *,
    start: float | None = None,
    max_levels: int | None = None,
) -> list[float]:
    """start（既定 gap）から gap 刻みで場の最大値以下の等値レベル列を返す。"""
    gap = float(gap)
    if not math.isfinite(gap) or gap <= 0.0:
        return []
    top = field.max_value()
    level = gap if start is None else float(start)
    levels: list[float] = []
    while level <= top:
        if max_levels is not None and len(levels) >= max_levels:
            break
        levels.append(level)
        level += gap
    return levels


__all__ = ["SegmentEmitter", "contour_segments", "iso_levels", "march", "march_grid"]
