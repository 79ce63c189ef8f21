"""
どこで: `src/polyflow/core/seeding.py`。
何を: 乱数源の生成と、多角形内の seed 点列（ジッター格子 / Poisson-disk / 辺上サンプル）を提供する。
なぜ: streamline の開始点配置をモードから切り離し、明示的な乱数源だけで再現可能にするため。
"""

from __future__ import annotations

import math
from typing import Callable, Iterator

import numpy as np

from polyflow.core.geometry import BBox, point_in_polygon, polygon_area, polygon_bbox

Rng = Callable[[], float]
Point = tuple[float, float]

# Poisson-disk の 1 active 点あたりの試行回数。
POISSON_ATTEMPTS = 30


def make_rng(seed: int | None = None) -> Rng:
    """[0, 1) を返す乱数関数を作る（numpy Generator のラッパ）。

    seed=None の場合は OS エントロピーから初期化する（非決定的）。
    """
    gen = np.random.default_rng(seed)

    def _rng() -> float:
        return float(gen.random())

    return _rng


def jittered_grid_seeds(
    polygon: np.ndarray,
    spacing: float,
    rng: Rng,
    *,
    jitter: float = 0.6,
    bounds: BBox | None = None,
    max_seeds: int | None = None,
) -> list[Point]:
    """bounds（既定は多角形 bbox）上の格子点を ±spacing*jitter/2 揺らし、内側の点だけ返す。

    格子は行優先（y 外側・x 内側）で走査する。
    """
    spacing = float(spacing)
    if not math.isfinite(spacing) or spacing <= 0.0 or polygon.shape[0] < 3:
        return []
    bb = polygon_bbox(polygon) if bounds is None else bounds
    out: list[Point] = []
    y = bb.min_y
    while y <= bb.max_y:
        x = bb.min_x
        while x <= bb.max_x:
            sx = x + (rng() - 0.5) * spacing * jitter
            sy = y + (rng() - 0.5) * spacing * jitter
            if point_in_polygon(sx, sy, polygon):
                out.append((sx, sy))
                if max_seeds is not None and len(out) >= max_seeds:
                    return out
            x += spacing
        y += spacing
    return out


def poisson_in_polygon(
    min_dist: float,
    polygon: np.ndarray,
    rng: Rng,
    *,
    max_samples: int | None = None,
    attempts: int = POISSON_ATTEMPTS,
) -> list[Point]:
    """多角形内に最小距離 min_dist の Poisson-disk サンプルを生成する（Bridson 法）。

    Parameters
    ----------
    min_dist : float
        サンプル間の最小距離。
    polygon : np.ndarray
        shape (N,2) の多角形。
    rng : Callable[[], float]
        [0, 1) の乱数源。
    max_samples : int or None, optional
        生成数の上限。
    attempts : int, optional
        active 点 1 つあたりの候補試行回数。

    Returns
    -------
    list[tuple[float, float]]
        生成順のサンプル列。初期点が 1000 回の試行で見つからなければ空。
    """
    r = float(min_dist)
    if not math.isfinite(r) or r <= 0.0 or polygon.shape[0] < 3:
        return []
    bb = polygon_bbox(polygon)
    cell = r / math.sqrt(2.0)
    grid_w = max(1, int(math.ceil(bb.width / cell)) + 1)
    grid_h = max(1, int(math.ceil(bb.height / cell)) + 1)
    grid = np.full((grid_h, grid_w), -1, dtype=np.int64)
    samples: list[Point] = []
    active: list[Point] = []

    def cell_of(x: float, y: float) -> tuple[int, int]:
        return (int((x - bb.min_x) / cell), int((y - bb.min_y) / cell))

    def far_enough(x: float, y: float) -> bool:
        gx, gy = cell_of(x, y)
        for j in range(max(0, gy - 2), min(grid_h, gy + 3)):
            for i in range(max(0, gx - 2), min(grid_w, gx + 3)):
                sidx = grid[j, i]
                if sidx >= 0:
                    sx, sy = samples[sidx]
                    if math.hypot(sx - x, sy - y) < r:
                        return False
        return True

    def add(x: float, y: float) -> None:
        gx, gy = cell_of(x, y)
        grid[gy, gx] = len(samples)
        samples.append((x, y))
        active.append((x, y))

    for _ in range(1000):
        x = bb.min_x + rng() * bb.width
        y = bb.min_y + rng() * bb.height
        if point_in_polygon(x, y, polygon):
            add(x, y)
            break
    if not samples:
        return samples

    while active:
        if max_samples is not None and len(samples) >= max_samples:
            break
        aidx = min(int(rng() * len(active)), len(active) - 1)
        ax, ay = active[aidx]
        found = False
        for _ in range(attempts):
            ang = rng() * math.pi * 2.0
            rad = r * (1.0 + rng())
            x = ax + math.cos(ang) * rad
            y = ay + math.sin(ang) * rad
            if x < bb.min_x or y < bb.min_y or x > bb.max_x or y > bb.max_y:
                continue
            if not point_in_polygon(x, y, polygon):
                continue
            if far_enough(x, y):
                add(x, y)
                found = True
                break
        if not found:
            active.pop(aidx)
    return samples


def edge_samples(polygon: np.ndarray, spacing: float) -> Iterator[tuple[float, float, float, float]]:
    """各辺を spacing 間隔（最低 2 分割）でサンプルし、(x, y, 外向き法線 nx, ny) を返す。

    辺の両端を含むため、頂点は隣接する 2 辺から 1 回ずつ出る。
    """
    n = int(polygon.shape[0])
    spacing = float(spacing)
    if n < 3 or not math.isfinite(spacing) or spacing <= 0.0:
        return
    # 反時計回り（面積正）なら辺ベクトルの右手側が外向き。
    orient = 1.0 if polygon_area(polygon) >= 0.0 else -1.0
    for i in range(n):
        ax, ay = float(polygon[i, 0]), float(polygon[i, 1])
        bx, by = float(polygon[(i + 1) % n, 0]), float(polygon[(i + 1) % n, 1])
        ex = bx - ax
        ey = by - ay
        seg_len = math.hypot(ex, ey)
        if seg_len <= 1e-9:
            continue
        nx = ey / seg_len * orient
        ny = -ex / seg_len * orient
        samples = max(2, int(math.floor(seg_len / spacing)))
        for s in range(samples + 1):
            t = s / samples
            yield (ax + ex * t, ay + ey * t, nx, ny)


__all__ = [
    "POISSON_ATTEMPTS",
    "Rng",
    "edge_samples",
    "jittered_grid_seeds",
    "make_rng",
    "poisson_in_polygon",
]
