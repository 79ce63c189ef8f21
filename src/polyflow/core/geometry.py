"""
どこで: `src/polyflow/core/geometry.py`。
何を: 閉多角形に対する内外判定・距離・最近辺・交差・向き補正の幾何カーネルを提供する。
なぜ: field / contour / streamline が同一の内外判定と距離オラクルを共有するため。
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

import numpy as np
from numba import njit  # type: ignore[attr-defined]

# 交差判定の分母に足す微小量（水平辺での 0 除算を避ける）。
RAY_EPS = 1e-12
# 直線と辺がほぼ平行とみなす閾値。
PARALLEL_EPS = 1e-9
# 重心計算で「面積ほぼ 0」とみなす閾値。
CENTROID_AREA_EPS = 1e-6


@dataclass(frozen=True, slots=True)
class BBox:
    """軸平行バウンディングボックス。"""

    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @property
    def diagonal(self) -> float:
        return math.hypot(self.width, self.height)


@dataclass(frozen=True, slots=True)
class EdgeInfo:
    """最近辺クエリの結果。

    Notes
    -----
    distance と normal の符号は「点が内側なら正」。
    normal は点から最近点へ向かう単位ベクトルに符号を掛けたもので、
    境界上（距離ほぼ 0）では (0, 0) になる。
    """

    distance: float
    normal: tuple[float, float]
    tangent: tuple[float, float]
    nearest: tuple[float, float]
    inside: bool


def as_polygon(points: Sequence[Sequence[float]] | np.ndarray) -> np.ndarray:
    """点列を shape (N,2) float64 の多角形配列へ正規化する。

    Parameters
    ----------
    points : array-like
        shape (N,2) または (N,3) の点列。3 列目（z）は捨てる。

    Returns
    -------
    np.ndarray
        C 連続な (N,2) float64 配列。終点が始点と一致する場合は終点を落とす。

    Raises
    ------
    ValueError
        2 次元配列でない、または列数が 2/3 でない場合。
    """
    arr = np.asarray(points, dtype=np.float64)
    if arr.size == 0:
        return np.zeros((0, 2), dtype=np.float64)
    if arr.ndim != 2 or arr.shape[1] not in (2, 3):
        raise ValueError(f"polygon は shape (N,2) または (N,3) である必要がある: got={arr.shape}")
    xy = arr[:, :2]
    # 閉じたポリライン（終点=始点）で渡されても同じ多角形として扱う。
    if xy.shape[0] >= 2 and np.array_equal(xy[0], xy[-1]):
        xy = xy[:-1]
    return np.ascontiguousarray(xy, dtype=np.float64)


def polygon_bbox(polygon: np.ndarray) -> BBox:
    """多角形のバウンディングボックスを返す（空なら全 0）。"""
    if polygon.shape[0] == 0:
        return BBox(0.0, 0.0, 0.0, 0.0)
    mins = np.min(polygon, axis=0)
    maxs = np.max(polygon, axis=0)
    return BBox(float(mins[0]), float(mins[1]), float(maxs[0]), float(maxs[1]))


def polygon_area(polygon: np.ndarray) -> float:
    """符号付き面積を返す（Shoelace。反時計回りで正）。"""
    if polygon.shape[0] < 3:
        return 0.0
    x = polygon[:, 0]
    y = polygon[:, 1]
    return float(0.5 * (np.dot(x, np.roll(y, -1)) - np.dot(y, np.roll(x, -1))))


def is_degenerate_polygon(polygon: np.ndarray, *, min_area: float = 0.0) -> bool:
    """描画に使えない多角形かどうかを返す。

    3 点未満、非有限座標、面積がほぼ 0（`min_area` 以下、または bbox 対角長^2 に対し
    相対 1e-12 以下）のいずれかなら True。
    """
    if polygon.ndim != 2 or polygon.shape[0] < 3:
        return True
    if not bool(np.all(np.isfinite(polygon))):
        return True
    diag = polygon_bbox(polygon).diagonal
    area = abs(polygon_area(polygon))
    return area <= max(float(min_area), diag * diag * 1e-12)


def polygon_centroid(polygon: np.ndarray) -> tuple[float, float]:
    """面積重心を返す。面積がほぼ 0 の場合は頂点平均へ落とす。"""
    n = int(polygon.shape[0])
    if n == 0:
        return (0.0, 0.0)
    x = polygon[:, 0]
    y = polygon[:, 1]
    xn = np.roll(x, -1)
    yn = np.roll(y, -1)
    cross = x * yn - xn * y
    area = 0.5 * float(np.sum(cross))
    if abs(area) < CENTROID_AREA_EPS:
        return (float(np.mean(x)), float(np.mean(y)))
    cx = float(np.sum((x + xn) * cross)) / (6.0 * area)
    cy = float(np.sum((y + yn) * cross)) / (6.0 * area)
    return (cx, cy)


@njit(cache=True)  # type: ignore[misc]
def _point_in_polygon_njit(polygon: np.ndarray, x: float, y: float) -> bool:
    """偶奇レイキャストで内外判定する（Numba 版）。"""
    n = int(polygon.shape[0])
    inside = False
    j = n - 1
    for i in range(n):
        xi = polygon[i, 0]
        yi = polygon[i, 1]
        xj = polygon[j, 0]
        yj = polygon[j, 1]
        if (yi > y) != (yj > y):
            x_int = (xj - xi) * (y - yi) / (yj - yi + 1e-12) + xi
            if x < x_int:
                inside = not inside
        j = i
    return inside


@njit(cache=True)  # type: ignore[misc]
def _segment_distance_njit(
    x: float, y: float, x1: float, y1: float, x2: float, y2: float
) -> float:
    vx = x2 - x1
    vy = y2 - y1
    wx = x - x1
    wy = y - y1
    c1 = vx * wx + vy * wy
    if c1 <= 0.0:
        return math.sqrt(wx * wx + wy * wy)
    c2 = vx * vx + vy * vy
    if c2 <= c1:
        dx = x - x2
        dy = y - y2
        return math.sqrt(dx * dx + dy * dy)
    t = c1 / c2
    px = x1 + t * vx
    py = y1 + t * vy
    return math.sqrt((x - px) * (x - px) + (y - py) * (y - py))


@njit(cache=True)  # type: ignore[misc]
def _signed_distance_njit(polygon: np.ndarray, x: float, y: float) -> float:
    """最近辺までの距離に、外側なら負号を付けて返す。"""
    n = int(polygon.shape[0])
    d = np.inf
    for i in range(n):
        k = i + 1
        if k == n:
            k = 0
        di = _segment_distance_njit(
            x, y, polygon[i, 0], polygon[i, 1], polygon[k, 0], polygon[k, 1]
        )
        if di < d:
            d = di
    if _point_in_polygon_njit(polygon, x, y):
        return d
    return -d


@njit(cache=True)  # type: ignore[misc]
def _nearest_edge_njit(polygon: np.ndarray, x: float, y: float) -> tuple[int, float, float, float]:
    """最近辺の index・最近点・距離を返す（Numba 版）。"""
    n = int(polygon.shape[0])
    best_i = -1
    best_px = 0.0
    best_py = 0.0
    best_d = np.inf
    for i in range(n):
        k = i + 1
        if k == n:
            k = 0
        ax = polygon[i, 0]
        ay = polygon[i, 1]
        vx = polygon[k, 0] - ax
        vy = polygon[k, 1] - ay
        len2 = vx * vx + vy * vy
        t = 0.0
        if len2 > 1e-12:
            t = ((x - ax) * vx + (y - ay) * vy) / len2
            if t < 0.0:
                t = 0.0
            elif t > 1.0:
                t = 1.0
        px = ax + vx * t
        py = ay + vy * t
        d = math.sqrt((px - x) * (px - x) + (py - y) * (py - y))
        if d < best_d:
            best_d = d
            best_i = i
            best_px = px
            best_py = py
    return best_i, best_px, best_py, best_d


def point_in_polygon(x: float, y: float, polygon: np.ndarray) -> bool:
    """点が多角形内部にあるかを返す（偶奇規則）。"""
    if polygon.shape[0] < 3:
        return False
    return bool(_point_in_polygon_njit(polygon, float(x), float(y)))


def segment_distance(x: float, y: float, x1: float, y1: float, x2: float, y2: float) -> float:
    """点と線分の最短距離を返す。"""
    return float(_segment_distance_njit(float(x), float(y), float(x1), float(y1), float(x2), float(y2)))


def distance_to_polygon(x: float, y: float, polygon: np.ndarray) -> float:
    """多角形境界までの符号付き距離を返す（内側が正）。"""
    if polygon.shape[0] == 0:
        return -math.inf
    return float(_signed_distance_njit(polygon, float(x), float(y)))


def nearest_edge_info(x: float, y: float, polygon: np.ndarray) -> EdgeInfo | None:
    """最近辺の位置・接線・法線・符号付き距離を返す。

    Returns
    -------
    EdgeInfo or None
        多角形が空の場合のみ None。
    """
    n = int(polygon.shape[0])
    if n == 0:
        return None
    x = float(x)
    y = float(y)
    edge_i, px, py, dist = _nearest_edge_njit(polygon, x, y)
    inside = point_in_polygon(x, y, polygon)
    sign = 1.0 if inside else -1.0

    nx = 0.0
    ny = 0.0
    if dist > 1e-9:
        nx = (px - x) / dist * sign
        ny = (py - y) / dist * sign

    a = polygon[edge_i]
    b = polygon[(edge_i + 1) % n]
    edx = float(b[0] - a[0])
    edy = float(b[1] - a[1])
    edge_len = math.hypot(edx, edy) or 1.0
    return EdgeInfo(
        distance=float(dist) * sign,
        normal=(nx, ny),
        tangent=(edx / edge_len, edy / edge_len),
        nearest=(float(px), float(py)),
        inside=inside,
    )


def line_segment_intersect_t(
    origin: tuple[float, float],
    direction: tuple[float, float],
    a: Sequence[float],
    b: Sequence[float],
) -> float | None:
    """直線 origin + t*direction と線分 ab の交点パラメータ t を返す（無ければ None）。"""
    rx, ry = direction
    sx = float(b[0]) - float(a[0])
    sy = float(b[1]) - float(a[1])
    denom = rx * sy - ry * sx
    if abs(denom) < PARALLEL_EPS:
        return None
    apx = float(a[0]) - origin[0]
    apy = float(a[1]) - origin[1]
    t = (apx * sy - apy * sx) / denom
    u = (apx * ry - apy * rx) / denom
    if -PARALLEL_EPS <= u <= 1.0 + PARALLEL_EPS:
        return float(t)
    return None


def line_polygon_intersections(
    origin: tuple[float, float],
    direction: tuple[float, float],
    polygon: np.ndarray,
) -> list[float]:
    """直線と多角形の全交点パラメータを昇順で返す。"""
    n = int(polygon.shape[0])
    ts: list[float] = []
    for i in range(n):
        t = line_segment_intersect_t(origin, direction, polygon[i], polygon[(i + 1) % n])
        if t is not None:
            ts.append(t)
    ts.sort()
    return ts


def orient_vector_inside(
    x: float,
    y: float,
    step: float,
    direction: tuple[float, float],
    polygon: np.ndarray,
) -> tuple[float, float] | None:
    """1 ステップ先が内側に残る向き（そのまま or 反転）を返す。

    どちらの向きでも外へ出る場合は None。
    """
    vx, vy = direction
    if point_in_polygon(x + vx * step, y + vy * step, polygon):
        return (vx, vy)
    if point_in_polygon(x - vx * step, y - vy * step, polygon):
        return (-vx, -vy)
    return None


def smoothstep(edge0: float, edge1: float, x: float) -> float:
    """Hermite 補間による 0..1 のなめらかなステップ。"""
    if edge1 == edge0:
        return 1.0 if x >= edge1 else 0.0
    t = (x - edge0) / (edge1 - edge0)
    if t < 0.0:
        t = 0.0
    elif t > 1.0:
        t = 1.0
    return t * t * (3.0 - 2.0 * t)


def normalize(
    vx: float, vy: float, fallback: tuple[float, float] | None = None
) -> tuple[float, float] | None:
    """単位ベクトル化する。長さがほぼ 0 / 非有限なら fallback を返す。"""
    length = math.hypot(vx, vy)
    if not math.isfinite(length) or length <= 1e-6:
        return fallback
    return (vx / length, vy / length)


__all__ = [
    "BBox",
    "EdgeInfo",
    "as_polygon",
    "distance_to_polygon",
    "is_degenerate_polygon",
    "line_polygon_intersections",
    "line_segment_intersect_t",
    "nearest_edge_info",
    "normalize",
    "orient_vector_inside",
    "point_in_polygon",
    "polygon_area",
    "polygon_bbox",
    "polygon_centroid",
    "segment_distance",
    "smoothstep",
]
