"""ポリラインを弧長に沿って dash/gap パターンで切り出す。"""

from __future__ import annotations

import math
from typing import Callable

import numpy as np
from numba import njit  # type: ignore[attr-defined]


@njit(cache=True, fastmath=True)  # type: ignore[misc]
def _build_arc_length(v: np.ndarray) -> tuple[np.ndarray, float]:
    """各頂点の弧長と全長を計算する。"""
    n = v.shape[0]
    s = np.empty(n, dtype=np.float64)
    s[0] = 0.0
    for j in range(n - 1):
        dx = v[j + 1, 0] - v[j, 0]
        dy = v[j + 1, 1] - v[j, 1]
        s[j + 1] = s[j] + np.sqrt(dx * dx + dy * dy)
    return s, s[n - 1]


def _point_at(v: np.ndarray, s: np.ndarray, t: float) -> np.ndarray:
    k = int(np.searchsorted(s, t, side="right")) - 1
    k = min(max(k, 0), s.shape[0] - 2)
    seg = s[k + 1] - s[k]
    u = 0.0 if seg <= 0.0 else (t - s[k]) / seg
    return v[k] + (v[k + 1] - v[k]) * u


def _slice(v: np.ndarray, s: np.ndarray, t0: float, t1: float) -> np.ndarray:
    """弧長区間 [t0, t1] の部分ポリラインを返す（区間内の頂点を保持）。"""
    inner = v[(s > t0) & (s < t1)]
    return np.vstack([_point_at(v, s, t0), inner, _point_at(v, s, t1)])


def dash_polyline(
    points: np.ndarray,
    dash_length: float,
    gap_length: float,
    *,
    offset: float = 0.0,
    rng: Callable[[], float] | None = None,
    random_phase: bool = False,
    jitter: float = 0.0,
) -> list[np.ndarray]:
    """連続線を破線（ダッシュごとのポリライン列）へ変換する。

    Parameters
    ----------
    points : np.ndarray
        shape (N,2) の点列。
    dash_length, gap_length : float
        ダッシュ（描画区間）とギャップ（非描画区間）の長さ。
    offset : float, optional
        パターン位相。正の値で開始位相が前方へシフトする。
    rng : Callable[[], float] or None, optional
        [0, 1) の乱数源。random_phase / jitter に使う。
    random_phase : bool, optional
        True なら位相を [0, dash+gap) の一様乱数で追加シフトする。
    jitter : float, optional
        各ダッシュの描画長を `1 + (r - 0.5) * jitter` 倍する（ダッシュ長でクランプ）。

    Returns
    -------
    list[np.ndarray]
        各ダッシュの点列。

    Notes
    -----
    - パターン長が 0 以下/非有限、dash_length が 0 以下、頂点数 < 2、全長 0 の場合は
      原線 1 本をそのまま返す。
    - rng を渡さない場合 random_phase / jitter は無効。
    - パターンの前進は公称長で行い、jitter は描画長だけを変える。
    """
    v = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    dash = float(dash_length)
    gap = float(gap_length)
    pattern = dash + gap
    if v.shape[0] < 2 or not math.isfinite(pattern) or pattern <= 0.0 or dash <= 0.0:
        return [v]

    s, length = _build_arc_length(np.ascontiguousarray(v))
    length = float(length)
    if length <= 0.0 or not math.isfinite(length):
        return [v]

    phase = float(offset) if math.isfinite(offset) else 0.0
    if random_phase and rng is not None:
        phase += float(rng()) * pattern
    phase %= pattern
    jitter = float(jitter) if rng is not None and math.isfinite(jitter) else 0.0

    out: list[np.ndarray] = []
    u = -phase
    while u < length:
        t0 = max(u, 0.0)
        t1 = min(u + dash, length)
        if t1 > t0:
            drawn = t1 - t0
            if jitter > 0.0 and rng is not None:
                drawn = min(drawn, drawn * (1.0 + (float(rng()) - 0.5) * jitter))
            if drawn > 0.0:
                out.append(_slice(v, s, t0, t0 + drawn))
        u += pattern
    if not out:
        return [v]
    return out


__all__ = ["dash_polyline"]
