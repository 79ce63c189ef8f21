"""
どこで: `src/polyflow/core/noise.py`。
何を: seed から決定的に生成される 2D Perlin ノイズと fBm を提供する。
なぜ: 角度場や回転量の揺らぎを、外部状態に依存せず再現可能に作るため。
"""

from __future__ import annotations

import math

import numpy as np
from numba import njit  # type: ignore[attr-defined]

# 2D 勾配ベクトル（8 方向）。
_GRAD2 = np.asarray(
    [
        [1.0, 1.0],
        [-1.0, 1.0],
        [1.0, -1.0],
        [-1.0, -1.0],
        [1.0, 0.0],
        [-1.0, 0.0],
        [0.0, 1.0],
        [0.0, -1.0],
    ],
    dtype=np.float64,
)


@njit(fastmath=True, cache=True)  # type: ignore[misc]
def fade(t):
    """Perlin ノイズ用のフェード関数。"""
    return t * t * t * (t * (t * 6.0 - 15.0) + 10.0)


@njit(fastmath=True, cache=True)  # type: ignore[misc]
def lerp(a, b, t):
    return a + t * (b - a)


@njit(fastmath=True, cache=True)  # type: ignore[misc]
def perlin_noise_2d(x, y, perm_table, grad2_array):
    """2 次元 Perlin ノイズ（おおよそ [-1, 1]）。"""
    fx = math.floor(x)
    fy = math.floor(y)
    X = int(fx) & 255
    Y = int(fy) & 255
    xf = x - fx
    yf = y - fy
    u = fade(xf)
    v = fade(yf)

    aa = perm_table[X + perm_table[Y]]
    ab = perm_table[X + perm_table[Y + 1]]
    ba = perm_table[X + 1 + perm_table[Y]]
    bb = perm_table[X + 1 + perm_table[Y + 1]]

    g_aa = grad2_array[aa & 7]
    g_ba = grad2_array[ba & 7]
    g_ab = grad2_array[ab & 7]
    g_bb = grad2_array[bb & 7]

    x1 = lerp(g_aa[0] * xf + g_aa[1] * yf, g_ba[0] * (xf - 1.0) + g_ba[1] * yf, u)
    x2 = lerp(
        g_ab[0] * xf + g_ab[1] * (yf - 1.0),
        g_bb[0] * (xf - 1.0) + g_bb[1] * (yf - 1.0),
        u,
    )
    return lerp(x1, x2, v)


@njit(fastmath=True, cache=True)  # type: ignore[misc]
def fbm_2d(x, y, octaves, perm_table, grad2_array):
    """振幅 1/2・周波数 2 倍で重ねた fBm を振幅和で正規化して返す。"""
    amp = 1.0
    freq = 1.0
    total = 0.0
    norm = 0.0
    for _ in range(octaves):
        total += amp * perlin_noise_2d(x * freq, y * freq, perm_table, grad2_array)
        norm += amp
        amp *= 0.5
        freq *= 2.0
    if norm == 0.0:
        return total
    return total / norm


def permutation_table(seed: int) -> np.ndarray:
    """seed から 512 要素（256 の 2 周）の置換テーブルを作る。"""
    rng = np.random.default_rng(int(seed))
    perm = rng.permutation(256).astype(np.int32)
    return np.concatenate([perm, perm])


class Perlin:
    """seed 固定の 2D Perlin ノイズ源。

    Parameters
    ----------
    seed : int
        置換テーブルの seed。同じ seed なら常に同じ値を返す。
    """

    def __init__(self, seed: int = 0) -> None:
        self.seed = int(seed)
        self._perm = permutation_table(self.seed)

    def noise2(self, x: float, y: float) -> float:
        return float(perlin_noise_2d(float(x), float(y), self._perm, _GRAD2))

    def fbm2(self, x: float, y: float, octaves: int = 3) -> float:
        """fBm 値（おおよそ [-1, 1]）。octaves は 1 以上に丸める。"""
        return float(fbm_2d(float(x), float(y), max(1, int(octaves)), self._perm, _GRAD2))


__all__ = ["Perlin", "fbm_2d", "permutation_table", "perlin_noise_2d"]
