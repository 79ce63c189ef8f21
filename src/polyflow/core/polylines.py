# src/polyflow/core/polylines.py
# 描画モードの出力である Polylines 配列のモデルと検証ロジック。

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator

import numpy as np


@dataclass(frozen=True, slots=True)
class Polylines:
    """モードが生成したポリライン列を 1 組の配列で表現する。

    Parameters
    ----------
    coords : np.ndarray
        float64 型 shape (N, 2) の頂点配列。
    offsets : np.ndarray
        int32 型 shape (M+1,) のポリライン開始インデックス配列。

    Notes
    -----
    不変性を契約とし、配列は writeable=False で返す。
    offsets と coords の整合性はコンストラクタ内で検証する。
    """

    coords: np.ndarray
    offsets: np.ndarray

    def __post_init__(self) -> None:
        coords = np.asarray(self.coords)
        offsets = np.asarray(self.offsets)

        if coords.size == 0:
            coords = coords.reshape(0, 2)

        if coords.ndim != 2 or coords.shape[1] != 2:
            raise ValueError("coords は shape (N,2) の 2 次元配列である必要がある")

        if coords.dtype != np.float64:
            coords = coords.astype(np.float64, copy=False)

        if offsets.ndim != 1:
            raise ValueError("offsets は 1 次元配列である必要がある")

        if offsets.dtype != np.int32:
            offsets = offsets.astype(np.int32, copy=False)

        if offsets.size == 0:
            raise ValueError("offsets は少なくとも 1 要素を含む必要がある")

        if offsets[0] != 0:
            raise ValueError("offsets[0] は 0 である必要がある")

        if offsets[-1] != coords.shape[0]:
            raise ValueError("offsets[-1] は coords 行数と一致する必要がある")

        if np.any(np.diff(offsets) < 0):
            raise ValueError("offsets は単調非減少である必要がある")

        coords.setflags(write=False)
        offsets.setflags(write=False)

        object.__setattr__(self, "coords", coords)
        object.__setattr__(self, "offsets", offsets)

    def __len__(self) -> int:
        """ポリライン本数。"""
        return int(self.offsets.size) - 1

    def __iter__(self) -> Iterator[np.ndarray]:
        return iter_polylines(self)

    @property
    def n_vertices(self) -> int:
        return int(self.coords.shape[0])


def empty_polylines() -> Polylines:
    return Polylines(coords=np.zeros((0, 2), dtype=np.float64), offsets=np.zeros((1,), dtype=np.int32))


def polylines_from_lines(lines: Iterable[np.ndarray]) -> Polylines:
    """点列のイテラブルから Polylines を組み立てる（空の点列は捨てる）。"""
    arrays = [np.asarray(line, dtype=np.float64).reshape(-1, 2) for line in lines]
    arrays = [a for a in arrays if a.shape[0] > 0]
    if not arrays:
        return empty_polylines()
    offsets = np.zeros((len(arrays) + 1,), dtype=np.int32)
    offsets[1:] = np.cumsum([a.shape[0] for a in arrays])
    return Polylines(coords=np.concatenate(arrays, axis=0), offsets=offsets)


def iter_polylines(polylines: Polylines) -> Iterator[np.ndarray]:
    """各ポリラインの頂点配列（coords のビュー）を順に返す。"""
    coords = polylines.coords
    offsets = polylines.offsets
    for i in range(int(offsets.size) - 1):
        s = int(offsets[i])
        e = int(offsets[i + 1])
        yield coords[s:e]


__all__ = [
    "Polylines",
    "empty_polylines",
    "iter_polylines",
    "polylines_from_lines",
]
