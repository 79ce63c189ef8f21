# どこで: `src/polyflow/core/density.py`。
# 何を: 粗い格子セルの訪問回数で streamline の重なりを制御する。
# なぜ: 全体最適な配置を探さずに、貪欲な採否判定だけで密度ムラを抑えるため。

from __future__ import annotations

import math
from typing import Iterable, Sequence

Cell = tuple[int, int]


class DensityGrid:
    """セル単位の訪問カウンタ。

    Parameters
    ----------
    cell_size : float
        セルの一辺。
    overlap_limit : float, optional
        既訪問セル上の点の比率がこれを超えたら（被覆不足セルが無い限り）棄却する。
    target_coverage : int, optional
        各セルの目標訪問回数。これ未満のセルを 1 点でも通る path は採用する。
    """

    def __init__(self, cell_size: float, overlap_limit: float = 0.48, target_coverage: int = 2) -> None:
        cell_size = float(cell_size)
        if not math.isfinite(cell_size) or cell_size <= 0.0:
            raise ValueError(f"cell_size は正の有限値である必要がある: got={cell_size!r}")
        self.cell_size = cell_size
        self.overlap_limit = float(overlap_limit)
        self.target_coverage = int(target_coverage)
        self._counts: dict[Cell, int] = {}

    def cell_of(self, x: float, y: float) -> Cell:
        return (math.floor(x / self.cell_size), math.floor(y / self.cell_size))

    def visits(self, x: float, y: float) -> int:
        """点 (x, y) を含むセルの訪問回数。"""
        return self._counts.get(self.cell_of(x, y), 0)

    def _cells(self, path: Iterable[Sequence[float]]) -> list[Cell]:
        return [self.cell_of(float(p[0]), float(p[1])) for p in path]

    def should_keep(self, path: Sequence[Sequence[float]]) -> bool:
        """path を採用すべきかを返す（格子は変更しない）。"""
        cells = self._cells(path)
        if not cells:
            return False
        overlap = 0
        needs_coverage = False
        for cell in cells:
            c = self._counts.get(cell, 0)
            if c > 0:
                overlap += 1
            if c < self.target_coverage:
                needs_coverage = True
        ratio = overlap / len(cells)
        return ratio <= self.overlap_limit or needs_coverage

    def commit(self, path: Sequence[Sequence[float]]) -> None:
        """path の各点が属するセルの訪問回数を 1 ずつ増やす（点ごとに数える）。"""
        for cell in self._cells(path):
            self._counts[cell] = self._counts.get(cell, 0) + 1

    def __len__(self) -> int:
        return len(self._counts)


__all__ = ["DensityGrid"]
