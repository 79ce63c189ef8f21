# どこで: `src/polyflow/core/context.py`。
# 何を: 1 回の render に閉じた実行コンテキスト（乱数源・キャンバス・上限値）を提供する。
# なぜ: モードがグローバル状態に触れず、呼び出し側が所有する値だけで描画できるようにするため。

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from polyflow.core.fields import ScalarField, build_scalar_field
from polyflow.core.geometry import is_degenerate_polygon
from polyflow.core.runtime_config import RuntimeConfig, runtime_config
from polyflow.core.seeding import Rng, make_rng


@dataclass(frozen=True, slots=True)
class RenderContext:
    """モード実行時に渡される不変コンテキスト。

    Parameters
    ----------
    canvas : tuple[float, float] or None
        (width, height)。None なら距離場をキャンバスでクランプしない。
    rng : Callable[[], float]
        [0, 1) の乱数源。render 内の乱数はすべてここから取る。
    sdf_step : float
        距離場の既定格子間隔。
    margin : float
        距離場の bbox 余白。
    max_grid_samples : int
        距離場格子点数の上限。
    max_contour_levels : int
        contours モードの等値レベル数上限。
    min_polygon_area : float
        これ以下の面積の多角形は描画しない。
    max_seeds : int
        1 モードあたりの seed 数上限。
    """

    canvas: tuple[float, float] | None
    rng: Rng
    sdf_step: float
    margin: float
    max_grid_samples: int
    max_contour_levels: int
    min_polygon_area: float
    max_seeds: int

    @classmethod
    def create(
        cls,
        *,
        seed: int | None = None,
        canvas: tuple[float, float] | None = None,
        config: RuntimeConfig | None = None,
    ) -> RenderContext:
        """runtime_config の既定値から RenderContext を作る。

        seed / canvas は引数が優先され、未指定なら config の render.seed / render.canvas_size を使う。
        """
        cfg = runtime_config() if config is None else config
        effective_seed = seed if seed is not None else cfg.seed
        effective_canvas = canvas if canvas is not None else cfg.canvas_size
        if effective_canvas is not None:
            w, h = float(effective_canvas[0]), float(effective_canvas[1])
            if not (w > 0.0 and h > 0.0):
                raise ValueError(f"canvas は正の (w, h) である必要がある: got={effective_canvas!r}")
            effective_canvas = (w, h)
        return cls(
            canvas=effective_canvas,
            rng=make_rng(effective_seed),
            sdf_step=cfg.sdf_step,
            margin=cfg.field_margin,
            max_grid_samples=cfg.max_grid_samples,
            max_contour_levels=cfg.max_contour_levels,
            min_polygon_area=cfg.min_polygon_area,
            max_seeds=cfg.max_seeds,
        )

    def is_drawable(self, polygon: np.ndarray) -> bool:
        """多角形が描画対象になるか（退化・微小面積でないか）を返す。"""
        return not is_degenerate_polygon(polygon, min_area=self.min_polygon_area)

    def scalar_field(self, polygon: np.ndarray, step: float | None = None) -> ScalarField:
        """コンテキストの解像度・上限で距離場を構築する。"""
        return build_scalar_field(
            self.sdf_step if step is None else float(step),
            polygon,
            self.canvas,
            margin=self.margin,
            max_samples=self.max_grid_samples,
        )


__all__ = ["RenderContext"]
