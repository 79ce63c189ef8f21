"""距離場の勾配（または直交方向）に沿った双方向 streamline で多角形を埋める mode。"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

import numpy as np

from polyflow.core.context import RenderContext
from polyflow.core.fields import gradient_field
from polyflow.core.geometry import BBox
from polyflow.core.mode_registry import mode
from polyflow.core.parameters.meta import ParamMeta
from polyflow.core.polylines import Polylines, empty_polylines, polylines_from_lines
from polyflow.core.seeding import jittered_grid_seeds
from polyflow.core.streamline import trace_bidirectional

_logger = logging.getLogger(__name__)

flow_meta = {
    "seed_spacing": ParamMeta(kind="float", ui_min=2.0, ui_max=120.0),
    "step": ParamMeta(kind="float", ui_min=0.1, ui_max=20.0),
    "max_steps": ParamMeta(kind="int", ui_min=1, ui_max=2000),
    "orthogonal": ParamMeta(kind="bool"),
    "sdf_step": ParamMeta(kind="float", ui_min=0.0, ui_max=32.0),
}


@dataclass(frozen=True, slots=True)
class FlowParams:
    """flow の引数。sdf_step=0 は RenderContext の既定値を使う。"""

    seed_spacing: float = 18.0
    step: float = 2.0
    max_steps: int = 400
    orthogonal: bool = False
    sdf_step: float = 0.0

    def normalized(self) -> FlowParams:
        return replace(
            self,
            seed_spacing=max(1.0, float(self.seed_spacing)),
            step=max(0.1, float(self.step)),
            max_steps=max(1, int(self.max_steps)),
            sdf_step=max(0.0, float(self.sdf_step)),
        )


@mode(params=FlowParams, meta=flow_meta)
def flow(polygon: np.ndarray, params: FlowParams, ctx: RenderContext) -> Polylines:
    """ジッター格子 seed から勾配場に沿って双方向に追跡する。

    Notes
    -----
    seed は距離場格子の範囲を spacing 間隔で走査し、±0.3*spacing 揺らした内側点を使う。
    3 点以上の path だけを出力する。
    """
    if not ctx.is_drawable(polygon):
        _logger.debug("退化した多角形のため flow をスキップ: n_points=%d", polygon.shape[0])
        return empty_polylines()

    field = ctx.scalar_field(polygon, params.sdf_step or None)
    grad = gradient_field(field).sampler()
    orthogonal = params.orthogonal

    def direction_at(x: float, y: float) -> tuple[float, float]:
        gx, gy = grad(x, y)
        if orthogonal:
            return (-gy, gx)
        return (gx, gy)

    grid = field.grid
    bounds = BBox(grid.origin_x, grid.origin_y, grid.max_x, grid.max_y)
    seeds = jittered_grid_seeds(
        polygon,
        params.seed_spacing,
        ctx.rng,
        jitter=0.6,
        bounds=bounds,
        max_seeds=ctx.max_seeds,
    )

    lines: list[np.ndarray] = []
    for seed in seeds:
        path = trace_bidirectional(
            seed,
            direction_at,
            polygon,
            step=params.step,
            max_steps=params.max_steps,
        )
        if path.shape[0] > 2:
            lines.append(path)
    _logger.debug("flow: seeds=%d lines=%d", len(seeds), len(lines))
    return polylines_from_lines(lines)


__all__ = ["FlowParams", "flow", "flow_meta"]
