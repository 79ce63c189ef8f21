"""
どこで: `src/polyflow/core/modes/skin_flow.py`。
何を: 一方向の流れを境界付近で接線へ曲げ、密度制御しながら敷き詰める mode。
なぜ: 皮膚の肌理のように重なりの少ない平行流を、seed を過剰に置いても破綻させずに得るため。
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace

import numpy as np

from polyflow.core.context import RenderContext
from polyflow.core.density import DensityGrid
from polyflow.core.fields import gradient_field
from polyflow.core.geometry import BBox, normalize, smoothstep
from polyflow.core.mode_registry import mode
from polyflow.core.parameters.meta import ParamMeta
from polyflow.core.polylines import Polylines, empty_polylines, polylines_from_lines
from polyflow.core.seeding import jittered_grid_seeds, poisson_in_polygon
from polyflow.core.streamline import StreamlinePolicy, trace_bidirectional

_logger = logging.getLogger(__name__)

skin_flow_meta = {
    "angle": ParamMeta(kind="float", ui_min=-180.0, ui_max=180.0),
    "spacing": ParamMeta(kind="float", ui_min=1.0, ui_max=120.0),
    "falloff": ParamMeta(kind="float", ui_min=1.0, ui_max=400.0),
    "step": ParamMeta(kind="float", ui_min=-10.0, ui_max=10.0),
    "max_steps": ParamMeta(kind="int", ui_min=1, ui_max=4000),
}


@dataclass(frozen=True, slots=True)
class SkinFlowParams:
    """skin_flow の引数。step の符号で流れの向き（極性）を反転する。"""

    angle: float = 0.0
    spacing: float = 35.0
    falloff: float = 100.0
    step: float = 1.0
    max_steps: int = 2000

    def normalized(self) -> SkinFlowParams:
        step = float(self.step)
        if not math.isfinite(step) or step == 0.0:
            step = 1.0
        return replace(
            self,
            angle=float(self.angle),
            spacing=max(1.0, float(self.spacing)),
            falloff=max(1e-3, float(self.falloff)),
            step=step,
            max_steps=max(1, int(self.max_steps)),
        )


@mode(params=SkinFlowParams, meta=skin_flow_meta)
def skin_flow(polygon: np.ndarray, params: SkinFlowParams, ctx: RenderContext) -> Polylines:
    if not ctx.is_drawable(polygon):
        _logger.debug("退化した多角形のため skin_flow をスキップ: n_points=%d", polygon.shape[0])
        return empty_polylines()

    polarity = -1.0 if params.step < 0.0 else 1.0
    step_len = max(0.5, abs(params.step))
    rad = math.radians(params.angle)
    dir_x, dir_y = math.cos(rad), math.sin(rad)
    falloff = params.falloff

    field = ctx.scalar_field(polygon, min(12.0, max(3.0, step_len * 1.5)))
    grid = field.grid
    grad = gradient_field(field).sampler()
    dist = field.sampler()

    def direction_at(x: float, y: float) -> tuple[float, float] | None:
        if x < grid.origin_x or y < grid.origin_y or x > grid.max_x or y > grid.max_y:
            return None
        gx, gy = grad(x, y)
        glen = math.hypot(gx, gy)
        if glen <= 1e-6:
            return (dir_x * polarity, dir_y * polarity)
        tx, ty = -gy / glen, gx / glen
        if tx * dir_x + ty * dir_y < 0.0:
            tx, ty = -tx, -ty
        w = smoothstep(0.0, falloff, max(0.0, dist(x, y)))
        v = normalize((1.0 - w) * dir_x + w * tx, (1.0 - w) * dir_y + w * ty)
        if v is None:
            return None
        return (v[0] * polarity, v[1] * polarity)

    # 接線ブレンドは direction_at 側で行うため、境界項は押し戻しだけを使う（far_weight=0）。
    policy = StreamlinePolicy(
        retain=0.45,
        turn_reach_far=falloff,
        far_weight=0.0,
        inward_bias=0.12,
        midpoint=True,
    )

    seeds = poisson_in_polygon(
        max(3.0, params.spacing * 0.9), polygon, ctx.rng, max_samples=ctx.max_seeds
    )
    remaining = ctx.max_seeds - len(seeds)
    if remaining > 0:
        seeds.extend(
            jittered_grid_seeds(
                polygon,
                max(5.0, params.spacing * 0.85),
                ctx.rng,
                jitter=0.45,
                bounds=BBox(grid.origin_x, grid.origin_y, grid.max_x, grid.max_y),
                max_seeds=remaining,
            )
        )

    density = DensityGrid(max(3.0, params.spacing * 0.55), overlap_limit=0.48, target_coverage=2)
    lines: list[np.ndarray] = []
    for seed in seeds:
        path = trace_bidirectional(
            seed,
            direction_at,
            polygon,
            step=step_len,
            max_steps=params.max_steps,
            policy=policy,
        )
        if path.shape[0] < 2:
            continue
        if not density.should_keep(path):
            continue
        density.commit(path)
        lines.append(path)
    _logger.debug("skin_flow: seeds=%d kept=%d cells=%d", len(seeds), len(lines), len(density))
    return polylines_from_lines(lines)


__all__ = ["SkinFlowParams", "skin_flow", "skin_flow_meta"]
