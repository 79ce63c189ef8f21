"""
どこで: `src/polyflow/core/modes/guided.py`。
何を: 流入側の辺から目標方向へ流れ、境界付近では辺に沿って曲がる streamline を描く mode。
なぜ: 「一方向へ流れる」見た目を、多角形の形状に沿わせながら得るため。
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace

import numpy as np

from polyflow.core.context import RenderContext
from polyflow.core.fields import gradient_field
from polyflow.core.geometry import normalize, point_in_polygon, smoothstep
from polyflow.core.mode_registry import mode
from polyflow.core.parameters.meta import ParamMeta
from polyflow.core.polylines import Polylines, empty_polylines, polylines_from_lines
from polyflow.core.seeding import edge_samples
from polyflow.core.streamline import StreamlinePolicy, trace

_logger = logging.getLogger(__name__)

# 外向き法線と目標方向の内積がこれ未満の辺（流入側）から seed を取る。
INFLOW_DOT = -0.15

guided_meta = {
    "angle": ParamMeta(kind="float", ui_min=-180.0, ui_max=180.0),
    "influence": ParamMeta(kind="float", ui_min=0.0, ui_max=300.0),
    "seed_spacing": ParamMeta(kind="float", ui_min=1.0, ui_max=80.0),
    "step": ParamMeta(kind="float", ui_min=0.1, ui_max=20.0),
    "max_steps": ParamMeta(kind="int", ui_min=1, ui_max=4000),
    "sdf_step": ParamMeta(kind="float", ui_min=0.0, ui_max=32.0),
}


@dataclass(frozen=True, slots=True)
class GuidedParams:
    angle: float = 0.0
    influence: float = 60.0
    seed_spacing: float = 12.0
    step: float = 2.0
    max_steps: int = 600
    sdf_step: float = 0.0

    def normalized(self) -> GuidedParams:
        return replace(
            self,
            angle=float(self.angle),
            influence=max(0.0, float(self.influence)),
            seed_spacing=max(1.0, float(self.seed_spacing)),
            step=max(0.1, float(self.step)),
            max_steps=max(1, int(self.max_steps)),
            sdf_step=max(0.0, float(self.sdf_step)),
        )


@mode(params=GuidedParams, meta=guided_meta)
def guided(polygon: np.ndarray, params: GuidedParams, ctx: RenderContext) -> Polylines:
    """目標方向 angle [deg] へ導かれる streamline を描く。

    方向場は「境界接線（目標方向側へ符号合わせ）」と目標方向を、境界からの距離に応じて
    `smoothstep(0, influence, d)` で混ぜたもの。境界法線が目標方向を向いたら（流出側）終了する。
    """
    if not ctx.is_drawable(polygon):
        _logger.debug("退化した多角形のため guided をスキップ: n_points=%d", polygon.shape[0])
        return empty_polylines()

    rad = math.radians(params.angle)
    target = (math.cos(rad), math.sin(rad))
    field = ctx.scalar_field(polygon, params.sdf_step or None)
    grad = gradient_field(field).sampler()
    dist = field.sampler()
    influence = params.influence

    def direction_at(x: float, y: float) -> tuple[float, float]:
        gx, gy = grad(x, y)
        n = normalize(-gx, -gy)
        if n is None:
            return target
        tx, ty = -n[1], n[0]
        if tx * target[0] + ty * target[1] < 0.0:
            tx, ty = -tx, -ty
        w = smoothstep(0.0, influence, max(0.0, dist(x, y)))
        v = normalize((1.0 - w) * tx + w * target[0], (1.0 - w) * ty + w * target[1])
        return target if v is None else v

    policy = StreamlinePolicy(retain=0.4, bias_angle=params.angle, exit_alignment=0.35, exit_min_steps=12)

    inset = max(1.5, params.step * 0.6)
    seeds: list[tuple[float, float]] = []
    for x, y, nx, ny in edge_samples(polygon, params.seed_spacing):
        if nx * target[0] + ny * target[1] >= INFLOW_DOT:
            continue
        sx = x - nx * inset
        sy = y - ny * inset
        if point_in_polygon(sx, sy, polygon):
            seeds.append((sx, sy))
            if len(seeds) >= ctx.max_seeds:
                break

    lines: list[np.ndarray] = []
    for seed in seeds:
        result = trace(
            seed,
            direction_at,
            polygon,
            step=params.step,
            max_steps=params.max_steps,
            policy=policy,
        )
        if len(result) > 1:
            lines.append(result.points)
    _logger.debug("guided: seeds=%d lines=%d", len(seeds), len(lines))
    return polylines_from_lines(lines)


__all__ = ["GuidedParams", "guided", "guided_meta"]
