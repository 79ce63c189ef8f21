"""fBm ノイズの角度場に沿った streamline を破線で描く mode。"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace

import numpy as np

from polyflow.core.context import RenderContext
from polyflow.core.dash import dash_polyline
from polyflow.core.geometry import polygon_bbox
from polyflow.core.mode_registry import mode
from polyflow.core.noise import Perlin
from polyflow.core.parameters.meta import ParamMeta
from polyflow.core.polylines import Polylines, empty_polylines, polylines_from_lines
from polyflow.core.seeding import jittered_grid_seeds, poisson_in_polygon
from polyflow.core.streamline import StreamlinePolicy, trace

_logger = logging.getLogger(__name__)

noise_dashed_flow_meta = {
    "seed_spacing": ParamMeta(kind="float", ui_min=1.0, ui_max=80.0),
    "step": ParamMeta(kind="float", ui_min=0.1, ui_max=20.0),
    "max_steps": ParamMeta(kind="int", ui_min=1, ui_max=2000),
    "scale": ParamMeta(kind="float", ui_min=1.0, ui_max=1000.0),
    "octaves": ParamMeta(kind="int", ui_min=1, ui_max=8),
    "angle": ParamMeta(kind="float", ui_min=-180.0, ui_max=180.0),
    "noise_seed": ParamMeta(kind="int", ui_min=0, ui_max=9999),
    "dash": ParamMeta(kind="float", ui_min=0.1, ui_max=60.0),
    "gap": ParamMeta(kind="float", ui_min=0.1, ui_max=60.0),
    "jitter": ParamMeta(kind="float", ui_min=0.0, ui_max=1.0),
    "falloff_near": ParamMeta(kind="float", ui_min=0.15, ui_max=4.0),
    "falloff_far": ParamMeta(kind="float", ui_min=0.15, ui_max=5.0),
    "random_phase": ParamMeta(kind="bool"),
    "even": ParamMeta(kind="bool"),
}


@dataclass(frozen=True, slots=True)
class NoiseDashedFlowParams:
    """noise_dashed_flow の引数。

    even=True なら Poisson-disk、False ならジッター格子で seed を置く。
    """

    seed_spacing: float = 10.0
    step: float = 2.0
    max_steps: int = 300
    scale: float = 180.0
    octaves: int = 3
    angle: float = 0.0
    noise_seed: int = 0
    dash: float = 8.0
    gap: float = 5.0
    jitter: float = 0.0
    falloff_near: float = 1.0
    falloff_far: float = 1.0
    random_phase: bool = False
    even: bool = True

    def normalized(self) -> NoiseDashedFlowParams:
        return replace(
            self,
            seed_spacing=max(1.0, float(self.seed_spacing)),
            step=max(0.1, float(self.step)),
            max_steps=max(1, int(self.max_steps)),
            scale=max(1.0, float(self.scale)),
            octaves=max(1, int(self.octaves)),
            dash=max(0.1, float(self.dash)),
            gap=max(0.1, float(self.gap)),
            jitter=max(0.0, float(self.jitter)),
            falloff_near=min(4.0, max(0.15, float(self.falloff_near))),
            falloff_far=min(5.0, max(0.15, float(self.falloff_far))),
        )


@mode(params=NoiseDashedFlowParams, meta=noise_dashed_flow_meta)
def noise_dashed_flow(
    polygon: np.ndarray, params: NoiseDashedFlowParams, ctx: RenderContext
) -> Polylines:
    if not ctx.is_drawable(polygon):
        _logger.debug("退化した多角形のため noise_dashed_flow をスキップ: n_points=%d", polygon.shape[0])
        return empty_polylines()

    perlin = Perlin(params.noise_seed)
    scale = params.scale
    octaves = params.octaves
    angle_offset = math.radians(params.angle)

    def direction_at(x: float, y: float) -> tuple[float, float]:
        a = perlin.fbm2(x / scale, y / scale, octaves) * math.pi * 2.0 + angle_offset
        return (math.cos(a), math.sin(a))

    diag = polygon_bbox(polygon).diagonal or 1.0
    near = max(params.step * 4.2, params.seed_spacing * 2.2, diag * 0.05, 14.0) * params.falloff_near
    far = max(near * 2.4, params.seed_spacing * 5.0, diag * 0.18, 38.0) * params.falloff_far
    policy = StreamlinePolicy(
        retain=0.35,
        turn_reach_near=near,
        turn_reach_far=far,
        far_weight=0.62,
        turn_gamma=0.9,
        inward_bias=0.14,
    )

    if params.even:
        seeds = poisson_in_polygon(params.seed_spacing, polygon, ctx.rng, max_samples=ctx.max_seeds)
    else:
        seeds = jittered_grid_seeds(
            polygon, params.seed_spacing, ctx.rng, jitter=0.6, max_seeds=ctx.max_seeds
        )

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
        if len(result) < 2:
            continue
        lines.extend(
            dash_polyline(
                result.points,
                params.dash,
                params.gap,
                rng=ctx.rng,
                random_phase=params.random_phase,
                jitter=params.jitter,
            )
        )
    _logger.debug("noise_dashed_flow: seeds=%d dashes=%d", len(seeds), len(lines))
    return polylines_from_lines(lines)


__all__ = ["NoiseDashedFlowParams", "noise_dashed_flow", "noise_dashed_flow_meta"]
