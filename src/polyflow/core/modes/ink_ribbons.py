"""
どこで: `src/polyflow/core/modes/ink_ribbons.py`。
何を: 距離場の接線をバイアス方向へ寄せ、ノイズで揺らしたリボン状の streamline を描く mode。
なぜ: 筆致のような長いストロークを、境界付近で細かく・内部で粗く刻むため。
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace

import numpy as np

from polyflow.core.context import RenderContext
from polyflow.core.fields import gradient_field
from polyflow.core.geometry import point_in_polygon
from polyflow.core.mode_registry import mode
from polyflow.core.noise import Perlin
from polyflow.core.parameters.meta import ParamMeta
from polyflow.core.polylines import Polylines, empty_polylines, polylines_from_lines
from polyflow.core.seeding import poisson_in_polygon
from polyflow.core.streamline import trace_bidirectional

_logger = logging.getLogger(__name__)

# 採用済みアンカーからこの比率 * spacing 未満の seed は捨てる。
ANCHOR_REJECT_RATIO = 0.45
MIN_RIBBON_POINTS = 6

ink_ribbons_meta = {
    "seed_spacing": ParamMeta(kind="float", ui_min=6.0, ui_max=120.0),
    "step": ParamMeta(kind="float", ui_min=0.4, ui_max=20.0),
    "max_steps": ParamMeta(kind="int", ui_min=8, ui_max=6000),
    "tangent_weight": ParamMeta(kind="float", ui_min=0.0, ui_max=1.0),
    "bias_angle": ParamMeta(kind="float", ui_min=-180.0, ui_max=180.0),
    "noise_strength": ParamMeta(kind="float", ui_min=0.0, ui_max=1.0),
    "noise_scale": ParamMeta(kind="float", ui_min=10.0, ui_max=1000.0),
    "noise_octaves": ParamMeta(kind="int", ui_min=1, ui_max=6),
    "noise_seed": ParamMeta(kind="int", ui_min=0, ui_max=9999),
    "jitter": ParamMeta(kind="float", ui_min=0.0, ui_max=1.0),
    "anchor_falloff": ParamMeta(kind="float", ui_min=0.0, ui_max=0.95),
    "sdf_step": ParamMeta(kind="float", ui_min=4.0, ui_max=32.0),
}


@dataclass(frozen=True, slots=True)
class InkRibbonsParams:
    seed_spacing: float = 26.0
    step: float = 3.0
    max_steps: int = 620
    tangent_weight: float = 0.78
    bias_angle: float = 92.0
    noise_strength: float = 0.18
    noise_scale: float = 220.0
    noise_octaves: int = 3
    noise_seed: int = 2025
    jitter: float = 0.25
    anchor_falloff: float = 0.28
    sdf_step: float = 8.0

    def normalized(self) -> InkRibbonsParams:
        def clamp01(v: float) -> float:
            return min(1.0, max(0.0, float(v)))

        return replace(
            self,
            seed_spacing=max(6.0, float(self.seed_spacing)),
            step=max(0.4, float(self.step)),
            max_steps=min(6000, max(8, int(self.max_steps))),
            tangent_weight=clamp01(self.tangent_weight),
            noise_strength=clamp01(self.noise_strength),
            noise_scale=max(10.0, float(self.noise_scale)),
            noise_octaves=min(6, max(1, int(self.noise_octaves))),
            jitter=clamp01(self.jitter),
            anchor_falloff=min(0.95, max(0.0, float(self.anchor_falloff))),
            sdf_step=max(4.0, float(self.sdf_step)),
        )


@mode(params=InkRibbonsParams, meta=ink_ribbons_meta)
def ink_ribbons(polygon: np.ndarray, params: InkRibbonsParams, ctx: RenderContext) -> Polylines:
    """Poisson-disk seed からリボン状の streamline を双方向に描く。

    Parameters
    ----------
    polygon : np.ndarray
        shape (N,2) の多角形。
    params : InkRibbonsParams
        tangent_weight で距離場の接線とバイアス方向を混ぜ、noise_strength で
        最大 `0.35*pi*noise_strength` [rad] 回転させる。
    ctx : RenderContext
        seed 配置と位置ジッターの乱数源。

    Returns
    -------
    Polylines
        6 点以上のリボンだけを含む。

    Notes
    -----
    ステップ長は境界からの距離で変わる（境界付近で step、内部で `(1 - anchor_falloff) * step`）。
    採用済みリボンの開始点から `0.45 * seed_spacing` 未満の seed は使わない。
    """
    if not ctx.is_drawable(polygon):
        _logger.debug("退化した多角形のため ink_ribbons をスキップ: n_points=%d", polygon.shape[0])
        return empty_polylines()

    field = ctx.scalar_field(polygon, params.sdf_step)
    grad = gradient_field(field).sampler()
    dist = field.sampler()
    rad = math.radians(params.bias_angle)
    bias = (math.cos(rad), math.sin(rad))
    perlin = Perlin(params.noise_seed)
    tw = params.tangent_weight
    strength = params.noise_strength
    scale = params.noise_scale
    octaves = params.noise_octaves
    spacing = params.seed_spacing

    def direction_at(x: float, y: float) -> tuple[float, float]:
        gx, gy = grad(x, y)
        tx, ty = -gy, gx
        if not (math.isfinite(tx) and math.isfinite(ty)) or (abs(tx) < 1e-4 and abs(ty) < 1e-4):
            tx, ty = bias
        if tx * bias[0] + ty * bias[1] < 0.0:
            tx, ty = -tx, -ty
        vx = tx * tw + bias[0] * (1.0 - tw)
        vy = ty * tw + bias[1] * (1.0 - tw)
        if strength > 1e-4:
            theta = (perlin.fbm2(x / scale, y / scale, octaves) * 2.0 - 1.0) * strength * math.pi * 0.35
            c = math.cos(theta)
            s = math.sin(theta)
            vx, vy = vx * c - vy * s, vx * s + vy * c
        return (vx, vy)

    falloff = params.anchor_falloff

    def anchor_step_scale(x: float, y: float) -> float:
        d = max(0.0, dist(x, y))
        factor = 1.0 - min(1.0, d / (spacing * 1.2))
        return falloff * factor + (1.0 - falloff)

    step_scale = anchor_step_scale if falloff > 0.001 else None

    reject = spacing * ANCHOR_REJECT_RATIO
    anchors: list[tuple[float, float]] = []
    seeds = poisson_in_polygon(spacing, polygon, ctx.rng, max_samples=ctx.max_seeds)
    lines: list[np.ndarray] = []
    for sx, sy in seeds:
        if not point_in_polygon(sx, sy, polygon):
            continue
        if any(math.hypot(ax - sx, ay - sy) < reject for ax, ay in anchors):
            continue
        jx = sx + (ctx.rng() - 0.5) * spacing * params.jitter
        jy = sy + (ctx.rng() - 0.5) * spacing * params.jitter
        path = trace_bidirectional(
            (jx, jy),
            direction_at,
            polygon,
            step=params.step,
            max_steps=params.max_steps,
            step_scale=step_scale,
        )
        if path.shape[0] < MIN_RIBBON_POINTS:
            continue
        lines.append(path)
        anchors.append((jx, jy))
    _logger.debug("ink_ribbons: seeds=%d ribbons=%d", len(seeds), len(lines))
    return polylines_from_lines(lines)


__all__ = ["InkRibbonsParams", "ink_ribbons", "ink_ribbons_meta"]
