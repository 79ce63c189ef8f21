"""
どこで: `src/polyflow/core/modes/clip_flow.py`。
何を: 平行な弦で多角形を切り、各弦を境界へ寄り添う streamline として描く mode。
なぜ: ハッチングの規則性を保ちつつ、角や凹部で線が境界に沿って曲がる見た目を得るため。
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace

import numpy as np

from polyflow.core.context import RenderContext
from polyflow.core.geometry import (
    line_polygon_intersections,
    point_in_polygon,
    polygon_bbox,
    polygon_centroid,
)
from polyflow.core.mode_registry import mode
from polyflow.core.parameters.meta import ParamMeta
from polyflow.core.polylines import Polylines, empty_polylines, polylines_from_lines
from polyflow.core.streamline import StreamlinePolicy, trace

_logger = logging.getLogger(__name__)

clip_flow_meta = {
    "angle": ParamMeta(kind="float", ui_min=-180.0, ui_max=180.0),
    "spacing": ParamMeta(kind="float", ui_min=1.0, ui_max=80.0),
    "falloff_near": ParamMeta(kind="float", ui_min=0.15, ui_max=4.0),
    "falloff_far": ParamMeta(kind="float", ui_min=0.15, ui_max=5.0),
}


@dataclass(frozen=True, slots=True)
class ClipFlowParams:
    angle: float = 0.0
    spacing: float = 16.0
    falloff_near: float = 1.0
    falloff_far: float = 1.0

    def normalized(self) -> ClipFlowParams:
        for name in ("angle", "spacing", "falloff_near", "falloff_far"):
            value = float(getattr(self, name))
            if not math.isfinite(value):
                raise ValueError(f"clip_flow.{name} は有限値である必要がある: got={value!r}")
        return replace(
            self,
            angle=float(self.angle),
            spacing=max(1.0, float(self.spacing)),
            falloff_near=min(4.0, max(0.15, float(self.falloff_near))),
            falloff_far=min(5.0, max(0.15, float(self.falloff_far))),
        )


def turn_reach(spacing: float, diag: float, near_scale: float, far_scale: float) -> tuple[float, float]:
    """spacing と bbox 対角長から (near, far) reach を決める。"""
    near = max(spacing * 3.8, diag * 0.06, 18.0) * near_scale
    far = max(near * 2.6, diag * 0.22, spacing * 7.0, 48.0) * far_scale
    return near, far


@mode(params=ClipFlowParams, meta=clip_flow_meta)
def clip_flow(polygon: np.ndarray, params: ClipFlowParams, ctx: RenderContext) -> Polylines:
    """angle 方向の平行弦を spacing 間隔で引き、弦ごとに境界追従の曲線へ置き換える。

    Notes
    -----
    弦は重心を通る法線方向の射影範囲（余白 diag*0.5 + 2*spacing）を走査して作る。
    短い弦（step の 0.75 倍以下）や内側に開始点を置けない弦は直線のまま出力する。
    """
    if not ctx.is_drawable(polygon):
        _logger.debug("退化した多角形のため clip_flow をスキップ: n_points=%d", polygon.shape[0])
        return empty_polylines()

    rad = math.radians(params.angle)
    dx, dy = math.cos(rad), math.sin(rad)
    nx, ny = -dy, dx
    cx, cy = polygon_centroid(polygon)
    diag = polygon_bbox(polygon).diagonal or 1.0
    spacing = params.spacing
    near, far = turn_reach(spacing, diag, params.falloff_near, params.falloff_far)
    step_along = max(1.05, spacing * 0.42)
    policy = StreamlinePolicy(
        retain=0.35,
        turn_reach_near=near,
        turn_reach_far=far,
        far_weight=0.65,
        turn_gamma=0.9,
        inward_bias=0.16,
        shrink_retries=4,
    )

    proj = (polygon[:, 0] - cx) * nx + (polygon[:, 1] - cy) * ny
    margin = diag * 0.5 + spacing * 2.0
    start = math.floor((float(proj.min()) - margin) / spacing) * spacing
    end = math.ceil((float(proj.max()) + margin) / spacing) * spacing
    n_chords = min(int(round((end - start) / spacing)) + 1, ctx.max_seeds)
    max_t = diag * 1.5

    def direction_at(x: float, y: float) -> tuple[float, float]:
        return (dx, dy)

    def build_chord(bx: float, by: float, t0: float, t1: float) -> np.ndarray:
        start_pt = (bx + dx * t0, by + dy * t0)
        end_pt = (bx + dx * t1, by + dy * t1)
        straight = np.asarray([start_pt, end_pt], dtype=np.float64)
        span = t1 - t0
        if span <= step_along * 0.75:
            return straight

        inner = min(span * 0.25, max(step_along * 0.8, 0.9))
        st = t0 + inner
        et = t1 - inner
        if st >= et:
            st = t0 + span * 0.33
            et = t1 - span * 0.33
            if st >= et:
                return straight

        x = bx + dx * st
        y = by + dy * st
        if not point_in_polygon(x, y, polygon):
            # 頂点をかすめる弦では開始点が境界上に落ちるので重心側へ寄せる。
            pull = math.hypot(cx - x, cy - y) or 1.0
            nudge = min(1.2, span * 0.12)
            x += (cx - x) / pull * nudge
            y += (cy - y) / pull * nudge
            if not point_in_polygon(x, y, polygon):
                return straight

        def reached_end(px: float, py: float, steps: int) -> bool:
            return (px - bx) * dx + (py - by) * dy >= et - 1e-3

        result = trace(
            (x, y),
            direction_at,
            polygon,
            step=step_along,
            max_steps=max(10, int(math.ceil((et - st) / step_along)) * 2),
            policy=policy,
            stop=reached_end,
        )
        pts = [start_pt, *[(float(p[0]), float(p[1])) for p in result.points]]
        tail = pts[-1]
        if math.hypot(tail[0] - end_pt[0], tail[1] - end_pt[1]) > 0.6:
            anchor_t = min(et, max(st, (tail[0] - bx) * dx + (tail[1] - by) * dy))
            anchor = (bx + dx * anchor_t, by + dy * anchor_t)
            if math.hypot(tail[0] - anchor[0], tail[1] - anchor[1]) > 0.5:
                pts.append(anchor)
            pts.append(end_pt)
        else:
            pts[-1] = end_pt
        return np.asarray(pts, dtype=np.float64)

    lines: list[np.ndarray] = []
    for k in range(n_chords):
        offset = start + k * spacing
        bx = cx + nx * offset
        by = cy + ny * offset
        ts = line_polygon_intersections((bx, by), (dx, dy), polygon)
        for i in range(0, len(ts) - 1, 2):
            t0, t1 = ts[i], ts[i + 1]
            if abs(t1 - t0) < 1e-4:
                continue
            t0 = max(-max_t, min(max_t, t0))
            t1 = max(-max_t, min(max_t, t1))
            if t1 <= t0 + 1e-3:
                continue
            lines.append(build_chord(bx, by, t0, t1))
    _logger.debug("clip_flow: chords=%d lines=%d", n_chords, len(lines))
    return polylines_from_lines(lines)


__all__ = ["ClipFlowParams", "clip_flow", "clip_flow_meta", "turn_reach"]
