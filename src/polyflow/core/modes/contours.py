"""距離場の等値線（境界からの等距離線）を描く mode。"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

import numpy as np

from polyflow.core.context import RenderContext
from polyflow.core.contours import iso_levels, march
from polyflow.core.mode_registry import mode
from polyflow.core.parameters.meta import ParamMeta
from polyflow.core.polylines import Polylines, empty_polylines, polylines_from_lines

_logger = logging.getLogger(__name__)

contours_meta = {
    "gap": ParamMeta(kind="float", ui_min=0.5, ui_max=60.0),
    "sdf_step": ParamMeta(kind="float", ui_min=0.0, ui_max=32.0),
}


@dataclass(frozen=True, slots=True)
class ContoursParams:
    """gap 間隔の等値線。gap <= 0 は描画なし、sdf_step=0 は既定解像度。"""

    gap: float = 6.0
    sdf_step: float = 0.0

    def normalized(self) -> ContoursParams:
        return replace(self, gap=float(self.gap), sdf_step=max(0.0, float(self.sdf_step)))


@mode(params=ContoursParams, meta=contours_meta)
def contours(polygon: np.ndarray, params: ContoursParams, ctx: RenderContext) -> Polylines:
    """レベル gap, 2*gap, ... (場の最大値まで) の等値線を 2 点ポリラインとして返す。"""
    if not ctx.is_drawable(polygon):
        _logger.debug("退化した多角形のため contours をスキップ: n_points=%d", polygon.shape[0])
        return empty_polylines()

    field = ctx.scalar_field(polygon, params.sdf_step or None)
    levels = iso_levels(field, params.gap, max_levels=ctx.max_contour_levels)
    segments: list[np.ndarray] = []

    def emit(a: tuple[float, float], b: tuple[float, float]) -> None:
        segments.append(np.asarray([a, b], dtype=np.float64))

    for level in levels:
        march(field, level, emit)
    _logger.debug("contours: levels=%d segments=%d", len(levels), len(segments))
    return polylines_from_lines(segments)


__all__ = ["ContoursParams", "contours", "contours_meta"]
