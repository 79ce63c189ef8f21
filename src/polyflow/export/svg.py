"""
どこで: `src/polyflow/export/svg.py`。
何を: mode が生成した Polylines を SVG として保存する関数を提供する。
なぜ: 描画バックエンドに依存しない最小 headless export（SVG）を用意し、結果を比較可能にするため。
"""

from __future__ import annotations

import re
from pathlib import Path

import numpy as np

from polyflow.core.polylines import Polylines, iter_polylines
from polyflow.core.runtime_config import output_root_dir

_SVG_NS = "http://www.w3.org/2000/svg"
_FLOAT_DECIMALS = 3
_HEX_COLOR = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


def _fmt(value: float, *, decimals: int = _FLOAT_DECIMALS) -> str:
    """SVG 出力向けに float を決定的な文字列へ変換して返す。"""
    text = f"{float(value):.{int(decimals)}f}"
    if text.startswith("-0") and float(text) == 0.0:
        return text[1:]
    return text


def _polyline_to_d(polyline_xy: np.ndarray) -> str:
    """polyline（shape (N,2)）を SVG path の d 属性へ変換して返す。"""
    x0 = _fmt(polyline_xy[0, 0])
    y0 = _fmt(polyline_xy[0, 1])
    parts = [f"M {x0} {y0}"]
    for xy in polyline_xy[1:]:
        parts.append(f"L {_fmt(xy[0])} {_fmt(xy[1])}")
    return " ".join(parts)


def export_svg(
    polylines: Polylines,
    path: str | Path,
    *,
    canvas_size: tuple[float, float] | None = None,
    stroke: str = "#000000",
    stroke_width: float = 1.0,
) -> Path:
    """Polylines を SVG として保存する。

    Parameters
    ----------
    polylines : Polylines
        mode の出力。
    path : str or Path
        出力先パス。相対パスは `output_root_dir() / "svg"` 配下に解決する。
        親ディレクトリが無ければ作る。
    canvas_size : tuple[float, float] or None, optional
        キャンバス寸法（viewBox）。None は未対応。
    stroke : str, optional
        線色（#RGB / #RRGGBB）。
    stroke_width : float, optional
        線幅（viewBox 単位）。

    Returns
    -------
    Path
        保存先パス。

    Raises
    ------
    ValueError
        canvas_size が None / 非正、stroke が不正、stroke_width が非正の場合。
    """
    if canvas_size is None:
        raise ValueError("canvas_size=None は未対応（現在は必須）")

    canvas_w, canvas_h = canvas_size
    if canvas_w <= 0 or canvas_h <= 0:
        raise ValueError("canvas_size は正の値である必要がある")
    if not _HEX_COLOR.match(str(stroke)):
        raise ValueError(f"stroke は #RGB または #RRGGBB である必要がある: got={stroke!r}")
    if not float(stroke_width) > 0.0:
        raise ValueError(f"stroke_width は正の値である必要がある: got={stroke_width!r}")

    width = _fmt(canvas_w, decimals=0) if float(canvas_w).is_integer() else _fmt(canvas_w)
    height = _fmt(canvas_h, decimals=0) if float(canvas_h).is_integer() else _fmt(canvas_h)
    stroke_hex = str(stroke).upper()
    stroke_width_text = _fmt(stroke_width)

    _path = Path(path)
    if not _path.is_absolute():
        _path = output_root_dir() / "svg" / _path

    lines: list[str] = []
    lines.append('<?xml version="1.0" encoding="UTF-8"?>')
    lines.append(
        f'<svg xmlns="{_SVG_NS}" viewBox="0 0 {width} {height}" width="{width}" height="{height}">'
    )

    for polyline_xy in iter_polylines(polylines):
        if polyline_xy.shape[0] < 2:
            continue
        d = _polyline_to_d(polyline_xy)
        lines.append(
            (
                f'  <path d="{d}" fill="none" stroke="{stroke_hex}" '
                f'stroke-width="{stroke_width_text}" stroke-linecap="round" '
                f'stroke-linejoin="round" />'
            )
        )

    lines.append("</svg>")

    _path.parent.mkdir(parents=True, exist_ok=True)
    with _path.open("w", encoding="utf-8", newline="\n") as f:
        f.write("\n".join(lines) + "\n")

    return _path


__all__ = ["export_svg"]
