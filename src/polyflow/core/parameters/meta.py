# どこで: `src/polyflow/core/parameters/meta.py`。
# 何を: ParamMeta（UI 表示/検証のためのメタ情報）と、kind に応じた入力値の正規化を提供する。
# なぜ: モード引数の型・レンジ情報を一元管理し、render 境界で 1 回だけ検証するため。

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

_KINDS = ("float", "int", "bool")


@dataclass(frozen=True, slots=True)
class ParamMeta:
    """パラメータの UI/検証用メタ情報。

    ui_min/ui_max はスライダー初期レンジを示すだけで、実値をクランプしない。
    実値のクランプは各モードの params dataclass の `normalized()` が担う。
    """

    kind: str  # "float" | "int" | "bool"
    ui_min: Any | None = None
    ui_max: Any | None = None

    def __post_init__(self) -> None:
        if self.kind not in _KINDS:
            raise ValueError(f"未知の ParamMeta.kind: {self.kind!r}")


def normalize_input(value: Any, meta: ParamMeta, *, key: str) -> Any:
    """kind に応じて入力値を正規化する。

    Raises
    ------
    ValueError
        値を kind に変換できない場合、または float が有限値でない場合。
    """

    kind = meta.kind

    if kind == "bool":
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in {"true", "1", "on", "yes"}:
                return True
            if lowered in {"false", "0", "off", "no"}:
                return False
            raise ValueError(f"{key} は bool である必要がある: got={value!r}")
        return bool(value)

    if kind == "int":
        if isinstance(value, bool):
            raise ValueError(f"{key} は int である必要がある: got={value!r}")
        try:
            return int(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"{key} は int である必要がある: got={value!r}") from exc

    # float
    if isinstance(value, bool):
        raise ValueError(f"{key} は float である必要がある: got={value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{key} は float である必要がある: got={value!r}") from exc
    if not math.isfinite(number):
        raise ValueError(f"{key} は有限値である必要がある: got={value!r}")
    return number


__all__ = ["ParamMeta", "normalize_input"]
