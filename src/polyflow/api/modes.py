# どこで: `src/polyflow/api/modes.py`。
# 何を: 登録済み mode を属性として呼び出せる公開名前空間 M を提供する。
# なぜ: `M.flow(polygon, step=2.0)` のように mode 名を補完付きで書けるようにするため。

from __future__ import annotations

from typing import Any, Callable

from polyflow.core.mode_registry import mode_registry
from polyflow.core.polylines import Polylines

from .render import render


class ModeNamespace:
    """mode を実行する名前空間。

    Attributes
    ----------
    <name> : Callable[..., Polylines]
        登録済み mode 名ごとの実行関数。
        例: M.contours(polygon, gap=4.0, seed=1) -> Polylines
    """

    def __getattr__(self, name: str) -> Callable[..., Polylines]:
        if name.startswith("_"):
            raise AttributeError(name)

        if name not in mode_registry:
            raise AttributeError(f"未登録の mode: {name!r}")

        def runner(polygon: Any, **kwargs: Any) -> Polylines:
            return render(name, polygon, **kwargs)

        runner.__name__ = name
        return runner

    def __dir__(self) -> list[str]:
        return sorted(mode_registry.names())


M = ModeNamespace()
"""mode を実行する公開名前空間。"""

__all__ = ["M"]
