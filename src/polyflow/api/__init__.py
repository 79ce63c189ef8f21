# どこで: `src/polyflow/api/__init__.py`。
# 何を: 公開 API パッケージのエントリポイントとして render/M と、ユーザー定義登録用の mode を再エクスポートする。
# なぜ: ユーザーコードからシンプルに API を import できるようにするため。

from __future__ import annotations

from .modes import M
from .render import DrawingSink, PolylineCollector, render
from polyflow.core.mode_registry import mode

__all__ = ["DrawingSink", "M", "PolylineCollector", "mode", "render"]
