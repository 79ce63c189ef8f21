# どこで: `src/polyflow/__init__.py`。
# 何を: ルート `polyflow` パッケージを定義する。
# なぜ: import 起点を `polyflow` に統一するため。

from __future__ import annotations

from polyflow.api import M, DrawingSink, PolylineCollector, mode, render
from polyflow.core.polylines import Polylines

__all__ = ["DrawingSink", "M", "PolylineCollector", "Polylines", "mode", "render"]
