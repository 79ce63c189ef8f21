# どこで: `src/polyflow/core/parameters/__init__.py`。
# 何を: パラメータメタ情報の公開エイリアスをまとめる。
# なぜ: モード実装から最小インポートで使えるようにするため。

from .meta import ParamMeta, normalize_input

__all__ = ["ParamMeta", "normalize_input"]
