# src/polyflow/core/mode_registry.py
# 描画モード名と実装関数・パラメータ型を対応付けるレジストリ。
# mode 名から関数を引き、ユーザー引数を params dataclass へ検証・変換する。

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable

import numpy as np

from polyflow.core.context import RenderContext
from polyflow.core.parameters.meta import ParamMeta, normalize_input
from polyflow.core.polylines import Polylines

ModeFunc = Callable[[np.ndarray, Any, RenderContext], Polylines]


@dataclass(frozen=True, slots=True)
class ModeSpec:
    """登録済みモード 1 件分の情報。"""

    name: str
    func: ModeFunc
    params_type: type
    meta: dict[str, ParamMeta]
    defaults: dict[str, Any]
    param_order: tuple[str, ...]


class ModeRegistry:
    """描画モードのレジストリ。

    Notes
    -----
    登録された関数のシグネチャは
    ``func(polygon: np.ndarray, params: <ParamsDataclass>, ctx: RenderContext) -> Polylines``
    を想定する。
    """

    def __init__(self) -> None:
        """空のレジストリを初期化する。"""
        self._items: dict[str, ModeSpec] = {}

    def _register(self, spec: ModeSpec, *, overwrite: bool = True) -> None:
        """mode を登録する（内部用）。

        Notes
        -----
        登録は `@mode` デコレータ経由に統一する。
        """
        if not overwrite and spec.name in self._items:
            raise ValueError(f"mode '{spec.name}' は既に登録されている")
        self._items[spec.name] = spec

    def get(self, name: str) -> ModeSpec:
        """mode 名に対応する ModeSpec を取得する。

        Raises
        ------
        KeyError
            未登録の mode 名が指定された場合。
        """
        try:
            return self._items[name]
        except KeyError:
            known = ", ".join(sorted(self._items))
            raise KeyError(f"未登録の mode: {name!r}（登録済み: {known}）") from None

    def __contains__(self, name: object) -> bool:
        return name in self._items

    def __getitem__(self, name: str) -> ModeSpec:
        return self.get(name)

    def names(self) -> tuple[str, ...]:
        """登録済み mode 名を登録順で返す。"""
        return tuple(self._items)

    def resolve_params(self, name: str, overrides: Mapping[str, Any] | None = None) -> Any:
        """ユーザー引数を検証し、mode の params dataclass を返す。

        Parameters
        ----------
        name : str
            mode 名。
        overrides : Mapping[str, Any] or None
            既定値を上書きする引数。

        Returns
        -------
        Any
            `normalized()` 済みの params dataclass インスタンス。

        Raises
        ------
        KeyError
            未登録の mode 名。
        ValueError
            未知の引数名、または型変換できない値。
        """
        spec = self.get(name)
        overrides = dict(overrides or {})
        unknown = sorted(set(overrides) - set(spec.meta))
        if unknown:
            raise ValueError(f"mode '{name}' に未知の引数: {unknown}（有効: {list(spec.param_order)}）")
        values = dict(spec.defaults)
        for key, raw in overrides.items():
            values[key] = normalize_input(raw, spec.meta[key], key=f"{name}.{key}")
        params = spec.params_type(**values)
        normalized = getattr(params, "normalized", None)
        if callable(normalized):
            params = normalized()
        return params


mode_registry = ModeRegistry()
"""グローバルな mode レジストリインスタンス。"""


def _defaults_from_params(name: str, params_type: type, meta: dict[str, ParamMeta]) -> dict[str, Any]:
    if not dataclasses.is_dataclass(params_type):
        raise ValueError(f"mode '{name}' の params は dataclass である必要がある: {params_type!r}")
    fields = {f.name: f for f in dataclasses.fields(params_type)}
    missing = sorted(set(fields) - set(meta))
    if missing:
        raise ValueError(f"mode '{name}' の meta に不足している引数: {missing}")
    extra = sorted(set(meta) - set(fields))
    if extra:
        raise ValueError(f"mode '{name}' の meta 引数が params に存在しない: {extra}")
    defaults: dict[str, Any] = {}
    for arg, field in fields.items():
        if field.default is dataclasses.MISSING:
            raise ValueError(f"mode '{name}' の params 引数は default 必須: {arg!r}")
        defaults[arg] = field.default
    return defaults


def mode(
    func: ModeFunc | None = None,
    *,
    params: type,
    meta: dict[str, ParamMeta],
    overwrite: bool = True,
):
    """グローバル mode レジストリ用デコレータ。

    関数名をそのまま mode 名として登録する。

    Examples
    --------
    @mode(params=MyParams, meta=my_meta)
    def my_mode(polygon, params, ctx):
        ...
    """

    def decorator(f: ModeFunc) -> ModeFunc:
        name = f.__name__
        defaults = _defaults_from_params(name, params, meta)
        order = tuple(fl.name for fl in dataclasses.fields(params))
        mode_registry._register(
            ModeSpec(
                name=name,
                func=f,
                params_type=params,
                meta=dict(meta),
                defaults=defaults,
                param_order=order,
            ),
            overwrite=overwrite,
        )
        return f

    if func is None:
        return decorator
    return decorator(func)


__all__ = ["ModeFunc", "ModeRegistry", "ModeSpec", "mode", "mode_registry"]
