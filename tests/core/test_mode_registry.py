"""mode レジストリ（登録・引数解決・メタ検証）に関するテスト群。"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import pytest

import polyflow.api  # noqa: F401
from polyflow.core.mode_registry import mode, mode_registry
from polyflow.core.parameters import ParamMeta, normalize_input
from polyflow.core.polylines import empty_polylines

_BUILTIN = ("flow", "guided", "clip_flow", "noise_dashed_flow", "ink_ribbons", "skin_flow", "contours")


def test_builtin_modes_are_registered() -> None:
    for name in _BUILTIN:
        assert name in mode_registry
        spec = mode_registry[name]
        assert spec.name == name
        assert set(spec.param_order) == set(spec.meta)


def test_unknown_mode_raises_key_error() -> None:
    with pytest.raises(KeyError):
        mode_registry.get("no_such_mode")


def test_resolve_params_uses_defaults() -> None:
    params = mode_registry.resolve_params("contours")
    assert params.gap == pytest.approx(mode_registry.get("contours").defaults["gap"])


def test_resolve_params_coerces_and_rejects_unknown() -> None:
    params = mode_registry.resolve_params("flow", {"step": "3", "max_steps": 12.0, "orthogonal": "yes"})
    assert params.step == pytest.approx(3.0)
    assert params.max_steps == 12
    assert params.orthogonal is True
    with pytest.raises(ValueError):
        mode_registry.resolve_params("flow", {"nope": 1})
    with pytest.raises(ValueError):
        mode_registry.resolve_params("flow", {"step": "fast"})


def _dummy(polygon: np.ndarray, params: object, ctx: object):
    return empty_polylines()


def test_mode_decorator_requires_dataclass_params() -> None:
    class NotADataclass:
        pass

    with pytest.raises(ValueError):
        mode(params=NotADataclass, meta={})(_dummy)


def test_mode_decorator_requires_matching_meta() -> None:
    @dataclass(frozen=True)
    class P:
        a: float = 1.0
        b: int = 2

    with pytest.raises(ValueError):
        mode(params=P, meta={"a": ParamMeta(kind="float")})(_dummy)
    with pytest.raises(ValueError):
        mode(
            params=P,
            meta={"a": ParamMeta(kind="float"), "b": ParamMeta(kind="int"), "c": ParamMeta(kind="bool")},
        )(_dummy)


def test_mode_decorator_requires_defaults() -> None:
    @dataclass(frozen=True)
    class P:
        a: float

    with pytest.raises(ValueError):
        mode(params=P, meta={"a": ParamMeta(kind="float")})(_dummy)


def test_mode_decorator_rejects_duplicates_without_overwrite() -> None:
    @dataclass(frozen=True)
    class P:
        a: float = 1.0

    def registry_dup_mode(polygon, params, ctx):
        return empty_polylines()

    mode(params=P, meta={"a": ParamMeta(kind="float")})(registry_dup_mode)
    with pytest.raises(ValueError):
        mode(params=P, meta={"a": ParamMeta(kind="float")}, overwrite=False)(registry_dup_mode)


def test_param_meta_validation() -> None:
    with pytest.raises(ValueError):
        ParamMeta(kind="vec3")
    with pytest.raises(ValueError):
        ParamMeta(kind="choice")
    meta = ParamMeta(kind="int", ui_min=1, ui_max=8)
    assert normalize_input("3", meta, key="k") == 3
    with pytest.raises(ValueError):
        normalize_input("three", meta, key="k")


def test_normalize_input_rejects_bool_for_numbers() -> None:
    with pytest.raises(ValueError):
        normalize_input(True, ParamMeta(kind="float"), key="k")
    with pytest.raises(ValueError):
        normalize_input(False, ParamMeta(kind="int"), key="k")
    assert normalize_input("off", ParamMeta(kind="bool"), key="k") is False


def test_normalize_input_rejects_non_finite_float() -> None:
    with pytest.raises(ValueError):
        normalize_input("inf", ParamMeta(kind="float"), key="k")
    with pytest.raises(ValueError):
        mode_registry.resolve_params("clip_flow", {"spacing": float("nan")})
