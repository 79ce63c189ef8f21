# どこで: `src/polyflow/core/runtime_config.py`。
# 何を: config.yaml による実行時設定（探索・ロード・キャッシュ）を提供する。
# なぜ: 距離場の解像度や上限値、出力先をコードを変えずにユーザーが指定できるようにするため。

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any

_logger = logging.getLogger(__name__)

_KNOWN_SECTIONS = ("version", "paths", "field", "contours", "render", "seeding")
# 最小格子（3x3）より小さい上限は粗くしても満たせない。
_MIN_GRID_SAMPLES = 9


@dataclass(frozen=True, slots=True)
class RuntimeConfig:
    """polyflow の実行時設定。"""

    config_path: Path | None
    output_dir: Path
    sdf_step: float
    field_margin: float
    max_grid_samples: int
    max_contour_levels: int
    min_polygon_area: float
    seed: int | None
    canvas_size: tuple[float, float] | None
    max_seeds: int


_EXPLICIT_CONFIG_PATH: Path | None = None
_CONFIG_CACHE: RuntimeConfig | None = None


def set_config_path(path: str | Path | None) -> None:
    """以降の設定探索で使う明示 config パスを設定する。

    Notes
    -----
    `path` を None にすると明示指定を解除し、既定の探索に戻る。
    """

    global _EXPLICIT_CONFIG_PATH, _CONFIG_CACHE
    if path is None:
        _EXPLICIT_CONFIG_PATH = None
        _CONFIG_CACHE = None
        return
    p = Path(str(path)).expanduser()
    _EXPLICIT_CONFIG_PATH = p
    _CONFIG_CACHE = None


def _default_config_candidates() -> tuple[Path, ...]:
    cwd = Path.cwd()
    home = Path.home()
    return (
        cwd / ".polyflow" / "config.yaml",
        home / ".config" / "polyflow" / "config.yaml",
    )


def _expand_path_text(text: str) -> str:
    return os.path.expandvars(os.path.expanduser(str(text)))


def _as_optional_path(value: Any) -> Path | None:
    if value is None:
        return None
    s = str(value).strip()
    if not s:
        return None
    return Path(_expand_path_text(s))


def _as_mapping(value: Any, *, key: str) -> dict[str, Any]:
    if value is None:
        return {}
    if isinstance(value, dict):
        return dict(value)
    raise RuntimeError(f"{key} は mapping である必要があります: got={value!r}")


def _as_float_pair(value: Any, *, key: str) -> tuple[float, float] | None:
    if value is None:
        return None
    try:
        seq = list(value)
    except Exception as exc:
        raise RuntimeError(f"{key} は [w, h] の配列である必要があります: got={value!r}") from exc
    if len(seq) != 2:
        raise RuntimeError(f"{key} は [w, h] の配列である必要があります: got={value!r}")
    try:
        w = float(seq[0])
        h = float(seq[1])
    except Exception as exc:
        raise RuntimeError(f"{key} は [w, h] の数値配列である必要があります: got={value!r}") from exc
    if w <= 0 or h <= 0:
        raise RuntimeError(f"{key} は正の値である必要があります: got={value!r}")
    return (w, h)


def _as_float(value: Any, *, key: str) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except Exception as exc:
        raise RuntimeError(f"{key} は数値である必要があります: got={value!r}") from exc


def _as_int(value: Any, *, key: str) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise RuntimeError(f"{key} は整数である必要があります: got={value!r}")
    try:
        return int(value)
    except Exception as exc:
        raise RuntimeError(f"{key} は整数である必要があります: got={value!r}") from exc


def _require(value: Any, *, key: str) -> Any:
    if value is None:
        raise RuntimeError(f"{key} が未設定です（同梱 default_config.yaml を確認してください）")
    return value


def _load_yaml_text(text: str, *, source: str) -> dict[str, Any]:
    try:
        import yaml  # type: ignore[import-untyped]
    except Exception as exc:  # pragma: no cover
        raise RuntimeError(f"PyYAML を import できません: {exc}") from exc

    try:
        data = yaml.safe_load(text)
    except Exception as exc:
        raise RuntimeError(f"config.yaml の読み込みに失敗しました: source={source}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise RuntimeError(f"config.yaml は mapping である必要があります: source={source}")

    return dict(data)


def _load_yaml_config(path: Path) -> dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    return _load_yaml_text(text, source=str(path))


def _load_packaged_default_config() -> dict[str, Any]:
    """同梱デフォルト config をロードして dict を返す。"""

    try:
        blob = (
            resources.files("polyflow")
            .joinpath("resource", "default_config.yaml")
            .read_text(encoding="utf-8")
        )
    except Exception as exc:  # pragma: no cover
        raise RuntimeError(
            "同梱 default_config.yaml の読み込みに失敗しました"
            "（パッケージ配布物の package-data を確認してください）"
        ) from exc

    return _load_yaml_text(blob, source="polyflow/resource/default_config.yaml")


def _merge_payload(base: dict[str, Any], override: dict[str, Any], *, source: str) -> None:
    """override を base へ 1 段深くマージする（セクション内のキー単位で後勝ち）。"""
    for key, value in override.items():
        if key not in _KNOWN_SECTIONS:
            _logger.warning("未知の config キーを無視します: key=%s source=%s", key, source)
            continue
        current = base.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged = dict(current)
            merged.update(value)
            base[key] = merged
        else:
            base[key] = value


def runtime_config() -> RuntimeConfig:
    """実行時設定をロードして返す（キャッシュ）。

    上書き順（後勝ち）:
    1) 同梱 default_config.yaml
    2) `./.polyflow/config.yaml` / `~/.config/polyflow/config.yaml`
    3) `set_config_path()` の明示パス
    """

    global _CONFIG_CACHE
    if _CONFIG_CACHE is not None:
        return _CONFIG_CACHE

    explicit_path = _EXPLICIT_CONFIG_PATH
    if explicit_path is not None and not explicit_path.is_file():
        raise FileNotFoundError(f"config.yaml が見つかりません: {explicit_path}")

    discovered_path: Path | None = None
    for p in _default_config_candidates():
        if p.is_file():
            discovered_path = p
            break

    payload = _load_packaged_default_config()
    if discovered_path is not None:
        _merge_payload(payload, _load_yaml_config(discovered_path), source=str(discovered_path))
    if explicit_path is not None:
        _merge_payload(payload, _load_yaml_config(explicit_path), source=str(explicit_path))

    version = payload.get("version")
    if version is None:
        raise RuntimeError(
            "config.yaml の version が未設定です（同梱 default_config.yaml を確認してください）"
        )
    try:
        version_i = int(version)
    except Exception as exc:
        raise RuntimeError(f"config.yaml の version は整数である必要があります: got={version!r}") from exc
    if version_i != 1:
        raise RuntimeError(f"未対応の config.yaml version です: got={version_i}")

    paths = _as_mapping(payload.get("paths"), key="paths")
    output_dir = _require(_as_optional_path(paths.get("output_dir")), key="paths.output_dir")

    field = _as_mapping(payload.get("field"), key="field")
    sdf_step = _require(_as_float(field.get("sdf_step"), key="field.sdf_step"), key="field.sdf_step")
    if sdf_step <= 0:
        raise ValueError(f"field.sdf_step は正の値である必要があります: got={sdf_step}")
    field_margin = _require(_as_float(field.get("margin"), key="field.margin"), key="field.margin")
    if field_margin < 0:
        raise ValueError(f"field.margin は 0 以上である必要があります: got={field_margin}")
    max_grid_samples = _require(
        _as_int(field.get("max_grid_samples"), key="field.max_grid_samples"),
        key="field.max_grid_samples",
    )
    if max_grid_samples < _MIN_GRID_SAMPLES:
        raise ValueError(
            f"field.max_grid_samples は {_MIN_GRID_SAMPLES} 以上である必要があります: got={max_grid_samples}"
        )

    contours = _as_mapping(payload.get("contours"), key="contours")
    max_contour_levels = _require(
        _as_int(contours.get("max_levels"), key="contours.max_levels"), key="contours.max_levels"
    )
    if max_contour_levels <= 0:
        raise ValueError(f"contours.max_levels は正の値である必要があります: got={max_contour_levels}")

    render = _as_mapping(payload.get("render"), key="render")
    min_polygon_area = _require(
        _as_float(render.get("min_polygon_area"), key="render.min_polygon_area"),
        key="render.min_polygon_area",
    )
    seed = _as_int(render.get("seed"), key="render.seed")
    canvas_size = _as_float_pair(render.get("canvas_size"), key="render.canvas_size")

    seeding = _as_mapping(payload.get("seeding"), key="seeding")
    max_seeds = _require(_as_int(seeding.get("max_seeds"), key="seeding.max_seeds"), key="seeding.max_seeds")
    if max_seeds <= 0:
        raise ValueError(f"seeding.max_seeds は正の値である必要があります: got={max_seeds}")

    cfg = RuntimeConfig(
        config_path=explicit_path or discovered_path,
        output_dir=output_dir,
        sdf_step=float(sdf_step),
        field_margin=float(field_margin),
        max_grid_samples=int(max_grid_samples),
        max_contour_levels=int(max_contour_levels),
        min_polygon_area=float(min_polygon_area),
        seed=seed,
        canvas_size=canvas_size,
        max_seeds=int(max_seeds),
    )
    _CONFIG_CACHE = cfg
    return cfg


def output_root_dir() -> Path:
    """出力ファイルを保存する既定ルートディレクトリを返す。"""

    cfg = runtime_config()
    return Path(cfg.output_dir)


__all__ = ["RuntimeConfig", "output_root_dir", "runtime_config", "set_config_path"]
