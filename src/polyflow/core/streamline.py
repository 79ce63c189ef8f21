"""
どこで: `src/polyflow/core/streamline.py`。
何を: 方向場関数と多角形から、内側に留まる streamline を追跡する汎用積分器を提供する。
なぜ: 各モードで微妙に異なっていた「前ステップ平滑化・境界接線への turn-reach ブレンド・
     境界での向き補正」を 1 つのパラメータ化された積分器にまとめるため。
"""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass
from typing import Callable, Sequence

import numpy as np

from polyflow.core.geometry import (
    nearest_edge_info,
    normalize,
    orient_vector_inside,
    point_in_polygon,
    smoothstep,
)

Vec2 = tuple[float, float]
DirectionField = Callable[[float, float], "Vec2 | None"]
StepScale = Callable[[float, float], float]
StopPredicate = Callable[[float, float, int], bool]

# これ未満のステップ長は「停滞」とみなす。
MIN_STEP = 1e-6
# 2 点前との距離がステップ長のこの比率未満なら往復（ping-pong）とみなす。
PING_PONG_RATIO = 0.05


class Termination(enum.Enum):
    """streamline の終了理由。"""

    EXITED = "exited"
    BUDGET = "budget"
    STAGNATED = "stagnated"
    ALIGNED = "aligned"
    STOPPED = "stopped"
    NO_DIRECTION = "no_direction"


@dataclass(frozen=True, slots=True)
class StreamlinePolicy:
    """1 ステップの方向ブレンド規則。

    Parameters
    ----------
    retain : float
        前ステップ方向を残す比率 [0, 1)。0.35〜0.45 程度で振動を抑える。
    bias_angle : float or None
        固定バイアス方向 [deg]。None ならバイアス無し。
    bias_weight : float
        場の方向をバイアス方向へ寄せる比率 [0, 1]。
    align_to_bias : bool
        True なら場の方向の符号をバイアス方向と同じ側へ揃える。
    turn_reach_near, turn_reach_far : float
        境界接線ブレンドの近距離/遠距離 reach。0 以下で無効。
    far_weight : float
        遠距離 falloff の係数（`max(near, far_weight * far)`）。
    turn_gamma : float
        ブレンド重みに掛ける指数。
    inward_bias : float
        内側にいるとき境界から離れる向きへ押す強さ。
    exit_alignment : float or None
        境界法線とバイアス方向の内積がこの値を超えたら終了する。
    exit_min_steps : int
        exit_alignment 判定を始める最小ステップ数。
    midpoint : bool
        True なら半ステップ先で方向を取り直す（RK2 風の補正）。
    shrink_retries : int
        内側に収まらないとき、ステップ長を縮めて再試行する回数。
    """

    retain: float = 0.0
    bias_angle: float | None = None
    bias_weight: float = 0.0
    align_to_bias: bool = False
    turn_reach_near: float = 0.0
    turn_reach_far: float = 0.0
    far_weight: float = 0.6
    turn_gamma: float = 1.0
    inward_bias: float = 0.0
    exit_alignment: float | None = None
    exit_min_steps: int = 12
    midpoint: bool = False
    shrink_retries: int = 0

    def __post_init__(self) -> None:
        if not 0.0 <= self.retain < 1.0:
            raise ValueError(f"retain は [0, 1) である必要がある: got={self.retain!r}")
        if not 0.0 <= self.bias_weight <= 1.0:
            raise ValueError(f"bias_weight は [0, 1] である必要がある: got={self.bias_weight!r}")
        if (self.bias_weight > 0.0 or self.align_to_bias or self.exit_alignment is not None) and (
            self.bias_angle is None
        ):
            raise ValueError("bias_weight/align_to_bias/exit_alignment には bias_angle が必要")
        if self.turn_gamma <= 0.0:
            raise ValueError(f"turn_gamma は正である必要がある: got={self.turn_gamma!r}")
        if self.shrink_retries < 0:
            raise ValueError("shrink_retries は 0 以上である必要がある")

    @property
    def bias_vector(self) -> Vec2 | None:
        if self.bias_angle is None:
            return None
        rad = math.radians(float(self.bias_angle))
        return (math.cos(rad), math.sin(rad))

    @property
    def uses_boundary(self) -> bool:
        return self.turn_reach_near > 0.0 or self.turn_reach_far > 0.0 or self.inward_bias > 0.0


DEFAULT_POLICY = StreamlinePolicy()


@dataclass(frozen=True, slots=True)
class TraceResult:
    """1 回の追跡結果。points は shape (N,2)、N >= 1（先頭は seed）。"""

    points: np.ndarray
    termination: Termination

    def __len__(self) -> int:
        return int(self.points.shape[0])


def turn_reach_weight(
    distance: float,
    near: float,
    far: float,
    *,
    far_weight: float = 0.6,
    gamma: float = 1.0,
) -> float:
    """境界からの距離に応じた接線ブレンド重み（二重 smoothstep falloff）を返す。"""
    d = max(0.0, float(distance))
    near_f = 1.0 - smoothstep(0.0, near, d) if near > 0.0 else 0.0
    far_f = 1.0 - smoothstep(0.0, far, d) if far > 0.0 else 0.0
    w = max(near_f, far_weight * far_f)
    if w <= 0.0:
        return 0.0
    return w**gamma


class _Stepper:
    """1 回の追跡に閉じた方向合成ロジック。"""

    def __init__(
        self,
        direction_at: DirectionField,
        polygon: np.ndarray,
        policy: StreamlinePolicy,
        sign: float,
    ) -> None:
        self._direction_at = direction_at
        self._polygon = polygon
        self._policy = policy
        self._sign = sign
        self._bias = policy.bias_vector

    def direction(self, x: float, y: float, prev: Vec2 | None) -> Vec2 | None:
        policy = self._policy
        raw = self._direction_at(x, y)
        if raw is None:
            return None
        rx = float(raw[0])
        ry = float(raw[1])
        bias = self._bias

        # (1) 場の方向。符号合わせ → 進行方向の符号 → 固定バイアス。
        if bias is not None and policy.align_to_bias and rx * bias[0] + ry * bias[1] < 0.0:
            rx = -rx
            ry = -ry
        fallback = prev if prev is not None else (
            (bias[0] * self._sign, bias[1] * self._sign) if bias is not None else None
        )
        v = normalize(rx * self._sign, ry * self._sign, fallback)
        if v is None:
            return None
        vx, vy = v
        if bias is not None and policy.bias_weight > 0.0:
            w = policy.bias_weight
            vx = vx * (1.0 - w) + bias[0] * self._sign * w
            vy = vy * (1.0 - w) + bias[1] * self._sign * w

        # (2) 前ステップとの平滑化。
        if prev is not None and policy.retain > 0.0:
            r = policy.retain
            vx = vx * (1.0 - r) + prev[0] * r
            vy = vy * (1.0 - r) + prev[1] * r

        # (3) 境界接線への turn-reach ブレンドと内向きの押し戻し。
        if policy.uses_boundary:
            info = nearest_edge_info(x, y, self._polygon)
            if info is not None:
                tx, ty = info.tangent
                if tx * vx + ty * vy < 0.0:
                    tx = -tx
                    ty = -ty
                d = max(0.0, info.distance)
                w = turn_reach_weight(
                    d,
                    policy.turn_reach_near,
                    policy.turn_reach_far,
                    far_weight=policy.far_weight,
                    gamma=policy.turn_gamma,
                )
                vx = (1.0 - w) * vx + w * tx
                vy = (1.0 - w) * vy + w * ty
                if info.inside and policy.inward_bias > 0.0:
                    reach = policy.turn_reach_far or policy.turn_reach_near or 1.0
                    push = (1.0 - min(1.0, d / reach)) * policy.inward_bias
                    vx -= info.normal[0] * push
                    vy -= info.normal[1] * push

        # (4) 正規化。
        return normalize(vx, vy, fallback)

    def orient(self, x: float, y: float, step: float, v: Vec2) -> tuple[float, float, float] | None:
        """(5) 内側に残る向きとステップ長を返す。"""
        oriented = orient_vector_inside(x, y, step, v, self._polygon)
        if oriented is not None:
            return oriented[0], oriented[1], step
        shrink = 0.6
        for _ in range(self._policy.shrink_retries):
            s = step * shrink
            oriented = orient_vector_inside(x, y, s, v, self._polygon)
            if oriented is not None:
                return oriented[0], oriented[1], s
            shrink *= 0.5
        return None

    def aligned_to_exit(self, x: float, y: float) -> bool:
        threshold = self._policy.exit_alignment
        bias = self._bias
        if threshold is None or bias is None:
            return False
        info = nearest_edge_info(x, y, self._polygon)
        if info is None:
            return False
        return info.normal[0] * bias[0] + info.normal[1] * bias[1] > threshold


def _as_points(points: list[Vec2]) -> np.ndarray:
    return np.asarray(points, dtype=np.float64).reshape(-1, 2)


def trace(
    seed: Sequence[float],
    direction_at: DirectionField,
    polygon: np.ndarray,
    *,
    step: float,
    max_steps: int,
    policy: StreamlinePolicy = DEFAULT_POLICY,
    direction: int = 1,
    step_scale: StepScale | None = None,
    stop: StopPredicate | None = None,
) -> TraceResult:
    """seed から方向場に沿って streamline を追跡する。

    Parameters
    ----------
    seed : Sequence[float]
        開始点 (x, y)。
    direction_at : Callable[[float, float], tuple[float, float] | None]
        方向場。None を返すと「情報無し」として終了する。
    polygon : np.ndarray
        shape (N,2) の閉多角形。
    step : float
        基準ステップ長。
    max_steps : int
        最大ステップ数。
    policy : StreamlinePolicy, optional
        方向ブレンド規則。
    direction : int, optional
        +1 で順方向、-1 で逆方向に追跡する。
    step_scale : Callable[[float, float], float] or None, optional
        位置ごとのステップ倍率。
    stop : Callable[[float, float, int], bool] or None, optional
        (x, y, ステップ数) を受け取り True で終了するモード固有の判定。

    Returns
    -------
    TraceResult
        seed を先頭に含む点列と終了理由。seed が外側なら [seed] と EXITED。
    """
    sx = float(seed[0])
    sy = float(seed[1])
    points: list[Vec2] = [(sx, sy)]
    if max_steps <= 0:
        return TraceResult(_as_points(points), Termination.BUDGET)
    if not point_in_polygon(sx, sy, polygon):
        return TraceResult(_as_points(points), Termination.EXITED)

    stepper = _Stepper(direction_at, polygon, policy, 1.0 if direction >= 0 else -1.0)
    x, y = sx, sy
    prev: Vec2 | None = None
    steps = 0
    stalled = 0
    # 幾何ステップ数とは独立に、反復回数そのものを抑える。
    guard = max(10, int(max_steps) * 4)
    termination = Termination.STAGNATED

    for _ in range(guard):
        cur_step = float(step)
        if step_scale is not None:
            cur_step *= float(step_scale(x, y))
        if not math.isfinite(cur_step) or cur_step <= MIN_STEP:
            termination = Termination.STAGNATED
            break

        v = stepper.direction(x, y, prev)
        if v is None:
            termination = Termination.NO_DIRECTION
            break
        if policy.midpoint:
            mid = stepper.direction(x + v[0] * cur_step * 0.5, y + v[1] * cur_step * 0.5, prev)
            if mid is not None:
                v = mid

        oriented = stepper.orient(x, y, cur_step, v)
        if oriented is None:
            termination = Termination.EXITED
            break
        vx, vy, used = oriented
        nx = x + vx * used
        ny = y + vy * used

        if math.hypot(nx - x, ny - y) <= MIN_STEP:
            stalled += 1
            if stalled >= 3:
                termination = Termination.STAGNATED
                break
            continue
        if len(points) >= 2:
            px, py = points[-2]
            if math.hypot(nx - px, ny - py) < used * PING_PONG_RATIO:
                termination = Termination.STAGNATED
                break

        x, y = nx, ny
        points.append((x, y))
        prev = (vx, vy)
        steps += 1

        if steps > policy.exit_min_steps and stepper.aligned_to_exit(x, y):
            termination = Termination.ALIGNED
            break
        if stop is not None and stop(x, y, steps):
            termination = Termination.STOPPED
            break
        if steps >= max_steps:
            termination = Termination.BUDGET
            break

    return TraceResult(_as_points(points), termination)


def trace_bidirectional(
    seed: Sequence[float],
    direction_at: DirectionField,
    polygon: np.ndarray,
    *,
    step: float,
    max_steps: int,
    policy: StreamlinePolicy = DEFAULT_POLICY,
    step_scale: StepScale | None = None,
) -> np.ndarray:
    """順方向と逆方向を追跡し、逆方向を反転して連結した点列を返す（seed は 1 回だけ含む）。"""
    forward = trace(
        seed,
        direction_at,
        polygon,
        step=step,
        max_steps=max_steps,
        policy=policy,
        direction=1,
        step_scale=step_scale,
    )
    backward = trace(
        seed,
        direction_at,
        polygon,
        step=step,
        max_steps=max_steps,
        policy=policy,
        direction=-1,
        step_scale=step_scale,
    )
    return np.concatenate([backward.points[:0:-1], forward.points], axis=0)


__all__ = [
    "DEFAULT_POLICY",
    "StreamlinePolicy",
    "Termination",
    "TraceResult",
    "trace",
    "trace_bidirectional",
    "turn_reach_weight",
]
