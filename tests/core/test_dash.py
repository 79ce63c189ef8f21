"""弧長ベースの破線化に関するテスト群。"""

from __future__ import annotations

import numpy as np
import pytest

from polyflow.core.dash import dash_polyline
from polyflow.core.seeding import make_rng

_LINE = np.asarray([[0.0, 0.0], [20.0, 0.0]], dtype=np.float64)


def _length(piece: np.ndarray) -> float:
    return float(np.sum(np.hypot(*np.diff(piece, axis=0).T)))


def test_dash_pattern_on_straight_line() -> None:
    pieces = dash_polyline(_LINE, 4.0, 2.0)
    assert len(pieces) == 4
    starts = [float(p[0, 0]) for p in pieces]
    ends = [float(p[-1, 0]) for p in pieces]
    assert starts == pytest.approx([0.0, 6.0, 12.0, 18.0])
    assert ends == pytest.approx([4.0, 10.0, 16.0, 20.0])


def test_offset_shifts_pattern_phase() -> None:
    pieces = dash_polyline(_LINE, 4.0, 2.0, offset=1.0)
    assert float(pieces[0][0, 0]) == pytest.approx(0.0)
    assert float(pieces[0][-1, 0]) == pytest.approx(3.0)
    assert float(pieces[1][0, 0]) == pytest.approx(5.0)


def test_dash_keeps_interior_vertices() -> None:
    bent = np.asarray([[0.0, 0.0], [2.0, 0.0], [2.0, 2.0]], dtype=np.float64)
    pieces = dash_polyline(bent, 10.0, 1.0)
    assert len(pieces) == 1
    np.testing.assert_allclose(pieces[0], bent, rtol=0.0, atol=1e-12)


def test_degenerate_inputs_return_original_line() -> None:
    for pieces in (
        dash_polyline(_LINE, 0.0, 0.0),
        dash_polyline(_LINE, 0.0, 3.0),
        dash_polyline(_LINE[:1], 4.0, 2.0),
        dash_polyline(np.zeros((3, 2)), 4.0, 2.0),
    ):
        assert len(pieces) == 1


def test_jitter_never_lengthens_dashes() -> None:
    pieces = dash_polyline(_LINE, 4.0, 2.0, rng=make_rng(0), jitter=1.0)
    assert pieces
    for p in pieces:
        assert _length(p) <= 4.0 + 1e-9


def test_random_phase_is_reproducible_with_same_seed() -> None:
    a = dash_polyline(_LINE, 4.0, 2.0, rng=make_rng(7), random_phase=True)
    b = dash_polyline(_LINE, 4.0, 2.0, rng=make_rng(7), random_phase=True)
    assert len(a) == len(b)
    for pa, pb in zip(a, b):
        assert np.array_equal(pa, pb)
