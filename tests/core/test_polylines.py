"""Polylines 配列モデルの検証と組み立てヘルパに関するテスト群。"""

from __future__ import annotations

import numpy as np
import pytest

from polyflow.core.polylines import (
    Polylines,
    empty_polylines,
    iter_polylines,
    polylines_from_lines,
)


def test_from_lines_skips_empty_lines() -> None:
    lines = [
        np.asarray([[0.0, 0.0], [1.0, 0.0]]),
        np.zeros((0, 2)),
        np.asarray([[2.0, 2.0], [3.0, 3.0], [4.0, 4.0]]),
    ]
    pl = polylines_from_lines(lines)
    assert len(pl) == 2
    assert pl.n_vertices == 5
    assert pl.offsets.tolist() == [0, 2, 5]
    assert pl.coords.dtype == np.float64
    assert pl.offsets.dtype == np.int32


def test_iteration_yields_each_line() -> None:
    pl = polylines_from_lines([[[0.0, 0.0], [1.0, 1.0]], [[5.0, 5.0], [6.0, 6.0], [7.0, 7.0]]])
    parts = list(pl)
    assert [p.shape[0] for p in parts] == [2, 3]
    np.testing.assert_allclose(parts[1][0], (5.0, 5.0), rtol=0.0, atol=0.0)
    assert [p.shape for p in iter_polylines(pl)] == [p.shape for p in parts]


def test_empty_polylines() -> None:
    pl = empty_polylines()
    assert len(pl) == 0
    assert pl.n_vertices == 0
    assert list(pl) == []
    assert len(polylines_from_lines([])) == 0


def test_arrays_are_read_only() -> None:
    pl = polylines_from_lines([[[0.0, 0.0], [1.0, 1.0]]])
    with pytest.raises(ValueError):
        pl.coords[0, 0] = 9.0


@pytest.mark.parametrize(
    ("coords", "offsets"),
    [
        (np.zeros((3, 3)), [0, 3]),
        (np.zeros((3, 2)), [1, 3]),
        (np.zeros((3, 2)), [0, 2]),
        (np.zeros((3, 2)), [0, 2, 1, 3]),
        (np.zeros((3, 2)), []),
    ],
)
def test_invalid_layout_is_rejected(coords: np.ndarray, offsets: list[int]) -> None:
    with pytest.raises(ValueError):
        Polylines(coords=coords, offsets=np.asarray(offsets, dtype=np.int32))
