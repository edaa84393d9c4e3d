import numpy as np
import pytest

from src.diffgrowth.geometry import (
    circle_angles,
    edge_lengths,
    fit_to_unit_square,
    polyline_length,
)


def test_polyline_length_open_and_closed() -> None:
    x = np.array([[0.0, 0.0], [3.0, 0.0], [3.0, 4.0]], dtype=np.float64)
    assert polyline_length(x) == pytest.approx(7.0)
    assert polyline_length(x, closed=True) == pytest.approx(12.0)


def test_edge_lengths() -> None:
    edges = np.array([[0.0, 0.0, 0.3, 0.4], [0.5, 0.5, 0.5, 0.5]], dtype=np.float64)
    np.testing.assert_allclose(edge_lengths(edges), [0.5, 0.0])


def test_circle_angles_evenly_spaced() -> None:
    a = circle_angles(4)
    np.testing.assert_allclose(a, [0.0, np.pi / 2, np.pi, 3 * np.pi / 2])
    b = circle_angles(3, phase=0.5)
    assert b[0] == pytest.approx(0.5)
    with pytest.raises(ValueError):
        circle_angles(0)


def test_fit_to_unit_square_centers_and_flips() -> None:
    V = np.array([[10.0, 10.0], [30.0, 10.0], [30.0, 20.0]], dtype=np.float64)
    P = fit_to_unit_square(V, 0.1)
    assert P.shape == V.shape
    np.testing.assert_allclose(P[:, 0].min(), 0.1)
    np.testing.assert_allclose(P[:, 0].max(), 0.9)
    # height is half the width, centered at 0.5
    np.testing.assert_allclose(sorted(P[:, 1]), [0.3, 0.7, 0.7])
    # y down in, y up out
    assert P[2, 1] < P[0, 1]


def test_fit_to_unit_square_degenerate_and_invalid() -> None:
    V = np.array([[2.0, 2.0], [2.0, 2.0]], dtype=np.float64)
    np.testing.assert_allclose(fit_to_unit_square(V), 0.5)
    with pytest.raises(ValueError):
        fit_to_unit_square(V, 0.5)
    bad = np.array([[0.0, np.nan]], dtype=np.float64)
    with pytest.raises(ValueError):
        fit_to_unit_square(bad)
