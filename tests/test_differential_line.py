import math

import numpy as np
import pytest

from src.diffgrowth.differential_line import (
    FAR_L,
    NEAR_L,
    STEP,
    DifferentialLine,
    linked_displacement,
    unlinked_displacement,
)
from src.diffgrowth.errors import MeshContractError
from src.diffgrowth.geometry import circle_angles


def _point(x: float, y: float) -> np.ndarray:
    return np.array([[x, y]], dtype=np.float64)


def test_repulsion_vanishes_at_far_l() -> None:
    far_l = 0.125
    step = 0.01
    d = np.array([[far_l, 0.0], [0.0, far_l], [far_l * 1.5, 0.0]])
    np.testing.assert_array_equal(unlinked_displacement(d, far_l, step), np.zeros((3, 2)))


def test_repulsion_at_half_far_l() -> None:
    far_l = 0.125
    step = 0.01
    d = np.array([[far_l / 2, 0.0], [0.0, -far_l / 2]])
    np.testing.assert_allclose(
        unlinked_displacement(d, far_l, step),
        [[step * far_l / 2, 0.0], [0.0, -step * far_l / 2]],
    )


def test_linked_pull_has_unit_magnitude() -> None:
    near_l = 0.02
    step = 0.01
    d = np.array([[near_l, 0.0], [0.03, 0.04]])
    np.testing.assert_allclose(
        linked_displacement(d, near_l, step),
        [[0.0, 0.0], [-step * 0.6, -step * 0.8]],
    )


def test_coincident_vertices_exert_no_force() -> None:
    d = np.zeros((1, 2))
    np.testing.assert_array_equal(unlinked_displacement(d, 0.1, 0.01), d)
    np.testing.assert_array_equal(linked_displacement(d, 0.0, 0.01), d)


def test_no_neighbors_no_displacement() -> None:
    d = np.zeros((0, 2))
    assert unlinked_displacement(d, 0.1, 0.01).shape == (0, 2)
    assert linked_displacement(d, 0.02, 0.01).shape == (0, 2)


def test_far_l_wider_than_zone_raises() -> None:
    with pytest.raises(MeshContractError):
        DifferentialLine(10, 0.1, 0.02, 0.2)
    # a single zone has no width limit
    df = DifferentialLine(10, 0.5, 0.02, 0.2)
    assert df.segments.nz == 1


def test_constructor_validation() -> None:
    with pytest.raises(MeshContractError):
        DifferentialLine(10, 0.25, -0.01, 0.2)
    with pytest.raises(MeshContractError):
        DifferentialLine(10, 0.25, 0.02, 0.0)
    with pytest.raises(MeshContractError):
        DifferentialLine(10, 0.25, 0.02, 0.2, split_limit=1.5)


def test_unlinked_vertices_push_apart() -> None:
    df = DifferentialLine(10, 0.25, 0.02, 0.2)
    df.segments.init_line_segment(_point(0.45, 0.5))
    df.segments.init_line_segment(_point(0.55, 0.5))

    max_disp = df.optimize_position(0.01)

    # d = far_l / 2, so each moves step * d
    assert max_disp == pytest.approx(0.001)
    np.testing.assert_allclose(df.segments.xy[0], [0.449, 0.5])
    np.testing.assert_allclose(df.segments.xy[1], [0.551, 0.5])


def test_unlinked_vertices_exactly_far_l_apart_stay_put() -> None:
    # far_l equals the zone width, so each vertex is found by the other's query
    df = DifferentialLine(10, 0.25, 0.02, 0.25)
    df.segments.init_line_segment(_point(0.25, 0.5))
    df.segments.init_line_segment(_point(0.5, 0.5))

    assert df.optimize_position(0.01) == 0.0
    np.testing.assert_array_equal(df.segments.xy[0], [0.25, 0.5])
    np.testing.assert_array_equal(df.segments.xy[1], [0.5, 0.5])


def test_linked_vertices_pull_together() -> None:
    df = DifferentialLine(10, 0.25, 0.02, 0.2)
    xys = np.array([[0.45, 0.5], [0.55, 0.5]], dtype=np.float64)
    df.segments.init_line_segment(xys)

    df.optimize_position(0.01)

    np.testing.assert_allclose(df.segments.xy[0], [0.46, 0.5])
    np.testing.assert_allclose(df.segments.xy[1], [0.54, 0.5])


def test_passive_vertices_do_not_move() -> None:
    df = DifferentialLine(10, 0.25, 0.02, 0.2)
    xys = np.array([[0.45, 0.5], [0.55, 0.5]], dtype=np.float64)
    df.segments.init_line_segment(xys, lock_edges=True)

    assert df.optimize_position(0.01) == 0.0
    np.testing.assert_allclose(df.segments.xy[:2], xys)


def test_four_point_circle_relaxation_keeps_topology() -> None:
    df = DifferentialLine(100, 0.1, 0.02, 0.1)
    center = np.array([0.5, 0.5], dtype=np.float64)
    df.segments.init_circle_segment(center, 0.2, circle_angles(4))
    edges_before = df.segments.get_edges_vertices()

    df.optimize_position(0.01)

    xy = df.segments.get_vertex_coordinates()
    assert np.all((xy >= 0.0) & (xy <= 1.0))
    assert df.segments.live_edge_count() == 4
    np.testing.assert_array_equal(df.segments.get_edges_vertices(), edges_before)


def test_zone_map_tracks_moved_vertices() -> None:
    df = DifferentialLine(10, 0.25, 0.0, 0.25)
    df.segments.init_line_segment(_point(0.24, 0.5))
    df.segments.init_line_segment(_point(0.26, 0.5))
    zm = df.segments.zone_map
    assert zm.zone_of(0) != zm.zone_of(1)

    df.optimize_position(0.01)
    assert zm.zone_of(0) == zm.get_z(*df.segments.xy[0])
    assert zm.zone_of(1) == zm.get_z(*df.segments.xy[1])


def test_spawn_with_certain_and_zero_probability() -> None:
    center = np.array([0.5, 0.5], dtype=np.float64)

    df = DifferentialLine(100, 0.1, 0.02, 0.1, rng=np.random.default_rng(0))
    df.segments.init_circle_segment(center, 0.2, circle_angles(4))
    assert df.spawn(1.0, df.growth_threshold) == 4
    assert df.segments.live_edge_count() == 8

    df = DifferentialLine(100, 0.1, 0.02, 0.1, rng=np.random.default_rng(0))
    df.segments.init_circle_segment(center, 0.2, circle_angles(4))
    assert df.spawn(0.0, df.growth_threshold) == 0
    assert df.segments.live_edge_count() == 4


def test_spawn_skips_short_and_passive_edges() -> None:
    df = DifferentialLine(100, 0.1, 0.02, 0.1, rng=np.random.default_rng(0))
    short = np.array([[0.5, 0.5], [0.51, 0.5]], dtype=np.float64)
    df.segments.init_line_segment(short)
    anchored = np.array([[0.2, 0.2], [0.4, 0.2]], dtype=np.float64)
    df.segments.init_passive_line_segment(anchored)

    assert df.spawn(1.0, df.growth_threshold) == 0


def test_step_reports_boundary() -> None:
    center = np.array([0.5, 0.5], dtype=np.float64)

    df = DifferentialLine(100, 0.1, 0.02, 0.1, split_limit=0.0)
    df.segments.init_circle_segment(center, 0.45, circle_angles(4))
    assert df.step(0.01)

    df = DifferentialLine(100, 0.1, 0.02, 0.1, split_limit=0.0)
    df.segments.init_circle_segment(center, 0.49, circle_angles(4))
    assert not df.step(0.01)

    df = DifferentialLine(
        100, 0.1, 0.02, 0.1, split_limit=0.0, boundary_margin=0.1
    )
    df.segments.init_circle_segment(center, 0.45, circle_angles(4))
    assert not df.step(0.01)


def test_step_rejects_non_finite_or_non_positive_size() -> None:
    df = DifferentialLine(100, 0.1, 0.02, 0.1, split_limit=0.0)
    xys = np.array([[0.45, 0.5], [0.55, 0.5]], dtype=np.float64)
    df.segments.init_line_segment(xys)

    for bad in (math.nan, math.inf, 0.0, -0.01):
        with pytest.raises(MeshContractError):
            df.step(bad)
        with pytest.raises(MeshContractError):
            df.optimize_position(bad)
    np.testing.assert_array_equal(df.segments.xy[:2], xys)


def test_growth_run_stays_in_unit_square() -> None:
    df = DifferentialLine(
        5000, FAR_L, NEAR_L, FAR_L, split_limit=0.2, rng=np.random.default_rng(3)
    )
    center = np.array([0.5, 0.5], dtype=np.float64)
    df.segments.init_circle_segment(center, 0.05, circle_angles(30))

    for _ in range(60):
        assert df.step(STEP)
        assert np.isfinite(df.last_max_disp)
        assert df.last_max_disp <= 2 * STEP * 30

    seg = df.segments
    assert seg.live_vertex_count() > 30
    xy = seg.get_vertex_coordinates()
    assert np.all((xy >= 0.0) & (xy <= 1.0))
    for v in range(seg.v_num()):
        assert len(seg.vertex_edges(v)) <= 2
    (comp,) = seg.get_components()
    assert comp.closed
    assert comp.vertices.shape[0] == seg.live_vertex_count()
