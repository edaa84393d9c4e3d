from pathlib import Path

import numpy as np
from svgpathtools import svg2paths2  # type: ignore[reportMissingTypeStubs]

from src.diffgrowth.export_svg import (
    catmull_rom_to_beziers,
    export_mesh_svg,
    mesh_polylines,
    to_canvas,
)
from src.diffgrowth.geometry import circle_angles
from src.diffgrowth.segments import Segments


def _mesh() -> Segments:
    seg = Segments(100, 0.1)
    chain = np.array([[0.1, 0.1], [0.3, 0.1], [0.3, 0.2]], dtype=np.float64)
    seg.init_line_segment(chain)
    center = np.array([0.6, 0.6], dtype=np.float64)
    seg.init_circle_segment(center, 0.2, circle_angles(8))
    return seg


def test_catmull_rom_interpolates_points() -> None:
    P = np.array([[0.0, 0.0], [1.0, 0.0], [2.0, 1.0], [3.0, 1.0]], dtype=np.float64)
    segs = catmull_rom_to_beziers(P)
    assert len(segs) == 3
    for i, (p0, _c1, _c2, p3) in enumerate(segs):
        np.testing.assert_allclose(p0, P[i])
        np.testing.assert_allclose(p3, P[i + 1])

    loop = catmull_rom_to_beziers(P, closed=True)
    assert len(loop) == 4
    np.testing.assert_allclose(loop[-1][3], P[0])


def test_catmull_rom_straight_line_handles_on_line() -> None:
    P = np.array([[0.0, 0.0], [1.0, 0.0], [2.0, 0.0]], dtype=np.float64)
    for _p0, c1, c2, _p3 in catmull_rom_to_beziers(P):
        assert c1[1] == 0.0
        assert c2[1] == 0.0


def test_to_canvas_flips_y() -> None:
    P = np.array([[0.0, 0.0], [0.25, 1.0]], dtype=np.float64)
    np.testing.assert_allclose(to_canvas(P, 100.0), [[0.0, 100.0], [25.0, 0.0]])


def test_mesh_polylines_one_per_component() -> None:
    polylines = mesh_polylines(_mesh())
    assert [closed for _, closed in polylines] == [False, True]
    assert polylines[0][0].shape == (3, 2)
    assert polylines[1][0].shape == (8, 2)


def test_export_mesh_svg_writes_shapes(tmp_path: Path) -> None:
    out = tmp_path / "mesh.svg"
    export_mesh_svg(str(out), _mesh(), size=500.0, background="#ffffff")
    text = out.read_text(encoding="utf-8")
    assert 'viewBox="0 0 500.0 500.0"' in text
    assert "<polyline" in text
    assert "<polygon" in text
    assert "<rect" in text


def test_export_mesh_svg_smooth_paths(tmp_path: Path) -> None:
    out = tmp_path / "smooth.svg"
    export_mesh_svg(str(out), _mesh(), size=1000.0, smooth=True)
    paths, _, _ = svg2paths2(str(out), convert_polylines_to_paths=False)
    # the 3-point chain stays a polyline, the 8-point loop becomes a path
    assert len(paths) == 1
    assert paths[0].isclosed()
    start = paths[0].start
    assert abs(start.real - 800.0) < 1e-3
    assert abs(start.imag - 400.0) < 1e-3
