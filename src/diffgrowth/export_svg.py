from __future__ import annotations

from typing import Any, TypeAlias

import numpy as np
import svgwrite  # type: ignore[reportMissingTypeStubs]
from beartype import beartype
from jaxtyping import Float, jaxtyped

from .segments import Segments

Point2: TypeAlias = Float[np.ndarray, "2"]
BezierSegment: TypeAlias = tuple[Point2, Point2, Point2, Point2]
Polyline: TypeAlias = tuple[Float[np.ndarray, "M 2"], bool]


@jaxtyped(typechecker=beartype)
def catmull_rom_to_beziers(
    points: Float[np.ndarray, "M 2"],
    *,
    closed: bool = False,
) -> list[BezierSegment]:
    """
    Convert a polyline to cubic Bezier segments approximating a Catmull-Rom
    spline through every point.
    points: (M,2)
    Returns list of (p0, c1, c2, p3) per segment.
    Open curves keep their end points by repeating them as phantom neighbors.
    """
    P = points
    M = P.shape[0]
    if M < 2:
        raise ValueError("Need at least 2 points for Catmull-Rom conversion.")

    if closed:
        prev = np.roll(P, 1, axis=0)
        nxt = np.roll(P, -1, axis=0)
        nxt2 = np.roll(P, -2, axis=0)
        count = M
    else:
        prev = np.vstack([P[:1], P[:-1]])
        nxt = np.vstack([P[1:], P[-1:]])
        nxt2 = np.vstack([P[2:], P[-1:], P[-1:]])
        count = M - 1

    segs: list[BezierSegment] = []
    for i in range(count):
        p0 = P[i]
        p1 = nxt[i]
        c1 = p0 + (p1 - prev[i]) / 6.0
        c2 = p1 - (nxt2[i] - p0) / 6.0
        segs.append((p0, c1, c2, p1))
    return segs


def mesh_polylines(segments: Segments) -> list[Polyline]:
    """Every chain and loop of the mesh as (points, closed)."""
    return [
        (segments.xy[comp.vertices].copy(), comp.closed)
        for comp in segments.get_components()
    ]


@jaxtyped(typechecker=beartype)
def to_canvas(points: Float[np.ndarray, "M 2"], size: float) -> Float[np.ndarray, "M 2"]:
    """Unit square (y up) to SVG user units (y down)."""
    out = np.empty_like(points)
    out[:, 0] = points[:, 0] * size
    out[:, 1] = (1.0 - points[:, 1]) * size
    return out


def export_polylines_svg(
    out_path: str,
    polylines: list[Polyline],
    *,
    size: float = 1000.0,
    stroke: str = "#000000",
    stroke_width: float | str = 1.0,
    fill: str = "none",
    background: str | None = None,
    smooth: bool = False,
    canvas_size: tuple[float, float] | tuple[str, str] | None = None,
) -> None:
    """
    polylines: (points, closed) pairs in unit-square coordinates.
    The viewBox is always the full square, so successive exports line up.
    smooth draws loops/chains of 6+ points as Catmull-Rom paths.
    """
    if canvas_size is None:
        dwg = svgwrite.Drawing(out_path, profile="tiny")
    else:
        dwg = svgwrite.Drawing(out_path, profile="tiny", size=canvas_size)
    dwg.attribs["viewBox"] = f"0 0 {size} {size}"

    if background is not None:
        dwg.add(dwg.rect(insert=(0, 0), size=(size, size), fill=background))

    def to_point_list(points: np.ndarray) -> list[tuple[float, float]]:
        return [(float(p[0]), float(p[1])) for p in points]

    for points, closed in polylines:
        pts = to_canvas(points, size)
        if pts.shape[0] < 2:
            continue

        if not smooth or pts.shape[0] < 6:
            shape = dwg.polygon if closed else dwg.polyline
            dwg.add(
                shape(
                    points=to_point_list(pts),
                    stroke=stroke,
                    fill=fill,
                    stroke_width=stroke_width,
                )
            )
            continue

        segs = catmull_rom_to_beziers(pts, closed=closed)
        p = segs[0][0]
        d = [f"M {p[0]:.3f},{p[1]:.3f}"]
        for _p0, c1, c2, p3 in segs:
            d.append(
                f"C {c1[0]:.3f},{c1[1]:.3f} {c2[0]:.3f},{c2[1]:.3f} {p3[0]:.3f},{p3[1]:.3f}"
            )
        if closed:
            d.append("Z")
        dwg.add(
            dwg.path(
                d=" ".join(d),
                stroke=stroke,
                fill=fill,
                stroke_width=stroke_width,
            )
        )

    dwg.save()


def export_mesh_svg(out_path: str, segments: Segments, **kwargs: Any) -> None:
    export_polylines_svg(out_path, mesh_polylines(segments), **kwargs)
