from __future__ import annotations

import math
from typing import Any, cast

import numpy as np
from beartype import beartype
from jaxtyping import Float, jaxtyped
from svgpathtools import svg2paths2, Path  # type: ignore[reportMissingTypeStubs]

from ..utils import debug
from .geometry import fit_to_unit_square


def _sample_segment(seg: object, flat_tol: float) -> list[complex]:
    seg_any = cast(Any, seg)
    n = max(4, math.ceil(max(float(seg_any.length(error=1e-3)), 1e-6) / flat_tol))
    return [complex(seg_any.point(i / n)) for i in range(n)]


def _drop_close_points(z: np.ndarray, min_dist: float) -> np.ndarray:
    out = [z[0]]
    for q in z[1:]:
        if abs(q - out[-1]) > min_dist:
            out.append(q)
    return np.asarray(out)


@jaxtyped(typechecker=beartype)
def flatten_path(p: Path, flat_tol: float) -> Float[np.ndarray, "N 2"]:
    """
    Sample an svgpathtools Path into a polyline, roughly one point per
    flat_tol of arc length (at least 4 per path segment). SVG user units.
    Points closer than flat_tol / 4 to the previous kept point are dropped.
    """
    z = [q for seg in p for q in _sample_segment(seg, flat_tol)]
    z.append(complex(p[-1].point(1.0)))
    kept = _drop_close_points(np.asarray(z, dtype=np.complex128), 0.25 * flat_tol)
    return np.stack([kept.real, kept.imag], axis=1).astype(np.float64)


def load_seed_outline(
    svg_path: str,
    flat_tol: float = 1.0,
    margin: float = 0.2,
) -> tuple[Float[np.ndarray, "N 2"], bool]:
    """
    Read the first <path> of an SVG as a growth seed.

    Returns (points, closed): points fitted into [margin, 1 - margin]^2 with
    y flipped to point up, and whether the path was closed. For closed paths
    the repeated end point is dropped, the loop is closed by the mesh.
    """
    paths = svg2paths2(svg_path)[0]
    if len(paths) == 0:
        raise ValueError("No <path> found in SVG.")
    if flat_tol <= 0:
        raise ValueError("flat_tol must be > 0")
    p: Path = paths[0]
    closed = bool(p.isclosed())

    V = flatten_path(p, flat_tol)
    if closed and V.shape[0] > 1 and np.linalg.norm(V[0] - V[-1]) <= flat_tol * 0.25:
        V = V[:-1]
    min_points = 3 if closed else 2
    if V.shape[0] < min_points:
        raise ValueError(f"Seed path has too few points after flattening: {V.shape[0]}")

    debug.log(f"seed outline: points={V.shape[0]} closed={closed} flat_tol={flat_tol:.6g}")
    return fit_to_unit_square(V, margin), closed
