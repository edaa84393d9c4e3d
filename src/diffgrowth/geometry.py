from __future__ import annotations

import numpy as np
from beartype import beartype
from jaxtyping import Float, jaxtyped


@jaxtyped(typechecker=beartype)
def polyline_length(
    x: Float[np.ndarray, "M 2"],
    *,
    closed: bool = False,
) -> float:
    """Polyline length in unit-square units."""

    seg = x[1:, :] - x[:-1, :]
    length = float(np.sum(np.linalg.norm(seg, axis=-1)))
    if closed and x.shape[0] > 1:
        length += float(np.linalg.norm(x[0, :] - x[-1, :]))
    return length


@jaxtyped(typechecker=beartype)
def edge_lengths(edges: Float[np.ndarray, "E 4"]) -> Float[np.ndarray, "E"]:
    """edges: (E,4) rows of x1,y1,x2,y2"""
    return np.hypot(edges[:, 0] - edges[:, 2], edges[:, 1] - edges[:, 3])


@jaxtyped(typechecker=beartype)
def circle_angles(n: int, phase: float = 0.0) -> Float[np.ndarray, "n"]:
    """n evenly spaced angles in [phase, phase + 2pi)."""
    if n < 1:
        raise ValueError("n must be >= 1")
    return phase + np.linspace(0.0, 2.0 * np.pi, n, endpoint=False, dtype=np.float64)


@jaxtyped(typechecker=beartype)
def fit_to_unit_square(
    V: Float[np.ndarray, "N 2"],
    margin: float = 0.1,
    *,
    flip_y: bool = True,
) -> Float[np.ndarray, "N 2"]:
    """
    Uniformly scale and center V into [margin, 1 - margin]^2.
    flip_y maps SVG coordinates (y down) to the mesh frame (y up).
    """
    if not 0.0 <= margin < 0.5:
        raise ValueError("margin must be in [0, 0.5)")
    if not np.isfinite(V).all():
        raise ValueError("V contains non-finite coordinates")

    P = np.asarray(V, dtype=np.float64).copy()
    if flip_y:
        P[:, 1] = -P[:, 1]
    mins = P.min(axis=0)
    maxs = P.max(axis=0)
    extent = float(np.max(maxs - mins))
    span = 1.0 - 2.0 * margin
    if extent <= 0:
        return np.full_like(P, 0.5)

    P = (P - 0.5 * (mins + maxs)) * (span / extent) + 0.5
    # guard against rounding just outside the square
    return np.clip(P, 0.0, 1.0)
