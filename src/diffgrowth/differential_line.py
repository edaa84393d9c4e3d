from __future__ import annotations

import math

import numpy as np
from beartype import beartype
from jaxtyping import Float, jaxtyped

from ..utils import debug
from .errors import MeshContractError
from .growth_types import VertexStatus
from .segments import Segments

# one pixel of a 1000x1000 canvas
ONE = 1.0 / 1000

N_MAX = 10**6
NEAR_L = 2.0 * ONE
FAR_L = 40.0 * ONE
STEP = 0.4 * ONE
SPLIT_LIMIT = 0.001


@jaxtyped(typechecker=beartype)
def linked_displacement(
    d: Float[np.ndarray, "K 2"], near_l: float, step: float
) -> Float[np.ndarray, "K 2"]:
    """
    d: v - neighbor, one row per neighbor sharing an edge with v.
    Pulls v toward each neighbor by step once they are farther apart than near_l.
    """
    norm = np.hypot(d[:, 0], d[:, 1])
    out = np.zeros_like(d)
    pull = (norm > near_l) & (norm > 0.0)
    out[pull] = -step * d[pull] / norm[pull, None]
    return out


@jaxtyped(typechecker=beartype)
def unlinked_displacement(
    d: Float[np.ndarray, "K 2"], far_l: float, step: float
) -> Float[np.ndarray, "K 2"]:
    """
    d: v - neighbor, one row per unrelated neighbor.
    Pushes v away with magnitude step * (far_l - |d|), zero at |d| = far_l.
    """
    norm = np.hypot(d[:, 0], d[:, 1])
    out = np.zeros_like(d)
    push = (norm <= far_l) & (norm > 0.0)
    k = step * (far_l / norm[push] - 1.0)
    out[push] = d[push] * k[:, None]
    return out


class DifferentialLine:
    """
    Differential growth solver over one Segments mesh.

    near_l: the closest comfortable distance between two linked vertices.
    far_l: the distance beyond which unlinked vertices ignore each other. It
      is also the zone query radius, so it may not exceed the zone width.
    """

    def __init__(
        self,
        n_max: int,
        zone_width: float,
        near_l: float,
        far_l: float,
        *,
        split_limit: float = SPLIT_LIMIT,
        growth_threshold: float | None = None,
        boundary_margin: float | None = None,
        rng: np.random.Generator | None = None,
    ) -> None:
        if near_l < 0:
            raise MeshContractError(f"near_l must be >= 0, got {near_l}")
        if far_l <= 0:
            raise MeshContractError(f"far_l must be > 0, got {far_l}")
        if not 0.0 <= split_limit <= 1.0:
            raise MeshContractError(f"split_limit must be in [0, 1], got {split_limit}")

        self.segments = Segments(n_max, zone_width)
        if self.segments.nz > 1 and far_l > self.segments.cell_width * (1.0 + 1e-9):
            raise MeshContractError(
                f"far_l={far_l:.6g} is wider than a zone "
                f"({self.segments.cell_width:.6g}); neighbors would be missed"
            )

        self.near_l = near_l
        self.far_l = far_l
        self.split_limit = split_limit
        self.growth_threshold = near_l if growth_threshold is None else growth_threshold
        self.boundary_margin = boundary_margin
        self.rng = np.random.default_rng() if rng is None else rng

        self.sxy = np.zeros((n_max, 2), dtype=np.float64)
        self.last_max_disp = 0.0
        self.last_splits = 0

    def _accumulate(self, v: int, step: float) -> None:
        """Accumulate the displacement of active vertex v into sxy[v]."""
        seg = self.segments
        xy = seg.xy

        vertices = seg.zone_map.sphere_vertices(v, xy, self.far_l)
        vertices = vertices[vertices != v]
        if vertices.shape[0] == 0:
            return

        d = xy[v] - xy[vertices]
        linked = np.isin(vertices, np.asarray(seg.vertex_neighbors(v), dtype=np.int64))

        pull = linked_displacement(d[linked], float(self.near_l), step)
        push = unlinked_displacement(d[~linked], float(self.far_l), step)
        self.sxy[v] = pull.sum(axis=0) + push.sum(axis=0)

    def optimize_position(self, step: float) -> float:
        """
        One relaxation pass. Every active vertex is pulled toward linked
        neighbors and pushed away from unlinked ones closer than far_l.

        All displacements are computed from the positions at the start of
        the pass, then applied, then the zone map is updated.
        Returns the largest displacement norm.
        """
        if not math.isfinite(step) or step <= 0:
            raise MeshContractError(f"step must be a finite value > 0, got {step}")
        step = float(step)
        seg = self.segments
        n = seg.v_num()
        self.sxy[:n] = 0.0

        active = np.flatnonzero(seg.va[:n] == VertexStatus.ACTIVE).astype(np.int64)
        for v in active:
            self._accumulate(int(v), step)

        dxy = self.sxy[active]
        seg.displace_vertices(active, dxy)

        if dxy.shape[0] == 0:
            return 0.0
        return float(np.max(np.hypot(dxy[:, 0], dxy[:, 1])))

    def spawn(self, split_limit: float, growth_threshold: float) -> int:
        """
        Split edges at least growth_threshold long, each with probability
        split_limit. Edges created during the scan are not visited.
        Edges with no active endpoint are skipped, so an anchored line never
        gains movable midpoints.
        Returns the number of splits.
        """
        seg = self.segments
        splits = 0
        for e in seg.get_edges():
            e = int(e)
            if not seg.edge_exists(e):
                continue
            v1, v2 = seg.get_edge_vertices(e)
            if (
                seg.va[v1] < VertexStatus.ACTIVE
                and seg.va[v2] < VertexStatus.ACTIVE
            ):
                continue
            if seg.get_edge_length(e) < growth_threshold:
                continue
            if self.rng.random() >= split_limit:
                continue
            # an edge gone by now is fine, the next step catches up
            if seg.split_edge_no_min(e):
                splits += 1
        return splits

    def step(self, step: float) -> bool:
        """
        Relax, grow, then check the boundary. Returns False once any vertex
        came within boundary_margin (3 * step by default) of the square edge.
        """
        if not math.isfinite(step) or step <= 0:
            raise MeshContractError(f"step must be a finite value > 0, got {step}")
        self.last_max_disp = self.optimize_position(step)
        self.last_splits = self.spawn(self.split_limit, self.growth_threshold)

        margin = 3.0 * step if self.boundary_margin is None else self.boundary_margin
        safe = self.segments.safe_vertex_positions(margin)
        if not safe:
            debug.log(f"vertex within {margin:.6g} of the boundary, stopping")
        return safe
