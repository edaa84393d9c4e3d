from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np
from beartype import beartype
from jaxtyping import Float, jaxtyped

from ..utils import debug, debug_helpers
from .errors import CapacityError, MeshContractError
from .growth_types import (
    NO_ID,
    EdgeId,
    NpAngles,
    NpEdgeCoordinates,
    NpEdgeIds,
    NpEdgePairs,
    NpPoint,
    NpPoints,
    NpVertexCoordinates,
    NpVertexIds,
    VertexId,
    VertexStatus,
)
from .zone_map import ZoneMap


@dataclass(frozen=True)
class Component:
    """One connected piece of the mesh, vertices in walking order."""

    vertices: NpVertexIds
    closed: bool


def valid_new_vertex(x: float, y: float) -> bool:
    return 0.0 <= x <= 1.0 and 0.0 <= y <= 1.0


class Segments:
    """
    Linked vertex segments for differential-growth style editing: splitting
    edges by inserting vertices and collapsing edges.

    Storage is a set of flat arenas reserved up front for n_max vertices and
    n_max edges. Deleted vertices and edges are tombstoned (status -1,
    endpoints (-1, -1)) and their ids are never handed out again, so a stale
    id can only ever point at a tombstone.

    All live vertices lie inside the unit square. Every vertex has at most two
    incident edges, so the mesh is a union of simple chains and loops.
    """

    def __init__(self, n_max: int, zone_width: float) -> None:
        if n_max <= 0:
            raise MeshContractError(f"n_max must be positive, got {n_max}")
        if not math.isfinite(zone_width) or zone_width <= 0:
            raise MeshContractError(f"zone_width must be positive, got {zone_width}")

        nz = int(round(1.0 / zone_width))
        if nz < 3:
            nz = 1
            zone_width = 1.0

        self.n_max = n_max
        self.zone_width = zone_width
        self.nz = nz

        self._v_num = 0
        self._e_num = 0
        self._s_num = 0

        self.xy = np.zeros((n_max, 2), dtype=np.float64)
        self.va = np.full((n_max,), VertexStatus.DELETED, dtype=np.int8)
        self.vs = np.full((n_max,), NO_ID, dtype=np.int64)
        # edge -> (v1, v2)
        self.ev = np.full((n_max, 2), NO_ID, dtype=np.int64)
        # vertex -> up to two incident edges, filled from slot 0
        self.ve = np.full((n_max, 2), NO_ID, dtype=np.int64)

        self.zone_map = ZoneMap(nz)

    @property
    def cell_width(self) -> float:
        return 1.0 / self.nz

    # ------------------------------------------------------------------
    # counters

    def v_num(self) -> int:
        """Vertex ids handed out so far, tombstones included."""
        return self._v_num

    def e_num(self) -> int:
        """Edge ids handed out so far, tombstones included."""
        return self._e_num

    def s_num(self) -> int:
        return self._s_num

    def live_vertex_count(self) -> int:
        return int(np.count_nonzero(self.va[: self._v_num] > VertexStatus.DELETED))

    def live_edge_count(self) -> int:
        return int(np.count_nonzero(self.ev[: self._e_num, 0] > NO_ID))

    def get_active_vertex_count(self) -> int:
        return int(np.count_nonzero(self.va[: self._v_num] == VertexStatus.ACTIVE))

    # ------------------------------------------------------------------
    # id checks

    def _check_vertex_id(self, v: int) -> None:
        if v < 0 or v >= self._v_num:
            raise MeshContractError(f"invalid vertex: v{v}")

    def _check_edge_id(self, e: int) -> None:
        if e < 0 or e >= self._e_num:
            raise MeshContractError(f"invalid edge: e{e}")

    def _require_edge(self, e: int) -> tuple[int, int]:
        self._check_edge_id(e)
        if not self.edge_exists(e):
            raise MeshContractError(f"edge does not exist: e{e}")
        return int(self.ev[e, 0]), int(self.ev[e, 1])

    def _reserve(self, vertices: int, edges: int) -> None:
        if self._v_num + vertices > self.n_max:
            raise CapacityError(
                f"vertex capacity exhausted: v_num={self._v_num} "
                f"requested={vertices} n_max={self.n_max}"
            )
        if self._e_num + edges > self.n_max:
            raise CapacityError(
                f"edge capacity exhausted: e_num={self._e_num} "
                f"requested={edges} n_max={self.n_max}"
            )

    def edge_exists(self, e: int) -> bool:
        if e < 0 or e >= self._e_num:
            return False
        return bool(self.ev[e, 0] > NO_ID and self.ev[e, 1] > NO_ID)

    def vertex_exists(self, v: int) -> bool:
        if v < 0 or v >= self._v_num:
            return False
        return bool(self.va[v] > VertexStatus.DELETED)

    def vertex_status(self, v: int) -> VertexStatus:
        self._check_vertex_id(v)
        return VertexStatus(int(self.va[v]))

    def vertex_segment(self, v: int) -> int:
        self._check_vertex_id(v)
        return int(self.vs[v])

    def vertex_edges(self, v: int) -> tuple[EdgeId, ...]:
        self._check_vertex_id(v)
        return tuple(EdgeId(int(e)) for e in self.ve[v] if e > NO_ID)

    def vertex_neighbors(self, v: int) -> tuple[VertexId, ...]:
        """Vertices sharing an edge with v (at most two)."""
        return tuple(
            VertexId(self._other_vertex(e, v)) for e in self.vertex_edges(v)
        )

    def _other_vertex(self, e: int, v: int) -> int:
        a, b = int(self.ev[e, 0]), int(self.ev[e, 1])
        return b if a == v else a

    def _other_edge(self, v: int, e: int) -> int:
        a, b = int(self.ve[v, 0]), int(self.ve[v, 1])
        return b if a == e else a

    # ------------------------------------------------------------------
    # low level edits

    def _add_vertex(self, x: float, y: float, s: int, status: VertexStatus) -> int:
        if not valid_new_vertex(x, y):
            raise MeshContractError(
                f"vertex is outside the unit square: ({x:.6g}, {y:.6g})"
            )
        self._reserve(1, 0)

        v = self._v_num
        self.xy[v, 0] = x
        self.xy[v, 1] = y
        self.va[v] = status
        self.vs[v] = s
        self.ve[v] = NO_ID
        self._v_num += 1

        self.zone_map.add_vertex(v, self.xy)
        return v

    def _add_e_to_ve(self, v: int, e: int) -> None:
        if self.ve[v, 0] < 0:
            self.ve[v, 0] = e
        elif self.ve[v, 1] < 0:
            self.ve[v, 1] = e
        else:
            raise MeshContractError(f"vertex already has two edges: v{v}")

    def _delete_e_from_ve(self, v: int, e: int) -> None:
        if self.ve[v, 0] == e:
            self.ve[v, 0] = self.ve[v, 1]
            self.ve[v, 1] = NO_ID
        elif self.ve[v, 1] == e:
            self.ve[v, 1] = NO_ID

    def _add_edge(self, v1: int, v2: int) -> int:
        """Add edge between vertices v1 and v2. Returns id of new edge."""
        if not (self.vertex_exists(v1) and self.vertex_exists(v2)) or v1 == v2:
            raise MeshContractError(f"invalid vertex: v{v1} -> v{v2}")
        if self.ve[v1, 1] > NO_ID or self.ve[v2, 1] > NO_ID:
            raise MeshContractError(
                f"edge would raise vertex degree above 2: v{v1} -> v{v2}"
            )
        self._reserve(0, 1)

        e = self._e_num
        self.ev[e, 0] = v1
        self.ev[e, 1] = v2
        self._add_e_to_ve(v1, e)
        self._add_e_to_ve(v2, e)
        self._e_num += 1
        return e

    def _delete_edge(self, e: int) -> None:
        self._check_edge_id(e)
        v1, v2 = int(self.ev[e, 0]), int(self.ev[e, 1])
        self.ev[e] = NO_ID
        if v1 > NO_ID:
            self._delete_e_from_ve(v1, e)
        if v2 > NO_ID:
            self._delete_e_from_ve(v2, e)

    def _delete_vertex(self, v: int) -> None:
        if self.ve[v, 0] > NO_ID:
            raise MeshContractError(f"vertex still has edges: v{v}")
        self.va[v] = VertexStatus.DELETED
        self.zone_map.delete_vertex(v)

    def _set_position(self, v: int, x: float, y: float) -> None:
        self.xy[v, 0] = x
        self.xy[v, 1] = y
        self.zone_map.update_vertex(v, x, y)

    @jaxtyped(typechecker=beartype)
    def displace_vertices(
        self,
        ids: NpVertexIds,
        dxy: Float[np.ndarray, "K 2"],
    ) -> None:
        """
        Move vertices ids by dxy, then reindex them. All offsets are applied
        before any zone is touched, so callers can compute dxy from one
        consistent snapshot of positions.
        """
        if ids.shape[0] == 0:
            return
        if np.any(self.va[ids] <= VertexStatus.DELETED):
            raise MeshContractError("cannot move a deleted vertex")
        self.xy[ids] += dxy
        for v in ids:
            x, y = self.xy[v]
            self.zone_map.update_vertex(int(v), float(x), float(y))

    # ------------------------------------------------------------------
    # initializers

    def _init_segment(
        self,
        xys: np.ndarray,
        statuses: list[VertexStatus],
        closed: bool,
    ) -> int:
        n = xys.shape[0]
        n_edges = n if closed else max(n - 1, 0)
        for x, y in xys:
            if not valid_new_vertex(float(x), float(y)):
                raise MeshContractError(
                    f"vertex is outside the unit square: ({x:.6g}, {y:.6g})"
                )
        self._reserve(n, n_edges)

        s = self._s_num
        vertices = [
            self._add_vertex(float(x), float(y), s, status)
            for (x, y), status in zip(xys, statuses)
        ]
        for v1, v2 in zip(vertices[:-1], vertices[1:]):
            self._add_edge(v1, v2)
        if closed:
            self._add_edge(vertices[-1], vertices[0])

        self._s_num += 1
        debug.log(
            f"segment s{s}: vertices={n} edges={n_edges} closed={closed} "
            f"passive={sum(st == VertexStatus.PASSIVE for st in statuses)}"
        )
        return s

    @jaxtyped(typechecker=beartype)
    def init_line_segment(self, xys: NpPoints, lock_edges: bool = False) -> int:
        """
        Open chain through xys, in order.
        With lock_edges the first and last vertex are passive (anchored).
        Returns the segment id.
        """
        n = xys.shape[0]
        if n < 1:
            raise MeshContractError("line segment needs at least one point")
        statuses = [VertexStatus.ACTIVE] * n
        if lock_edges:
            statuses[0] = VertexStatus.PASSIVE
            statuses[-1] = VertexStatus.PASSIVE
        return self._init_segment(xys, statuses, closed=False)

    @jaxtyped(typechecker=beartype)
    def init_passive_line_segment(self, xys: NpPoints) -> int:
        n = xys.shape[0]
        if n < 1:
            raise MeshContractError("line segment needs at least one point")
        return self._init_segment(xys, [VertexStatus.PASSIVE] * n, closed=False)

    @jaxtyped(typechecker=beartype)
    def init_loop_segment(self, xys: NpPoints, passive: bool = False) -> int:
        """Closed loop through xys, the last point linked back to the first."""
        n = xys.shape[0]
        if n < 3:
            raise MeshContractError("closed segment needs at least three points")
        status = VertexStatus.PASSIVE if passive else VertexStatus.ACTIVE
        return self._init_segment(xys, [status] * n, closed=True)

    @jaxtyped(typechecker=beartype)
    def init_circle_segment(
        self,
        center: NpPoint,
        r: float,
        angles: NpAngles,
    ) -> int:
        """Closed loop with one vertex at center + r*(cos t, sin t) per angle."""
        xys = self._circle_points(center, r, angles)
        return self._init_segment(
            xys, [VertexStatus.ACTIVE] * xys.shape[0], closed=True
        )

    @jaxtyped(typechecker=beartype)
    def init_passive_circle_segment(
        self,
        center: NpPoint,
        r: float,
        angles: NpAngles,
    ) -> int:
        xys = self._circle_points(center, r, angles)
        return self._init_segment(
            xys, [VertexStatus.PASSIVE] * xys.shape[0], closed=True
        )

    @staticmethod
    def _circle_points(center: np.ndarray, r: float, angles: np.ndarray) -> np.ndarray:
        if angles.shape[0] < 3:
            raise MeshContractError("circle segment needs at least three angles")
        return np.stack(
            [center[0] + r * np.cos(angles), center[1] + r * np.sin(angles)], axis=1
        )

    # ------------------------------------------------------------------
    # structural edits

    def split_edge(self, e: int, min_len: float) -> bool:
        """
        Replace e = (v1, v2) with v1-v3 and v2-v3, v3 being a new active
        vertex at the midpoint that inherits the segment of v1.

        Returns False without touching the mesh if e is already deleted or
        v1 has no segment. Raises MeshContractError if min_len > 0 and the
        edge is shorter than min_len.
        """
        self._check_edge_id(e)
        if not self.edge_exists(e):
            debug_helpers.log_once(
                "split_edge_missing", f"split skipped, edge does not exist: e{e}"
            )
            return False

        v1, v2 = int(self.ev[e, 0]), int(self.ev[e, 1])
        s = int(self.vs[v1])
        if s < 0:
            debug_helpers.log_once(
                "split_edge_no_segment", f"split skipped, invalid segment: e{e} | v{v1}"
            )
            return False

        if min_len > 0:
            length = self.get_edge_length(e)
            if length < min_len:
                raise MeshContractError(
                    "cannot split edge shorter than the minimum: "
                    f"e{e}, len={length:.4f}, min={min_len:.4f}"
                )

        self._reserve(1, 2)
        mid = 0.5 * (self.xy[v1] + self.xy[v2])
        v3 = self._add_vertex(float(mid[0]), float(mid[1]), s, VertexStatus.ACTIVE)
        self._delete_edge(e)
        self._add_edge(v1, v3)
        self._add_edge(v2, v3)
        return True

    def split_edge_no_min(self, e: int) -> bool:
        return self.split_edge(e, -1.0)

    def collapse_edge(self, e: int, max_len: float) -> None:
        """
        Merge the two active endpoints of e = (v1, v2).

        v1 and its other edge e2 = (v1, v3) are removed, v2 moves to the
        midpoint of v1 and v2 and is reconnected to v3. If v1 is a chain end
        the roles of v1 and v2 are swapped.
        """
        v1, v2 = self._require_edge(e)
        if self.va[v1] < VertexStatus.ACTIVE:
            raise MeshContractError(f"edge has passive vertex: e{e} | *v{v1}* -> v{v2}")
        if self.va[v2] < VertexStatus.ACTIVE:
            raise MeshContractError(f"edge has passive vertex: e{e} | v{v1} -> *v{v2}*")

        e2 = self._other_edge(v1, e)
        if e2 == NO_ID:
            v1, v2 = v2, v1
            e2 = self._other_edge(v1, e)
            if e2 == NO_ID:
                raise MeshContractError(f"cannot collapse isolated edge: e{e}")
        v3 = self._other_vertex(e2, v1)
        if v3 == v2:
            raise MeshContractError(f"collapse would leave a self loop: e{e}")

        if max_len > 0:
            length = self.get_edge_length(e)
            if length > max_len:
                raise MeshContractError(
                    "cannot collapse edge longer than the maximum: "
                    f"e{e}, len={length:.4f}, max={max_len:.4f}"
                )

        self._reserve(0, 1)
        mid = 0.5 * (self.xy[v1] + self.xy[v2])
        self._delete_edge(e)
        self._delete_edge(e2)
        self._delete_vertex(v1)
        self._set_position(v2, float(mid[0]), float(mid[1]))
        self._add_edge(v3, v2)

    def collapse_edge_no_max(self, e: int) -> None:
        self.collapse_edge(e, -1.0)

    def split_long_edges(self, limit: float) -> int:
        """Split all edges longer than limit that have an active endpoint."""
        splits = 0
        for e in range(self._e_num):
            if not self.edge_exists(e):
                continue
            v1, v2 = self.ev[e]
            if self.va[v1] < VertexStatus.ACTIVE and self.va[v2] < VertexStatus.ACTIVE:
                continue
            if self.get_edge_length(e) > limit and self.split_edge_no_min(e):
                splits += 1
        return splits

    # ------------------------------------------------------------------
    # queries

    def get_edge_length(self, e: int) -> float:
        v1, v2 = self._require_edge(e)
        d = self.xy[v1] - self.xy[v2]
        return math.hypot(float(d[0]), float(d[1]))

    def get_edge_vertices(self, e: int) -> tuple[int, int]:
        """Endpoints of e, (-1, -1) once it is deleted."""
        self._check_edge_id(e)
        return int(self.ev[e, 0]), int(self.ev[e, 1])

    @jaxtyped(typechecker=beartype)
    def get_edges(self) -> NpEdgeIds:
        return np.flatnonzero(self.ev[: self._e_num, 0] > NO_ID).astype(np.int64)

    @jaxtyped(typechecker=beartype)
    def get_edges_vertices(self) -> NpEdgePairs:
        return self.ev[self.get_edges()].copy()

    @jaxtyped(typechecker=beartype)
    def get_edges_coordinates(self) -> NpEdgeCoordinates:
        """x1, y1, x2, y2 of every live edge."""
        ev = self.get_edges_vertices()
        return np.concatenate([self.xy[ev[:, 0]], self.xy[ev[:, 1]]], axis=1)

    @jaxtyped(typechecker=beartype)
    def get_vertex_coordinates(self) -> NpVertexCoordinates:
        """x, y of every live vertex, in id order."""
        alive = self.va[: self._v_num] > VertexStatus.DELETED
        return self.xy[: self._v_num][alive].copy()

    def get_greatest_distance(self, x: float, y: float) -> float:
        xy = self.get_vertex_coordinates()
        if xy.shape[0] == 0:
            return 0.0
        d = xy - np.array([x, y], dtype=np.float64)
        return float(np.sqrt(np.max(np.einsum("ij,ij->i", d, d))))

    def get_edge_curvature(self, e: int) -> float:
        """
        Estimate of the bend at e: half the summed |cross product| of e with
        each of its two connected edges. Not curvature in the strict sense.
        """
        v1, v2 = self._require_edge(e)
        e2 = self._other_edge(v1, e)
        e3 = self._other_edge(v2, e)
        if e2 == NO_ID or e3 == NO_ID:
            raise MeshContractError(f"edge is not connected on both sides: e{e}")

        b = self.xy[v1] - self.xy[v2]
        t = 0.0
        for ei in (e2, e3):
            a = self.xy[self.ev[ei, 0]] - self.xy[self.ev[ei, 1]]
            t += abs(float(a[0] * b[1] - a[1] * b[0])) / 2.0

        if t <= 0:
            raise MeshContractError(f"no curvature: e{e}")
        return t

    def safe_vertex_positions(self, limit: float) -> bool:
        """Check that all live vertices are within limit of the square boundary."""
        xy = self.get_vertex_coordinates()
        if xy.shape[0] == 0:
            return True
        return bool(np.all((xy >= limit) & (xy <= 1.0 - limit)))

    # ------------------------------------------------------------------
    # traversal

    def _walk(self, e_start: int, v_from: int) -> tuple[list[int], list[int], bool]:
        """
        Follow the chain leaving v_from through e_start.
        Returns visited vertices (v_from excluded), visited edges and whether
        the walk came back around to v_from.
        """
        vertices: list[int] = []
        edges: list[int] = []
        e = e_start
        v = v_from
        while True:
            edges.append(e)
            nxt = self._other_vertex(e, v)
            if nxt == v_from:
                return vertices, edges, True
            vertices.append(nxt)
            e_next = self._other_edge(nxt, e)
            if e_next == NO_ID:
                return vertices, edges, False
            e = e_next
            v = nxt

    def _component_from(self, e0: int) -> tuple[Component, list[int]]:
        a = int(self.ev[e0, 0])
        forward, edges, closed = self._walk(e0, a)
        if closed:
            ordered = [a, *forward]
        else:
            back_edge = self._other_edge(a, e0)
            backward: list[int] = []
            if back_edge != NO_ID:
                backward, back_edges, _ = self._walk(back_edge, a)
                edges.extend(back_edges)
            ordered = [*reversed(backward), a, *forward]
        comp = Component(vertices=np.asarray(ordered, dtype=np.int64), closed=closed)
        return comp, edges

    def get_components(self) -> list[Component]:
        """Every chain and loop, ordered by their lowest edge id."""
        seen = np.zeros((self._e_num,), dtype=bool)
        components: list[Component] = []
        for e in self.get_edges():
            if seen[e]:
                continue
            comp, edges = self._component_from(int(e))
            seen[edges] = True
            components.append(comp)
        return components

    @jaxtyped(typechecker=beartype)
    def get_sorted_vertices(self) -> NpVertexIds:
        """
        Vertices of a closed loop in walking order, starting at the first
        endpoint of the lowest live edge.

        Only the loop holding that edge is returned when the mesh has several
        components. Raises MeshContractError if it is an open chain.
        """
        edges = self.get_edges()
        if edges.shape[0] == 0:
            return np.zeros((0,), dtype=np.int64)
        comp, _ = self._component_from(int(edges[0]))
        if not comp.closed:
            raise MeshContractError("sorted traversal needs a closed loop")
        return comp.vertices

    @jaxtyped(typechecker=beartype)
    def get_sorted_vertex_coordinates(self) -> NpVertexCoordinates:
        return self.xy[self.get_sorted_vertices()].copy()
