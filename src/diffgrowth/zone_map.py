from __future__ import annotations

import numpy as np
from beartype import beartype
from jaxtyping import jaxtyped

from .growth_types import NO_ID, NpPositions, NpVertexIds

NEIGH: list[tuple[int, int]] = [
    (-1, -1),
    (-1, 0),
    (-1, 1),
    (0, -1),
    (0, 0),
    (0, 1),
    (1, -1),
    (1, 0),
    (1, 1),
]


class ZoneMap:
    """
    Uniform grid hash over the unit square.

    Zone (i, j) holds the ids of the vertices with floor(x*nz) == i and
    floor(y*nz) == j (the upper border is clamped into the last row/column).
    Positions are never stored here: every call that needs coordinates takes
    the owner's (n_max, 2) position array, so the owner stays the only writer.

    nz < 3 collapses to a single zone, i.e. every query scans every vertex.
    """

    def __init__(self, nz: int) -> None:
        if nz < 3:
            nz = 1
        self.nz = nz
        self.total_zones = nz * nz
        self.greatest_zone_size = 0
        self.v_count = 0
        self._zones: list[list[int]] = [[] for _ in range(self.total_zones)]
        # vertex -> zone, NO_ID when the vertex is not indexed
        self._vz: list[int] = []

    def __len__(self) -> int:
        return self.v_count

    def _cell(self, x: float, y: float) -> tuple[int, int]:
        nz = self.nz
        i = min(max(int(x * nz), 0), nz - 1)
        j = min(max(int(y * nz), 0), nz - 1)
        return i, j

    def get_z(self, x: float, y: float) -> int:
        i, j = self._cell(x, y)
        return self.nz * i + j

    def zone_of(self, v: int) -> int:
        if v < 0 or v >= len(self._vz):
            return NO_ID
        return self._vz[v]

    def zone_vertices(self, z: int) -> list[int]:
        return list(self._zones[z])

    def _add_vertex_to_zone(self, z: int, v: int) -> None:
        zv = self._zones[z]
        zv.append(v)
        if len(zv) > self.greatest_zone_size:
            self.greatest_zone_size = len(zv)

    def _remove_vertex_from_zone(self, z: int, v: int) -> None:
        zv = self._zones[z]
        i = zv.index(v)
        zv[i] = zv[-1]
        zv.pop()

    @jaxtyped(typechecker=beartype)
    def add_vertex(self, v: int, xy: NpPositions) -> int:
        """Index vertex v at the zone of xy[v]. Returns the zone."""
        z = self.get_z(float(xy[v, 0]), float(xy[v, 1]))
        if v >= len(self._vz):
            self._vz.extend([NO_ID] * (v + 1 - len(self._vz)))
        self._add_vertex_to_zone(z, v)
        self._vz[v] = z
        self.v_count += 1
        return z

    def delete_vertex(self, v: int) -> None:
        z = self.zone_of(v)
        if z == NO_ID:
            return
        self._remove_vertex_from_zone(z, v)
        self._vz[v] = NO_ID
        self.v_count -= 1

    def update_vertex(self, v: int, x: float, y: float) -> None:
        """Must follow every coordinate change of v, or queries go stale."""
        old_z = self.zone_of(v)
        if old_z == NO_ID:
            return
        new_z = self.get_z(x, y)
        if new_z != old_z:
            self._remove_vertex_from_zone(old_z, v)
            self._add_vertex_to_zone(new_z, v)
            self._vz[v] = new_z

    def get_max_sphere_count(self) -> int:
        return 9 * self.greatest_zone_size

    @jaxtyped(typechecker=beartype)
    def sphere_vertices(self, v: int, xy: NpPositions, rad: float) -> NpVertexIds:
        """
        All indexed vertices within rad of v, v itself included.

        Only the 3x3 block of zones around v is scanned, so rad must not be
        larger than one zone width (1/nz).
        """
        x = float(xy[v, 0])
        y = float(xy[v, 1])
        zx, zy = self._cell(x, y)
        nz = self.nz

        cand: list[int] = []
        for dx, dy in NEIGH:
            i = zx + dx
            j = zy + dy
            if 0 <= i < nz and 0 <= j < nz:
                cand.extend(self._zones[i * nz + j])

        if not cand:
            return np.zeros((0,), dtype=np.int64)

        ids = np.asarray(cand, dtype=np.int64)
        d = xy[ids] - xy[v]
        d2 = np.einsum("ij,ij->i", d, d)
        return ids[d2 <= rad * rad]
