from __future__ import annotations


class MeshContractError(ValueError):
    """
    Raised when calling code breaks a precondition of the mesh or solver:
    unknown or tombstoned ids, coordinates outside the unit square, or a
    min/max length guard on split/collapse.

    Expected outcomes (splitting an edge that is already gone) are reported
    as a False return value instead.
    """


class CapacityError(MeshContractError):
    """Raised before a vertex or edge would be written past n_max."""
