from __future__ import annotations

from enum import IntEnum
from typing import NewType, TypeAlias

import numpy as np
from jaxtyping import Float, Int

VertexId = NewType("VertexId", int)
EdgeId = NewType("EdgeId", int)

NO_ID = -1


class VertexStatus(IntEnum):
    DELETED = -1
    PASSIVE = 0
    ACTIVE = 1


NpPositions: TypeAlias = Float[np.ndarray, "n_max 2"]
NpPoints: TypeAlias = Float[np.ndarray, "N 2"]
NpPoint: TypeAlias = Float[np.ndarray, "2"]
NpAngles: TypeAlias = Float[np.ndarray, "N"]
NpVertexIds: TypeAlias = Int[np.ndarray, "K"]
NpEdgeIds: TypeAlias = Int[np.ndarray, "E"]
NpEdgePairs: TypeAlias = Int[np.ndarray, "E 2"]
NpEdgeCoordinates: TypeAlias = Float[np.ndarray, "E 4"]
NpVertexCoordinates: TypeAlias = Float[np.ndarray, "V 2"]
