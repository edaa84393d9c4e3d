from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from . import debug

if TYPE_CHECKING:
    from ..diffgrowth.segments import Segments

_seen: set[str] = set()


def log_once(key: str, message: str) -> None:
    if debug.is_verbose() and key not in _seen:
        _seen.add(key)
        debug.log(message)


def log_array(name: str, arr: np.ndarray) -> None:
    if not debug.is_verbose():
        return
    if arr.size == 0:
        debug.log(f"{name}: shape={arr.shape} dtype={arr.dtype} (empty)")
        return
    finite_mask = np.isfinite(arr)
    if finite_mask.any():
        finite_vals = arr[finite_mask]
        min_val = float(np.min(finite_vals))
        max_val = float(np.max(finite_vals))
    else:
        min_val = float("nan")
        max_val = float("nan")
    debug.log(
        f"{name}: shape={arr.shape} dtype={arr.dtype} "
        f"finite_all={bool(finite_mask.all())} min={min_val:.6g} max={max_val:.6g}"
    )


def log_mesh(segments: Segments, *, step: int | None = None) -> None:
    if not debug.is_verbose():
        return
    debug.log(
        f"mesh: vertices={segments.live_vertex_count()}/{segments.v_num()} "
        f"edges={segments.live_edge_count()}/{segments.e_num()} "
        f"active={segments.get_active_vertex_count()} "
        f"zone_max={segments.zone_map.greatest_zone_size} n_max={segments.n_max}",
        step=step,
    )
