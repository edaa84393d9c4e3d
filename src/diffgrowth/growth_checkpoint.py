from __future__ import annotations

import csv
import json
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import numpy as np

from .differential_line import DifferentialLine
from .export_svg import export_mesh_svg
from .geometry import edge_lengths

METRICS_CSV_FIELDS = [
    "step",
    "vertices",
    "edges",
    "active",
    "splits",
    "length",
    "max_disp",
    "safe",
    "elapsed_s",
    "step_s",
]


@dataclass(frozen=True)
class CheckpointRun:
    run_dir: Path
    csv_path: Path

    def svg_path(self, step_idx: int) -> Path:
        return self.run_dir / f"step_{step_idx:06d}.svg"

    def append_metrics(self, row: dict[str, Any]) -> None:
        append_metrics_csv(self.csv_path, METRICS_CSV_FIELDS, row)


def mesh_metadata(df: DifferentialLine) -> dict[str, Any]:
    """Solver parameters and the starting mesh, as written to metadata.json."""
    seg = df.segments
    return {
        "near_l": float(df.near_l),
        "far_l": float(df.far_l),
        "n_max": int(seg.n_max),
        "zone_width": float(seg.zone_width),
        "nz": int(seg.nz),
        "split_limit": float(df.split_limit),
        "growth_threshold": float(df.growth_threshold),
        "boundary_margin": (
            None if df.boundary_margin is None else float(df.boundary_margin)
        ),
        "initial": {
            "vertices": seg.live_vertex_count(),
            "edges": seg.live_edge_count(),
            "active": seg.get_active_vertex_count(),
            "segments": seg.s_num(),
        },
    }


def metrics_row(
    df: DifferentialLine,
    step_idx: int,
    safe: bool,
    elapsed_s: float,
    step_s: float,
) -> dict[str, Any]:
    seg = df.segments
    return {
        "step": step_idx,
        "vertices": seg.live_vertex_count(),
        "edges": seg.live_edge_count(),
        "active": seg.get_active_vertex_count(),
        "splits": int(df.last_splits),
        "length": float(np.sum(edge_lengths(seg.get_edges_coordinates()))),
        "max_disp": float(df.last_max_disp),
        "safe": int(safe),
        "elapsed_s": float(elapsed_s),
        "step_s": float(step_s),
    }


def init_checkpoint_run(base_dir: Path, metadata: dict[str, Any]) -> CheckpointRun:
    """
    Create base_dir/run_<timestamp>_<nnn>/ holding metadata.json.
    The suffix counts up until the directory name is free.
    """
    base_dir.mkdir(parents=True, exist_ok=True)
    now = time.localtime()
    stamp = time.strftime("%Y%m%d_%H%M%S", now)
    suffix = 0
    while (base_dir / f"run_{stamp}_{suffix:03d}").exists():
        suffix += 1
    run_id = f"run_{stamp}_{suffix:03d}"
    run_dir = base_dir / run_id
    run_dir.mkdir(parents=True, exist_ok=False)

    payload = {
        **metadata,
        "run_id": run_id,
        "created_at": time.strftime("%Y-%m-%dT%H:%M:%S", now),
    }
    (run_dir / "metadata.json").write_text(
        json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8"
    )
    print(f"checkpoint run dir={run_dir}")
    return CheckpointRun(run_dir=run_dir, csv_path=run_dir / "metrics.csv")


def append_metrics_csv(
    csv_path: Path,
    fieldnames: list[str],
    row: dict[str, Any],
) -> None:
    new_file = not csv_path.exists()
    with csv_path.open("a", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        if new_file:
            writer.writeheader()
        writer.writerow(row)


def save_checkpoint_svg(
    run: CheckpointRun,
    step_idx: int,
    df: DifferentialLine,
    *,
    stroke_width: float | str = 1.0,
    smooth: bool = False,
) -> Path:
    svg_path = run.svg_path(step_idx)
    t0 = time.perf_counter()
    export_mesh_svg(
        str(svg_path), df.segments, stroke_width=stroke_width, smooth=smooth
    )
    print(
        f"checkpoint svg step={step_idx} vertices={df.segments.live_vertex_count()} "
        f"path={svg_path.name} time={time.perf_counter() - t0:.3f}s"
    )
    return svg_path
