from __future__ import annotations

import math
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import numpy as np
from PIL import Image
from tqdm import tqdm  # type: ignore[reportMissingModuleSource]

from .. import PROJECT_ROOT
from ..utils import debug, debug_helpers
from .differential_line import STEP, DifferentialLine
from .growth_checkpoint import (
    CheckpointRun,
    init_checkpoint_run,
    mesh_metadata,
    metrics_row,
    save_checkpoint_svg,
)
from .render_raster import render_edges

__all__ = ["GrowthResult", "grow_lines"]


@dataclass
class GrowthResult:
    steps_run: int
    stopped_early: bool
    vertices: int
    edges: int
    run_dir: Path | None = None
    frames: list[Image.Image] = field(default_factory=list)


def grow_lines(
    df: DifferentialLine,
    *,
    steps: int = 1000,
    step_size: float = STEP,
    log_every: int = 100,
    checkpoint_every: int | None = None,
    checkpoint_svgs: bool = True,
    checkpoint_csv: bool = False,
    checkpoint_dir: Path | None = None,
    smooth_svgs: bool = False,
    frame_every: int | None = None,
    frame_size: int = 800,
    progress: bool = False,
    metadata_extra: dict[str, Any] | None = None,
) -> GrowthResult:
    """
    Run df.step(step_size) up to `steps` times, stopping as soon as a vertex
    gets too close to the boundary of the unit square.

    checkpoint_every: SVG of the mesh every N steps (and at step 0).
    checkpoint_csv: one metrics.csv row per step.
    Both write into a fresh run dir under checkpoint_dir, which defaults to
    data/checkpoints in the project root. No run dir is made if neither is on.
    frame_every: keep a frame_size raster of the mesh every N steps.
    """
    if steps < 0:
        raise ValueError("steps must be >= 0")
    if not math.isfinite(step_size) or step_size <= 0:
        raise ValueError("step_size must be a finite value > 0")
    if log_every <= 0:
        raise ValueError("log_every must be > 0")
    if checkpoint_every is not None and checkpoint_every <= 0:
        checkpoint_every = None
    if frame_every is not None and frame_every <= 0:
        frame_every = None

    seg = df.segments
    save_svgs = checkpoint_every is not None and checkpoint_svgs

    run: CheckpointRun | None = None
    if checkpoint_csv or save_svgs:
        metadata = mesh_metadata(df)
        metadata.update(
            {
                "steps": int(steps),
                "step_size": float(step_size),
                "checkpoint_every": checkpoint_every,
                "checkpoint_csv": bool(checkpoint_csv),
                "frame_every": frame_every,
            }
        )
        if metadata_extra is not None:
            metadata["extra"] = metadata_extra
        base_dir = (
            PROJECT_ROOT / "data" / "checkpoints"
            if checkpoint_dir is None
            else checkpoint_dir
        )
        run = init_checkpoint_run(base_dir, metadata)

    frames: list[Image.Image] = []

    def capture_frame(step_idx: int) -> None:
        frames.append(
            render_edges(
                seg.get_edges_coordinates(), frame_size, label=f"step {step_idx}"
            )
        )

    if run is not None and save_svgs:
        save_checkpoint_svg(run, 0, df, smooth=smooth_svgs)
    if frame_every is not None:
        capture_frame(0)
    debug_helpers.log_mesh(seg, step=0)

    start_time = time.perf_counter()
    steps_run = 0
    stopped_early = False

    for t in tqdm(range(steps), disable=not progress, desc="Growing", unit="step"):
        step_start = time.perf_counter()
        safe = df.step(step_size)
        step_idx = t + 1
        steps_run = step_idx
        step_s = time.perf_counter() - step_start

        if not np.isfinite(df.last_max_disp):
            debug_helpers.log_array("xy", seg.get_vertex_coordinates())
            raise ValueError(f"Non-finite vertex displacement at step {step_idx}")

        if run is not None and checkpoint_csv:
            run.append_metrics(
                metrics_row(
                    df,
                    step_idx,
                    safe,
                    elapsed_s=time.perf_counter() - start_time,
                    step_s=step_s,
                )
            )

        if run is not None and save_svgs and step_idx % checkpoint_every == 0:
            save_checkpoint_svg(run, step_idx, df, smooth=smooth_svgs)
        if frame_every is not None and step_idx % frame_every == 0:
            capture_frame(step_idx)

        if (t % log_every) == 0 or t == steps - 1 or not safe:
            print(
                f"step {t:5d}  vertices={seg.live_vertex_count()} "
                f"edges={seg.live_edge_count()} splits={df.last_splits} "
                f"max_disp={df.last_max_disp:.6g}"
            )
            debug_helpers.log_mesh(seg, step=step_idx)

        if not safe:
            stopped_early = True
            debug.log("growth stopped by the boundary check", step=step_idx)
            break

    return GrowthResult(
        steps_run=steps_run,
        stopped_early=stopped_early,
        vertices=seg.live_vertex_count(),
        edges=seg.live_edge_count(),
        run_dir=None if run is None else run.run_dir,
        frames=frames,
    )
