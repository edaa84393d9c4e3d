from __future__ import annotations

import argparse
from pathlib import Path
from typing import Protocol, TypedDict, cast

import numpy as np

from .diffgrowth.differential_line import (
    FAR_L,
    N_MAX,
    NEAR_L,
    SPLIT_LIMIT,
    STEP,
    DifferentialLine,
)
from .diffgrowth.export_svg import export_mesh_svg
from .diffgrowth.geometry import circle_angles
from .diffgrowth.grow import grow_lines
from .diffgrowth.render_raster import save_gif
from .diffgrowth.svg_io import load_seed_outline
from .utils import debug, debug_helpers


class CliArgs(Protocol):
    output: str
    gif: str | None
    seed_svg: str | None
    flat_tol: float
    shape: str
    n_points: int
    radius: float
    lock_edges: bool
    n_max: int
    near_l: float
    far_l: float
    zone_width: float | None
    step: float
    split_limit: float
    steps: int
    seed: int
    log_every: int
    checkpoint_every: int
    checkpoint_csv: bool
    frame_every: int
    frame_size: int
    fps: float
    smooth: bool
    progress: bool
    verbose: bool


class CliArgsDict(TypedDict):
    output: str
    gif: str | None
    seed_svg: str | None
    flat_tol: float
    shape: str
    n_points: int
    radius: float
    lock_edges: bool
    n_max: int
    near_l: float
    far_l: float
    zone_width: float | None
    step: float
    split_limit: float
    steps: int
    seed: int
    log_every: int
    checkpoint_every: int
    checkpoint_csv: bool
    frame_every: int
    frame_size: int
    fps: float
    smooth: bool
    progress: bool
    verbose: bool


class DerivedParams(TypedDict):
    zone_width: float
    nz: int
    cell_width: float
    boundary_margin: float
    seed_points: int
    seed_closed: bool


class RunParams(TypedDict):
    cli_args: CliArgsDict
    derived: DerivedParams


def seed_mesh(df: DifferentialLine, args: CliArgs) -> tuple[int, bool]:
    """Add the starting curve. Returns (points, closed)."""
    seg = df.segments
    if args.seed_svg is not None:
        points, closed = load_seed_outline(args.seed_svg, flat_tol=args.flat_tol)
        debug_helpers.log_array("seed", points)
        if closed:
            seg.init_loop_segment(points)
        else:
            seg.init_line_segment(points, lock_edges=args.lock_edges)
        return points.shape[0], closed

    center = np.array([0.5, 0.5], dtype=np.float64)
    if args.shape == "circle":
        seg.init_circle_segment(center, args.radius, circle_angles(args.n_points))
        return args.n_points, True

    xs = np.linspace(0.5 - args.radius, 0.5 + args.radius, args.n_points)
    points = np.stack([xs, np.full_like(xs, 0.5)], axis=1)
    seg.init_line_segment(points, lock_edges=args.lock_edges)
    return args.n_points, False


def main() -> None:
    ap = argparse.ArgumentParser(description="Grow a differential line in the unit square")
    ap.add_argument("--output", required=True, help="Output SVG for the grown mesh")
    ap.add_argument("--gif", default=None, help="Optional animated GIF of the growth")
    ap.add_argument(
        "--seed_svg",
        default=None,
        help="SVG whose first path seeds the mesh (overrides --shape)",
    )
    ap.add_argument(
        "--flat_tol",
        type=float,
        default=1.0,
        help="SVG flatten tolerance (SVG user units)",
    )
    ap.add_argument("--shape", choices=("circle", "line"), default="circle")
    ap.add_argument("--n_points", type=int, default=20, help="Seed vertex count")
    ap.add_argument(
        "--radius",
        type=float,
        default=0.05,
        help="Seed circle radius, or half length of the seed line",
    )
    ap.add_argument(
        "--lock_edges",
        action="store_true",
        help="Anchor both ends of an open seed line",
    )

    # Solver
    ap.add_argument("--n_max", type=int, default=N_MAX, help="Vertex/edge capacity")
    ap.add_argument("--near_l", type=float, default=NEAR_L)
    ap.add_argument("--far_l", type=float, default=FAR_L)
    ap.add_argument(
        "--zone_width",
        type=float,
        default=None,
        help="Zone width of the neighbor grid (defaults to far_l)",
    )
    ap.add_argument("--step", type=float, default=STEP, help="Displacement per step")
    ap.add_argument(
        "--split_limit",
        type=float,
        default=SPLIT_LIMIT,
        help="Per-step split probability of an edge longer than near_l",
    )
    ap.add_argument("--steps", type=int, default=20000)
    ap.add_argument("--seed", type=int, default=0)

    # Output
    ap.add_argument("--log_every", type=int, default=500)
    ap.add_argument(
        "--checkpoint_every",
        type=int,
        default=0,
        help="Checkpoint SVG interval (0 disables)",
    )
    ap.add_argument(
        "--checkpoint_csv",
        action="store_true",
        help="Write metrics.csv into the checkpoint run dir",
    )
    ap.add_argument(
        "--frame_every",
        type=int,
        default=50,
        help="GIF frame interval in steps (only with --gif)",
    )
    ap.add_argument("--frame_size", type=int, default=800)
    ap.add_argument("--fps", type=float, default=12.0)
    ap.add_argument("--smooth", action="store_true", help="Export Catmull-Rom paths")
    ap.add_argument("--progress", action="store_true", help="Show a progress bar")
    ap.add_argument("-v", "--verbose", action="store_true", help="Enable debug logs")

    args = cast(CliArgs, ap.parse_args())
    debug.set_verbose(args.verbose)

    if args.n_points < 1:
        raise ValueError("n_points must be >= 1")
    if args.shape == "circle" and args.seed_svg is None and args.n_points < 3:
        raise ValueError("a circle seed needs n_points >= 3")
    if not 0 < args.radius < 0.5:
        raise ValueError("radius must be in (0, 0.5)")
    if args.near_l < 0 or args.far_l <= 0:
        raise ValueError("near_l must be >= 0 and far_l > 0")
    if args.step <= 0:
        raise ValueError("step must be positive")
    if args.checkpoint_every < 0:
        raise ValueError("checkpoint_every must be >= 0")
    if args.frame_every < 0:
        raise ValueError("frame_every must be >= 0")

    zone_width = args.far_l if args.zone_width is None else args.zone_width
    rng = np.random.default_rng(args.seed)

    df = DifferentialLine(
        args.n_max,
        zone_width,
        args.near_l,
        args.far_l,
        split_limit=args.split_limit,
        rng=rng,
    )
    seed_points, seed_closed = seed_mesh(df, args)
    debug_helpers.log_mesh(df.segments, step=0)

    cli_args_raw = vars(args)
    expected_cli = set(CliArgsDict.__annotations__.keys())
    actual_cli = set(cli_args_raw.keys())
    if actual_cli != expected_cli:
        missing = sorted(expected_cli - actual_cli)
        extra = sorted(actual_cli - expected_cli)
        raise ValueError(
            "CliArgsDict mismatch. Update CliArgsDict and RunParams. "
            f"missing={missing} extra={extra}"
        )
    cli_args = cast(CliArgsDict, cli_args_raw)

    derived: DerivedParams = {
        "zone_width": float(df.segments.zone_width),
        "nz": int(df.segments.nz),
        "cell_width": float(df.segments.cell_width),
        "boundary_margin": float(3.0 * args.step),
        "seed_points": int(seed_points),
        "seed_closed": bool(seed_closed),
    }
    run_params: RunParams = {
        "cli_args": cli_args,
        "derived": derived,
    }

    result = grow_lines(
        df,
        steps=args.steps,
        step_size=args.step,
        log_every=args.log_every,
        checkpoint_every=args.checkpoint_every,
        checkpoint_csv=args.checkpoint_csv,
        smooth_svgs=args.smooth,
        frame_every=args.frame_every if args.gif is not None else None,
        frame_size=args.frame_size,
        progress=args.progress,
        metadata_extra=dict(run_params),
    )

    export_mesh_svg(args.output, df.segments, stroke="#111", smooth=args.smooth)
    if args.gif is not None and result.frames:
        save_gif(result.frames, Path(args.gif), fps=args.fps)

    reason = "boundary reached" if result.stopped_early else "step limit"
    print(
        f"Saved: {args.output}  steps={result.steps_run} ({reason}) "
        f"vertices={result.vertices} edges={result.edges}"
    )


if __name__ == "__main__":
    main()
