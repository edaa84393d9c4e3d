from __future__ import annotations

import argparse
import csv
import json
from pathlib import Path

import matplotlib
import numpy as np

from .plots import (
    plot_displacement,
    plot_mesh_size,
    plot_run_summary,
    plot_step_time,
    summary_lines,
)

REQUIRED_FIELDS = [
    "step",
    "vertices",
    "edges",
    "active",
    "splits",
    "length",
    "max_disp",
]
OPTIONAL_FIELDS = [
    "safe",
    "elapsed_s",
    "step_s",
]


def read_metrics(csv_path: Path) -> dict[str, np.ndarray]:
    with csv_path.open(newline="") as csv_file:
        reader = csv.DictReader(csv_file)
        if reader.fieldnames is None:
            raise ValueError("metrics.csv is missing a header row")
        missing = [field for field in REQUIRED_FIELDS if field not in reader.fieldnames]
        if missing:
            raise ValueError(f"metrics.csv missing columns: {', '.join(missing)}")
        optional = [field for field in OPTIONAL_FIELDS if field in reader.fieldnames]
        rows = list(reader)

    if not rows:
        raise ValueError("metrics.csv has no data rows")

    steps = np.array([int(row["step"]) for row in rows], dtype=np.int64)
    order = np.argsort(steps)

    def col_int(name: str) -> np.ndarray:
        return np.array([int(row[name]) for row in rows], dtype=np.int64)[order]

    def col_float(name: str) -> np.ndarray:
        return np.array([float(row[name]) for row in rows], dtype=np.float64)[order]

    data = {
        "step": steps[order],
        "vertices": col_int("vertices"),
        "edges": col_int("edges"),
        "active": col_int("active"),
        "splits": col_int("splits"),
        "length": col_float("length"),
        "max_disp": col_float("max_disp"),
    }
    for name in optional:
        data[name] = col_int(name) if name == "safe" else col_float(name)
    return data


def plot_metrics(
    csv_path: Path,
    out_dir: Path,
    prefix: str,
    show: bool,
    start_step: int | None,
) -> Path:
    if not show:
        matplotlib.use("Agg")
    data = read_metrics(csv_path)
    out_dir.mkdir(parents=True, exist_ok=True)

    suffix = ""
    if start_step is not None:
        mask = data["step"] >= start_step
        if not np.any(mask):
            raise ValueError(f"No rows with step >= {start_step}")
        data = {key: val[mask] for key, val in data.items()}
        suffix = f"_from_step{start_step}"

    steps = data["step"]
    start_label = int(steps[0])
    end_label = int(steps[-1])
    plot_dir = out_dir / f"start_{start_label}_end_{end_label}"
    plot_dir.mkdir(parents=True, exist_ok=True)

    metadata_path = csv_path.with_name("metadata.json")
    if metadata_path.exists():
        metadata = json.loads(metadata_path.read_text(encoding="utf-8"))
        plot_run_summary(
            plot_dir / f"{prefix}{suffix}_1_run_summary.png",
            "1 Run Summary",
            summary_lines(csv_path.parent, start_label, end_label, metadata),
        )

    plot_mesh_size(
        plot_dir / f"{prefix}{suffix}_mesh_size.png",
        steps,
        data["vertices"],
        data["edges"],
        data["active"],
        data["length"],
    )
    plot_displacement(
        plot_dir / f"{prefix}{suffix}_displacement.png",
        steps,
        data["max_disp"],
        data["splits"],
    )
    if "step_s" in data:
        plot_step_time(
            plot_dir / f"{prefix}{suffix}_step_time.png",
            steps,
            data["step_s"],
            data["vertices"],
        )

    if show:
        import matplotlib.pyplot as plt

        plt.show()
    return plot_dir


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument(
        "--input", required=True, help="metrics.csv, or a checkpoint run dir holding one"
    )
    ap.add_argument(
        "--out-dir",
        default=None,
        help="Output directory for plots (defaults to CSV directory)",
    )
    ap.add_argument(
        "--prefix",
        default=None,
        help="Output filename prefix (defaults to CSV stem)",
    )
    ap.add_argument("--show", action="store_true", help="Show plots interactively")
    ap.add_argument(
        "--start-step",
        type=int,
        default=None,
        help="Only plot rows with step >= this value",
    )
    args = ap.parse_args()

    csv_path = Path(args.input)
    if csv_path.is_dir():
        csv_path = csv_path / "metrics.csv"
    if not csv_path.exists():
        raise FileNotFoundError(f"metrics.csv not found: {csv_path}")
    out_dir = Path(args.out_dir) if args.out_dir is not None else csv_path.parent
    prefix = args.prefix if args.prefix is not None else csv_path.stem

    plot_metrics(csv_path, out_dir, prefix, args.show, args.start_step)


if __name__ == "__main__":
    main()
