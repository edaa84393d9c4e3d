from __future__ import annotations

from pathlib import Path

import numpy as np


def plot_mesh_size(
    out_path: Path,
    steps: np.ndarray,
    vertices: np.ndarray,
    edges: np.ndarray,
    active: np.ndarray,
    length: np.ndarray,
) -> None:
    import matplotlib.pyplot as plt

    fig, ax = plt.subplots(figsize=(8.5, 5.0), dpi=120)
    ax.plot(steps, vertices, label="vertices", color="#1f77b4", linewidth=2.0)
    ax.plot(steps, edges, label="edges", color="#ff7f0e", linestyle="--")
    ax.plot(steps, active, label="active", color="#2ca02c")
    ax.set_xlabel("step")
    ax.set_ylabel("count")
    ax.grid(True, alpha=0.3)

    ax_len = ax.twinx()
    ax_len.plot(steps, length, label="length", color="#9467bd", linewidth=2.0)
    ax_len.set_ylabel("total length", color="#9467bd")
    ax_len.tick_params(axis="y", labelcolor="#9467bd")

    lines = ax.get_lines() + ax_len.get_lines()
    labels = [str(line.get_label()) for line in lines]
    ax.legend(lines, labels, loc="best")
    fig.tight_layout()
    fig.savefig(out_path, dpi=160)
