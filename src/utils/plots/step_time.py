from __future__ import annotations

from pathlib import Path

import numpy as np


def plot_step_time(
    out_path: Path,
    steps: np.ndarray,
    step_s: np.ndarray,
    vertices: np.ndarray,
) -> None:
    """Wall time per step against mesh size."""
    import matplotlib.pyplot as plt

    fig, (ax_t, ax_v) = plt.subplots(1, 2, figsize=(11.0, 4.5), dpi=120)
    ax_t.plot(steps, step_s * 1e3, color="#8c564b", linewidth=1.5)
    ax_t.set_xlabel("step")
    ax_t.set_ylabel("step time (ms)")
    ax_t.grid(True, alpha=0.3)

    ax_v.scatter(vertices, step_s * 1e3, s=4, color="#8c564b", alpha=0.5)
    ax_v.set_xlabel("vertices")
    ax_v.set_ylabel("step time (ms)")
    ax_v.grid(True, alpha=0.3)

    fig.tight_layout()
    fig.savefig(out_path, dpi=160)
