from __future__ import annotations

from pathlib import Path

import numpy as np


def plot_displacement(
    out_path: Path,
    steps: np.ndarray,
    max_disp: np.ndarray,
    splits: np.ndarray,
) -> None:
    import matplotlib.pyplot as plt

    fig, ax = plt.subplots(figsize=(8.5, 5.0), dpi=120)
    ax.plot(steps, max_disp, label="max_disp", color="#17becf", linewidth=2.0)
    ax.set_xlabel("step")
    ax.set_ylabel("max displacement", color="#17becf")
    ax.tick_params(axis="y", labelcolor="#17becf")
    ax.grid(True, alpha=0.3)

    ax_splits = ax.twinx()
    ax_splits.plot(steps, splits, label="splits", color="#d62728", alpha=0.7)
    ax_splits.set_ylabel("splits per step", color="#d62728")
    ax_splits.tick_params(axis="y", labelcolor="#d62728")

    lines = ax.get_lines() + ax_splits.get_lines()
    labels = [str(line.get_label()) for line in lines]
    ax.legend(lines, labels, loc="best")
    fig.tight_layout()
    fig.savefig(out_path, dpi=160)
