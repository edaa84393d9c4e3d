from .displacement import plot_displacement
from .mesh_size import plot_mesh_size
from .run_summary import plot_run_summary, summary_lines
from .step_time import plot_step_time

__all__ = [
    "plot_displacement",
    "plot_mesh_size",
    "plot_run_summary",
    "plot_step_time",
    "summary_lines",
]
