from . import (
    differential_line,
    errors,
    export_svg,
    geometry,
    grow,
    growth_checkpoint,
    render_raster,
    segments,
    svg_io,
    zone_map,
)

__all__ = [
    "zone_map",
    "segments",
    "differential_line",
    "geometry",
    "grow",
    "growth_checkpoint",
    "export_svg",
    "render_raster",
    "svg_io",
    "errors",
]
