from __future__ import annotations

from pathlib import Path

import numpy as np
from beartype import beartype
from jaxtyping import Float, jaxtyped
from PIL import Image, ImageDraw, ImageFont
from tqdm import tqdm  # type: ignore[reportMissingModuleSource]

DEFAULT_BG = (255, 255, 255)
DEFAULT_STROKE = (0, 0, 0)
FontType = ImageFont.FreeTypeFont | ImageFont.ImageFont


@jaxtyped(typechecker=beartype)
def render_edges(
    edges: Float[np.ndarray, "E 4"],
    size: int = 800,
    *,
    stroke: tuple[int, int, int] = DEFAULT_STROKE,
    bg_color: tuple[int, int, int] = DEFAULT_BG,
    width_px: int = 1,
    label: str | None = None,
) -> Image.Image:
    """
    Rasterize edges (E,4) rows of x1,y1,x2,y2 in the unit square (y up)
    onto a size x size RGB image.
    """
    if size <= 0:
        raise ValueError("size must be > 0")
    image = Image.new("RGB", (size, size), color=bg_color)
    draw = ImageDraw.Draw(image)

    scale = float(size - 1)
    px = np.rint(edges[:, [0, 2]] * scale).astype(np.int64)
    py = np.rint((1.0 - edges[:, [1, 3]]) * scale).astype(np.int64)
    for (x1, x2), (y1, y2) in zip(px, py):
        draw.line(
            [(int(x1), int(y1)), (int(x2), int(y2))], fill=stroke, width=width_px
        )

    if label is not None:
        _draw_label(image, label)
    return image


def _load_font(size: int) -> FontType:
    candidates = [
        "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
        "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
    ]
    for candidate in candidates:
        if Path(candidate).exists():
            return ImageFont.truetype(candidate, size=size)
    return ImageFont.load_default()


def _draw_label(image: Image.Image, text: str) -> None:
    size = max(12, int(round(min(image.size) * 0.03)))
    padding = max(6, int(round(min(image.size) * 0.02)))
    draw = ImageDraw.Draw(image)
    draw.text((padding, padding), text, font=_load_font(size), fill=(200, 40, 40))


def save_gif(frames: list[Image.Image], out_path: Path, fps: float = 12.0) -> Path:
    if not frames:
        raise ValueError("No frames to save")
    if fps <= 0:
        raise ValueError("fps must be > 0")
    out_path.parent.mkdir(parents=True, exist_ok=True)

    paletted = [
        frame.convert("P", palette=Image.Palette.ADAPTIVE)
        for frame in tqdm(frames, desc="Encoding frames", unit="frame")
    ]
    duration_ms = int(round(1000.0 / fps))
    paletted[0].save(
        out_path,
        save_all=True,
        append_images=paletted[1:],
        duration=duration_ms,
        loop=0,
        disposal=2,
    )
    print(f"Saved GIF with {len(frames)} frames to {out_path}")
    return out_path
