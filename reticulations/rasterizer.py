"""
Per-frame raster transform.

Converts a source raster plus ProcessorSettings into a stylised RGBA
raster of identical size: the source is split into a grid of cells, each
cell's brightness (and optionally its local contrast) is sampled, and a
shape sized by that brightness is drawn at the cell centre.

The transform is a pure function of its inputs. It is reused unchanged
for still images, the live video preview, video export and the
standalone snippet.
"""
import logging
import math

import numpy as np
from PIL import Image, ImageDraw

from .color import is_transparent
from .settings import ProcessorSettings
from .shapes import draw_shape

logger = logging.getLogger(__name__)

# Edge boost saturates at this edge strength (brightness units)
EDGE_SATURATION = 40.0
# Maximum relative size increase from the edge boost
EDGE_BOOST = 0.6
# Threshold mode cutoff; cells must be strictly brighter to draw
THRESHOLD_LEVEL = 128


def luminance(rgba: np.ndarray) -> np.ndarray:
    """Unweighted mean of R, G and B per sample; alpha is ignored."""
    return rgba[..., :3].astype(np.float64).sum(axis=2) / 3.0


def cell_grid(width: int, height: int, cell_size: int):
    """
    Yield (row, col, x, y, cell_width, cell_height) for every cell.

    Rows are the outer loop and columns the inner one, both ascending.
    Trailing cells are clipped to the raster.
    """
    if cell_size < 1:
        return
    for row, y in enumerate(range(0, height, cell_size)):
        cell_height = min(cell_size, height - y)
        for col, x in enumerate(range(0, width, cell_size)):
            yield row, col, x, y, min(cell_size, width - x), cell_height


def cell_statistics(luma: np.ndarray, cell_size: int, edge_detection: bool = False):
    """
    Per-cell average brightness and edge strength.

    Args:
        luma: (H, W) luminance array
        cell_size: Cell edge length in pixels (>= 1)
        edge_detection: Also compute the mean absolute deviation per cell

    Returns:
        (avg, edge) arrays shaped (rows, cols). `edge` is all zeros when
        edge detection is off.
    """
    height, width = luma.shape
    ys = np.arange(0, height, cell_size)
    xs = np.arange(0, width, cell_size)
    heights = np.minimum(cell_size, height - ys)
    widths = np.minimum(cell_size, width - xs)
    counts = np.outer(heights, widths).astype(np.float64)

    sums = np.add.reduceat(np.add.reduceat(luma, ys, axis=0), xs, axis=1)
    avg = sums / counts

    if not edge_detection:
        return avg, np.zeros_like(avg)

    # Second pass: deviation of every sample from its own cell mean
    cell_mean = np.repeat(np.repeat(avg, heights, axis=0), widths, axis=1)
    deviation = np.abs(luma - cell_mean)
    edge = np.add.reduceat(np.add.reduceat(deviation, ys, axis=0), xs, axis=1) / counts
    return avg, edge


def adjust_brightness(avg_brightness: float, contrast: float, invert: bool = False) -> float:
    """Apply the contrast curve and optional inversion."""
    if contrast > 0:
        adjusted = ((avg_brightness / 255.0) ** (1.0 / contrast)) * 255.0
    else:
        # Limit of the curve as contrast -> 0+
        adjusted = 255.0 if avg_brightness >= 255.0 else 0.0
    if invert:
        adjusted = 255.0 - adjusted
    return adjusted


def shape_size(avg_brightness: float, edge_strength: float, max_size: float,
               settings: ProcessorSettings) -> float:
    """Map one cell's statistics to the size of its shape (>= 0)."""
    adjusted = adjust_brightness(avg_brightness, settings.contrast, settings.invert)

    if settings.threshold:
        size = max_size if adjusted > THRESHOLD_LEVEL else 0.0
    else:
        size = ((255.0 - adjusted) / 255.0) * max_size

    if settings.edge_detection and edge_strength > 0:
        boost = min(1.0, (edge_strength * settings.edge_sensitivity) / EDGE_SATURATION)
        size *= 1 + boost * EDGE_BOOST

    size *= 1 + settings.overlap
    return max(0.0, size)


def _as_image(source):
    if isinstance(source, Image.Image):
        return source
    arr = np.asarray(source)
    if arr.ndim < 2 or arr.shape[0] == 0 or arr.shape[1] == 0:
        return None
    return Image.fromarray(np.ascontiguousarray(arr.astype(np.uint8, copy=False)))


def render(source, settings: ProcessorSettings, target: Image.Image = None):
    """
    Render `source` with `settings`.

    Args:
        source: PIL Image (any mode) or uint8 array shaped (H, W[, 3|4])
        settings: ProcessorSettings for this call
        target: Optional RGBA image to reuse; it is fully overwritten when
            its size matches the source

    Returns:
        RGBA image the size of `source`. A missing or zero-area source
        returns `target` untouched.
    """
    if source is None:
        return target
    image = _as_image(source)
    if image is None or image.width <= 0 or image.height <= 0:
        return target

    width, height = image.size
    if target is None or target.size != image.size or target.mode != "RGBA":
        target = Image.new("RGBA", (width, height))

    if is_transparent(settings.background):
        target.paste((0, 0, 0, 0), (0, 0, width, height))
    else:
        target.paste(settings.background.rgba, (0, 0, width, height))

    if (not math.isfinite(settings.cell_size) or settings.cell_size < 1
            or is_transparent(settings.foreground)):
        return target
    cell_size = int(settings.cell_size)

    if image.mode != "RGBA":
        image = image.convert("RGBA")
    luma = luminance(np.asarray(image))
    avg, edge = cell_statistics(luma, cell_size, settings.edge_detection)

    draw = ImageDraw.Draw(target)
    fill = settings.foreground.rgba
    # Keeps drawer coordinates finite for extreme overlap or boost values
    size_cap = 2.0 * (width + height)
    drawn = 0
    for row, col, x, y, cell_width, cell_height in cell_grid(width, height, cell_size):
        max_size = min(cell_width, cell_height) / 2
        size = shape_size(float(avg[row, col]), float(edge[row, col]), max_size, settings)
        size = min(size, size_cap)
        if size > 0:
            draw_shape(draw, settings.shape, x + cell_width / 2, y + cell_height / 2, size, fill)
            drawn += 1

    logger.debug("Rendered %dx%d, grid %dx%d, %d shapes",
                 width, height, avg.shape[1], avg.shape[0], drawn)
    return target
