"""
Shape primitives.

Every drawer takes the cell centre and a scalar size and fills (or, for
the parallel bars, strokes) directly into an ImageDraw target. Geometry
follows the y-down raster convention.
"""
import math

from PIL import ImageDraw

from .settings import Shape

# Normalised heart outline in a 24x24 box: a start point followed by
# line ("L", end) and cubic ("C", c1, c2, end) segments.
HEART_BOX = 24.0
HEART_OUTLINE = (
    (12.0, 21.0),
    ("C", (12.0, 21.0), (5.3, 16.65), (2.8, 13.3)),
    ("C", (1.0, 11.2), (1.2, 7.8), (3.5, 6.0)),
    ("C", (5.3, 4.6), (7.9, 4.8), (9.5, 6.6)),
    ("L", (12.0, 9.0)),
    ("L", (14.5, 6.6)),
    ("C", (16.1, 4.8), (18.7, 4.6), (20.5, 6.0)),
    ("C", (22.8, 7.8), (23.0, 11.2), (21.2, 13.3)),
    ("C", (18.7, 16.7), (12.0, 21.0), (12.0, 21.0)),
)
BEZIER_STEPS = 12

# Parallel bars template: (x, stroke width, y1, y2) in a 313x278 box
PARALLEL_BOX = (313.0, 278.0)
PARALLEL_BARS = (
    (19.8438, 39.6876, 19.8438, 257.969),
    (139.095, 39.6876, 19.8438, 257.969),
    (298.034, 29.7657, 14.8828, 262.93),
    (220.554, 49.6095, 24.8047, 253.008),
    (79.4644, 19.8438, 9.92188, 267.891),
)


def _cubic(p0, p1, p2, p3, steps=BEZIER_STEPS):
    points = []
    for i in range(1, steps + 1):
        t = i / steps
        mt = 1 - t
        a, b, c, d = mt * mt * mt, 3 * mt * mt * t, 3 * mt * t * t, t * t * t
        points.append((a * p0[0] + b * p1[0] + c * p2[0] + d * p3[0],
                       a * p0[1] + b * p1[1] + c * p2[1] + d * p3[1]))
    return points


def _flatten_heart():
    start = HEART_OUTLINE[0]
    points = [start]
    current = start
    for segment in HEART_OUTLINE[1:]:
        if segment[0] == "L":
            current = segment[1]
            points.append(current)
        else:
            _, c1, c2, end = segment
            points.extend(_cubic(current, c1, c2, end))
            current = end
    return points


HEART_POLYGON = _flatten_heart()


def draw_circle(draw, cx, cy, size, fill):
    draw.ellipse((cx - size, cy - size, cx + size, cy + size), fill=fill)


def draw_square(draw, cx, cy, size, fill):
    draw.polygon([(cx - size, cy - size), (cx + size, cy - size),
                  (cx + size, cy + size), (cx - size, cy + size)], fill=fill)


def draw_triangle(draw, cx, cy, size, fill):
    draw.polygon([(cx, cy - size), (cx - size, cy + size),
                  (cx + size, cy + size)], fill=fill)


def draw_diamond(draw, cx, cy, size, fill):
    # A 2*size square rotated 45 degrees about its centre
    r = size * math.sqrt(2)
    draw.polygon([(cx, cy - r), (cx + r, cy), (cx, cy + r), (cx - r, cy)],
                 fill=fill)


def star_points(cx, cy, outer, inner, spikes=5):
    """Alternating outer/inner vertices, starting straight up."""
    points = []
    rot = math.pi / 2 * 3
    step = math.pi / spikes
    for _ in range(spikes):
        points.append((cx + math.cos(rot) * outer, cy + math.sin(rot) * outer))
        rot += step
        points.append((cx + math.cos(rot) * inner, cy + math.sin(rot) * inner))
        rot += step
    return points


def draw_star(draw, cx, cy, size, fill):
    draw.polygon(star_points(cx, cy, size, size / 2), fill=fill)


def draw_heart(draw, cx, cy, size, fill):
    scale = (2 * size) / HEART_BOX
    half = HEART_BOX / 2
    draw.polygon([(cx + (x - half) * scale, cy + (y - half) * scale)
                  for x, y in HEART_POLYGON], fill=fill)


def hex_points(cx, cy, size):
    return [(cx + size * math.cos(math.pi / 3 * i),
             cy + size * math.sin(math.pi / 3 * i)) for i in range(6)]


def draw_hex(draw, cx, cy, size, fill):
    draw.polygon(hex_points(cx, cy, size), fill=fill)


def draw_parallel(draw, cx, cy, size, fill):
    # Template box is fitted to a 2*size square; bars are stroked
    box_w, box_h = PARALLEL_BOX
    scale_x = (2 * size) / box_w
    scale_y = (2 * size) / box_h
    left = cx - (box_w / 2) * scale_x
    top = cy - (box_h / 2) * scale_y
    for x, width, y1, y2 in PARALLEL_BARS:
        bar_x = left + x * scale_x
        draw.line([(bar_x, top + y1 * scale_y), (bar_x, top + y2 * scale_y)],
                  fill=fill, width=max(1, int(round(width * scale_x))))


SHAPE_DRAWERS = {
    Shape.CIRCLE: draw_circle,
    Shape.SQUARE: draw_square,
    Shape.TRIANGLE: draw_triangle,
    Shape.DIAMOND: draw_diamond,
    Shape.STAR: draw_star,
    Shape.HEART: draw_heart,
    Shape.HEX: draw_hex,
    Shape.PARALLEL: draw_parallel,
}


def draw_shape(draw: ImageDraw.ImageDraw, shape, cx: float, cy: float, size: float, fill) -> None:
    """Draw one shape centred at (cx, cy). Unknown shapes draw nothing."""
    drawer = SHAPE_DRAWERS.get(shape)
    if drawer is not None:
        drawer(draw, cx, cy, size, fill)
