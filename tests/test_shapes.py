import math

import pytest
from PIL import Image, ImageDraw

from reticulations.settings import Shape
from reticulations.shapes import (HEART_BOX, HEART_POLYGON, SHAPE_DRAWERS, draw_shape,
                                  hex_points, star_points)

FILL = (200, 30, 60, 255)
EMPTY = (0, 0, 0, 0)


def draw_one(shape, size=10, canvas=41):
    image = Image.new("RGBA", (canvas, canvas), EMPTY)
    draw_shape(ImageDraw.Draw(image), shape, canvas // 2, canvas // 2, size, FILL)
    return image


@pytest.mark.parametrize("shape,extent", [
    (Shape.CIRCLE, 10),
    (Shape.SQUARE, 10),
    (Shape.TRIANGLE, 10),
    (Shape.DIAMOND, 10 * math.sqrt(2)),
    (Shape.STAR, 10),
    (Shape.HEART, 10),
    (Shape.HEX, 10),
    (Shape.PARALLEL, 11),
])
def test_shape_fits_its_extent(shape, extent):
    image = draw_one(shape)
    bbox = image.getbbox()
    assert bbox is not None
    left, top, right, bottom = bbox
    assert left >= math.floor(20 - extent) - 1
    assert top >= math.floor(20 - extent) - 1
    assert right <= math.ceil(20 + extent) + 2
    assert bottom <= math.ceil(20 + extent) + 2


@pytest.mark.parametrize("shape", [s for s in Shape if s is not Shape.PARALLEL])
def test_filled_shapes_cover_centre(shape):
    assert draw_one(shape).getpixel((20, 20)) == FILL


@pytest.mark.parametrize("shape", list(Shape))
def test_only_fill_colour_is_written(shape):
    colors = {c for _, c in draw_one(shape).getcolors()}
    assert colors == {FILL, EMPTY}


def test_diamond_is_larger_than_square():
    square = draw_one(Shape.SQUARE).getbbox()
    diamond = draw_one(Shape.DIAMOND).getbbox()
    assert diamond[2] - diamond[0] > square[2] - square[0]


def test_parallel_bars_are_separate_strokes():
    image = draw_one(Shape.PARALLEL, size=15, canvas=61)
    row = [image.getpixel((x, 30)) == FILL for x in range(61)]
    runs = sum(1 for a, b in zip([False] + row, row) if b and not a)
    assert runs == 5


def test_star_points_alternate_radii():
    points = star_points(0.0, 0.0, 10.0, 5.0)
    assert len(points) == 10
    assert points[0] == pytest.approx((0.0, -10.0), abs=1e-9)
    for i, (x, y) in enumerate(points):
        assert math.hypot(x, y) == pytest.approx(10.0 if i % 2 == 0 else 5.0)


def test_hex_points_are_regular():
    points = hex_points(3.0, 4.0, 6.0)
    assert len(points) == 6
    assert points[0] == pytest.approx((9.0, 4.0))
    for x, y in points:
        assert math.hypot(x - 3.0, y - 4.0) == pytest.approx(6.0)


def test_heart_polygon_stays_in_its_box():
    assert len(HEART_POLYGON) > 20
    for x, y in HEART_POLYGON:
        assert 0.0 <= x <= HEART_BOX
        assert 0.0 <= y <= HEART_BOX
    # Point at the bottom, notch at the top
    assert max(y for _, y in HEART_POLYGON) == pytest.approx(21.0)
    assert HEART_POLYGON[0] == (12.0, 21.0)


def test_every_shape_has_a_drawer():
    assert set(SHAPE_DRAWERS) == set(Shape)


def test_shape_names_are_accepted():
    assert draw_one("hex").tobytes() == draw_one(Shape.HEX).tobytes()


def test_unknown_shape_draws_nothing():
    assert draw_one("pentagon").getbbox() is None
