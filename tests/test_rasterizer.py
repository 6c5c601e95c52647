import numpy as np
import pytest
from PIL import Image

from reticulations import ProcessorSettings, Shape, TRANSPARENT, render
from reticulations.rasterizer import (adjust_brightness, cell_grid, cell_statistics,
                                      luminance, shape_size)

RED = (255, 0, 0, 255)
BLUE = (0, 0, 255, 255)


def make_settings(**changes):
    base = dict(cell_size=4, contrast=1.0, foreground="#ff0000", background="#0000ff")
    base.update(changes)
    return ProcessorSettings(**base)


def solid(size, value):
    return Image.new("RGB", size, (value, value, value))


def pixels(image):
    return np.asarray(image)


def test_white_cell_draws_nothing():
    out = render(solid((4, 4), 255), make_settings())
    assert out.size == (4, 4)
    assert out.mode == "RGBA"
    assert (pixels(out) == BLUE).all()


def test_black_cell_draws_full_size_shape():
    settings = make_settings()
    assert shape_size(0.0, 0.0, 2.0, settings) == 2.0
    out = render(solid((4, 4), 0), settings)
    assert out.getpixel((2, 2)) == RED


@pytest.mark.parametrize("cell_size", [1, 3, 4, 50])
def test_dimensions_preserved(cell_size, gradient_image):
    out = render(gradient_image, make_settings(cell_size=cell_size))
    assert out.size == gradient_image.size


def test_render_is_deterministic(gradient_image):
    settings = make_settings(cell_size=5, shape=Shape.STAR, edge_detection=True, overlap=0.4)
    first = render(gradient_image, settings)
    second = render(gradient_image, settings)
    assert first.tobytes() == second.tobytes()


def test_target_reused_and_fully_overwritten():
    settings = make_settings()
    target = render(solid((4, 4), 0), settings)
    again = render(solid((4, 4), 255), settings, target)
    assert again is target
    assert (pixels(again) == BLUE).all()


def test_mismatched_target_is_replaced():
    stale = Image.new("RGBA", (9, 9))
    out = render(solid((4, 4), 255), make_settings(), stale)
    assert out is not stale
    assert out.size == (4, 4)


def test_missing_or_empty_source_is_noop():
    target = Image.new("RGBA", (3, 3), (1, 2, 3, 4))
    assert render(None, make_settings(), target) is target
    assert render(np.zeros((0, 5, 3), dtype=np.uint8), make_settings(), target) is target
    assert target.getpixel((0, 0)) == (1, 2, 3, 4)
    assert render(None, make_settings()) is None


def test_numpy_source():
    out = render(np.zeros((4, 4, 3), dtype=np.uint8), make_settings())
    assert out.size == (4, 4)
    assert out.getpixel((2, 2)) == RED


def test_transparent_background():
    settings = make_settings(cell_size=10, background=TRANSPARENT, overlap=-0.5)
    out = render(solid((20, 20), 0), settings)
    assert out.getpixel((0, 0))[3] == 0
    assert out.getpixel((5, 5)) == RED

    blank = render(solid((20, 20), 255), settings)
    assert (pixels(blank)[..., 3] == 0).all()


def test_transparent_foreground_draws_nothing(gradient_image):
    out = render(gradient_image, make_settings(foreground="transparent"))
    assert (pixels(out) == BLUE).all()


@pytest.mark.parametrize("background", ["#0000ff", "transparent"])
def test_overlap_minus_one_suppresses_shapes(gradient_image, background):
    settings = make_settings(cell_size=3, overlap=-1, background=background,
                             edge_detection=True, shape=Shape.SQUARE)
    out = render(gradient_image, settings)
    expected = Image.new("RGBA", gradient_image.size,
                         BLUE if background != "transparent" else (0, 0, 0, 0))
    assert out.tobytes() == expected.tobytes()


def test_threshold_boundary_is_exclusive():
    settings = make_settings(threshold=True)
    assert shape_size(128.0, 0.0, 2.0, settings) == 0.0
    assert shape_size(129.0, 0.0, 2.0, settings) == 2.0
    assert (pixels(render(solid((4, 4), 128), settings)) == BLUE).all()
    assert render(solid((4, 4), 129), settings).getpixel((2, 2)) == RED


def test_threshold_is_binary():
    settings = make_settings(threshold=True)
    sizes = {shape_size(float(b), 0.0, 5.0, settings) for b in range(256)}
    assert sizes == {0.0, 5.0}


def test_continuous_mode_is_monotonic():
    settings = make_settings(contrast=1.7)
    sizes = [shape_size(float(b), 0.0, 5.0, settings) for b in range(256)]
    assert all(a >= b for a, b in zip(sizes, sizes[1:]))
    assert sizes[0] == 5.0
    assert sizes[-1] == 0.0


@pytest.mark.parametrize("contrast", [0.5, 1.0, 2.5])
def test_inversion_uses_flipped_brightness(contrast):
    normal = make_settings(contrast=contrast)
    inverted = make_settings(contrast=contrast, invert=True)
    for b in range(0, 256, 15):
        adjusted = adjust_brightness(float(b), contrast)
        expected = ((255 - (255 - adjusted)) / 255) * 5.0
        assert shape_size(float(b), 0.0, 5.0, inverted) == pytest.approx(expected)
        assert shape_size(float(b), 0.0, 5.0, normal) == pytest.approx(
            ((255 - adjusted) / 255) * 5.0)


def test_contrast_curve():
    assert adjust_brightness(63.75, 2.0) == pytest.approx(127.5)
    assert adjust_brightness(100.0, 1.0) == pytest.approx(100.0)
    assert adjust_brightness(100.0, 1.0, invert=True) == pytest.approx(155.0)


def test_non_positive_contrast_degrades_gracefully():
    assert adjust_brightness(254.0, 0.0) == 0.0
    assert adjust_brightness(255.0, 0.0) == 255.0
    assert adjust_brightness(100.0, -2.0) == 0.0


def test_edge_boost():
    settings = make_settings(edge_detection=True)
    base = shape_size(100.0, 0.0, 5.0, settings)
    assert shape_size(100.0, 20.0, 5.0, settings) == pytest.approx(base * 1.3)
    # saturates at a 60% increase
    assert shape_size(100.0, 1000.0, 5.0, settings) == pytest.approx(base * 1.6)
    sensitive = settings.replace(edge_sensitivity=2.0)
    assert shape_size(100.0, 20.0, 5.0, sensitive) == pytest.approx(base * 1.6)


def test_edge_boost_ignored_when_disabled():
    settings = make_settings(edge_detection=False)
    assert shape_size(100.0, 30.0, 5.0, settings) == shape_size(100.0, 0.0, 5.0, settings)


def test_overlap_scales_and_clamps():
    settings = make_settings(overlap=0.5)
    assert shape_size(0.0, 0.0, 2.0, settings) == pytest.approx(3.0)
    assert shape_size(0.0, 0.0, 2.0, settings.replace(overlap=-2.0)) == 0.0


def test_zero_cell_size_is_background_only(gradient_image):
    out = render(gradient_image, make_settings(cell_size=0))
    assert out.size == gradient_image.size
    assert (pixels(out) == BLUE).all()


def test_cell_grid_order_and_clipping():
    cells = list(cell_grid(5, 3, 2))
    assert cells == [
        (0, 0, 0, 0, 2, 2), (0, 1, 2, 0, 2, 2), (0, 2, 4, 0, 1, 2),
        (1, 0, 0, 2, 2, 1), (1, 1, 2, 2, 2, 1), (1, 2, 4, 2, 1, 1),
    ]
    assert list(cell_grid(5, 3, 0)) == []


def test_cell_statistics():
    luma = np.array([
        [0, 255, 10, 10, 7],
        [255, 0, 10, 10, 7],
        [4, 4, 4, 4, 1],
    ], dtype=np.float64)
    avg, edge = cell_statistics(luma, 2, edge_detection=True)
    assert avg.shape == (2, 3)
    assert avg[0, 0] == pytest.approx(127.5)
    assert edge[0, 0] == pytest.approx(127.5)
    assert avg[0, 1] == pytest.approx(10.0)
    assert edge[0, 1] == pytest.approx(0.0)
    assert avg[0, 2] == pytest.approx(7.0)
    assert avg[1, 0] == pytest.approx(4.0)
    assert avg[1, 2] == pytest.approx(1.0)

    _, no_edge = cell_statistics(luma, 2)
    assert not no_edge.any()


def test_luminance_ignores_alpha():
    rgba = np.array([[[30, 60, 90, 0], [255, 255, 255, 255]]], dtype=np.uint8)
    assert luminance(rgba).tolist() == [[60.0, 255.0]]


def test_source_alpha_does_not_affect_sampling():
    opaque = Image.new("RGBA", (4, 4), (0, 0, 0, 255))
    clear = Image.new("RGBA", (4, 4), (0, 0, 0, 0))
    settings = make_settings()
    assert render(opaque, settings).tobytes() == render(clear, settings).tobytes()


@pytest.mark.parametrize("shape", list(Shape))
def test_every_shape_renders(shape):
    out = render(solid((8, 8), 0), make_settings(cell_size=8, shape=shape))
    colors = {c for _, c in out.getcolors()}
    assert RED in colors


def test_oversized_shapes_are_clipped_to_raster():
    arr = np.zeros((4, 4, 3), dtype=np.uint8)
    settings = make_settings(cell_size=2, shape=Shape.SQUARE, overlap=10)
    out = render(arr, settings)
    assert (pixels(out) == RED).all()


@pytest.mark.parametrize("overlap", [1e6, 1e12, float("inf")])
@pytest.mark.parametrize("shape", list(Shape))
def test_extreme_overlap_stays_drawable(shape, overlap):
    out = render(solid((8, 8), 0), make_settings(shape=shape, overlap=overlap))
    assert out.size == (8, 8)
    assert RED in {c for _, c in out.getcolors()}


@pytest.mark.parametrize("sensitivity", [1e300, float("inf")])
def test_extreme_edge_sensitivity(gradient_image, sensitivity):
    settings = make_settings(shape=Shape.PARALLEL, edge_detection=True,
                             edge_sensitivity=sensitivity, overlap=1e12)
    assert render(gradient_image, settings).size == gradient_image.size


@pytest.mark.parametrize("cell_size", [float("inf"), float("nan"), float("-inf")])
def test_non_finite_cell_size_is_background_only(gradient_image, cell_size):
    out = render(gradient_image, make_settings(cell_size=cell_size))
    assert (pixels(out) == BLUE).all()


def test_fractional_cell_size_is_truncated(gradient_image):
    fractional = render(gradient_image, make_settings(cell_size=2.5))
    assert fractional.tobytes() == render(gradient_image, make_settings(cell_size=2)).tobytes()
