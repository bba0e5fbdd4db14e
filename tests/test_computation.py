"""Escape-time evaluation, pixel mapping and single-band rendering."""

import numpy as np
import pytest

from mandelbands.computation import (
    BandContractError,
    allocate_pixels,
    escape_time,
    pixel_to_point,
    render_band,
)
from mandelbands.geometry import RasterGeometry, Viewport


@pytest.mark.parametrize("limit", [1, 2, 50, 255, 1000])
def test_origin_never_escapes(limit):
    assert escape_time(0j, limit) is None


@pytest.mark.parametrize("c", [3 + 0j, -2.5 + 0j, 0 + 2.1j, 1.5 + 1.5j, -10 - 10j])
def test_first_iterate_outside_radius_escapes_at_zero(c):
    assert escape_time(c, 255) == 0


def test_escape_at_zero_is_distinct_from_no_escape():
    assert escape_time(3 + 0j, 255) == 0
    assert escape_time(-1 + 0j, 255) is None


def test_escape_threshold_is_strict():
    # z1 = 2 sits exactly on the radius; z2 = 6 is the first escape
    assert escape_time(2 + 0j, 255) == 1


def test_escape_iteration_is_counted_from_zero():
    # z1 = 1, z2 = 2 (norm 4, not escaped), z3 = 5
    assert escape_time(1 + 0j, 255) == 2


@pytest.mark.parametrize("c", [-2 + 0j, 0.25 + 0j, -0.75 + 0j, 1j, -1j])
def test_known_members_stay_bounded(c):
    assert escape_time(c, 255) is None


def test_limit_bounds_the_iteration():
    assert escape_time(1 + 0j, 2) is None
    assert escape_time(1 + 0j, 3) == 2


def test_pixel_to_point_example():
    point = pixel_to_point(RasterGeometry(100, 100), (25, 75), Viewport(-1 + 1j, 1 - 1j))
    assert point == complex(-0.5, -0.5)


@pytest.mark.parametrize(
    "geometry, viewport",
    [
        (RasterGeometry(100, 100), Viewport(-1 + 1j, 1 - 1j)),
        (RasterGeometry(1000, 750), Viewport(complex(-1.20, 0.35), complex(-1.0, 0.20))),
        (RasterGeometry(7, 3), Viewport(complex(-2.2, 1.3), complex(0.75, -1.3))),
    ],
)
def test_pixel_to_point_corners(geometry, viewport):
    upper_left = pixel_to_point(geometry, (0, 0), viewport)
    lower_right = pixel_to_point(geometry, (geometry.width, geometry.height), viewport)

    assert upper_left == viewport.upper_left
    assert lower_right.real == pytest.approx(viewport.lower_right.real)
    assert lower_right.imag == pytest.approx(viewport.lower_right.imag)


def test_pixel_to_point_rows_run_downwards():
    geometry = RasterGeometry(10, 10)
    viewport = Viewport(-1 + 1j, 1 - 1j)
    top = pixel_to_point(geometry, (3, 0), viewport)
    below = pixel_to_point(geometry, (3, 1), viewport)
    right = pixel_to_point(geometry, (4, 0), viewport)

    assert below.imag < top.imag
    assert below.real == top.real
    assert right.real > top.real


@pytest.mark.parametrize("pixel", [(-1, 0), (0, -1), (11, 0), (0, 11)])
def test_pixel_to_point_rejects_pixels_outside_closed_raster(pixel):
    with pytest.raises(ValueError):
        pixel_to_point(RasterGeometry(10, 10), pixel, Viewport(-1 + 1j, 1 - 1j))


def test_render_band_writes_grayscale_escape_times():
    geometry = RasterGeometry(4, 2)
    viewport = Viewport(-2 + 1j, 2 - 1j)
    pixels = allocate_pixels(geometry)

    render_band(pixels, geometry, viewport)

    for row in range(geometry.height):
        for col in range(geometry.width):
            escaped = escape_time(pixel_to_point(geometry, (col, row), viewport), 255)
            expected = 0 if escaped is None else 255 - escaped
            assert pixels[row * geometry.width + col] == expected


def test_render_band_bounded_region_is_black():
    # Entirely inside the main cardioid
    geometry = RasterGeometry(8, 8)
    pixels = np.full(geometry.size, 7, dtype=np.uint8)

    render_band(pixels, geometry, Viewport(complex(-0.3, 0.1), complex(-0.1, -0.1)))

    assert not pixels.any()


def test_render_band_far_region_is_white():
    geometry = RasterGeometry(5, 5)
    pixels = allocate_pixels(geometry)

    render_band(pixels, geometry, Viewport(complex(10, 20), complex(20, 10)))

    assert (pixels == 255).all()


def test_render_band_fills_a_view_in_place():
    geometry = RasterGeometry(6, 4)
    full = np.zeros(geometry.size * 2, dtype=np.uint8)
    view = full[geometry.size:]

    render_band(view, geometry, Viewport(complex(10, 20), complex(20, 10)))

    assert not full[: geometry.size].any()
    assert (full[geometry.size:] == 255).all()


@pytest.mark.parametrize("length", [0, 11, 13, 24])
def test_render_band_rejects_mismatched_buffer(length):
    pixels = np.full(length, 9, dtype=np.uint8)
    with pytest.raises(BandContractError):
        render_band(pixels, RasterGeometry(4, 3), Viewport(-1 + 1j, 1 - 1j))
    assert (pixels == 9).all()


def test_allocate_pixels_is_zeroed_row_major_bytes():
    pixels = allocate_pixels(RasterGeometry(30, 20))
    assert pixels.shape == (600,)
    assert pixels.dtype == np.uint8
    assert not pixels.any()


def test_render_band_rows_match_the_whole_raster():
    geometry = RasterGeometry(50, 37)
    viewport = Viewport(complex(-1.20, 0.35), complex(-1.0, 0.20))
    full = allocate_pixels(geometry)
    render_band(full, geometry, viewport)

    for start_row, row_count in [(0, 37), (0, 1), (5, 11), (36, 1)]:
        part = np.zeros(row_count * geometry.width, dtype=np.uint8)
        render_band(part, geometry, viewport, (start_row, row_count))
        np.testing.assert_array_equal(
            part,
            full[start_row * geometry.width:(start_row + row_count) * geometry.width],
            err_msg=f"rows {start_row}+{row_count}",
        )


@pytest.mark.parametrize("rows", [(-1, 2), (2, 0), (2, 2), (3, 1)])
def test_render_band_rejects_rows_outside_the_raster(rows):
    geometry = RasterGeometry(4, 3)
    pixels = np.full(rows[1] * geometry.width if rows[1] > 0 else 4, 9, dtype=np.uint8)
    with pytest.raises(BandContractError):
        render_band(pixels, geometry, Viewport(-1 + 1j, 1 - 1j), rows)
    assert (pixels == 9).all()
