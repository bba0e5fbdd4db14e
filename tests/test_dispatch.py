"""Fork-join rendering on the thread pool."""

import threading

import numpy as np
import pytest

import mandelbands.dispatch as dispatch
from mandelbands.computation import BandContractError, allocate_pixels
from mandelbands.config import default_render_config
from mandelbands.dispatch import render_parallel, render_threads
from mandelbands.geometry import RasterGeometry, Viewport

GEOMETRY = RasterGeometry(1000, 750)
VIEWPORT = Viewport(complex(-1.20, 0.35), complex(-1.0, 0.20))


@pytest.fixture(scope="module")
def single_band_pixels():
    pixels = allocate_pixels(GEOMETRY)
    render_parallel(pixels, GEOMETRY, VIEWPORT, 1)
    return pixels


@pytest.mark.parametrize("workers", [2, 3, 7, 32, 100])
def test_output_is_independent_of_worker_count(single_band_pixels, workers):
    pixels = allocate_pixels(GEOMETRY)
    render_parallel(pixels, GEOMETRY, VIEWPORT, workers)
    np.testing.assert_array_equal(pixels, single_band_pixels, err_msg=f"workers={workers}")


def test_render_covers_the_whole_image(single_band_pixels):
    assert single_band_pixels.shape == (GEOMETRY.size,)
    # The region straddles the boundary: both members and escapees show up.
    assert (single_band_pixels == 0).any()
    assert (single_band_pixels > 0).any()


def test_records_describe_each_band():
    geometry = RasterGeometry(40, 30)
    pixels = allocate_pixels(geometry)
    records = render_parallel(pixels, geometry, VIEWPORT, 4)

    assert [record["band"] for record in records] == [0, 1, 2, 3]
    assert [record["start_row"] for record in records] == [0, 8, 16, 24]
    assert [record["row_count"] for record in records] == [8, 8, 8, 6]
    assert all(record["comp_time"] >= 0.0 for record in records)
    assert all(record["worker"].startswith("band") for record in records)
    assert records[0]["im_top"] == VIEWPORT.upper_left.imag
    for upper, lower in zip(records, records[1:]):
        assert upper["im_bottom"] == lower["im_top"]


def test_more_workers_than_rows():
    geometry = RasterGeometry(16, 3)
    pixels = allocate_pixels(geometry)
    reference = allocate_pixels(geometry)

    records = render_parallel(pixels, geometry, VIEWPORT, 10)
    render_parallel(reference, geometry, VIEWPORT, 1)

    assert len(records) == 3
    np.testing.assert_array_equal(pixels, reference)


def test_rejects_buffer_of_wrong_length():
    pixels = np.zeros(GEOMETRY.size - 1, dtype=np.uint8)
    with pytest.raises(BandContractError):
        render_parallel(pixels, GEOMETRY, VIEWPORT, 4)


def test_band_failure_is_raised_after_all_bands_finish(monkeypatch):
    finished = []
    lock = threading.Lock()
    real_render_band = dispatch.render_band

    def failing_render_band(pixels, geometry, viewport, rows):
        start_row, _ = rows
        if start_row >= 20:
            raise BandContractError("bad band")
        real_render_band(pixels, geometry, viewport, rows)
        with lock:
            finished.append(start_row)

    monkeypatch.setattr(dispatch, "render_band", failing_render_band)

    geometry = RasterGeometry(20, 40)
    pixels = allocate_pixels(geometry)
    with pytest.raises(BandContractError, match="bad band"):
        render_parallel(pixels, geometry, VIEWPORT, 4)

    assert sorted(finished) == [0, 10]


def test_render_threads_reports_timing():
    config = default_render_config(image_size="60x45", workers=5)
    report = render_threads(config)

    assert report.pixels.shape == (60 * 45,)
    assert report.image().shape == (45, 60)
    assert report.timing["bands"] == 5
    assert report.timing["wall_time"] >= 0.0
    assert report.timing["load_imbalance"] > 0.0
    assert len(report.copy_bands()) == 5


def test_bands_thinner_than_float_spacing_render_like_one_band():
    # Each of the 1000 bands spans 1e-17 of the imaginary axis, below the
    # spacing of doubles near 0.2, so the band edges collapse onto each other.
    geometry = RasterGeometry(4, 1000)
    viewport = Viewport(complex(-1, 0.2 + 1e-14), complex(-0.5, 0.2))
    pixels = allocate_pixels(geometry)
    reference = allocate_pixels(geometry)

    records = render_parallel(pixels, geometry, viewport, 1000)
    render_parallel(reference, geometry, viewport, 1)

    assert len(records) == 1000
    np.testing.assert_array_equal(pixels, reference)
