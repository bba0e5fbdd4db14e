"""Fork-join rendering of horizontal bands on a thread pool."""

from __future__ import annotations

import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Dict, List, Tuple

import numpy as np

from .computation import BandContractError, allocate_pixels, render_band
from .config import RenderConfig
from .geometry import RasterGeometry, Viewport
from .report import RenderReport, aggregate_timing, band_record
from .scheduling import Band, band_viewport, partition_rows

__all__ = ["render_parallel", "render_threads"]


def _band_log(index: int, message: str) -> None:
    """Emit a progress message from a given band."""
    print(f"[Band {index}] {message}", flush=True)


def _render_band_timed(
    pixels: np.ndarray,
    band: Band,
    geometry: RasterGeometry,
    viewport: Viewport,
    verbose: bool,
) -> Tuple[float, str]:
    """Render one band and return the elapsed time and the thread that ran it."""
    start = time.time()
    render_band(pixels, geometry, viewport, (band.start_row, band.row_count))
    elapsed = time.time() - start
    if verbose:
        _band_log(
            band.index,
            f"Rendered rows {band.start_row}:{band.stop_row} in {elapsed:.4f}s",
        )
    return elapsed, threading.current_thread().name


def render_parallel(
    pixels: np.ndarray,
    geometry: RasterGeometry,
    viewport: Viewport,
    workers: int,
    *,
    verbose: bool = False,
) -> List[Dict[str, Any]]:
    """Render ``viewport`` into ``pixels`` with one thread per band.

    ``pixels`` is the full row-major buffer. It is cut into disjoint views,
    one per band, so the bands need no locking. Every band maps its pixels
    on the full raster, which makes the result independent of ``workers``.
    All bands are joined before anything is returned or raised; if a band
    failed, the first failure (in band order) is re-raised and the buffer
    contents are not valid.

    Returns one timing record per band.
    """
    if len(pixels) != geometry.size:
        raise BandContractError(
            f"Buffer holds {len(pixels)} pixels but geometry {geometry} needs {geometry.size}"
        )

    bands = partition_rows(geometry.height, workers)
    futures: Dict[Future, Band] = {}

    with ThreadPoolExecutor(max_workers=len(bands), thread_name_prefix="band") as pool:
        for band in bands:
            future = pool.submit(
                _render_band_timed,
                pixels[band.pixel_slice(geometry.width)],
                band,
                geometry,
                viewport,
                verbose,
            )
            futures[future] = band

    records: List[Dict[str, Any]] = []
    for future, band in futures.items():
        comp_time, worker = future.result()
        plane = band_viewport(band, geometry, viewport)
        records.append(band_record(band, plane, comp_time, worker))
    return records


def render_threads(config: RenderConfig) -> RenderReport:
    """Allocate a buffer for ``config`` and render it on the thread pool."""
    geometry = config.geometry
    pixels = allocate_pixels(geometry)

    start_time = time.time()
    records = render_parallel(
        pixels,
        geometry,
        config.viewport,
        config.workers,
        verbose=config.verbose,
    )
    wall_time = time.time() - start_time

    return RenderReport(pixels, geometry, aggregate_timing(records, wall_time), records)
