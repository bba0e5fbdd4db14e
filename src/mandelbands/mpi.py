"""Static band distribution over MPI ranks with a blocking gather on rank 0."""

from __future__ import annotations

from typing import Any, Dict, List, Tuple

import numpy as np
from mpi4py import MPI

from .computation import allocate_pixels, render_band
from .config import RenderConfig
from .report import RenderReport, aggregate_timing, band_record
from .scheduling import Band, StaticScheduler, band_viewport, partition_rows

__all__ = ["run_mpi_render"]

# MPI tags
COUNT_TAG = 12
META_TAG = 20
DATA_TAG = 21


def _rank_log(rank: int, message: str) -> None:
    """Emit a progress message from a given MPI rank."""
    print(f"[Rank {rank}] {message}", flush=True)


def _render_band_timed(config: RenderConfig, band: Band) -> Tuple[np.ndarray, float]:
    """Render a band into a private buffer and return it with the elapsed time."""
    pixels = allocate_pixels(band.geometry(config.width))
    comp_start = MPI.Wtime()
    render_band(pixels, config.geometry, config.viewport, (band.start_row, band.row_count))
    return pixels, MPI.Wtime() - comp_start


def run_mpi_render(config: RenderConfig) -> RenderReport:
    """Render ``config`` across all ranks of ``COMM_WORLD``.

    Every rank must call this. Rank 0 receives the assembled pixels; the other
    ranks get a report with ``pixels=None``.
    """
    comm = MPI.COMM_WORLD
    rank = comm.Get_rank()
    size = comm.Get_size()
    geometry = config.geometry

    start_time = MPI.Wtime()

    bands = partition_rows(geometry.height, config.workers)
    scheduler = StaticScheduler(bands, size)

    results: List[Tuple[Band, np.ndarray]] = []
    records: List[Dict[str, Any]] = []
    for band in scheduler.bands_for_rank(rank):
        pixels, comp_time = _render_band_timed(config, band)
        if config.verbose:
            _rank_log(
                rank,
                f"Rendered band {band.index} (rows {band.start_row}:{band.stop_row}) "
                f"in {comp_time:.4f}s",
            )
        results.append((band, pixels))
        plane = band_viewport(band, geometry, config.viewport)
        records.append(band_record(band, plane, comp_time, rank))

    image = _gather_bands(comm, config, results, rank, size)

    # Excluding time spent gathering records
    total_time = MPI.Wtime() - start_time

    all_records = comm.gather(records, root=0)
    if rank != 0:
        return RenderReport(None, geometry, {}, None)

    band_records = sorted(
        (record for rank_records in all_records for record in rank_records),
        key=lambda record: record["band"],
    )
    return RenderReport(image, geometry, aggregate_timing(band_records, total_time), band_records)


def _gather_bands(
    comm: MPI.Intracomm,
    config: RenderConfig,
    results: List[Tuple[Band, np.ndarray]],
    rank: int,
    size: int,
) -> np.ndarray | None:
    """Collect every band on rank 0 and copy it into its slice of the full buffer."""
    width = config.width

    if rank == 0:
        image = allocate_pixels(config.geometry)
        for band, pixels in results:
            image[band.pixel_slice(width)] = pixels

        for source in range(1, size):
            num_bands = np.array(0, dtype=np.int64)
            comm.Recv(num_bands, source=source, tag=COUNT_TAG)
            for _ in range(int(num_bands)):
                metadata = np.zeros(3, dtype=np.int64)
                comm.Recv(metadata, source=source, tag=META_TAG)
                band = Band(*map(int, metadata))
                buffer = np.zeros(band.row_count * width, dtype=np.uint8)
                comm.Recv(buffer, source=source, tag=DATA_TAG)
                image[band.pixel_slice(width)] = buffer
        return image

    num_bands = np.array(len(results), dtype=np.int64)
    comm.Send(num_bands, dest=0, tag=COUNT_TAG)
    for band, pixels in results:
        metadata = np.array([band.index, band.start_row, band.row_count], dtype=np.int64)
        comm.Send(metadata, dest=0, tag=META_TAG)
        comm.Send(pixels, dest=0, tag=DATA_TAG)
    return None
