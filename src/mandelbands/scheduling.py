"""Splitting the raster into horizontal bands and handing them out."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

from .computation import pixel_to_point
from .geometry import RasterGeometry, Viewport


@dataclass(frozen=True)
class Band:
    """A contiguous run of whole rows rendered by one worker."""

    index: int
    start_row: int
    row_count: int

    @property
    def stop_row(self) -> int:
        return self.start_row + self.row_count

    def geometry(self, width: int) -> RasterGeometry:
        return RasterGeometry(width, self.row_count)

    def pixel_slice(self, width: int) -> slice:
        """Range of the row-major buffer owned by this band."""
        return slice(self.start_row * width, self.stop_row * width)


def rows_per_band(height: int, workers: int) -> int:
    """Ceiling of ``height / workers``."""
    return (height + workers - 1) // workers


def partition_rows(height: int, workers: int) -> List[Band]:
    """Tile ``[0, height)`` with at most ``workers`` bands.

    Every band holds ``ceil(height / workers)`` rows except the last, which
    takes whatever remains and is never empty. Fewer than ``workers`` bands
    come back when the rows run out first.
    """
    if workers < 1:
        raise ValueError(f"Worker count must be at least 1, got {workers}")
    if height < 1:
        raise ValueError(f"Height must be at least 1, got {height}")

    step = rows_per_band(height, workers)
    return [
        Band(index, start, min(step, height - start))
        for index, start in enumerate(range(0, height, step))
    ]


def band_viewport(band: Band, geometry: RasterGeometry, viewport: Viewport) -> Viewport:
    """Plane rectangle covered by ``band``.

    Both corners are mapped on the full raster, so a band's lower edge is
    bit-for-bit the upper edge of the next one. A band thinner than the
    spacing of doubles near its edge gets a zero-height rectangle.
    """
    upper_left = pixel_to_point(geometry, (0, band.start_row), viewport)
    lower_right = pixel_to_point(geometry, (geometry.width, band.stop_row), viewport)
    return Viewport(upper_left, lower_right, check=False)


@dataclass
class StaticScheduler:
    """Static work scheduling - pre-assigns bands to ranks round-robin."""

    bands: List[Band]
    world_size: int
    assignments: Dict[int, List[Band]] = field(init=False)

    def __post_init__(self) -> None:
        self.assignments = {rank: [] for rank in range(self.world_size)}
        for band in self.bands:
            self.assignments[band.index % self.world_size].append(band)

    def bands_for_rank(self, rank: int) -> List[Band]:
        """Get the bands assigned to a specific rank."""
        return self.assignments.get(rank, [])
