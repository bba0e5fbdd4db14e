"""Structured results returned from a render."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import numpy as np

from .geometry import RasterGeometry, Viewport
from .scheduling import Band


@dataclass(frozen=True)
class RenderReport:
    """Container for outputs produced by ``render_threads`` and ``run_mpi_render``."""

    pixels: Optional[np.ndarray]
    geometry: RasterGeometry
    timing: Dict[str, Any]
    bands: Optional[List[Dict[str, Any]]]

    def copy_bands(self) -> Optional[List[Dict[str, Any]]]:
        if self.bands is None:
            return None
        return [record.copy() for record in self.bands]

    def image(self) -> Optional[np.ndarray]:
        """The pixel buffer as a ``(height, width)`` view, if this process holds it."""
        if self.pixels is None:
            return None
        return self.pixels.reshape(self.geometry.height, self.geometry.width)


def band_record(
    band: Band,
    plane: Viewport,
    comp_time: float,
    worker: int | str,
) -> Dict[str, Any]:
    """Create a uniform band metadata record.

    ``plane`` is the band's rectangle as given by ``band_viewport``; its
    imaginary edges are kept so the table shows which strip each worker drew.
    """
    return {
        "band": band.index,
        "worker": worker,
        "start_row": band.start_row,
        "row_count": band.row_count,
        "im_top": plane.upper_left.imag,
        "im_bottom": plane.lower_right.imag,
        "comp_time": float(comp_time),
    }


def aggregate_timing(records: List[Dict[str, Any]], wall_time: float) -> Dict[str, Any]:
    """Aggregate wall-clock timing plus per-band statistics."""
    comp_times = [float(record["comp_time"]) for record in records]
    comp_total = sum(comp_times)
    comp_max = max(comp_times, default=0.0)
    comp_mean = comp_total / len(comp_times) if comp_times else 0.0

    return {
        "wall_time": float(wall_time),
        "comp_total": comp_total,
        "comp_max": comp_max,
        # 1.0 means every band took as long as the slowest one
        "load_imbalance": comp_max / comp_mean if comp_mean > 0 else 1.0,
        "bands": len(records),
    }
