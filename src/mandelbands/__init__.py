"""Mandelbrot rendering split into horizontal bands rendered in parallel."""

__version__ = "1.0.0"

# Core computation and config - lightweight, imported by MPI ranks as well
from .computation import (
    ESCAPE_LIMIT,
    BandContractError,
    allocate_pixels,
    escape_time,
    pixel_to_point,
    render_band,
)
from .config import RenderConfig, default_render_config
from .dispatch import render_parallel, render_threads
from .geometry import RasterGeometry, Viewport
from .report import RenderReport
from .scheduling import Band, band_viewport, partition_rows


# Conditional imports - only loaded when needed
def __getattr__(name):
    """Lazy loading of heavy modules."""
    if name == "run_mpi_render":
        from .mpi import run_mpi_render

        return run_mpi_render
    elif name == "log_to_mlflow":
        from .logging import log_to_mlflow

        return log_to_mlflow
    elif name == "write_image":
        from .image import write_image

        return write_image
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "ESCAPE_LIMIT",
    "Band",
    "BandContractError",
    "RasterGeometry",
    "RenderConfig",
    "RenderReport",
    "Viewport",
    "allocate_pixels",
    "band_viewport",
    "default_render_config",
    "escape_time",
    "log_to_mlflow",
    "partition_rows",
    "pixel_to_point",
    "render_band",
    "render_parallel",
    "render_threads",
    "run_mpi_render",
    "write_image",
]
