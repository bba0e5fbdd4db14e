from __future__ import annotations

from typing import Optional, Tuple

import numpy as np
from numba import njit

from .geometry import RasterGeometry, Viewport

__all__ = [
    "ESCAPE_LIMIT",
    "BandContractError",
    "allocate_pixels",
    "escape_time",
    "pixel_to_point",
    "render_band",
]

# One gray level per iteration: escape at i maps to 255 - i.
ESCAPE_LIMIT = 255


class BandContractError(RuntimeError):
    """A band buffer does not have the length its geometry describes.

    Raised only when the partitioning handed out an inconsistent band, so it
    is fatal for the whole render and never caught inside the package.
    """


@njit(nogil=True)
def escape_time(c: complex, limit: int) -> Optional[int]:
    """Iterate ``z = z*z + c`` from zero and report when ``|z|`` passes 2.

    Returns the 0-based iteration at which the squared norm first exceeds 4,
    or ``None`` if it never does within ``limit`` iterations.
    """
    z = 0j
    for i in range(limit):
        z = z * z + c
        if z.real * z.real + z.imag * z.imag > 4.0:
            return i
    return None


@njit(nogil=True)
def _pixel_to_point(
    width: int,
    height: int,
    col: int,
    row: int,
    upper_left: complex,
    lower_right: complex,
) -> complex:
    plane_width = lower_right.real - upper_left.real
    plane_height = upper_left.imag - lower_right.imag
    return complex(
        upper_left.real + col * plane_width / width,
        upper_left.imag - row * plane_height / height,
    )


def pixel_to_point(
    geometry: RasterGeometry,
    pixel: Tuple[int, int],
    viewport: Viewport,
) -> complex:
    """Map ``pixel = (col, row)`` of ``geometry`` onto the plane.

    Row 0 is the top edge of the viewport. The closed range
    ``[0, width] x [0, height]`` is accepted so that the far edges of a band
    can be computed as well as its pixels.
    """
    col, row = pixel
    if not (0 <= col <= geometry.width and 0 <= row <= geometry.height):
        raise ValueError(f"Pixel {pixel} lies outside a {geometry} raster")
    return complex(
        _pixel_to_point(
            geometry.width,
            geometry.height,
            col,
            row,
            complex(viewport.upper_left),
            complex(viewport.lower_right),
        )
    )


@njit(nogil=True)
def _render_band(
    pixels: np.ndarray,
    width: int,
    height: int,
    start_row: int,
    row_count: int,
    upper_left: complex,
    lower_right: complex,
) -> None:
    # Points come from the full raster so a pixel never depends on its band.
    for row in range(row_count):
        for col in range(width):
            point = _pixel_to_point(width, height, col, start_row + row, upper_left, lower_right)
            escaped = escape_time(point, ESCAPE_LIMIT)
            if escaped is None:
                pixels[row * width + col] = 0
            else:
                pixels[row * width + col] = 255 - escaped


def render_band(
    pixels: np.ndarray,
    geometry: RasterGeometry,
    viewport: Viewport,
    rows: Optional[Tuple[int, int]] = None,
) -> None:
    """Fill ``pixels`` with the grayscale escape times of ``viewport``.

    ``geometry`` and ``viewport`` describe the whole image. ``rows`` is the
    ``(start_row, row_count)`` run of that image held by ``pixels``; without
    it ``pixels`` holds every row. ``pixels`` is written row-major in place.
    """
    start_row, row_count = rows if rows is not None else (0, geometry.height)
    if start_row < 0 or row_count < 1 or start_row + row_count > geometry.height:
        raise BandContractError(
            f"Rows {start_row}:{start_row + row_count} are outside a {geometry} raster"
        )
    if len(pixels) != row_count * geometry.width:
        raise BandContractError(
            f"Band buffer holds {len(pixels)} pixels but {row_count} rows of {geometry} "
            f"need {row_count * geometry.width}"
        )
    _render_band(
        pixels,
        geometry.width,
        geometry.height,
        start_row,
        row_count,
        complex(viewport.upper_left),
        complex(viewport.lower_right),
    )


def allocate_pixels(geometry: RasterGeometry) -> np.ndarray:
    return np.zeros(geometry.size, dtype=np.uint8)
