"""Baseline Mandelbrot implementation."""

from __future__ import annotations

import numpy as np

from .geometry import RasterGeometry, Viewport


def render_baseline(geometry: RasterGeometry, viewport: Viewport) -> np.ndarray:
    """Render the whole raster in one pass, without bands or compilation."""
    width, height = geometry.width, geometry.height
    pixels = np.zeros(geometry.size, dtype=np.uint8)

    upper_left = viewport.upper_left
    plane_width = viewport.plane_width
    plane_height = viewport.plane_height

    for row in range(height):
        im = upper_left.imag - row * plane_height / height
        for col in range(width):
            c = complex(upper_left.real + col * plane_width / width, im)
            z = 0j
            for i in range(255):
                z = z * z + c
                if z.real * z.real + z.imag * z.imag > 4.0:
                    pixels[row * width + col] = 255 - i
                    break

    return pixels
