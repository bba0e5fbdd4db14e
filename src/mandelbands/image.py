"""Encoding finished pixel buffers as grayscale image files."""

from __future__ import annotations

from pathlib import Path

import numpy as np
import PIL.Image

from .geometry import RasterGeometry


def _pil_format_name(ext: str) -> str:
    upper = ext.lstrip(".").upper()
    if not upper:
        return "PNG"
    if upper == "JPG":
        return "JPEG"
    if upper == "TIF":
        return "TIFF"
    return upper


def to_image(pixels: np.ndarray, geometry: RasterGeometry) -> PIL.Image.Image:
    """Wrap a row-major ``uint8`` buffer as an 8-bit single-channel image."""
    if len(pixels) != geometry.size:
        raise ValueError(
            f"Buffer holds {len(pixels)} pixels but geometry {geometry} needs {geometry.size}"
        )
    frame = np.ascontiguousarray(pixels, dtype=np.uint8).reshape(geometry.height, geometry.width)
    return PIL.Image.fromarray(frame)


def write_image(output_path: str | Path, pixels: np.ndarray, geometry: RasterGeometry) -> Path:
    """Write ``pixels`` to ``output_path``, picking the format from its extension."""
    output_path = Path(output_path)
    pil_format = _pil_format_name(output_path.suffix)
    if pil_format not in PIL.Image.registered_extensions().values():
        raise ValueError(f"Unsupported image format {output_path.suffix!r} for {output_path}")
    image = to_image(pixels, geometry)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    image.save(str(output_path), format=pil_format)
    return output_path
