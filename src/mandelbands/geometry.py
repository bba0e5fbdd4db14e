"""Value types describing the raster and the region of the plane it covers."""

from __future__ import annotations

from dataclasses import InitVar, dataclass


@dataclass(frozen=True)
class RasterGeometry:
    """Pixel dimensions of a raster (or of one band of it)."""

    width: int
    height: int

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(
                f"Raster dimensions must be positive, got {self.width}x{self.height}"
            )

    @property
    def size(self) -> int:
        return self.width * self.height

    def __str__(self) -> str:
        return f"{self.width}x{self.height}"


@dataclass(frozen=True)
class Viewport:
    """Rectangle of the complex plane delimited by two corners.

    ``upper_left`` carries the smallest real part and the largest imaginary
    part; ``lower_right`` the opposite. Zero-area and inverted rectangles are
    rejected because the pixel mapping divides by their extent. Pass
    ``check=False`` for rectangles derived from an already validated one,
    whose extent may round to zero.
    """

    upper_left: complex
    lower_right: complex
    check: InitVar[bool] = True

    def __post_init__(self, check: bool) -> None:
        if check and (self.plane_width <= 0.0 or self.plane_height <= 0.0):
            raise ValueError(
                "Viewport must have upper_left left of and above lower_right, "
                f"got upper_left={self.upper_left!r}, lower_right={self.lower_right!r}"
            )

    @property
    def plane_width(self) -> float:
        return self.lower_right.real - self.upper_left.real

    @property
    def plane_height(self) -> float:
        return self.upper_left.imag - self.lower_right.imag
