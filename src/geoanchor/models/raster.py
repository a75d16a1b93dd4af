"""Heightmap raster metadata models."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

import numpy as np

ArrayOrFloat = Union[float, np.ndarray]


class HeightmapState(Enum):
    """Lifecycle of the shared heightmap buffer."""

    UNLOADED = "unloaded"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"

    def __str__(self) -> str:  # pragma: no cover - log friendly label
        return self.value


@dataclass(slots=True, frozen=True)
class RasterExtent:
    """Planar bounds of the raster in the projected coordinate system.

    Pixel ``(0, 0)`` maps to ``(min_x, max_y)``: the raster is stored north-up
    with row 0 along the northern edge.
    """

    min_x: float
    max_x: float
    min_y: float
    max_y: float

    def __post_init__(self) -> None:
        if not self.max_x > self.min_x:
            raise ValueError(f"Raster extent requires max_x > min_x, got {self.min_x}..{self.max_x}")
        if not self.max_y > self.min_y:
            raise ValueError(f"Raster extent requires max_y > min_y, got {self.min_y}..{self.max_y}")

    @property
    def span_x(self) -> float:
        return self.max_x - self.min_x

    @property
    def span_y(self) -> float:
        return self.max_y - self.min_y

    @property
    def center(self) -> tuple[float, float]:
        return (0.5 * (self.min_x + self.max_x), 0.5 * (self.min_y + self.max_y))

    def contains(self, x: float, y: float) -> bool:
        return self.min_x <= x <= self.max_x and self.min_y <= y <= self.max_y


@dataclass(slots=True, frozen=True)
class ElevationRange:
    """Linear brightness-to-elevation mapping: 0 is ``minimum``, 255 is ``maximum``."""

    minimum: float
    maximum: float

    @property
    def span(self) -> float:
        return self.maximum - self.minimum

    def brightness_to_elevation(self, brightness: ArrayOrFloat) -> ArrayOrFloat:
        return self.minimum + (brightness / 255.0) * (self.maximum - self.minimum)

    def fraction_to_elevation(self, fraction: float) -> float:
        return self.minimum + fraction * self.span


@dataclass(slots=True, frozen=True)
class HeightmapMetadata:
    """Deploy-time description of a heightmap raster asset."""

    width: int
    height: int
    extent: RasterExtent
    elevation_range: ElevationRange
    pixel_size_m: float = 1.0

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Heightmap dimensions must be positive, got {self.width}x{self.height}")

    @property
    def shape(self) -> tuple[int, int]:
        """Expected ``(rows, cols)`` of the decoded buffer."""
        return (self.height, self.width)

    def in_bounds(self, pixel_x: int, pixel_y: int) -> bool:
        return 0 <= pixel_x < self.width and 0 <= pixel_y < self.height
