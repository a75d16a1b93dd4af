"""Exception types for heightmap loading."""
from __future__ import annotations


class HeightmapError(RuntimeError):
    """Base class for load-time heightmap failures."""


class DecodeError(HeightmapError):
    """The raster asset could not be read or decoded."""


class DimensionMismatchError(HeightmapError):
    """The decoded raster does not match the configured dimensions."""

    def __init__(self, expected: tuple[int, int], actual: tuple[int, int]) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Decoded heightmap is {actual[1]}x{actual[0]} px but metadata declares "
            f"{expected[1]}x{expected[0]} px"
        )
