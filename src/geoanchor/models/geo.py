"""Geographic and local-frame value types."""
from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Dict, Sequence, Tuple


@dataclass(slots=True, frozen=True)
class GpsCoordinate:
    """A WGS84 position in degrees, stored longitude first."""

    longitude: float  # degrees
    latitude: float  # degrees

    @classmethod
    def from_lonlat(cls, pair: Sequence[float]) -> "GpsCoordinate":
        """Build from a ``(longitude, latitude)`` pair, GeoJSON order."""
        lon, lat = pair
        return cls(float(lon), float(lat))

    def as_lonlat(self) -> Tuple[float, float]:
        return (self.longitude, self.latitude)

    def offset(self, d_lon: float, d_lat: float) -> "GpsCoordinate":
        """Return a copy shifted by the given degree deltas."""
        return GpsCoordinate(self.longitude + d_lon, self.latitude + d_lat)

    @property
    def latitude_rad(self) -> float:
        return math.radians(self.latitude)

    @property
    def longitude_rad(self) -> float:
        return math.radians(self.longitude)


@dataclass(slots=True, frozen=True)
class LocalPosition:
    """Offset in metres from a local origin, axes East, Up, North.

    Positive ``east`` is geographic east and positive ``north`` is geographic
    north. Mapping onto a renderer's forward/right axes is left to the caller.
    """

    east: float
    up: float
    north: float

    @property
    def horizontal_distance(self) -> float:
        return math.hypot(self.east, self.north)

    def scaled_horizontal(self, scale: float) -> "LocalPosition":
        """Scale east/north by ``scale``; the vertical component is untouched."""
        return LocalPosition(self.east * scale, self.up, self.north * scale)

    def to_tuple(self) -> Tuple[float, float, float]:
        return (self.east, self.up, self.north)

    def to_dict(self) -> Dict[str, float]:
        """Return a serialisable mapping."""
        return {"east": self.east, "up": self.up, "north": self.north}
