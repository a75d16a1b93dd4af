"""Anchor placement request/result records."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

from .geo import GpsCoordinate, LocalPosition


class PlacementMethod(Enum):
    """How the vertical component of a placement was resolved."""

    TERRAIN = "terrain"
    FLAT = "flat"
    OVERRIDE = "override"

    def __str__(self) -> str:  # pragma: no cover - log friendly label
        return self.value


@dataclass(slots=True, frozen=True)
class AnchorPlacementRequest:
    """Inputs for one placement call.

    ``user_gps`` is ``None`` while the GPS provider has no fix. The manual
    offsets are per-call operator tweaks; they compose additively with the
    engine's calibration state.
    """

    user_gps: Optional[GpsCoordinate]
    anchor_gps: GpsCoordinate
    experience_type: str = "default"
    coordinate_scale: float = 1.0
    manual_elevation_offset: float = 0.0
    manual_gps_offset: Tuple[float, float] = (0.0, 0.0)  # (d_lon, d_lat) degrees
    use_terrain: bool = True


@dataclass(slots=True, frozen=True)
class AnchorPlacementResult:
    """Where an anchor sits relative to the user.

    ``distance_m`` and ``bearing_deg`` always describe the raw anchor GPS
    versus the user GPS, independent of any calibration or scaling.
    """

    position: LocalPosition
    distance_m: float
    bearing_deg: float
    terrain_elevation_m: Optional[float]
    user_elevation_m: Optional[float]
    used_terrain: bool
    method: PlacementMethod
    experience_type: str
    total_elevation_offset: float
    adjusted_anchor_gps: GpsCoordinate

    def to_dict(self) -> Dict[str, object]:
        """Serialise for debug overlays and logs."""
        return {
            "east": self.position.east,
            "up": self.position.up,
            "north": self.position.north,
            "distance_m": self.distance_m,
            "bearing_deg": self.bearing_deg,
            "terrain_elevation_m": self.terrain_elevation_m,
            "user_elevation_m": self.user_elevation_m,
            "used_terrain": self.used_terrain,
            "method": self.method.value,
            "experience_type": self.experience_type,
            "total_elevation_offset": self.total_elevation_offset,
            "adjusted_anchor_lon": self.adjusted_anchor_gps.longitude,
            "adjusted_anchor_lat": self.adjusted_anchor_gps.latitude,
        }
