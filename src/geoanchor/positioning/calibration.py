"""Operator calibration state for anchor placement."""
from __future__ import annotations

from dataclasses import dataclass, field

from ..models.geo import LocalPosition

DEFAULT_DEBUG_POSITION = LocalPosition(east=0.0, up=0.0, north=5.0)


@dataclass(slots=True)
class CalibrationState:
    """Live adjustments made on site, owned by one positioning engine.

    GPS and elevation offsets accumulate across adjustments; the resets put
    them back to exactly zero.
    """

    gps_offset_lon: float = 0.0
    gps_offset_lat: float = 0.0
    elevation_offset: float = 0.0
    debug_override: bool = False
    debug_position: LocalPosition = field(default_factory=lambda: DEFAULT_DEBUG_POSITION)

    @property
    def gps_offset(self) -> tuple[float, float]:
        return (self.gps_offset_lon, self.gps_offset_lat)

    def adjust_gps_offset(self, d_lon: float, d_lat: float) -> tuple[float, float]:
        self.gps_offset_lon += d_lon
        self.gps_offset_lat += d_lat
        return self.gps_offset

    def reset_gps_offset(self) -> None:
        self.gps_offset_lon = 0.0
        self.gps_offset_lat = 0.0

    def adjust_elevation_offset(self, delta: float) -> float:
        self.elevation_offset += delta
        return self.elevation_offset

    def set_elevation_offset(self, value: float) -> None:
        self.elevation_offset = float(value)

    def reset_elevation_offset(self) -> None:
        self.elevation_offset = 0.0

    def reset(self) -> None:
        self.reset_gps_offset()
        self.reset_elevation_offset()
        self.debug_override = False
        self.debug_position = DEFAULT_DEBUG_POSITION
