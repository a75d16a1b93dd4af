"""GPS to heightmap pixel transforms.

Stage one maps a GPS coordinate onto the raster's planar coordinate system.
Stage two maps planar coordinates onto integer pixel indices.
"""
from __future__ import annotations

from dataclasses import dataclass
import functools
import math
from typing import Protocol, Tuple

from pyproj import CRS, Transformer

from ..models.geo import GpsCoordinate
from ..models.raster import RasterExtent

WGS84_GEOGRAPHIC = CRS.from_epsg(4326)


class PlanarProjection(Protocol):
    """Maps GPS coordinates into the raster's planar coordinate system."""

    def to_planar(self, gps: GpsCoordinate) -> Tuple[float, float]:
        ...


@dataclass(slots=True, frozen=True)
class PlanarCalibration:
    """Anchor point and scale factors of the local affine approximation.

    ``meters_per_deg_lon`` already folds in the cosine of the site latitude,
    so the calibration is only valid close to ``(center_lon, center_lat)``.
    """

    center_lon: float
    center_lat: float
    center_x: float
    center_y: float
    meters_per_deg_lon: float
    meters_per_deg_lat: float = 111_000.0

    @classmethod
    def for_extent(
        cls,
        center: GpsCoordinate,
        extent: RasterExtent,
        meters_per_deg_lat: float = 111_000.0,
    ) -> "PlanarCalibration":
        """Calibration centred on ``extent`` with the scale derived from latitude."""
        center_x, center_y = extent.center
        return cls(
            center_lon=center.longitude,
            center_lat=center.latitude,
            center_x=center_x,
            center_y=center_y,
            meters_per_deg_lon=meters_per_deg_lat * math.cos(center.latitude_rad),
            meters_per_deg_lat=meters_per_deg_lat,
        )


@dataclass(slots=True, frozen=True)
class AffinePlanarProjection:
    """Site-calibrated affine approximation of the raster projection."""

    calibration: PlanarCalibration

    def to_planar(self, gps: GpsCoordinate) -> Tuple[float, float]:
        cal = self.calibration
        x = cal.center_x + (gps.longitude - cal.center_lon) * cal.meters_per_deg_lon
        y = cal.center_y + (gps.latitude - cal.center_lat) * cal.meters_per_deg_lat
        return x, y


@functools.lru_cache(maxsize=8)
def _geographic_to_crs_transformer(crs: str) -> Transformer:
    return Transformer.from_crs(WGS84_GEOGRAPHIC, CRS.from_user_input(crs), always_xy=True)


@dataclass(slots=True, frozen=True)
class CrsPlanarProjection:
    """Exact projection into a named CRS, e.g. ``"EPSG:26985"``."""

    crs: str

    def to_planar(self, gps: GpsCoordinate) -> Tuple[float, float]:
        transformer = _geographic_to_crs_transformer(self.crs)
        x, y = transformer.transform(gps.longitude, gps.latitude)
        return float(x), float(y)


def planar_to_pixel(
    x: float,
    y: float,
    extent: RasterExtent,
    width: int,
    height: int,
) -> Tuple[int, int]:
    """Convert planar coordinates to pixel indices.

    Rows grow southward, so the Y axis is flipped. Indices are floored and
    may fall outside ``[0, width) x [0, height)``; callers bounds-check.
    """
    normalised_x = (x - extent.min_x) / extent.span_x
    normalised_y = (extent.max_y - y) / extent.span_y

    pixel_x = math.floor(normalised_x * width)
    pixel_y = math.floor(normalised_y * height)
    return int(pixel_x), int(pixel_y)
