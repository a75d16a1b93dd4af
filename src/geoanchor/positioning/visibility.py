"""Distance-based visibility and scale hints for AR content."""
from __future__ import annotations

from enum import Enum

from ..math.geodesy import haversine_distance_m
from ..models.geo import GpsCoordinate


class VisibilityLevel(Enum):
    CLOSE = "close"
    MEDIUM = "medium"
    FAR = "far"
    TOO_FAR = "too-far"


def is_within_ar_range(user: GpsCoordinate, anchor: GpsCoordinate, max_distance_m: float = 200.0) -> bool:
    return haversine_distance_m(user, anchor) <= max_distance_m


def visibility_level(user: GpsCoordinate, anchor: GpsCoordinate) -> VisibilityLevel:
    distance = haversine_distance_m(user, anchor)
    if distance <= 50.0:
        return VisibilityLevel.CLOSE
    if distance <= 150.0:
        return VisibilityLevel.MEDIUM
    if distance <= 300.0:
        return VisibilityLevel.FAR
    return VisibilityLevel.TOO_FAR


def distance_based_scale(
    user: GpsCoordinate,
    anchor: GpsCoordinate,
    base_scale: float = 1.0,
    min_scale: float = 0.1,
    max_scale: float = 2.0,
) -> float:
    """Shrink distant objects: 50 m is 1x, clamped to ``[min_scale, max_scale]``."""
    distance = haversine_distance_m(user, anchor)
    multiplier = max(0.1, 50.0 / distance) if distance > 0.0 else max_scale
    return max(min_scale, min(max_scale, base_scale * multiplier))
