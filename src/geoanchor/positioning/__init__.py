"""Anchor placement: engine, calibration, and visibility hints."""

from .calibration import CalibrationState
from .engine import PositioningEngine
from .visibility import VisibilityLevel, distance_based_scale, is_within_ar_range, visibility_level

__all__ = [
    "CalibrationState",
    "PositioningEngine",
    "VisibilityLevel",
    "distance_based_scale",
    "is_within_ar_range",
    "visibility_level",
]
