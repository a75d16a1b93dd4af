"""Ground distance models for a tilted camera at eye height."""
from __future__ import annotations

from enum import Enum
import math
from typing import Dict

DEFAULT_EYE_HEIGHT_M = 1.7


class GroundDistanceModel(Enum):
    """How camera tilt is turned into a distance to the ground."""

    COTANGENT = "cotangent"
    SLANT = "slant"
    COSINE = "cosine"
    EYE_HEIGHT = "eye-height"

    def distance(self, tilt_rad: float, eye_height_m: float = DEFAULT_EYE_HEIGHT_M) -> float:
        """Unclamped distance for ``tilt_rad``; zero tilt gives ``inf`` where it diverges."""
        tilt = abs(tilt_rad)
        if self is GroundDistanceModel.EYE_HEIGHT:
            return eye_height_m
        if self is GroundDistanceModel.COSINE:
            return eye_height_m * math.cos(tilt)
        if self is GroundDistanceModel.SLANT:
            sin_t = math.sin(tilt)
            return math.inf if sin_t == 0.0 else eye_height_m / sin_t
        tan_t = math.tan(tilt)
        return math.inf if tan_t == 0.0 else eye_height_m / tan_t


def alternative_distances(tilt_rad: float, eye_height_m: float = DEFAULT_EYE_HEIGHT_M) -> Dict[str, float]:
    """Every model's distance for one tilt, keyed by model value."""
    return {model.value: model.distance(tilt_rad, eye_height_m) for model in GroundDistanceModel}
