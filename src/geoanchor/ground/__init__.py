"""Ground plane estimation from device tilt and camera edges."""

from .edges import analyze_ground_edges
from .estimator import GroundPlaneEstimator
from .strategies import GroundDistanceModel, alternative_distances

__all__ = [
    "GroundDistanceModel",
    "GroundPlaneEstimator",
    "alternative_distances",
    "analyze_ground_edges",
]
