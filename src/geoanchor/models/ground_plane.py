"""Dataclasses describing ground plane estimates."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import math
from typing import Any, Dict, Optional, Tuple

UP_NORMAL: Tuple[float, float, float] = (0.0, 1.0, 0.0)  # (east, up, north)


class GroundPlaneMethod(Enum):
    """Which evidence produced a ground estimate."""

    ORIENTATION_ONLY = "orientation-only"
    ORIENTATION_EDGE = "orientation+edge-heuristic"
    FALLBACK = "fallback"

    def __str__(self) -> str:  # pragma: no cover - log friendly label
        return self.value


@dataclass(slots=True, frozen=True)
class DeviceOrientation:
    """Device orientation event in degrees.

    ``alpha`` is the compass heading, ``beta`` the front-back tilt and
    ``gamma`` the left-right tilt. Any value may be missing on platforms that
    do not report it.
    """

    alpha: Optional[float] = None
    beta: Optional[float] = None
    gamma: Optional[float] = None

    @property
    def tilt_deg(self) -> Optional[float]:
        return None if self.beta is None else abs(self.beta)

    @property
    def tilt_rad(self) -> Optional[float]:
        return None if self.beta is None else math.radians(abs(self.beta))


@dataclass(slots=True, frozen=True)
class EdgeAnalysis:
    """Summary of the lower-frame edge pass."""

    edge_count: int
    horizontal_ratio: float
    ground_line_detected: bool
    edge_strength: float
    processing_ms: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "edge_count": self.edge_count,
            "horizontal_edge_ratio": self.horizontal_ratio,
            "ground_line_detected": self.ground_line_detected,
            "edge_strength": self.edge_strength,
            "processing_ms": self.processing_ms,
        }


@dataclass(slots=True, frozen=True)
class GroundPlaneEstimate:
    """One ground plane detection tick."""

    detected: bool
    distance_m: float
    confidence: float
    method: GroundPlaneMethod
    normal: Tuple[float, float, float] = UP_NORMAL
    tilt_deg: Optional[float] = None
    diagnostics: Dict[str, Any] = field(default_factory=dict)

    def ground_level(self, manual_offset: float = 0.0) -> float:
        """Vertical position of the ground relative to the camera."""
        return -self.distance_m + manual_offset
