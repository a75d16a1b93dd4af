"""Ground plane estimation from device tilt, optionally confirmed by edges.

The estimate is a fixed-height heuristic: the user holds the device at eye
height and tilting it down by more than a few degrees means they are looking
at the ground. An optional edge pass over the bottom of the camera frame can
raise confidence; it never moves the plane.
"""
from __future__ import annotations

import math
from typing import Any, Callable, Dict, Optional

import cv2
import numpy as np
from loguru import logger

from ..models.ground_plane import DeviceOrientation, GroundPlaneEstimate, GroundPlaneMethod
from ..workers.periodic import PeriodicTask
from .edges import analyze_ground_edges
from .strategies import DEFAULT_EYE_HEIGHT_M, GroundDistanceModel, alternative_distances

TILT_THRESHOLD_DEG = 15.0
MIN_DISTANCE_M = 0.3
MAX_DISTANCE_M = 3.0
FALLBACK_CONFIDENCE = 0.3
MAX_GEOMETRIC_CONFIDENCE = 0.9
EDGE_CONFIDENCE_BOOST = 0.2
MAX_EDGE_CONFIDENCE = 0.95

OrientationProvider = Callable[[], Optional[DeviceOrientation]]
FrameProvider = Callable[[], Optional[np.ndarray]]
ResultCallback = Callable[[GroundPlaneEstimate], None]


class GroundPlaneEstimator:
    """Estimates where the ground is relative to the camera."""

    def __init__(
        self,
        eye_height_m: float = DEFAULT_EYE_HEIGHT_M,
        model: GroundDistanceModel = GroundDistanceModel.COTANGENT,
        edge_detection: bool = False,
        interval_s: float = 0.5,
    ) -> None:
        self.eye_height_m = eye_height_m
        self.model = model
        self.edge_detection = edge_detection
        self.interval_s = interval_s
        self.last_result: Optional[GroundPlaneEstimate] = None
        self.ground_offset = 0.0
        self._worker: Optional[PeriodicTask] = None

    # ------------------------------------------------------------------
    def detect(
        self,
        orientation: Optional[DeviceOrientation],
        frame: Optional[np.ndarray] = None,
    ) -> GroundPlaneEstimate:
        """Produce one estimate and remember it as ``last_result``."""
        result = self._estimate(orientation, frame)
        self.last_result = result
        return result

    def _estimate(
        self,
        orientation: Optional[DeviceOrientation],
        frame: Optional[np.ndarray],
    ) -> GroundPlaneEstimate:
        if orientation is None or orientation.beta is None:
            return GroundPlaneEstimate(
                detected=False,
                distance_m=self.eye_height_m,
                confidence=0.0,
                method=GroundPlaneMethod.FALLBACK,
                diagnostics={"error": "missing orientation data"},
            )

        tilt_deg = abs(orientation.beta)
        tilt_rad = math.radians(tilt_deg)
        diagnostics: Dict[str, Any] = {
            "beta_deg": orientation.beta,
            "gamma_deg": orientation.gamma,
            "model": self.model.value,
            "alternatives": alternative_distances(tilt_rad, self.eye_height_m),
            "edge_detection_enabled": self.edge_detection,
        }

        if tilt_deg <= TILT_THRESHOLD_DEG:
            return GroundPlaneEstimate(
                detected=True,
                distance_m=self.eye_height_m,
                confidence=FALLBACK_CONFIDENCE,
                method=GroundPlaneMethod.FALLBACK,
                tilt_deg=tilt_deg,
                diagnostics=diagnostics,
            )

        raw = self.model.distance(tilt_rad, self.eye_height_m)
        distance = max(MIN_DISTANCE_M, min(MAX_DISTANCE_M, raw))
        confidence = min(tilt_rad / (math.pi / 2.0), MAX_GEOMETRIC_CONFIDENCE)
        method = GroundPlaneMethod.ORIENTATION_ONLY
        diagnostics["raw_distance_m"] = raw

        if self.edge_detection and frame is not None:
            try:
                edges = analyze_ground_edges(frame)
            except (cv2.error, ValueError) as exc:
                logger.warning("Edge analysis failed, using orientation only: {}", exc)
                diagnostics["edge_error"] = str(exc)
            else:
                diagnostics["edges"] = edges.to_dict()
                if edges.ground_line_detected:
                    confidence = min(confidence + EDGE_CONFIDENCE_BOOST, MAX_EDGE_CONFIDENCE)
                    method = GroundPlaneMethod.ORIENTATION_EDGE

        return GroundPlaneEstimate(
            detected=True,
            distance_m=distance,
            confidence=confidence,
            method=method,
            tilt_deg=tilt_deg,
            diagnostics=diagnostics,
        )

    # ------------------------------------------------------------------
    def adjust_ground_offset(self, delta: float) -> float:
        self.ground_offset += delta
        logger.debug("Ground offset adjusted to {:.2f} m", self.ground_offset)
        return self.ground_offset

    def set_ground_offset(self, value: float) -> None:
        self.ground_offset = float(value)

    def reset_ground_offset(self) -> None:
        self.ground_offset = 0.0

    def current_ground_level(self) -> float:
        """Ground height below the camera, including the manual offset."""
        if self.last_result is None:
            return self.ground_offset
        return self.last_result.ground_level(self.ground_offset)

    def toggle_edge_detection(self, enabled: Optional[bool] = None) -> bool:
        self.edge_detection = (not self.edge_detection) if enabled is None else bool(enabled)
        logger.info("Ground edge detection {}", "enabled" if self.edge_detection else "disabled")
        return self.edge_detection

    # ------------------------------------------------------------------
    @property
    def is_running(self) -> bool:
        return self._worker is not None and self._worker.is_running

    def start(
        self,
        orientation_provider: OrientationProvider,
        frame_provider: Optional[FrameProvider] = None,
        on_result: Optional[ResultCallback] = None,
    ) -> None:
        """Detect every ``interval_s`` on the running event loop."""
        if self.is_running:
            return

        def tick() -> None:
            frame = frame_provider() if frame_provider is not None else None
            result = self.detect(orientation_provider(), frame)
            if on_result is not None:
                on_result(result)

        self._worker = PeriodicTask(tick, self.interval_s, name="ground-plane")
        self._worker.start()
        logger.info("Ground plane detection started ({:.2f}s interval)", self.interval_s)

    async def stop(self) -> None:
        worker, self._worker = self._worker, None
        if worker is not None:
            await worker.stop()
            logger.info("Ground plane detection stopped")
