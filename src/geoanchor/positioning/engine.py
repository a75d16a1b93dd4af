"""Anchor placement relative to the user.

The engine answers one question per call: where, in metres east/up/north of
the user, should the anchor for an experience be drawn. Terrain is used when
available and silently skipped when it is not; the only case without an
answer is a missing user fix.
"""
from __future__ import annotations

import math
from typing import Optional

from loguru import logger

from ..config import ExperienceOffsetTable
from ..math.geodesy import haversine_distance_m, initial_bearing_deg, local_tangent_plane
from ..models.geo import GpsCoordinate
from ..models.placement import AnchorPlacementRequest, AnchorPlacementResult, PlacementMethod
from ..terrain.elevation import TerrainElevationService
from .calibration import CalibrationState


class PositioningEngine:
    """Computes anchor placements from GPS, terrain, and calibration.

    Parameters
    ----------
    offsets:
        Experience type to vertical-offset profiles.
    terrain:
        Elevation service; ``None`` runs every placement on the flat path.
    calibration:
        Operator adjustments; a fresh zeroed state when omitted.
    terrain_enabled:
        Global switch for the terrain path.
    """

    def __init__(
        self,
        offsets: Optional[ExperienceOffsetTable] = None,
        terrain: Optional[TerrainElevationService] = None,
        calibration: Optional[CalibrationState] = None,
        terrain_enabled: bool = True,
    ) -> None:
        self.offsets = offsets or ExperienceOffsetTable()
        self.terrain = terrain
        self.calibration = calibration or CalibrationState()
        self.terrain_enabled = terrain_enabled

    # ------------------------------------------------------------------
    def compute_anchor_placement(self, request: AnchorPlacementRequest) -> Optional[AnchorPlacementResult]:
        """Place one anchor.

        Returns ``None`` when the user has no GPS fix, unless the debug
        override is active, which places the anchor without one.
        """
        user = request.user_gps
        raw_anchor = request.anchor_gps
        profile = self.offsets.resolve(request.experience_type)
        total_offset = (
            profile.default_elevation_offset
            + self.calibration.elevation_offset
            + request.manual_elevation_offset
        )
        adjusted_anchor = raw_anchor.offset(
            self.calibration.gps_offset_lon + request.manual_gps_offset[0],
            self.calibration.gps_offset_lat + request.manual_gps_offset[1],
        )

        if self.calibration.debug_override:
            return self._override_placement(request, adjusted_anchor, total_offset)

        if user is None:
            logger.debug("No GPS fix; cannot place {}", request.experience_type)
            return None

        use_terrain = (
            self.terrain is not None
            and self.terrain_enabled
            and request.use_terrain
            and profile.requires_terrain
        )

        user_elevation: Optional[float] = None
        anchor_terrain: Optional[float] = None
        if use_terrain:
            user_elevation = self.terrain.elevation_at(user)
            anchor_terrain = self.terrain.elevation_at(adjusted_anchor)
            origin_elevation = user_elevation if user_elevation is not None else 0.0
            anchor_elevation = anchor_terrain + total_offset if anchor_terrain is not None else total_offset
        else:
            origin_elevation = 0.0
            anchor_elevation = total_offset
        # Either elevation resolving counts as a terrain placement.
        if user_elevation is not None or anchor_terrain is not None:
            method = PlacementMethod.TERRAIN
        else:
            method = PlacementMethod.FLAT

        position = local_tangent_plane(user, origin_elevation, adjusted_anchor, anchor_elevation)
        position = position.scaled_horizontal(request.coordinate_scale)

        result = AnchorPlacementResult(
            position=position,
            distance_m=haversine_distance_m(user, raw_anchor),
            bearing_deg=initial_bearing_deg(user, raw_anchor),
            terrain_elevation_m=anchor_terrain,
            user_elevation_m=user_elevation,
            used_terrain=user_elevation is not None and anchor_terrain is not None,
            method=method,
            experience_type=request.experience_type,
            total_elevation_offset=total_offset,
            adjusted_anchor_gps=adjusted_anchor,
        )
        logger.debug(
            "Placed {} at E{:.2f} U{:.2f} N{:.2f} ({}, terrain={}, {:.1f} m @ {:.1f} deg)",
            request.experience_type,
            position.east,
            position.up,
            position.north,
            method,
            result.used_terrain,
            result.distance_m,
            result.bearing_deg,
        )
        return result

    def _override_placement(
        self,
        request: AnchorPlacementRequest,
        adjusted_anchor: GpsCoordinate,
        total_offset: float,
    ) -> AnchorPlacementResult:
        position = self.calibration.debug_position
        if request.user_gps is not None:
            distance = haversine_distance_m(request.user_gps, request.anchor_gps)
            bearing = initial_bearing_deg(request.user_gps, request.anchor_gps)
        else:
            distance = position.horizontal_distance
            bearing = math.degrees(math.atan2(position.east, position.north)) % 360.0
        return AnchorPlacementResult(
            position=position,
            distance_m=distance,
            bearing_deg=bearing,
            terrain_elevation_m=None,
            user_elevation_m=None,
            used_terrain=False,
            method=PlacementMethod.OVERRIDE,
            experience_type=request.experience_type,
            total_elevation_offset=total_offset,
            adjusted_anchor_gps=adjusted_anchor,
        )

    # ------------------------------------------------------------------
    def adjust_elevation_offset(self, delta: float) -> float:
        total = self.calibration.adjust_elevation_offset(delta)
        logger.info("Manual elevation offset adjusted to {:.3f} m", total)
        return total

    def set_elevation_offset(self, value: float) -> None:
        self.calibration.set_elevation_offset(value)
        logger.info("Manual elevation offset set to {:.3f} m", value)

    def adjust_gps_offset(self, d_lon: float, d_lat: float) -> tuple[float, float]:
        total = self.calibration.adjust_gps_offset(d_lon, d_lat)
        logger.info("Manual GPS offset adjusted to ({:.7f}, {:.7f})", *total)
        return total

    def reset_gps_offset(self) -> None:
        self.calibration.reset_gps_offset()
        logger.info("Manual GPS offset reset")

    def set_debug_override(self, enabled: bool) -> None:
        self.calibration.debug_override = bool(enabled)
        logger.info("Placement debug override {}", "ON" if enabled else "OFF")

    def reset_calibration(self) -> None:
        self.calibration.reset()
        logger.info("All placement calibration reset")
