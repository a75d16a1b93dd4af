from __future__ import annotations

import math

import pytest

from geoanchor.config import ExperienceOffsetTable, ExperienceProfile
from geoanchor.io.heightmap_store import HeightmapStore
from geoanchor.math.geodesy import haversine_distance_m, initial_bearing_deg
from geoanchor.models.geo import GpsCoordinate
from geoanchor.models.placement import AnchorPlacementRequest, PlacementMethod
from geoanchor.positioning.engine import PositioningEngine
from geoanchor.terrain.elevation import SamplingPolicy, TerrainElevationService

from conftest import gps_for_pixel, loaded_service, make_metadata, make_projection

USER = GpsCoordinate(-76.943, 38.9125)
ANCHOR = GpsCoordinate(-76.942076, 38.912485)


def step_engine(step_pixels, offsets=None) -> PositioningEngine:
    policy = SamplingPolicy(radius=2, plausible_band_m=(-1000.0, 1000.0))
    return PositioningEngine(offsets=offsets, terrain=loaded_service(step_pixels, policy))


def test_flat_placement_for_point_cloud_experience():
    engine = PositioningEngine()
    result = engine.compute_anchor_placement(AnchorPlacementRequest(USER, ANCHOR, experience_type="mac"))

    assert result is not None
    assert not result.used_terrain
    assert result.method is PlacementMethod.FLAT
    assert result.position.up == 0.0
    assert result.distance_m == pytest.approx(haversine_distance_m(USER, ANCHOR))
    # The Haversine distance for this pair is about 80 m.
    assert 70.0 < result.distance_m < 90.0
    assert 85.0 < result.bearing_deg < 95.0
    # Anchor is east and very slightly south of the user.
    assert result.position.east > 75.0
    assert result.position.north < 0.0
    assert result.position.horizontal_distance == pytest.approx(result.distance_m, rel=0.01)


def test_no_fix_returns_none():
    engine = PositioningEngine()
    assert engine.compute_anchor_placement(AnchorPlacementRequest(None, ANCHOR)) is None


def test_same_point_has_zero_distance_and_bearing():
    engine = PositioningEngine()
    result = engine.compute_anchor_placement(AnchorPlacementRequest(USER, USER))
    assert result.distance_m == 0.0
    assert result.bearing_deg == 0.0
    assert result.position.to_tuple() == (0.0, 0.0, 0.0)


def test_coordinate_scale_only_touches_horizontal_axes():
    engine = PositioningEngine()
    engine.set_elevation_offset(1.5)
    full = engine.compute_anchor_placement(AnchorPlacementRequest(USER, ANCHOR))
    half = engine.compute_anchor_placement(AnchorPlacementRequest(USER, ANCHOR, coordinate_scale=0.5))

    assert half.position.east == pytest.approx(full.position.east * 0.5)
    assert half.position.north == pytest.approx(full.position.north * 0.5)
    assert half.position.up == full.position.up == pytest.approx(1.5)
    assert half.distance_m == full.distance_m


def test_elevation_offsets_compose():
    offsets = ExperienceOffsetTable(
        {
            "default": ExperienceProfile(),
            "lifted": ExperienceProfile(default_elevation_offset=2.0, requires_terrain=False),
        }
    )
    engine = PositioningEngine(offsets=offsets)
    engine.adjust_elevation_offset(0.5)
    engine.adjust_elevation_offset(0.25)

    result = engine.compute_anchor_placement(
        AnchorPlacementRequest(USER, ANCHOR, experience_type="lifted", manual_elevation_offset=1.0)
    )
    assert result.total_elevation_offset == pytest.approx(3.75)
    assert result.position.up == pytest.approx(3.75)


def test_unknown_experience_uses_default_profile():
    engine = PositioningEngine()
    result = engine.compute_anchor_placement(AnchorPlacementRequest(USER, ANCHOR, experience_type="no-such-thing"))
    assert result.experience_type == "no-such-thing"
    assert result.total_elevation_offset == 0.0


def test_gps_offset_moves_position_but_not_distance():
    engine = PositioningEngine()
    baseline = engine.compute_anchor_placement(AnchorPlacementRequest(USER, ANCHOR))

    assert engine.adjust_gps_offset(0.0001, 0.0) == pytest.approx((0.0001, 0.0))
    assert engine.adjust_gps_offset(0.0001, -0.00005) == pytest.approx((0.0002, -0.00005))
    shifted = engine.compute_anchor_placement(
        AnchorPlacementRequest(USER, ANCHOR, manual_gps_offset=(0.0, 0.00005))
    )

    assert shifted.adjusted_anchor_gps.longitude == pytest.approx(ANCHOR.longitude + 0.0002)
    assert shifted.adjusted_anchor_gps.latitude == pytest.approx(ANCHOR.latitude)
    assert shifted.position.east > baseline.position.east
    assert shifted.position.north == pytest.approx(baseline.position.north)
    assert shifted.distance_m == baseline.distance_m
    assert shifted.bearing_deg == baseline.bearing_deg

    engine.reset_gps_offset()
    assert engine.calibration.gps_offset == (0.0, 0.0)
    restored = engine.compute_anchor_placement(AnchorPlacementRequest(USER, ANCHOR))
    assert restored.position == baseline.position


def test_terrain_placement_uses_both_elevations(step_pixels):
    engine = step_engine(step_pixels)
    user = gps_for_pixel(10, 25)
    anchor = gps_for_pixel(90, 25)
    result = engine.compute_anchor_placement(AnchorPlacementRequest(user, anchor, manual_elevation_offset=1.0))

    assert result.used_terrain
    assert result.method is PlacementMethod.TERRAIN
    assert result.user_elevation_m == pytest.approx(50.0)
    assert result.terrain_elevation_m == pytest.approx(200.0)
    assert result.position.up == pytest.approx(151.0)
    assert result.position.east == pytest.approx(math.radians(0.0008) * 6_378_137.0, rel=1e-3)


def test_terrain_missing_for_anchor_keeps_offset_only(step_pixels):
    engine = step_engine(step_pixels)
    user = gps_for_pixel(10, 25)
    outside = GpsCoordinate(0.01, 0.0)
    result = engine.compute_anchor_placement(AnchorPlacementRequest(user, outside, manual_elevation_offset=0.5))

    assert not result.used_terrain
    assert result.terrain_elevation_m is None
    assert result.user_elevation_m == pytest.approx(50.0)
    assert result.position.up == pytest.approx(0.5 - 50.0)


def test_terrain_store_not_ready_degrades_to_flat():
    store = HeightmapStore(make_metadata())
    engine = PositioningEngine(terrain=TerrainElevationService(store, make_projection()))
    result = engine.compute_anchor_placement(
        AnchorPlacementRequest(gps_for_pixel(10, 25), gps_for_pixel(90, 25), manual_elevation_offset=2.0)
    )
    assert not result.used_terrain
    assert result.method is PlacementMethod.FLAT
    assert result.position.up == pytest.approx(2.0)


def test_terrain_skipped_for_profiles_and_requests_that_opt_out(step_pixels):
    engine = step_engine(step_pixels)
    user = gps_for_pixel(10, 25)
    anchor = gps_for_pixel(90, 25)

    smoke = engine.compute_anchor_placement(AnchorPlacementRequest(user, anchor, experience_type="1968"))
    assert smoke.method is PlacementMethod.FLAT
    assert smoke.position.up == 0.0

    opted_out = engine.compute_anchor_placement(AnchorPlacementRequest(user, anchor, use_terrain=False))
    assert opted_out.method is PlacementMethod.FLAT

    engine.terrain_enabled = False
    disabled = engine.compute_anchor_placement(AnchorPlacementRequest(user, anchor))
    assert disabled.method is PlacementMethod.FLAT


def test_debug_override_places_fixed_position_without_fix():
    engine = PositioningEngine()
    engine.set_debug_override(True)

    result = engine.compute_anchor_placement(AnchorPlacementRequest(None, ANCHOR))
    assert result.method is PlacementMethod.OVERRIDE
    assert result.position.to_tuple() == (0.0, 0.0, 5.0)
    assert result.distance_m == pytest.approx(5.0)
    assert result.bearing_deg == pytest.approx(0.0)

    with_fix = engine.compute_anchor_placement(AnchorPlacementRequest(USER, ANCHOR))
    assert with_fix.position.to_tuple() == (0.0, 0.0, 5.0)
    assert with_fix.distance_m == pytest.approx(haversine_distance_m(USER, ANCHOR))
    assert with_fix.bearing_deg == pytest.approx(initial_bearing_deg(USER, ANCHOR))


def test_reset_calibration_clears_everything():
    engine = PositioningEngine()
    engine.adjust_elevation_offset(3.0)
    engine.adjust_gps_offset(0.001, 0.001)
    engine.set_debug_override(True)

    engine.reset_calibration()
    calibration = engine.calibration
    assert calibration.elevation_offset == 0.0
    assert calibration.gps_offset == (0.0, 0.0)
    assert not calibration.debug_override


def test_result_serialises_for_debug_overlay():
    engine = PositioningEngine()
    payload = engine.compute_anchor_placement(AnchorPlacementRequest(USER, ANCHOR)).to_dict()
    assert payload["method"] == "flat"
    assert payload["used_terrain"] is False
    assert math.isfinite(payload["east"])
