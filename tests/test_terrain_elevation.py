from __future__ import annotations

import numpy as np
import pytest

from geoanchor.io.heightmap_store import HeightmapStore
from geoanchor.models.geo import GpsCoordinate
from geoanchor.models.raster import ElevationRange
from geoanchor.terrain.elevation import (
    ReductionStrategy,
    SamplingPolicy,
    TerrainElevationService,
    reduce_elevations,
)

from conftest import HEIGHT, WIDTH, gps_for_pixel, loaded_service, make_metadata, make_projection


def test_filtered_mean_when_enough_samples_in_band():
    sample = reduce_elevations(np.array([1.0, 2.0, 3.0, 100.0]), (0.0, 10.0), (0.0, 1.0))
    assert sample.strategy is ReductionStrategy.FILTERED_MEAN
    assert sample.elevation == pytest.approx(2.0)
    assert sample.in_band_count == 3
    assert sample.sample_count == 4
    assert sample.minimum == 1.0
    assert sample.maximum == 100.0


def test_band_edges_are_inclusive():
    sample = reduce_elevations(np.array([0.0, 10.0, 50.0]), (0.0, 10.0), (100.0, 200.0))
    assert sample.strategy is ReductionStrategy.FILTERED_MEAN
    assert sample.elevation == pytest.approx(5.0)


def test_exactly_threshold_fraction_in_band_is_not_enough():
    values = np.array([1.0, 2.0, 3.0] + [100.0] * 7)
    sample = reduce_elevations(values, (0.0, 10.0), (0.0, 200.0), min_in_band_fraction=0.3)
    assert sample.strategy is ReductionStrategy.MEAN
    assert sample.elevation == pytest.approx(70.6)


def test_raw_mean_used_inside_secondary_band():
    sample = reduce_elevations(np.array([2.0, 18.0]), (0.0, 1.0), (5.0, 15.0))
    assert sample.strategy is ReductionStrategy.MEAN
    assert sample.elevation == pytest.approx(10.0)


def test_secondary_band_is_exclusive():
    sample = reduce_elevations(np.array([0.0, 10.0]), (100.0, 200.0), (5.0, 15.0))
    assert sample.strategy is ReductionStrategy.MEDIAN


def test_median_is_upper_middle_of_sorted_samples():
    sample = reduce_elevations(np.array([200.0, -50.0, 100.0, -40.0]), (0.0, 10.0), (0.0, 1.0))
    assert sample.strategy is ReductionStrategy.MEDIAN
    assert sample.elevation == pytest.approx(100.0)
    assert sample.median == pytest.approx(100.0)


def test_no_samples_gives_none():
    assert reduce_elevations(np.array([]), (0.0, 1.0), (0.0, 1.0)) is None


def test_default_bands_follow_elevation_range():
    plausible, secondary = SamplingPolicy().resolve_bands(ElevationRange(-5.0, 26.124))
    assert plausible == pytest.approx((-3.0, 20.0), abs=1e-9)
    assert secondary == pytest.approx((2.0, 15.0), abs=1e-9)


def test_explicit_bands_take_precedence():
    policy = SamplingPolicy(plausible_band_m=(1.0, 2.0), secondary_band_m=(3.0, 4.0))
    assert policy.resolve_bands(ElevationRange(0.0, 100.0)) == ((1.0, 2.0), (3.0, 4.0))


@pytest.mark.parametrize("radius, stride, expected", [(25, None, 2), (5, None, 1), (25, 5, 5), (25, 0, 2)])
def test_effective_stride(radius, stride, expected):
    assert SamplingPolicy(radius=radius, stride=stride).effective_stride == expected


def test_flat_raster_elevation(flat_pixels):
    service = loaded_service(flat_pixels)
    elevation = service.elevation_at(gps_for_pixel(50, 25))
    assert elevation == pytest.approx(128.0)


def test_project_to_raster_centre():
    service = TerrainElevationService(HeightmapStore(make_metadata()), make_projection())
    assert service.project_to_raster(GpsCoordinate(0.0, 0.0)) == (WIDTH // 2, HEIGHT // 2)
    assert service.project_to_raster(gps_for_pixel(3, 47)) == (3, 47)


def test_unloaded_store_gives_none():
    service = TerrainElevationService(HeightmapStore(make_metadata()), make_projection())
    assert not service.is_available()
    assert service.elevation_at(GpsCoordinate(0.0, 0.0)) is None


def test_outside_raster_gives_none(flat_pixels):
    service = loaded_service(flat_pixels)
    outside = GpsCoordinate(0.01, 0.0)
    assert not service.covers(outside)
    assert service.elevation_at(outside) is None


def test_fully_transparent_window_gives_none():
    pixels = np.zeros((HEIGHT, WIDTH, 4), dtype=np.uint8)
    service = loaded_service(pixels)
    assert service.elevation_at(gps_for_pixel(50, 25)) is None


def test_window_is_clipped_at_raster_corner(flat_pixels):
    service = loaded_service(flat_pixels)
    sample = service.sample_at(gps_for_pixel(0, 0))
    assert sample is not None
    assert sample.elevation == pytest.approx(128.0)
    # radius 25 / stride 2 samples odd offsets; 1..25 stay inside on each axis.
    assert sample.sample_count == 13 * 13


def test_black_artefacts_are_filtered_out(flat_pixels):
    pixels = flat_pixels.copy()
    pixels[:, 1::4] = 0
    service = loaded_service(pixels)
    sample = service.sample_at(gps_for_pixel(50, 25))
    assert sample.strategy is ReductionStrategy.FILTERED_MEAN
    assert sample.elevation == pytest.approx(128.0)
    assert sample.minimum == pytest.approx(0.0)


def test_mixed_outliers_do_not_drag_the_mean(flat_pixels):
    pixels = flat_pixels.copy()
    columns = np.arange(WIDTH)
    # Around x = 50 the window samples odd columns 25..75: three dropouts and two
    # saturated columns out of 26, both outside the default plausible band.
    pixels[:, columns % 20 == 11] = 0
    pixels[:, columns % 20 == 3] = 255
    service = loaded_service(pixels)
    sample = service.sample_at(gps_for_pixel(50, 25))
    assert sample.strategy is ReductionStrategy.FILTERED_MEAN
    assert sample.elevation == pytest.approx(128.0)
    assert sample.minimum == pytest.approx(0.0)
    assert sample.maximum == pytest.approx(255.0)


def test_small_policy_reads_local_step(step_pixels):
    policy = SamplingPolicy(radius=2, plausible_band_m=(-1000.0, 1000.0))
    service = loaded_service(step_pixels, policy)
    assert service.elevation_at(gps_for_pixel(10, 25)) == pytest.approx(50.0)
    assert service.elevation_at(gps_for_pixel(90, 25)) == pytest.approx(200.0)
