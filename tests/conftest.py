from __future__ import annotations

import asyncio

import numpy as np
import pytest

from geoanchor.io.heightmap_store import HeightmapStore
from geoanchor.io.raster_source import ArrayRasterSource
from geoanchor.math.projection import AffinePlanarProjection, PlanarCalibration
from geoanchor.models.geo import GpsCoordinate
from geoanchor.models.raster import ElevationRange, HeightmapMetadata, RasterExtent
from geoanchor.terrain.elevation import SamplingPolicy, TerrainElevationService

# 100 x 50 px raster over a 100 m x 50 m extent; 1 px per metre.
WIDTH = 100
HEIGHT = 50
METERS_PER_DEG = 100_000.0


def make_metadata(width: int = WIDTH, height: int = HEIGHT) -> HeightmapMetadata:
    return HeightmapMetadata(
        width=width,
        height=height,
        extent=RasterExtent(min_x=0.0, max_x=float(width), min_y=0.0, max_y=float(height)),
        elevation_range=ElevationRange(minimum=0.0, maximum=255.0),
    )


def make_projection() -> AffinePlanarProjection:
    return AffinePlanarProjection(
        PlanarCalibration(
            center_lon=0.0,
            center_lat=0.0,
            center_x=WIDTH / 2.0,
            center_y=HEIGHT / 2.0,
            meters_per_deg_lon=METERS_PER_DEG,
            meters_per_deg_lat=METERS_PER_DEG,
        )
    )


def gps_for_pixel(pixel_x: float, pixel_y: float) -> GpsCoordinate:
    """GPS coordinate landing inside pixel ``(pixel_x, pixel_y)`` of the test raster."""
    x = pixel_x + 0.5
    y = HEIGHT - (pixel_y + 0.5)
    return GpsCoordinate(
        longitude=(x - WIDTH / 2.0) / METERS_PER_DEG,
        latitude=(y - HEIGHT / 2.0) / METERS_PER_DEG,
    )


def loaded_service(pixels: np.ndarray, policy: SamplingPolicy | None = None) -> TerrainElevationService:
    metadata = make_metadata(width=pixels.shape[1], height=pixels.shape[0])
    store = HeightmapStore(metadata)
    asyncio.run(store.load(ArrayRasterSource(pixels)))
    return TerrainElevationService(store, make_projection(), policy)


@pytest.fixture
def metadata() -> HeightmapMetadata:
    return make_metadata()


@pytest.fixture
def flat_pixels() -> np.ndarray:
    return np.full((HEIGHT, WIDTH), 128, dtype=np.uint8)


@pytest.fixture
def step_pixels() -> np.ndarray:
    """West half at brightness 50, east half at 200."""
    pixels = np.full((HEIGHT, WIDTH), 50, dtype=np.uint8)
    pixels[:, WIDTH // 2 :] = 200
    return pixels
