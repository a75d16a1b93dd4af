"""On-site calibration helpers: coverage checks and error summaries."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Tuple

import numpy as np
from loguru import logger

from .math.geodesy import forward_azimuth_deg, geodesic_distance_m
from .models.geo import GpsCoordinate
from .models.placement import AnchorPlacementResult
from .terrain.elevation import TerrainElevationService


@dataclass(slots=True, frozen=True)
class ElevationDistribution:
    """Summary of elevations sampled at random heightmap pixels."""

    sample_count: int
    minimum: float
    maximum: float
    median: float
    p25: float
    p75: float
    bucket_edges: Tuple[float, ...]
    bucket_counts: Tuple[int, ...]


def validate_anchor_coverage(
    service: TerrainElevationService,
    anchors: Mapping[str, GpsCoordinate],
) -> Dict[str, bool]:
    """Report which anchors fall inside the heightmap."""
    coverage = {name: service.covers(gps) for name, gps in anchors.items()}
    inside = sum(coverage.values())
    for name, covered in coverage.items():
        if not covered:
            logger.warning("Anchor {} lies outside the heightmap coverage", name)
    logger.info("Heightmap coverage: {} inside, {} outside", inside, len(coverage) - inside)
    return coverage


def elevation_distribution(
    service: TerrainElevationService,
    sample_count: int = 100,
    buckets: int = 10,
    rng: Optional[np.random.Generator] = None,
) -> Optional[ElevationDistribution]:
    """Area-sample random pixels to see how elevations spread over the raster."""
    if not service.is_available():
        return None

    rng = rng or np.random.default_rng()
    meta = service.metadata
    xs = rng.integers(0, meta.width, size=sample_count)
    ys = rng.integers(0, meta.height, size=sample_count)

    elevations = []
    for x, y in zip(xs, ys):
        sample = service.sample_pixel_area(int(x), int(y))
        if sample is not None:
            elevations.append(sample.elevation)
    if not elevations:
        return None

    values = np.sort(np.asarray(elevations, dtype=np.float64))
    value_range = meta.elevation_range
    edges = np.linspace(value_range.minimum, value_range.maximum, buckets + 1)
    counts, _ = np.histogram(np.clip(values, value_range.minimum, value_range.maximum), bins=edges)

    return ElevationDistribution(
        sample_count=int(values.size),
        minimum=float(values[0]),
        maximum=float(values[-1]),
        median=float(values[values.size // 2]),
        p25=float(values[int(values.size * 0.25)]),
        p75=float(values[int(values.size * 0.75)]),
        bucket_edges=tuple(float(e) for e in edges),
        bucket_counts=tuple(int(c) for c in counts),
    )


def describe_placement(
    result: AnchorPlacementResult,
    user_gps: GpsCoordinate,
    anchor_gps: GpsCoordinate,
) -> Dict[str, float]:
    """Compare a placement's spherical distance/bearing against WGS84."""
    ellipsoid_distance = geodesic_distance_m(user_gps, anchor_gps)
    ellipsoid_bearing = forward_azimuth_deg(user_gps, anchor_gps)
    bearing_error = (result.bearing_deg - ellipsoid_bearing + 180.0) % 360.0 - 180.0
    return {
        "distance_m": result.distance_m,
        "geodesic_distance_m": ellipsoid_distance,
        "distance_error_m": result.distance_m - ellipsoid_distance,
        "bearing_deg": result.bearing_deg,
        "geodesic_bearing_deg": ellipsoid_bearing,
        "bearing_error_deg": bearing_error,
        "horizontal_offset_m": result.position.horizontal_distance,
        "up_m": result.position.up,
    }
