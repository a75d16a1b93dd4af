"""Terrain elevation lookup on the shared heightmap.

Single-pixel reads are noisy near coverage edges: water and voids encode as
black, rasterisation seams as saturated white. Elevation is therefore taken
from a strided window around the target pixel and reduced with a policy that
prefers the typical nearby value over literal interpolation.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

import numpy as np
from loguru import logger

from ..io.heightmap_store import HeightmapStore
from ..math.projection import PlanarProjection, planar_to_pixel
from ..models.geo import GpsCoordinate
from ..models.raster import ElevationRange, HeightmapMetadata

Band = Tuple[float, float]

# Bands tuned on the reference site, whose heightmap spans -5 .. 26.124 m.
# Policies without explicit bands apply them as fractions of their own range.
REFERENCE_ELEVATION_RANGE = ElevationRange(minimum=-5.0, maximum=26.124)
REFERENCE_PLAUSIBLE_BAND_M: Band = (-3.0, 20.0)
REFERENCE_SECONDARY_BAND_M: Band = (2.0, 15.0)


def _band_fractions(band: Band, reference: ElevationRange) -> Band:
    return (
        (band[0] - reference.minimum) / reference.span,
        (band[1] - reference.minimum) / reference.span,
    )


DEFAULT_PLAUSIBLE_FRACTIONS: Band = _band_fractions(REFERENCE_PLAUSIBLE_BAND_M, REFERENCE_ELEVATION_RANGE)
DEFAULT_SECONDARY_FRACTIONS: Band = _band_fractions(REFERENCE_SECONDARY_BAND_M, REFERENCE_ELEVATION_RANGE)


class ReductionStrategy(Enum):
    """Which tier of the reducer produced the elevation."""

    FILTERED_MEAN = "filtered-mean"
    MEAN = "mean"
    MEDIAN = "median"

    def __str__(self) -> str:  # pragma: no cover - log friendly label
        return self.value


@dataclass(slots=True, frozen=True)
class SamplingPolicy:
    """Window size and outlier bands for area-averaged sampling.

    Attributes
    ----------
    radius:
        Half-width of the square window, in raster cells.
    stride:
        Step between sampled cells; defaults to ``max(1, radius // 10)``.
    min_in_band_fraction:
        The filtered mean is used only when strictly more than this share of
        samples lies inside ``plausible_band_m``.
    plausible_band_m:
        Inclusive elevation band, in metres, that excludes artefact values.
    secondary_band_m:
        Exclusive band the raw mean must fall in to be trusted when too few
        samples are plausible.
    """

    radius: int = 25
    stride: Optional[int] = None
    min_in_band_fraction: float = 0.3
    plausible_band_m: Optional[Band] = None
    secondary_band_m: Optional[Band] = None

    @property
    def effective_stride(self) -> int:
        if self.stride is not None and self.stride > 0:
            return int(self.stride)
        return max(1, self.radius // 10)

    def resolve_bands(self, elevation_range: ElevationRange) -> Tuple[Band, Band]:
        plausible = self.plausible_band_m or (
            elevation_range.fraction_to_elevation(DEFAULT_PLAUSIBLE_FRACTIONS[0]),
            elevation_range.fraction_to_elevation(DEFAULT_PLAUSIBLE_FRACTIONS[1]),
        )
        secondary = self.secondary_band_m or (
            elevation_range.fraction_to_elevation(DEFAULT_SECONDARY_FRACTIONS[0]),
            elevation_range.fraction_to_elevation(DEFAULT_SECONDARY_FRACTIONS[1]),
        )
        return plausible, secondary


@dataclass(slots=True, frozen=True)
class ElevationSample:
    """Outcome of one area-sampled elevation query."""

    elevation: float
    sample_count: int
    in_band_count: int
    strategy: ReductionStrategy
    minimum: float
    median: float
    maximum: float
    mean: float


def reduce_elevations(
    values: np.ndarray,
    plausible_band: Band,
    secondary_band: Band,
    min_in_band_fraction: float = 0.3,
) -> Optional[ElevationSample]:
    """Collapse window samples into one elevation.

    1. Mean of in-band samples, when enough of them are in band.
    2. Otherwise the raw mean, when it lies inside the secondary band.
    3. Otherwise the median.
    """
    samples = np.sort(np.asarray(values, dtype=np.float64).ravel())
    count = int(samples.size)
    if count == 0:
        return None

    mean = float(np.mean(samples))
    median = float(samples[count // 2])
    low, high = plausible_band
    in_band = samples[(samples >= low) & (samples <= high)]

    if in_band.size > count * min_in_band_fraction:
        elevation = float(np.mean(in_band))
        strategy = ReductionStrategy.FILTERED_MEAN
    elif secondary_band[0] < mean < secondary_band[1]:
        elevation = mean
        strategy = ReductionStrategy.MEAN
    else:
        elevation = median
        strategy = ReductionStrategy.MEDIAN

    return ElevationSample(
        elevation=elevation,
        sample_count=count,
        in_band_count=int(in_band.size),
        strategy=strategy,
        minimum=float(samples[0]),
        median=median,
        maximum=float(samples[-1]),
        mean=mean,
    )


class TerrainElevationService:
    """Resolves ground elevation at GPS coordinates.

    Every query degrades to ``None`` when data is missing: store not ready,
    coordinate outside the raster, or no valid pixels in the window.
    """

    def __init__(
        self,
        store: HeightmapStore,
        projection: PlanarProjection,
        policy: Optional[SamplingPolicy] = None,
    ) -> None:
        self.store = store
        self.projection = projection
        self.policy = policy or SamplingPolicy()

    @property
    def metadata(self) -> HeightmapMetadata:
        return self.store.metadata

    def is_available(self) -> bool:
        return self.store.is_ready()

    def project_to_raster(self, gps: GpsCoordinate) -> Tuple[int, int]:
        """GPS to integer pixel indices; may be out of bounds."""
        x, y = self.projection.to_planar(gps)
        meta = self.metadata
        return planar_to_pixel(x, y, meta.extent, meta.width, meta.height)

    def covers(self, gps: GpsCoordinate) -> bool:
        pixel_x, pixel_y = self.project_to_raster(gps)
        return self.metadata.in_bounds(pixel_x, pixel_y)

    def elevation_at(self, gps: GpsCoordinate) -> Optional[float]:
        """Best-estimate ground elevation in metres, or ``None``."""
        sample = self.sample_at(gps)
        return None if sample is None else sample.elevation

    def sample_at(self, gps: GpsCoordinate) -> Optional[ElevationSample]:
        if not self.store.is_ready():
            return None

        pixel_x, pixel_y = self.project_to_raster(gps)
        if not self.metadata.in_bounds(pixel_x, pixel_y):
            logger.debug(
                "GPS ({:.6f}, {:.6f}) maps to pixel ({}, {}) outside the heightmap",
                gps.longitude,
                gps.latitude,
                pixel_x,
                pixel_y,
            )
            return None

        sample = self.sample_pixel_area(pixel_x, pixel_y)
        if sample is not None:
            logger.debug(
                "GPS ({:.6f}, {:.6f}) -> {:.2f} m via {} over {} samples",
                gps.longitude,
                gps.latitude,
                sample.elevation,
                sample.strategy,
                sample.sample_count,
            )
        return sample

    def sample_pixel_area(self, pixel_x: int, pixel_y: int) -> Optional[ElevationSample]:
        """Area-sample the window centred on ``(pixel_x, pixel_y)``."""
        meta = self.metadata
        radius = self.policy.radius
        offsets = np.arange(-radius, radius + 1, self.policy.effective_stride)

        xs = pixel_x + offsets
        ys = pixel_y + offsets
        xs = xs[(xs >= 0) & (xs < meta.width)]
        ys = ys[(ys >= 0) & (ys < meta.height)]
        if xs.size == 0 or ys.size == 0:
            return None

        window = self.store.window(xs, ys)
        if window is None:
            return None
        brightness, valid = window

        values = meta.elevation_range.brightness_to_elevation(brightness[valid].astype(np.float64))
        if values.size == 0:
            logger.warning("No valid heightmap pixels around ({}, {})", pixel_x, pixel_y)
            return None

        plausible, secondary = self.policy.resolve_bands(meta.elevation_range)
        return reduce_elevations(values, plausible, secondary, self.policy.min_in_band_fraction)
