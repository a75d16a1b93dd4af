"""Deploy-time configuration: heightmap metadata and experience offsets.

Both are plain JSON documents supplied with the content bundle. Malformed
documents raise ``ValueError`` at load time; nothing here is consulted per
frame.
"""
from __future__ import annotations

from dataclasses import dataclass, field
import json
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from loguru import logger

from .io.heightmap_store import HeightmapStore
from .io.raster_source import FileRasterSource
from .math.projection import AffinePlanarProjection, CrsPlanarProjection, PlanarCalibration, PlanarProjection
from .models.raster import ElevationRange, HeightmapMetadata, RasterExtent
from .terrain.elevation import SamplingPolicy, TerrainElevationService

DEFAULT_PROFILE_KEY = "default"


@dataclass(slots=True, frozen=True)
class ExperienceProfile:
    """Vertical placement defaults for one content type."""

    default_elevation_offset: float = 0.0
    requires_terrain: bool = True
    description: str = ""


DEFAULT_EXPERIENCE_PROFILES: Dict[str, ExperienceProfile] = {
    "mac": ExperienceProfile(0.0, True, "Ranger Mac point cloud"),
    "helen_s": ExperienceProfile(0.0, True, "Helen Fowler point cloud"),
    "volunteers": ExperienceProfile(0.0, True, "Volunteers point cloud"),
    "2200_bc": ExperienceProfile(0.0, True, "2200 BC canoe point cloud"),
    "lotus": ExperienceProfile(0.0, True, "Lotus morphing model"),
    "lily": ExperienceProfile(0.0, True, "Water lily morphing model"),
    "cattail": ExperienceProfile(0.0, True, "Cattail morphing model"),
    "2030-2105": ExperienceProfile(0.0, True, "Water rise system"),
    "1968": ExperienceProfile(0.0, False, "Smoke system"),
    DEFAULT_PROFILE_KEY: ExperienceProfile(0.0, True, "Generic AR object"),
}


class ExperienceOffsetTable:
    """Maps experience types to profiles, falling back to ``"default"``."""

    def __init__(self, profiles: Optional[Mapping[str, ExperienceProfile]] = None) -> None:
        profiles = dict(DEFAULT_EXPERIENCE_PROFILES if profiles is None else profiles)
        if DEFAULT_PROFILE_KEY not in profiles:
            raise ValueError(f"Experience profiles must define a '{DEFAULT_PROFILE_KEY}' entry")
        self._profiles = profiles

    def resolve(self, experience_type: Optional[str]) -> ExperienceProfile:
        if experience_type is not None and experience_type in self._profiles:
            return self._profiles[experience_type]
        return self._profiles[DEFAULT_PROFILE_KEY]

    def default_offset(self, experience_type: Optional[str]) -> float:
        return self.resolve(experience_type).default_elevation_offset

    def __contains__(self, experience_type: object) -> bool:
        return experience_type in self._profiles

    def keys(self) -> list[str]:
        return sorted(self._profiles)


@dataclass(slots=True, frozen=True)
class TerrainConfig:
    """Everything needed to build a terrain service for one site."""

    metadata: HeightmapMetadata
    projection: PlanarProjection
    sampling: SamplingPolicy = field(default_factory=SamplingPolicy)
    source_path: Optional[Path] = None


def load_experience_profiles(path: Path) -> ExperienceOffsetTable:
    """Read ``{key: {default_elevation_offset, requires_terrain, description}}``."""
    document = _read_json(path)
    profiles = {}
    for key, entry in document.items():
        if not isinstance(entry, Mapping):
            raise ValueError(f"Experience profile {key!r} in {path} must be an object")
        profiles[str(key)] = ExperienceProfile(
            default_elevation_offset=float(entry.get("default_elevation_offset", 0.0)),
            requires_terrain=bool(entry.get("requires_terrain", True)),
            description=str(entry.get("description", "")),
        )
    logger.info("Loaded {} experience profiles from {}", len(profiles), path)
    return ExperienceOffsetTable(profiles)


def load_terrain_config(path: Path) -> TerrainConfig:
    """Parse a heightmap metadata document; ``source`` resolves next to it."""
    resolved = path.expanduser().resolve()
    document = _read_json(resolved)
    config = parse_terrain_config(document, base_dir=resolved.parent)
    logger.info(
        "Loaded terrain config {}: {}x{} px, source={}",
        resolved,
        config.metadata.width,
        config.metadata.height,
        config.source_path,
    )
    return config


def parse_terrain_config(document: Mapping[str, Any], base_dir: Optional[Path] = None) -> TerrainConfig:
    try:
        extent_doc = document["extent"]
        range_doc = document["elevation_range"]
        metadata = HeightmapMetadata(
            width=int(document["width"]),
            height=int(document["height"]),
            pixel_size_m=float(document.get("pixel_size_m", 1.0)),
            extent=RasterExtent(
                min_x=float(extent_doc["min_x"]),
                max_x=float(extent_doc["max_x"]),
                min_y=float(extent_doc["min_y"]),
                max_y=float(extent_doc["max_y"]),
            ),
            elevation_range=ElevationRange(
                minimum=float(range_doc["min"]),
                maximum=float(range_doc["max"]),
            ),
        )
        projection = _parse_projection(document["projection"])
    except KeyError as exc:
        raise ValueError(f"Terrain config is missing required key {exc}") from exc

    sampling = _parse_sampling(document.get("sampling", {}))

    source_path = None
    if document.get("source"):
        source_path = Path(document["source"])
        if base_dir is not None and not source_path.is_absolute():
            source_path = base_dir / source_path

    return TerrainConfig(metadata=metadata, projection=projection, sampling=sampling, source_path=source_path)


def build_terrain_service(
    config: TerrainConfig,
    store: Optional[HeightmapStore] = None,
) -> TerrainElevationService:
    """Wire a terrain service; the store still has to be loaded by the caller."""
    store = store or HeightmapStore(config.metadata)
    if store.metadata != config.metadata:
        raise ValueError("Heightmap store metadata does not match the terrain config")
    return TerrainElevationService(store, config.projection, config.sampling)


def default_raster_source(config: TerrainConfig) -> FileRasterSource:
    if config.source_path is None:
        raise ValueError("Terrain config does not name a heightmap source")
    return FileRasterSource(config.source_path)


def _parse_projection(doc: Mapping[str, Any]) -> PlanarProjection:
    kind = str(doc.get("type", "affine")).lower()
    if kind == "affine":
        return AffinePlanarProjection(
            PlanarCalibration(
                center_lon=float(doc["center_lon"]),
                center_lat=float(doc["center_lat"]),
                center_x=float(doc["center_x"]),
                center_y=float(doc["center_y"]),
                meters_per_deg_lon=float(doc["meters_per_deg_lon"]),
                meters_per_deg_lat=float(doc.get("meters_per_deg_lat", 111_000.0)),
            )
        )
    if kind == "crs":
        return CrsPlanarProjection(str(doc["crs"]))
    raise ValueError(f"Unknown projection type: {kind!r}")


def _parse_sampling(doc: Mapping[str, Any]) -> SamplingPolicy:
    def band(key: str) -> Optional[tuple[float, float]]:
        value = doc.get(key)
        if value is None:
            return None
        low, high = value
        if not float(high) > float(low):
            raise ValueError(f"Sampling band {key} must be increasing, got {value}")
        return (float(low), float(high))

    stride = doc.get("stride")
    return SamplingPolicy(
        radius=int(doc.get("radius", 25)),
        stride=None if stride is None else int(stride),
        min_in_band_fraction=float(doc.get("min_in_band_fraction", 0.3)),
        plausible_band_m=band("plausible_band_m"),
        secondary_band_m=band("secondary_band_m"),
    )


def _read_json(path: Path) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as stream:
            document = json.load(stream)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(document, dict):
        raise ValueError(f"Expected a JSON object in {path}")
    return document
