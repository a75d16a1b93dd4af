"""Heightmap decoding and storage."""

from .heightmap_store import HeightmapStore, configure_shared_store, shared_store
from .raster_source import (
    ArrayRasterSource,
    BytesRasterSource,
    DecodedRaster,
    FileRasterSource,
    RasterSource,
    decode_pixels,
)

__all__ = [
    "ArrayRasterSource",
    "BytesRasterSource",
    "DecodedRaster",
    "FileRasterSource",
    "HeightmapStore",
    "RasterSource",
    "configure_shared_store",
    "decode_pixels",
    "shared_store",
]
