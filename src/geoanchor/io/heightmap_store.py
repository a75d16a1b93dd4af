"""Shared, load-once heightmap buffer.

The store moves ``UNLOADED -> LOADING -> READY`` or ``UNLOADED -> LOADING ->
FAILED``. Failure is permanent for the store's lifetime; terrain-aware
callers treat a non-ready store as "no terrain data" and carry on.
"""
from __future__ import annotations

import asyncio
from typing import Optional, Sequence, Tuple

import numpy as np
from loguru import logger

from ..errors import DecodeError, DimensionMismatchError, HeightmapError
from ..models.raster import HeightmapMetadata, HeightmapState
from .raster_source import RasterSource


class HeightmapStore:
    """Owns the decoded heightmap for the process lifetime."""

    def __init__(self, metadata: HeightmapMetadata) -> None:
        self.metadata = metadata
        self._state = HeightmapState.UNLOADED
        self._error: Optional[HeightmapError] = None
        self._brightness: Optional[np.ndarray] = None
        self._valid: Optional[np.ndarray] = None
        self._load_task: Optional[asyncio.Task] = None

    @property
    def state(self) -> HeightmapState:
        return self._state

    @property
    def error(self) -> Optional[HeightmapError]:
        """The failure that moved the store to ``FAILED``, if any."""
        return self._error

    def is_ready(self) -> bool:
        return self._state is HeightmapState.READY

    @property
    def brightness(self) -> Optional[np.ndarray]:
        """Read-only brightness plane, ``None`` until ready."""
        return self._brightness if self.is_ready() else None

    @property
    def valid_mask(self) -> Optional[np.ndarray]:
        return self._valid if self.is_ready() else None

    # ------------------------------------------------------------------
    async def load(self, source: RasterSource) -> HeightmapState:
        """Decode ``source`` into the store.

        Idempotent: a ready or failed store returns its state untouched, and
        callers arriving while a load is in flight wait for that same load.
        Any failure to read or decode the source, and a dimension mismatch,
        is recorded in :attr:`error` and never raised.
        """
        if self._state in (HeightmapState.READY, HeightmapState.FAILED):
            return self._state

        if self._load_task is None:
            self._state = HeightmapState.LOADING
            self._load_task = asyncio.create_task(self._load(source), name="heightmap-load")

        task = self._load_task
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            if task.cancelled():
                return self._state
            raise

    async def close(self) -> None:
        """Abandon an in-flight load; completed loads are unaffected."""
        task = self._load_task
        if task is None or task.done():
            return
        task.cancel()
        await asyncio.wait({task})
        # A task cancelled before its first step never reaches _load's handler.
        if task.cancelled() and self._load_task is task:
            self._state = HeightmapState.UNLOADED
            self._load_task = None

    async def _load(self, source: RasterSource) -> HeightmapState:
        try:
            decoded = await asyncio.to_thread(source.read)
        except asyncio.CancelledError:
            self._state = HeightmapState.UNLOADED
            self._load_task = None
            logger.info("Heightmap load abandoned before completion")
            raise
        except DecodeError as exc:
            return self._fail(exc)
        except OSError as exc:
            return self._fail(DecodeError(f"Unable to fetch heightmap: {exc}"))
        except Exception as exc:
            # Sources backed by third-party codecs raise their own error types.
            return self._fail(DecodeError(f"Unable to decode heightmap: {exc}"))

        if decoded.shape != self.metadata.shape:
            return self._fail(DimensionMismatchError(self.metadata.shape, decoded.shape))

        brightness = decoded.brightness
        valid = decoded.valid
        brightness.setflags(write=False)
        valid.setflags(write=False)

        self._brightness = brightness
        self._valid = valid
        self._state = HeightmapState.READY
        logger.info(
            "Heightmap ready: {}x{} px, elevation {:.2f}..{:.2f} m, {} transparent px",
            self.metadata.width,
            self.metadata.height,
            self.metadata.elevation_range.minimum,
            self.metadata.elevation_range.maximum,
            int(valid.size - np.count_nonzero(valid)),
        )
        return self._state

    def _fail(self, error: HeightmapError) -> HeightmapState:
        self._error = error
        self._state = HeightmapState.FAILED
        logger.warning("Heightmap unavailable, terrain-aware placement disabled: {}", error)
        return self._state

    # ------------------------------------------------------------------
    def sample_pixel(self, x: int, y: int) -> Optional[float]:
        """Brightness at pixel ``(x, y)``; ``None`` when there is no data."""
        if not self.is_ready() or not self.metadata.in_bounds(x, y):
            return None
        if not self._valid[y, x]:
            return None
        return float(self._brightness[y, x])

    def window(
        self,
        xs: Sequence[int],
        ys: Sequence[int],
    ) -> Optional[Tuple[np.ndarray, np.ndarray]]:
        """Brightness and validity on the grid ``ys x xs`` (in-bounds indices)."""
        if not self.is_ready():
            return None
        grid = np.ix_(np.asarray(ys, dtype=np.intp), np.asarray(xs, dtype=np.intp))
        return self._brightness[grid], self._valid[grid]


_shared_store: Optional[HeightmapStore] = None


def configure_shared_store(metadata: HeightmapMetadata) -> HeightmapStore:
    """Create (or return) the process-wide store for ``metadata``."""
    global _shared_store
    if _shared_store is not None and _shared_store.metadata == metadata:
        return _shared_store
    if _shared_store is not None:
        logger.info("Replacing shared heightmap store for new metadata")
    _shared_store = HeightmapStore(metadata)
    return _shared_store


def shared_store() -> Optional[HeightmapStore]:
    return _shared_store
