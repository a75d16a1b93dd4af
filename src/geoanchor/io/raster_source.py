"""Raster sources: read bytes, decode, and reduce to a brightness plane."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import cv2
import numpy as np
from loguru import logger

from ..errors import DecodeError


@dataclass(slots=True, frozen=True)
class DecodedRaster:
    """Single-channel brightness plane plus validity mask.

    ``brightness`` is float32 in ``[0, 255]`` with shape ``(rows, cols)``.
    ``valid`` is False where the source pixel was fully transparent.
    """

    brightness: np.ndarray
    valid: np.ndarray

    @property
    def shape(self) -> tuple[int, int]:
        return int(self.brightness.shape[0]), int(self.brightness.shape[1])


class RasterSource(Protocol):
    """Anything that can produce a decoded heightmap raster.

    ``read`` is blocking and may raise :class:`DecodeError`.
    """

    def read(self) -> DecodedRaster:
        ...


def decode_pixels(pixels: np.ndarray) -> DecodedRaster:
    """Reduce an OpenCV-ordered pixel array to brightness and validity.

    Grey pixels (channels within one level of each other) use the red channel
    directly; coloured pixels fall back to Rec. 601 luminance. An alpha of 0
    marks the pixel invalid. 16-bit input is rescaled to 8-bit levels.
    """
    if pixels is None or pixels.size == 0:
        raise DecodeError("Raster is empty")

    if pixels.dtype == np.uint8:
        data = pixels.astype(np.float32)
    elif pixels.dtype == np.uint16:
        logger.debug("Raster detected as uint16; rescaling to 8-bit brightness levels")
        data = pixels.astype(np.float32) / 257.0
    else:
        raise DecodeError(f"Unsupported raster dtype: {pixels.dtype}")

    if data.ndim == 3 and data.shape[2] == 1:
        data = data[:, :, 0]

    if data.ndim == 2:
        return DecodedRaster(
            brightness=np.ascontiguousarray(data),
            valid=np.ones(data.shape, dtype=bool),
        )

    if data.ndim != 3 or data.shape[2] not in (3, 4):
        raise DecodeError(f"Unsupported raster layout with shape {pixels.shape}")

    blue = data[:, :, 0]
    green = data[:, :, 1]
    red = data[:, :, 2]
    is_grey = (np.abs(red - green) <= 1.0) & (np.abs(red - blue) <= 1.0)
    luminance = 0.299 * red + 0.587 * green + 0.114 * blue
    brightness = np.where(is_grey, red, luminance).astype(np.float32)

    if data.shape[2] == 4:
        valid = data[:, :, 3] > 0.0
    else:
        valid = np.ones(brightness.shape, dtype=bool)

    return DecodedRaster(
        brightness=np.ascontiguousarray(np.clip(brightness, 0.0, 255.0)),
        valid=np.ascontiguousarray(valid),
    )


@dataclass(slots=True, frozen=True)
class FileRasterSource:
    """Heightmap image on disk, decoded with OpenCV."""

    path: Path

    def read(self) -> DecodedRaster:
        try:
            pixels = cv2.imread(str(self.path), cv2.IMREAD_UNCHANGED)
        except cv2.error as exc:
            raise DecodeError(f"OpenCV failed to read {self.path}: {exc}") from exc
        if pixels is None:
            raise DecodeError(f"Unable to read heightmap image: {self.path}")
        logger.debug("Loaded heightmap image {} with shape {}", self.path, pixels.shape)
        return decode_pixels(pixels)


@dataclass(slots=True, frozen=True)
class BytesRasterSource:
    """Encoded image bytes (PNG, TIFF, ...) already fetched into memory."""

    data: bytes
    label: str = "<bytes>"

    def read(self) -> DecodedRaster:
        buffer = np.frombuffer(self.data, dtype=np.uint8)
        if buffer.size == 0:
            raise DecodeError(f"Heightmap payload {self.label} is empty")
        try:
            pixels = cv2.imdecode(buffer, cv2.IMREAD_UNCHANGED)
        except cv2.error as exc:
            raise DecodeError(f"OpenCV failed to decode {self.label}: {exc}") from exc
        if pixels is None:
            raise DecodeError(f"Unable to decode heightmap payload {self.label}")
        logger.debug("Decoded heightmap payload {} with shape {}", self.label, pixels.shape)
        return decode_pixels(pixels)


@dataclass(slots=True, frozen=True)
class ArrayRasterSource:
    """Pixels that are already decoded, in OpenCV channel order."""

    pixels: np.ndarray

    def read(self) -> DecodedRaster:
        return decode_pixels(np.asarray(self.pixels))
