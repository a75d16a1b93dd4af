"""Sobel edge heuristic over the lower part of a camera frame."""
from __future__ import annotations

import time

import cv2
import numpy as np

from ..models.ground_plane import EdgeAnalysis

ANALYSIS_SIZE = (160, 120)  # (width, height)
GROUND_REGION_START = 0.7
STRONG_EDGE_THRESHOLD = 0.3
HORIZONTAL_RATIO_THRESHOLD = 0.4
MIN_STRONG_EDGES = 10


def _to_grey(frame: np.ndarray) -> np.ndarray:
    """Average of the colour channels as float32; alpha is ignored."""
    if frame.ndim == 2:
        return frame.astype(np.float32)
    if frame.ndim == 3 and frame.shape[2] in (3, 4):
        return frame[..., :3].astype(np.float32).mean(axis=2)
    raise ValueError(f"Unsupported frame shape {frame.shape}")


def analyze_ground_edges(frame: np.ndarray) -> EdgeAnalysis:
    """Look for horizontal edges in the bottom 30 % of ``frame``.

    The frame is downsampled to 160x120 first so the cost is independent of
    camera resolution. Magnitudes are divided by 255 before thresholding.
    Raises ``ValueError`` for empty or oddly shaped frames and lets
    ``cv2.error`` propagate; callers decide how to degrade.
    """
    start = time.perf_counter()
    if frame.size == 0:
        raise ValueError("Empty frame")

    small = cv2.resize(frame, ANALYSIS_SIZE, interpolation=cv2.INTER_AREA)
    grey = _to_grey(small)

    gx = cv2.Sobel(grey, cv2.CV_32F, 1, 0, ksize=3)
    gy = cv2.Sobel(grey, cv2.CV_32F, 0, 1, ksize=3)

    height, width = grey.shape
    top = int(height * GROUND_REGION_START) + 1
    gx = gx[top : height - 1, 1 : width - 1]
    gy = gy[top : height - 1, 1 : width - 1]

    magnitude = np.sqrt(gx * gx + gy * gy) / 255.0
    strong = magnitude > STRONG_EDGE_THRESHOLD
    strong_count = int(np.count_nonzero(strong))
    horizontal = int(np.count_nonzero(strong & (np.abs(gy) > np.abs(gx))))

    horizontal_ratio = horizontal / max(1, strong_count)
    edge_strength = float(magnitude.mean()) if magnitude.size else 0.0

    return EdgeAnalysis(
        edge_count=strong_count,
        horizontal_ratio=horizontal_ratio,
        ground_line_detected=horizontal_ratio > HORIZONTAL_RATIO_THRESHOLD and strong_count > MIN_STRONG_EDGES,
        edge_strength=edge_strength,
        processing_ms=(time.perf_counter() - start) * 1000.0,
    )
