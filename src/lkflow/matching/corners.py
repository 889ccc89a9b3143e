# Andy Zhao
"""
Corners / keypoint detection

Shi–Tomasi "good features to track":
  1) structure tensor per pixel (Scharr gradients, box sum over block_size)
  2) score = smaller eigenvalue of the tensor
  3) drop scores < quality_level * best score
  4) 3x3 non-maximum suppression
  5) strongest first (ties: row-major scan order)
  6) greedy spacing: reject anything closer than min_distance to an accepted point

Single-scale on purpose: detection runs on the base image only,
tracking is the multi-scale part.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional

import cv2
import numpy as np

from ..config import DEFAULT_BLOCK_SIZE, DEFAULT_MIN_DISTANCE, DEFAULT_QUALITY_LEVEL
from ..errors import InvalidParameterError
from ..imaging.gradients import BORDER_MODE, min_eigenvalue, structure_tensor
from ..imaging.types import ImageLike, Points2D, as_gray_image

logger = logging.getLogger(__name__)

# Scores at or below this are rounding noise, not texture.
_RESPONSE_FLOOR = 1e-12

_NMS_KERNEL = np.ones((3, 3), dtype=np.uint8)


@dataclass(frozen=True)
class ShiTomasiParams:
    """
    Parameters for Shi–Tomasi corner detection.

    quality_level:
      - Rejects corners with response < quality_level * best_response.
      - Must be in (0, 1].
    min_distance:
      - Minimum allowed Euclidean distance between returned corners (px).
    block_size:
      - Size of neighborhood used for corner score (odd).
    max_corners:
      - Keep only the strongest max_corners (None = keep all).
      - Applied by shitomasi_detect(), not by good_features_to_track().
    """
    quality_level: float = DEFAULT_QUALITY_LEVEL
    min_distance: float = DEFAULT_MIN_DISTANCE
    block_size: int = DEFAULT_BLOCK_SIZE
    max_corners: Optional[int] = None


def _empty_points() -> Points2D:
    return np.zeros((0, 2), dtype=np.float64)


def _enforce_min_distance(pts: Points2D, min_distance: float) -> Points2D:
    """
    Greedy spacing filter over points already sorted strongest-first.

    Accepted points are bucketed in a grid with cell size min_distance,
    so any conflicting point is within the 3x3 block of cells around a candidate.
    """
    if min_distance <= 0 or pts.shape[0] == 0:
        return pts

    cell = float(min_distance)
    min_dist_sq = cell * cell
    grid: dict[tuple[int, int], list[tuple[float, float]]] = {}
    keep = np.zeros(pts.shape[0], dtype=bool)

    for i, (x, y) in enumerate(pts):
        cx, cy = int(math.floor(x / cell)), int(math.floor(y / cell))

        too_close = False
        for gy in range(cy - 1, cy + 2):
            for gx in range(cx - 1, cx + 2):
                for (px, py) in grid.get((gx, gy), ()):
                    if (x - px) ** 2 + (y - py) ** 2 < min_dist_sq:
                        too_close = True
                        break
                if too_close:
                    break
            if too_close:
                break

        if not too_close:
            grid.setdefault((cx, cy), []).append((float(x), float(y)))
            keep[i] = True

    return pts[keep]


def good_features_to_track(
        image: ImageLike,
        quality_level: float = DEFAULT_QUALITY_LEVEL,
        min_distance: float = DEFAULT_MIN_DISTANCE,
        *,
        block_size: int = DEFAULT_BLOCK_SIZE,
) -> Points2D:
    """
    Detect Shi–Tomasi corners on a grayscale image.

    Input:
      image: GrayscaleImage or (H,W) array
    Output:
      pts: (N,2) float64 (x, y), strongest first.
           Empty (0,2) for a uniform image.
    """
    if not (0.0 < quality_level <= 1.0):
        raise InvalidParameterError(f"quality_level must be in (0, 1], got {quality_level}")
    if not min_distance >= 0:
        raise InvalidParameterError(f"min_distance must be >= 0, got {min_distance}")

    gray = as_gray_image(image)
    response = min_eigenvalue(structure_tensor(gray, block_size))

    max_response = float(response.max())
    if max_response <= _RESPONSE_FLOOR:
        logger.debug("no texture: max response %.3g", max_response)
        return _empty_points()

    threshold = quality_level * max_response

    # A pixel is a local max if dilation (3x3 max filter) leaves it unchanged.
    local_max = cv2.dilate(response, _NMS_KERNEL, borderType=BORDER_MODE)
    candidates = (response >= threshold) & (response >= local_max)

    # flatnonzero is row-major, and a stable sort keeps that order for ties
    flat_idx = np.flatnonzero(candidates)
    scores = response.ravel()[flat_idx]
    flat_idx = flat_idx[np.argsort(-scores, kind="stable")]

    ys, xs = np.divmod(flat_idx, gray.width)
    pts = np.column_stack([xs, ys]).astype(np.float64)

    out = _enforce_min_distance(pts, min_distance)
    logger.debug(
        "shi-tomasi: max=%.3g threshold=%.3g local maxima=%d spaced=%d",
        max_response, threshold, pts.shape[0], out.shape[0],
    )
    return out


def shitomasi_detect(
        gray: ImageLike,
        *,
        params: ShiTomasiParams = ShiTomasiParams(),
) -> Points2D:
    """
    Detect corners using a parameter object, then apply max_corners.

    Input:
      gray: (H,W) grayscale image (uint8 preferred)
    Output:
      pts: (N,2) float64 points
    """
    pts = good_features_to_track(
        gray,
        params.quality_level,
        params.min_distance,
        block_size=params.block_size,
    )

    if params.max_corners is not None:
        if params.max_corners < 0:
            raise InvalidParameterError(f"max_corners must be >= 0, got {params.max_corners}")
        pts = pts[:params.max_corners]

    return pts
