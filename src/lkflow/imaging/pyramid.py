# Andy Zhao
"""
Gaussian-style image pyramid.

  level 0   : the input image, unchanged
  level k+1 : smooth(level k) with the separable binomial [1 4 6 4 1]/16,
              then keep rows/cols 0, 2, 4, ...  -> floor(w/2) x floor(h/2)

Keeping the even samples means pixel i of level k sits exactly at
base coordinate i * 2^k, which is what the tracker assumes when it
scales a point by 1 / 2^k.

The kernel is fixed: previous and next frame pyramids must be built the
same way for coarse-to-fine tracking to make sense.
"""

from __future__ import annotations

import logging

import cv2
import numpy as np

from ..config import DEFAULT_WINDOW_SIZE
from ..errors import InvalidParameterError
from .gradients import BORDER_MODE
from .types import GrayscaleImage, ImageLike, ImagePyramid, as_gray_image, to_cv

logger = logging.getLogger(__name__)

# Binomial approximation of a Gaussian, sigma ~ 1
SMOOTHING_KERNEL = np.array([1.0, 4.0, 6.0, 4.0, 1.0], dtype=np.float64) / 16.0


def downsample(image: GrayscaleImage) -> GrayscaleImage:
    """One pyramid step: smooth, then drop every odd row and column."""
    h2, w2 = image.height // 2, image.width // 2
    if h2 < 1 or w2 < 1:
        raise InvalidParameterError(f"Cannot downsample an image of shape {image.shape}")

    smoothed = cv2.sepFilter2D(
        to_cv(image.data), cv2.CV_64F, SMOOTHING_KERNEL, SMOOTHING_KERNEL,
        borderType=BORDER_MODE,
    )
    return GrayscaleImage(smoothed[0:2 * h2:2, 0:2 * w2:2])


def build_pyramid(
        image: ImageLike,
        levels: int,
        *,
        min_size: int = DEFAULT_WINDOW_SIZE,
) -> ImagePyramid:
    """
    Build an image pyramid with at most `levels` levels.

    Inputs:
      image:
        - GrayscaleImage or (H,W) array (uint8/uint16/float)
      levels:
        - requested depth, >= 1 (1 = just the original image)
      min_size:
        - stop before a level whose width or height would be < min_size
        - pass the tracking window size so every level can hold a window

    Returns:
      ImagePyramid, depth <= levels
    """
    if levels < 1:
        raise InvalidParameterError(f"levels must be >= 1, got {levels}")
    if min_size < 1:
        raise InvalidParameterError(f"min_size must be >= 1, got {min_size}")

    base = as_gray_image(image)
    pyramid = [base]

    for level in range(1, levels):
        prev = pyramid[-1]
        if prev.width // 2 < min_size or prev.height // 2 < min_size:
            logger.debug(
                "pyramid stopped at %d/%d levels: level %d would be %dx%d (< %d)",
                len(pyramid), levels, level, prev.width // 2, prev.height // 2, min_size,
            )
            break
        pyramid.append(downsample(prev))

    logger.debug("built pyramid: %s", [lvl.shape for lvl in pyramid])
    return ImagePyramid(levels=tuple(pyramid), min_size=min_size)
