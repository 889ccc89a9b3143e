# Andy Zhao
"""
Image gradients and the 2x2 structure tensor.

Gradients:
  - 3x3 Scharr kernel, scaled by 1/32
  - a unit step gives ~0.5 per pixel, the same as a central difference

Structure tensor per pixel (unnormalised box sum over block_size x block_size):

    [ Ixx  Ixy ]     Ixx = sum(Ix*Ix)
    [ Ixy  Iyy ]     Ixy = sum(Ix*Iy)
                     Iyy = sum(Iy*Iy)

Border policy is BORDER_REPLICATE everywhere in the package
(gradients, box sums, pyramid smoothing, bilinear clamps) so detection
and tracking see the same edge extension.
"""

from __future__ import annotations

from dataclasses import dataclass

import cv2
import numpy as np

from ..errors import InvalidParameterError
from .types import FloatArray, ImageLike, as_gray_image, to_cv

BORDER_MODE = cv2.BORDER_REPLICATE
SCHARR_SCALE = 1.0 / 32.0


@dataclass(frozen=True, eq=False)
class StructureTensor:
    """Per-pixel (Ixx, Ixy, Iyy) planes, same shape as the source image."""
    ixx: FloatArray
    ixy: FloatArray
    iyy: FloatArray

    @property
    def shape(self) -> tuple[int, int]:
        return self.ixx.shape  # type: ignore[return-value]


def compute_gradients(image: ImageLike) -> tuple[FloatArray, FloatArray]:
    """
    Horizontal / vertical derivatives of a grayscale image.

    Returns:
      (Ix, Iy), each (H,W) float64
    """
    img = to_cv(as_gray_image(image).data)
    ix = cv2.Scharr(img, cv2.CV_64F, 1, 0, scale=SCHARR_SCALE, borderType=BORDER_MODE)
    iy = cv2.Scharr(img, cv2.CV_64F, 0, 1, scale=SCHARR_SCALE, borderType=BORDER_MODE)
    return ix, iy


def _box_sum(plane: FloatArray, block_size: int) -> FloatArray:
    # normalize=False -> plain sum over the block
    return cv2.boxFilter(
        plane, cv2.CV_64F, (block_size, block_size),
        normalize=False, borderType=BORDER_MODE,
    )


def structure_tensor(image: ImageLike, block_size: int = 3) -> StructureTensor:
    """
    Gradient outer products summed over a local block.

    block_size:
      - odd, >= 1
      - 1 means no neighbourhood (raw per-pixel products)
    """
    if block_size < 1 or block_size % 2 == 0:
        raise InvalidParameterError(f"block_size must be odd and >= 1, got {block_size}")

    ix, iy = compute_gradients(image)
    return StructureTensor(
        ixx=_box_sum(ix * ix, block_size),
        ixy=_box_sum(ix * iy, block_size),
        iyy=_box_sum(iy * iy, block_size),
    )


def min_eigenvalue(tensor: StructureTensor) -> FloatArray:
    """
    Smaller eigenvalue of [[Ixx, Ixy], [Ixy, Iyy]] per pixel (Shi-Tomasi score).

    Closed form for a symmetric 2x2 matrix:
        lambda_min = (a + c)/2 - sqrt(((a - c)/2)^2 + b^2)
    """
    half_trace = 0.5 * (tensor.ixx + tensor.iyy)
    half_diff = 0.5 * (tensor.ixx - tensor.iyy)
    return half_trace - np.sqrt(half_diff * half_diff + tensor.ixy * tensor.ixy)
