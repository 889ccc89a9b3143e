# Andy Zhao
"""
Bilinear sampling of square windows at subpixel positions.

A window of radius r centred at (cx, cy) covers the points
    (cx + i, cy + j),  i, j in [-r, r]
All of them share the same fractional offset, so one (2r+2)x(2r+2) integer
patch and a single pair of weights (fx, fy) give the whole window:

    out = (1-fy) * ((1-fx) P[y0, x0] + fx P[y0, x0+1])
        +    fy  * ((1-fx) P[y0+1, x0] + fx P[y0+1, x0+1])

Indices are clamped to the image (replicate border). Callers that need the
window strictly inside the image check window_in_bounds() first.
"""

from __future__ import annotations

import math

import numpy as np

from .types import FloatArray


def window_in_bounds(shape: tuple[int, int], cx: float, cy: float, radius: int) -> bool:
    """
    True if every sample of the window lies inside [0, w-1] x [0, h-1].
    """
    h, w = shape
    return (
        cx - radius >= 0.0
        and cy - radius >= 0.0
        and cx + radius <= w - 1
        and cy + radius <= h - 1
    )


def sample_window(plane: FloatArray, cx: float, cy: float, radius: int) -> FloatArray:
    """
    Bilinearly sample a (2r+1)x(2r+1) window of `plane` centred at (cx, cy).

    Returns:
      (2r+1, 2r+1) float64, row index = y offset, column index = x offset
    """
    h, w = plane.shape
    size = 2 * radius + 1

    fx_floor = math.floor(cx)
    fy_floor = math.floor(cy)
    fx = cx - fx_floor
    fy = cy - fy_floor

    # size + 1 integer rows/cols: the extra one is the "+1" neighbour
    xs = np.clip(np.arange(fx_floor - radius, fx_floor - radius + size + 1), 0, w - 1)
    ys = np.clip(np.arange(fy_floor - radius, fy_floor - radius + size + 1), 0, h - 1)
    patch = plane[np.ix_(ys, xs)]

    top = (1.0 - fx) * patch[:-1, :-1] + fx * patch[:-1, 1:]
    bottom = (1.0 - fx) * patch[1:, :-1] + fx * patch[1:, 1:]
    return (1.0 - fy) * top + fy * bottom


def bilinear_sample(plane: FloatArray, x: float, y: float) -> float:
    """Single subpixel sample (radius-0 window)."""
    return float(sample_window(plane, x, y, 0)[0, 0])
