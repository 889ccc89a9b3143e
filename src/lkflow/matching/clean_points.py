# Andy Zhao
"""
Turn raw tracker output into usable correspondences.

Remove:
- LK failures (status == LOST)
- NaNs/Infs

Geometric outlier rejection (RANSAC etc.) is left to the caller.
"""

from __future__ import annotations

import numpy as np

from ..errors import InvalidParameterError
from ..imaging.types import BoolArray, Points2D
from .lk_tracking import FlowResult, FlowStatus


def clean_points(
    pts0: Points2D,
    result: FlowResult,
) -> tuple[Points2D, Points2D, BoolArray]:
    """
    Keep only the correspondences the tracker reported as TRACKED.

    Returns:
      pts0_clean: (M,2) seed points that were tracked
      pts1_clean: (M,2) their positions in the next frame
      mask:       (N,) bool, True where the pair was kept
    """
    pts0 = np.asarray(pts0, dtype=np.float64).reshape(-1, 2)
    pts1 = result.points

    if pts0.shape != pts1.shape:
        raise InvalidParameterError(
            f"Expected pts0 to match the flow result; got {pts0.shape} vs {pts1.shape}"
        )

    # status is the only signal for LOST, never the coordinates
    mask = result.status == FlowStatus.TRACKED

    # Check if points are finite
    mask &= np.isfinite(pts0).all(axis=1)
    mask &= np.isfinite(pts1).all(axis=1)

    return pts0[mask], pts1[mask], mask
