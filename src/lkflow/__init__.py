"""
lkflow - sparse optical flow

Shi–Tomasi corner detection and pyramidal Lucas–Kanade tracking
on in-memory grayscale images.

Quick start:
    >>> from lkflow import build_pyramid, good_features_to_track, calc_optical_flow
    >>> pts = good_features_to_track(prev_gray, 0.1, 5)
    >>> prev_pyr = build_pyramid(prev_gray, 4, min_size=21)
    >>> next_pyr = build_pyramid(next_gray, 4, min_size=21)
    >>> result = calc_optical_flow(prev_pyr, next_pyr, pts, 21, 30)
    >>> tracked = result.points[result.tracked_mask]
"""

__version__ = "0.1.0"

from .errors import LKFlowError, InvalidParameterError
from .imaging import GrayscaleImage, ImagePyramid, as_gray_image, build_pyramid
from .matching import (
    good_features_to_track, shitomasi_detect, ShiTomasiParams,
    calc_optical_flow, lk_track, LKParams, FlowResult, FlowStatus, LostReason,
    clean_points, SparseFlowPipeline,
)

__all__ = [
    "__version__",
    "LKFlowError", "InvalidParameterError",
    "GrayscaleImage", "ImagePyramid", "as_gray_image", "build_pyramid",
    "good_features_to_track", "shitomasi_detect", "ShiTomasiParams",
    "calc_optical_flow", "lk_track", "LKParams", "FlowResult", "FlowStatus", "LostReason",
    "clean_points", "SparseFlowPipeline",
]
