# Andy Zhao
"""
Imaging package

This module provides:
- Immutable image / pyramid containers and NumPy typing aliases
- Scharr gradients and the structure tensor
- Bilinear window sampling
- Pyramid construction
"""

from .types import (
    FloatArray, BoolArray, StatusArray, Points2D, ImageArray, ImageLike,
    GrayscaleImage, ImagePyramid, as_gray_image, to_cv,
)

from .gradients import (
    StructureTensor, compute_gradients, structure_tensor, min_eigenvalue,
)

from .interpolation import window_in_bounds, sample_window, bilinear_sample

from .pyramid import build_pyramid, downsample, SMOOTHING_KERNEL

__all__ = [
    "FloatArray", "BoolArray", "StatusArray", "Points2D", "ImageArray", "ImageLike",
    "GrayscaleImage", "ImagePyramid", "as_gray_image", "to_cv",
    "StructureTensor", "compute_gradients", "structure_tensor", "min_eigenvalue",
    "window_in_bounds", "sample_window", "bilinear_sample",
    "build_pyramid", "downsample", "SMOOTHING_KERNEL",
]
