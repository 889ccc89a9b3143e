# Andy Zhao

"""
Shared typed primitives for detection and tracking.

Defines:
- Typed NumPy aliases
    - Points are (N,2) float64 arrays of (x, y), x = column, y = row
    - Images are (H,W) float64 arrays
- GrayscaleImage: immutable single-channel image (the ingestion boundary)
- ImagePyramid: immutable multi-resolution stack, index 0 = finest
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, TypeAlias, Union

import numpy as np
import numpy.typing as npt

from ..errors import InvalidParameterError

# ---------- Numpy typing aliases ----------
# One internal representation: float64 everywhere.
# - uint8 / uint16 inputs are scaled to [0, 1] once, at ingestion
# - float inputs must already lie in [0, 1]

FloatArray: TypeAlias = npt.NDArray[np.float64]
BoolArray: TypeAlias = npt.NDArray[np.bool_]
StatusArray: TypeAlias = npt.NDArray[np.uint8]

# Points in level-0 image coordinates.
Points2D: TypeAlias = FloatArray      # shape: (N, 2)

# Single-channel intensity plane.
ImageArray: TypeAlias = FloatArray    # shape: (H, W)

# Rounding headroom for float input (pyramid smoothing can overshoot by ulps)
_RANGE_SLACK = 1e-9


def _to_float_samples(array: np.ndarray) -> ImageArray:
    """
    Convert any supported 2D array to a private, read-only float64 copy.
    """
    arr = np.asarray(array)
    if arr.ndim != 2:
        raise InvalidParameterError(
            f"Expected a single-channel (H,W) image, got shape {arr.shape}. "
            "Convert color frames to grayscale before calling."
        )
    if arr.shape[0] == 0 or arr.shape[1] == 0:
        raise InvalidParameterError(f"Image must be non-empty, got shape {arr.shape}")

    if arr.dtype == np.bool_:
        out = arr.astype(np.float64)
    elif np.issubdtype(arr.dtype, np.integer):
        # Integer pixels: scale by the dtype range (uint8 -> /255, uint16 -> /65535)
        out = arr.astype(np.float64) / float(np.iinfo(arr.dtype).max)
    elif np.issubdtype(arr.dtype, np.floating):
        out = np.array(arr, dtype=np.float64, copy=True)
    else:
        raise InvalidParameterError(f"Unsupported image dtype {arr.dtype}")

    if not np.isfinite(out).all():
        raise InvalidParameterError("Image contains NaN or Inf samples.")
    # Float pixels are taken as already normalised; thresholds assume [0, 1]
    lo, hi = float(out.min()), float(out.max())
    if lo < -_RANGE_SLACK or hi > 1.0 + _RANGE_SLACK:
        raise InvalidParameterError(
            f"Float images must lie in [0, 1], got [{lo:g}, {hi:g}]. "
            "Divide by the intensity range (e.g. 255) or pass integer pixels."
        )
    np.clip(out, 0.0, 1.0, out=out)

    out.setflags(write=False)
    return out


# ---------- Image ----------
# frozen=True plus a read-only array: nothing can change a frame once built.
@dataclass(frozen=True, eq=False)
class GrayscaleImage:
    """
    Immutable grayscale image.

    data:
      - (H,W) float64, row-major, read-only
      - integer inputs are normalised to [0, 1]
    """
    data: ImageArray

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", _to_float_samples(self.data))

    @property
    def width(self) -> int:
        return int(self.data.shape[1])

    @property
    def height(self) -> int:
        return int(self.data.shape[0])

    @property
    def shape(self) -> tuple[int, int]:
        """(height, width), NumPy order."""
        return (self.height, self.width)


ImageLike = Union[GrayscaleImage, np.ndarray]


def as_gray_image(image: ImageLike) -> GrayscaleImage:
    """
    Ingestion boundary: accept a GrayscaleImage or a 2D array.

    Existing GrayscaleImage objects are returned unchanged (no copy).
    """
    if isinstance(image, GrayscaleImage):
        return image
    return GrayscaleImage(image)


# ---------- Pyramid ----------
@dataclass(frozen=True, eq=False)
class ImagePyramid:
    """
    Multi-resolution stack of one frame.

    levels:
      - levels[0] is the original image
      - levels[k] is floor(w/2) x floor(h/2) of levels[k-1]
    min_size:
      - smallest width/height a level was allowed to have when built
    """
    levels: tuple[GrayscaleImage, ...]
    min_size: int = 1

    def __post_init__(self) -> None:
        levels = tuple(self.levels)
        if len(levels) == 0:
            raise InvalidParameterError("ImagePyramid needs at least one level.")
        for k in range(1, len(levels)):
            prev, cur = levels[k - 1], levels[k]
            if cur.width != prev.width // 2 or cur.height != prev.height // 2:
                raise InvalidParameterError(
                    f"Pyramid level {k} is {cur.shape}, expected "
                    f"{(prev.height // 2, prev.width // 2)}"
                )
        object.__setattr__(self, "levels", levels)

    @property
    def depth(self) -> int:
        return len(self.levels)

    @property
    def base(self) -> GrayscaleImage:
        return self.levels[0]

    @property
    def shapes(self) -> tuple[tuple[int, int], ...]:
        return tuple(level.shape for level in self.levels)

    def is_compatible(self, other: "ImagePyramid") -> bool:
        """Same depth and same per-level shapes (required by the tracker)."""
        return self.shapes == other.shapes

    def __len__(self) -> int:
        return len(self.levels)

    def __getitem__(self, index: int) -> GrayscaleImage:
        return self.levels[index]

    def __iter__(self) -> Iterator[GrayscaleImage]:
        return iter(self.levels)


# ---------- Helper Function ----------
def to_cv(array: np.ndarray) -> np.ndarray:
    """
    Hand an image plane to OpenCV.

    Image data is read-only, and some cv2 builds refuse non-writeable
    inputs, so give OpenCV its own writeable copy in that case.
    """
    if array.flags.writeable and array.flags.c_contiguous:
        return array
    return np.array(array, dtype=array.dtype, order="C", copy=True)
