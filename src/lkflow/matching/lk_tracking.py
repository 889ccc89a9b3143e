# Andy Zhao
"""
Pyramidal Lucas–Kanade (LK) sparse optical flow

For every seed point (independently):
  - start with displacement d = (0, 0) at the coarsest level
  - at each level, coarse -> fine:
      * p = seed / 2^level
      * sample previous intensities and gradients in a window around p
      * G = sum [[Ix^2, IxIy], [IxIy, Iy^2]]   (fixed for the level)
      * repeat:  b = sum [Ix, Iy] * (I_prev(p) - I_next(p + d))
                 delta = G^-1 b,  d += delta
        until |delta| < epsilon or max_iterations
      * d *= 2 before the next finer level
  - result = seed + d

A point that cannot be tracked (flat window, window leaves the image,
optionally no convergence) is reported as LOST in its own result slot.
Nothing per-point ever raises; only bad call arguments do.
"""
from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import IntEnum
from typing import Iterator, Optional, Sequence, Union

import numpy as np

from ..config import (
    DEFAULT_DET_EPSILON, DEFAULT_EPSILON, DEFAULT_LEVELS,
    DEFAULT_MAX_ITERATIONS, DEFAULT_WINDOW_SIZE,
)
from ..errors import InvalidParameterError
from ..imaging.gradients import compute_gradients
from ..imaging.interpolation import sample_window, window_in_bounds
from ..imaging.pyramid import build_pyramid
from ..imaging.types import (
    BoolArray, FloatArray, GrayscaleImage, ImageLike, ImagePyramid,
    Points2D, StatusArray,
)

logger = logging.getLogger(__name__)


class FlowStatus(IntEnum):
    LOST = 0
    TRACKED = 1


class LostReason(IntEnum):
    NONE = 0
    SINGULAR = 1        # det(G) too small: no 2D texture in the window
    OUT_OF_BOUNDS = 2   # sampling window left the image
    DIVERGED = 3        # ran out of iterations at some level


@dataclass(frozen=True)
class LKParams:
    """
    Parameters for pyramidal Lucas–Kanade tracking.

    window_size:
      - Side of the square window at each pyramid level (odd, >= 3).
      - Larger handles bigger motions but can be less precise.

    max_iterations / epsilon:
      - Per level, stop after max_iterations or once |delta| < epsilon (px).

    det_epsilon:
      - Window is "flat" if det(G) / N^2 < det_epsilon (N = window pixels).

    lost_on_divergence:
      - True (default): a level that runs out of iterations marks the point
        LOST with reason DIVERGED.
      - False: the point stays TRACKED with its last estimate and
        FlowResult.converged is False (OpenCV behaviour).

    levels:
      - Pyramid depth used by lk_track() when it builds pyramids itself.

    workers:
      - None / 1 = sequential; > 1 = thread pool over points.
    """
    window_size: int = DEFAULT_WINDOW_SIZE
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    epsilon: float = DEFAULT_EPSILON
    det_epsilon: float = DEFAULT_DET_EPSILON
    lost_on_divergence: bool = True
    levels: int = DEFAULT_LEVELS
    workers: Optional[int] = None


# ---------- Result container ----------
@dataclass(frozen=True, eq=False)
class FlowResult:
    """
    Per-point tracker output, positionally aligned with the input points.

    points:    (N,2) float64 positions in the next frame (level-0 coords)
    status:    (N,)  uint8, FlowStatus values (1 = TRACKED, 0 = LOST)
    reason:    (N,)  uint8, LostReason values
    converged: (N,)  bool, every level met the epsilon criterion
    error:     (N,)  float64, mean |I_prev - I_next| over the final window, NaN if LOST

    LOST points keep their last estimate in `points`. Use `status`, not the
    coordinates, to tell the two apart.
    """
    points: Points2D
    status: StatusArray
    reason: StatusArray
    converged: BoolArray
    error: FloatArray

    def __len__(self) -> int:
        return int(self.points.shape[0])

    def __iter__(self) -> Iterator[tuple[float, float, FlowStatus]]:
        for (x, y), st in zip(self.points, self.status):
            yield float(x), float(y), FlowStatus(int(st))

    @property
    def tracked_mask(self) -> BoolArray:
        return self.status == FlowStatus.TRACKED

    @property
    def num_tracked(self) -> int:
        return int(np.count_nonzero(self.tracked_mask))

    def lost_counts(self) -> dict[str, int]:
        """Number of LOST points per reason name."""
        return {
            r.name: int(np.count_nonzero(self.reason == r))
            for r in LostReason if r is not LostReason.NONE
        }


@dataclass(frozen=True)
class _PointOutcome:
    x: float
    y: float
    status: FlowStatus
    reason: LostReason
    converged: bool
    error: float


@dataclass(frozen=True, eq=False)
class _Level:
    """Read-only planes of one pyramid level, shared by all points."""
    prev: FloatArray
    next: FloatArray
    ix: FloatArray
    iy: FloatArray

    @property
    def shape(self) -> tuple[int, int]:
        return self.prev.shape  # type: ignore[return-value]


# ---------- Validation ----------
def _as_pyramid(pyr: Union[ImagePyramid, Sequence[ImageLike]], name: str) -> ImagePyramid:
    if isinstance(pyr, ImagePyramid):
        return pyr
    try:
        levels = tuple(
            lvl if isinstance(lvl, GrayscaleImage) else GrayscaleImage(lvl) for lvl in pyr
        )
    except TypeError as exc:
        raise InvalidParameterError(f"{name} must be an ImagePyramid or a sequence of images") from exc
    if not levels:
        raise InvalidParameterError(f"{name} must contain at least one level")
    # Smallest side actually present, so the window check below stays honest
    return ImagePyramid(levels=levels, min_size=min(levels[-1].shape))


def _validate_points(points: Points2D) -> Points2D:
    pts = np.asarray(points, dtype=np.float64)
    if pts.size == 0:
        return np.zeros((0, 2), dtype=np.float64)
    if pts.ndim != 2 or pts.shape[1] != 2:
        raise InvalidParameterError(f"points must be (N,2), got {pts.shape}")
    if not np.isfinite(pts).all():
        raise InvalidParameterError("points contain NaN or Inf")
    return pts


def _validate_settings(
        window_size: int,
        max_iterations: int,
        epsilon: float,
        det_epsilon: float,
        workers: Optional[int],
) -> None:
    if window_size < 3 or window_size % 2 == 0:
        raise InvalidParameterError(f"window_size must be odd and >= 3, got {window_size}")
    if max_iterations < 1:
        raise InvalidParameterError(f"max_iterations must be >= 1, got {max_iterations}")
    if not epsilon > 0:
        raise InvalidParameterError(f"epsilon must be > 0, got {epsilon}")
    if not det_epsilon >= 0:
        raise InvalidParameterError(f"det_epsilon must be >= 0, got {det_epsilon}")
    if workers is not None and workers < 1:
        raise InvalidParameterError(f"workers must be >= 1, got {workers}")


# ---------- Per-point solver ----------
def _track_point(
        levels: Sequence[_Level],
        seed_x: float,
        seed_y: float,
        radius: int,
        max_iterations: int,
        epsilon: float,
        det_epsilon: float,
        lost_on_divergence: bool,
) -> _PointOutcome:
    """
    Coarse-to-fine refinement of one point. Pure function of its inputs.
    """
    n_pixels = float((2 * radius + 1) ** 2)
    dx, dy = 0.0, 0.0
    converged = True

    def lost(reason: LostReason, scale: float) -> _PointOutcome:
        # d is in units of the current level
        return _PointOutcome(
            seed_x + dx * scale, seed_y + dy * scale,
            FlowStatus.LOST, reason, False, math.nan,
        )

    for level in range(len(levels) - 1, -1, -1):
        lv = levels[level]
        scale = float(2 ** level)
        px, py = seed_x / scale, seed_y / scale

        if not window_in_bounds(lv.shape, px, py, radius):
            return lost(LostReason.OUT_OF_BOUNDS, scale)

        prev_win = sample_window(lv.prev, px, py, radius)
        gx = sample_window(lv.ix, px, py, radius)
        gy = sample_window(lv.iy, px, py, radius)

        gxx = float(np.sum(gx * gx))
        gxy = float(np.sum(gx * gy))
        gyy = float(np.sum(gy * gy))
        det = gxx * gyy - gxy * gxy
        if det / (n_pixels * n_pixels) < det_epsilon or det <= 0.0:
            return lost(LostReason.SINGULAR, scale)

        level_converged = False
        for _ in range(max_iterations):
            qx, qy = px + dx, py + dy
            if not window_in_bounds(lv.shape, qx, qy, radius):
                return lost(LostReason.OUT_OF_BOUNDS, scale)

            diff = prev_win - sample_window(lv.next, qx, qy, radius)
            bx = float(np.sum(gx * diff))
            by = float(np.sum(gy * diff))

            # closed-form 2x2 inverse
            ddx = (gyy * bx - gxy * by) / det
            ddy = (gxx * by - gxy * bx) / det
            dx += ddx
            dy += ddy

            if math.hypot(ddx, ddy) < epsilon:
                level_converged = True
                break

        if not level_converged:
            converged = False
            if lost_on_divergence:
                return lost(LostReason.DIVERGED, scale)

        if level > 0:
            dx *= 2.0
            dy *= 2.0

    # Final window at level 0: must still be inside, gives the residual
    base = levels[0]
    fx, fy = seed_x + dx, seed_y + dy
    if not window_in_bounds(base.shape, fx, fy, radius):
        return lost(LostReason.OUT_OF_BOUNDS, 1.0)

    residual = (
        sample_window(base.prev, seed_x, seed_y, radius)
        - sample_window(base.next, fx, fy, radius)
    )
    return _PointOutcome(
        fx, fy, FlowStatus.TRACKED, LostReason.NONE, converged,
        float(np.mean(np.abs(residual))),
    )


# ---------- Public API ----------
def calc_optical_flow(
        prev_pyramid: Union[ImagePyramid, Sequence[ImageLike]],
        next_pyramid: Union[ImagePyramid, Sequence[ImageLike]],
        points: Points2D,
        window_size: int = DEFAULT_WINDOW_SIZE,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        *,
        epsilon: float = DEFAULT_EPSILON,
        det_epsilon: float = DEFAULT_DET_EPSILON,
        lost_on_divergence: bool = True,
        workers: Optional[int] = None,
) -> FlowResult:
    """
    Track `points` from the previous frame to the next one.

    Inputs:
        prev_pyramid, next_pyramid:
          - Pyramids of the two frames with the same depth and level sizes
            (build both with build_pyramid() and the same arguments).

        points:
          - (N,2) float array of (x, y) in level-0 coordinates of prev.

    Returns:
        FlowResult aligned 1:1 with points.

    Raises:
        InvalidParameterError for bad arguments (whole call).
    """
    prev_pyr = _as_pyramid(prev_pyramid, "prev_pyramid")
    next_pyr = _as_pyramid(next_pyramid, "next_pyramid")
    if not prev_pyr.is_compatible(next_pyr):
        raise InvalidParameterError(
            f"Pyramids differ: prev {prev_pyr.shapes} vs next {next_pyr.shapes}"
        )
    _validate_settings(window_size, max_iterations, epsilon, det_epsilon, workers)
    if prev_pyr.depth > 1 and window_size > prev_pyr.min_size:
        logger.warning(
            "window_size %d exceeds pyramid min_size %d; coarse-level windows "
            "will not fit and points may be lost there",
            window_size, prev_pyr.min_size,
        )
    pts = _validate_points(points)

    n = pts.shape[0]
    if n == 0:
        return FlowResult(
            points=np.zeros((0, 2), dtype=np.float64),
            status=np.zeros((0,), dtype=np.uint8),
            reason=np.zeros((0,), dtype=np.uint8),
            converged=np.zeros((0,), dtype=bool),
            error=np.zeros((0,), dtype=np.float64),
        )

    # Gradients of each previous level, computed once and shared read-only
    levels = []
    for prev_img, next_img in zip(prev_pyr, next_pyr):
        ix, iy = compute_gradients(prev_img)
        ix.setflags(write=False)
        iy.setflags(write=False)
        levels.append(_Level(prev=prev_img.data, next=next_img.data, ix=ix, iy=iy))

    radius = window_size // 2

    def run(pt: np.ndarray) -> _PointOutcome:
        return _track_point(
            levels, float(pt[0]), float(pt[1]), radius,
            max_iterations, epsilon, det_epsilon, lost_on_divergence,
        )

    if workers is None or workers == 1:
        outcomes = [run(pt) for pt in pts]
    else:
        # map() yields in input order
        with ThreadPoolExecutor(max_workers=workers) as pool:
            outcomes = list(pool.map(run, pts))

    result = FlowResult(
        points=np.array([(o.x, o.y) for o in outcomes], dtype=np.float64).reshape(n, 2),
        status=np.array([o.status for o in outcomes], dtype=np.uint8),
        reason=np.array([o.reason for o in outcomes], dtype=np.uint8),
        converged=np.array([o.converged for o in outcomes], dtype=bool),
        error=np.array([o.error for o in outcomes], dtype=np.float64),
    )

    logger.debug(
        "lk: %d points, %d levels, tracked=%d lost=%s not_converged=%d",
        n, prev_pyr.depth, result.num_tracked, result.lost_counts(),
        int(np.count_nonzero(~result.converged & result.tracked_mask)),
    )
    return result


def lk_track(
    gray0: ImageLike,
    gray1: ImageLike,
    pts0: Points2D,
    *,
    params: LKParams = LKParams(),
) -> FlowResult:
    """
    Track points from gray0 -> gray1, building both pyramids here.

    Inputs:
        gray0, gray1:
          - Grayscale images (H,W) of the same size, uint8 preferred.
          - If original image is color, need to convert to gray before tracking

        pts0:
          - (N,2) float array of keypoints in frame 0.

    Both pyramids use params.levels and min_size = params.window_size,
    so they always match.
    """
    pyr0 = build_pyramid(gray0, params.levels, min_size=params.window_size)
    pyr1 = build_pyramid(gray1, params.levels, min_size=params.window_size)

    return calc_optical_flow(
        pyr0,
        pyr1,
        pts0,
        params.window_size,
        params.max_iterations,
        epsilon=params.epsilon,
        det_epsilon=params.det_epsilon,
        lost_on_divergence=params.lost_on_divergence,
        workers=params.workers,
    )
