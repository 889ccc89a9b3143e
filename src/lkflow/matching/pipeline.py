# Andy Zhao
"""
Two-frame pipeline: corner detection + pyramids + LK tracking + cleaning

This class is STATELESS: every run() call gets both frames.
Multi-frame bookkeeping (re-detection, track IDs) belongs to the caller.

  prev_gray -> shitomasi_detect -> pts0 (truncated to max_corners)
  prev_gray, next_gray -> build_pyramid (same levels, same min_size)
  pyramids, pts0 -> calc_optical_flow -> FlowResult
  pts0, FlowResult -> clean_points -> (pts0_clean, pts1_clean)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import numpy as np

from ..imaging.pyramid import build_pyramid
from ..imaging.types import ImageLike, Points2D, as_gray_image
from ..errors import InvalidParameterError
from .clean_points import clean_points
from .corners import ShiTomasiParams, shitomasi_detect
from .lk_tracking import LKParams, calc_optical_flow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SparseFlowPipeline:
    """
    Sparse correspondences between two grayscale frames.

    - run(prev_gray, next_gray) -> (pts0, pts1, info)

    corner_params:
      Shi–Tomasi settings; max_corners truncates the strongest-first list.
    lk_params:
      LK settings; lk_params.levels is the pyramid depth and
      lk_params.window_size doubles as the pyramid min_size.
    """
    corner_params: ShiTomasiParams = field(default_factory=ShiTomasiParams)
    lk_params: LKParams = field(default_factory=LKParams)

    def run(
            self,
            prev_gray: ImageLike,
            next_gray: ImageLike,
            pts0: Optional[Points2D] = None,
    ) -> tuple[Points2D, Points2D, dict[str, Any]]:
        """
        Detect on prev_gray (unless pts0 is given) and track into next_gray.

        Returns:
          pts0_clean: (M,2) points in previous frame
          pts1_clean: (M,2) corresponding points in next frame
          info: small debug dict with counts / raw result
        """
        prev_img = as_gray_image(prev_gray)
        next_img = as_gray_image(next_gray)
        if prev_img.shape != next_img.shape:
            raise InvalidParameterError(
                f"Frames differ in size: {prev_img.shape} vs {next_img.shape}"
            )

        if pts0 is None:
            pts0 = shitomasi_detect(prev_img, params=self.corner_params)
        pts0 = np.asarray(pts0, dtype=np.float64).reshape(-1, 2)

        lk = self.lk_params
        prev_pyr = build_pyramid(prev_img, lk.levels, min_size=lk.window_size)
        next_pyr = build_pyramid(next_img, lk.levels, min_size=lk.window_size)

        result = calc_optical_flow(
            prev_pyr,
            next_pyr,
            pts0,
            lk.window_size,
            lk.max_iterations,
            epsilon=lk.epsilon,
            det_epsilon=lk.det_epsilon,
            lost_on_divergence=lk.lost_on_divergence,
            workers=lk.workers,
        )

        pts0_clean, pts1_clean, clean_mask = clean_points(pts0, result)

        info = {
            "num_raw": int(pts0.shape[0]),
            "num_tracked": result.num_tracked,
            "num_clean": int(pts0_clean.shape[0]),
            "pyramid_depth": prev_pyr.depth,
            "lost": result.lost_counts(),
            "clean_mask": clean_mask,
            "flow": result,
        }
        logger.debug(
            "pipeline: raw=%d tracked=%d clean=%d depth=%d",
            info["num_raw"], info["num_tracked"], info["num_clean"], info["pyramid_depth"],
        )
        return pts0_clean, pts1_clean, info
