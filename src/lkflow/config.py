# Andy Zhao
"""
Package-wide defaults and logging setup.

Defaults mirror classical practice for pyramidal LK / Shi-Tomasi:
  - 21x21 window, 30 iterations, 0.01 px convergence
  - 4 pyramid levels
  - quality 0.01, 7 px spacing, 3x3 structure tensor block

These are *defaults only*. Every call takes its parameters explicitly,
so nothing here is read at tracking time.

Environment:
  - LKFLOW_DEBUG=1          -> configure_logging() switches to DEBUG
  - LKFLOW_WINDOW_SIZE, LKFLOW_MAX_ITERATIONS, LKFLOW_LEVELS,
    LKFLOW_QUALITY_LEVEL, LKFLOW_MIN_DISTANCE,
    LKFLOW_MAX_CORNERS    -> params_from_env()
"""
from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, Mapping, Optional

if TYPE_CHECKING:
    from .matching.corners import ShiTomasiParams
    from .matching.lk_tracking import LKParams


# ---------- Tracker defaults ----------
DEFAULT_WINDOW_SIZE: int = 21
DEFAULT_MAX_ITERATIONS: int = 30
DEFAULT_EPSILON: float = 0.01
# det(G) / N^2 below this means the window has no 2D texture
DEFAULT_DET_EPSILON: float = 1e-10

# ---------- Pyramid defaults ----------
DEFAULT_LEVELS: int = 4

# ---------- Detector defaults ----------
DEFAULT_QUALITY_LEVEL: float = 0.01
DEFAULT_MIN_DISTANCE: float = 7.0
DEFAULT_BLOCK_SIZE: int = 3

ENV_PREFIX = "LKFLOW_"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def debug_enabled(environ: Optional[Mapping[str, str]] = None) -> bool:
    env = os.environ if environ is None else environ
    return env.get(ENV_PREFIX + "DEBUG", "0") == "1"


def configure_logging(level: Optional[int] = None) -> None:
    """
    Attach a stream handler to the `lkflow` logger.

    The library itself never calls this; scripts do.
    If level is None, LKFLOW_DEBUG decides between DEBUG and INFO.
    """
    if level is None:
        level = logging.DEBUG if debug_enabled() else logging.INFO

    logger = logging.getLogger("lkflow")
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)


def params_from_env(
        environ: Optional[Mapping[str, str]] = None,
        *,
        prefix: str = ENV_PREFIX,
) -> tuple["ShiTomasiParams", "LKParams"]:
    """
    Build (corner params, LK params) from environment overrides.

    Unset variables keep the defaults above. Malformed values raise ValueError
    from int()/float(); range checks happen when the params are used.
    """
    # Local import: the params dataclasses import their defaults from here.
    from .matching.corners import ShiTomasiParams
    from .matching.lk_tracking import LKParams

    env = os.environ if environ is None else environ

    def _get(name: str, cast, default):
        raw = env.get(prefix + name)
        return default if raw is None or raw == "" else cast(raw)

    corner_params = ShiTomasiParams(
        quality_level=_get("QUALITY_LEVEL", float, DEFAULT_QUALITY_LEVEL),
        min_distance=_get("MIN_DISTANCE", float, DEFAULT_MIN_DISTANCE),
        max_corners=_get("MAX_CORNERS", int, None),
    )
    lk_params = LKParams(
        window_size=_get("WINDOW_SIZE", int, DEFAULT_WINDOW_SIZE),
        max_iterations=_get("MAX_ITERATIONS", int, DEFAULT_MAX_ITERATIONS),
        levels=_get("LEVELS", int, DEFAULT_LEVELS),
    )
    return corner_params, lk_params
