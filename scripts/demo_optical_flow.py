import dataclasses
from pathlib import Path

import cv2
import numpy as np

from lkflow import SparseFlowPipeline
from lkflow.config import configure_logging, params_from_env

# Keep the drawing readable; LKFLOW_MAX_CORNERS overrides
DEMO_MAX_CORNERS = 100


def load_gray(path: Path) -> tuple[np.ndarray, np.ndarray]:
    """Read an image, return (bgr for drawing, gray for tracking)."""
    bgr = cv2.imread(str(path), cv2.IMREAD_COLOR)
    if bgr is None:
        raise FileNotFoundError(f"Could not read image: {path}")
    return bgr, cv2.cvtColor(bgr, cv2.COLOR_BGR2GRAY)


def draw_flow(canvas: np.ndarray, pts0: np.ndarray, pts1: np.ndarray) -> np.ndarray:
    out = canvas.copy()
    for (x0, y0), (x1, y1) in zip(pts0, pts1):
        cv2.arrowedLine(
            out,
            (int(round(x0)), int(round(y0))),
            (int(round(x1)), int(round(y1))),
            (0, 255, 0), 1, tipLength=0.3,
        )
        cv2.drawMarker(out, (int(round(x0)), int(round(y0))), (0, 0, 255), cv2.MARKER_CROSS, 5)
    return out


def main() -> None:
    PREV_PATH = Path("examples/input1.png")
    NEXT_PATH = Path("examples/input2.png")
    OUT_DIR = Path("examples")

    # LKFLOW_DEBUG=1 for per-stage logs, LKFLOW_WINDOW_SIZE, LKFLOW_MAX_CORNERS etc. to tune
    configure_logging()
    corner_params, lk_params = params_from_env()
    if corner_params.max_corners is None:
        corner_params = dataclasses.replace(corner_params, max_corners=DEMO_MAX_CORNERS)

    prev_bgr, prev_gray = load_gray(PREV_PATH)
    next_bgr, next_gray = load_gray(NEXT_PATH)

    pipeline = SparseFlowPipeline(corner_params=corner_params, lk_params=lk_params)
    pts0, pts1, info = pipeline.run(prev_gray, next_gray)

    print(
        f"detected={info['num_raw']} tracked={info['num_tracked']} "
        f"levels={info['pyramid_depth']} lost={info['lost']}"
    )
    if pts0.shape[0] > 0:
        motion = np.median(pts1 - pts0, axis=0)
        print(f"median motion: dx={motion[0]:.2f} dy={motion[1]:.2f}")

    OUT_DIR.mkdir(parents=True, exist_ok=True)
    cv2.imwrite(str(OUT_DIR / "output_optical_flow.png"), draw_flow(next_bgr, pts0, pts1))


if __name__ == "__main__":
    main()
