"""
Matching package: detection, tracking, cleaning
"""
from .corners import good_features_to_track, shitomasi_detect, ShiTomasiParams
from .lk_tracking import (
    calc_optical_flow, lk_track, LKParams, FlowResult, FlowStatus, LostReason,
)
from .clean_points import clean_points
from .pipeline import SparseFlowPipeline

__all__ = [
    "good_features_to_track", "shitomasi_detect", "ShiTomasiParams",
    "calc_optical_flow", "lk_track", "LKParams", "FlowResult", "FlowStatus", "LostReason",
    "clean_points",
    "SparseFlowPipeline",
]
