"""
RTMDet-Ins post-processing helpers.

Turns raw instance-segmentation outputs (boxes + scores, class ids, per-instance
masks on the S x S inference grid) into deduplicated detections in original
image coordinates. Works on NumPy arrays from any backend; OpenCV is used for
resizing.
"""

from .types import FinalDetection, RawDetection
from .errors import InvalidInputError, PostprocessError, UnknownClassError
from .letterbox import LetterboxResult, letterbox, normalize_image
from .decode import decode_outputs
from .filters import class_nms, filter_detections
from .merge import MergeConfig, MergeGroups, box_iou, merge_detections, pair_metrics
from .remap import is_too_small, remap_box
from .rasterize import rasterize_mask
from .postprocess import SegPostConfig, SegPostprocessor
from .runtime import PreprocessConfig, SegPipeline, find_project_root, load_pipeline, resolve_path
from .config import load_run_config
from .metadata import load_class_names
from .visualize import draw_detections

__all__ = [
    "FinalDetection",
    "RawDetection",
    "InvalidInputError",
    "PostprocessError",
    "UnknownClassError",
    "LetterboxResult",
    "letterbox",
    "normalize_image",
    "decode_outputs",
    "class_nms",
    "filter_detections",
    "MergeConfig",
    "MergeGroups",
    "box_iou",
    "merge_detections",
    "pair_metrics",
    "is_too_small",
    "remap_box",
    "rasterize_mask",
    "SegPostConfig",
    "SegPostprocessor",
    "PreprocessConfig",
    "SegPipeline",
    "find_project_root",
    "load_pipeline",
    "resolve_path",
    "load_run_config",
    "load_class_names",
    "draw_detections",
]
