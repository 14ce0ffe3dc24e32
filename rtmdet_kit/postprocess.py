import logging
from dataclasses import dataclass
from typing import Dict, List, Mapping, Sequence, Tuple

import numpy as np

from .decode import decode_outputs
from .errors import InvalidInputError, UnknownClassError
from .filters import class_nms, filter_detections
from .merge import MergeConfig, merge_detections
from .rasterize import MASK_INTERPOLATIONS, rasterize_mask
from .remap import is_too_small, remap_box
from .types import FinalDetection, RawDetection

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SegPostConfig:
    """
    Thresholds for RTMDet-Ins post processing.
    """

    common_threshold: float = 0.325
    # The person class is kept at a lower confidence.
    person_threshold: float = 0.2
    person_class_id: int = 0
    # Optional strict same-class NMS before the box+mask merge pass.
    class_nms: bool = False
    nms_iou_threshold: float = 0.6
    box_iou_threshold: float = 0.7
    mask_iou_threshold: float = 0.7
    overlap_threshold: float = 0.8
    eps: float = 1e-6
    # Slivers with (w + 1) + (h + 1) below this (original pixels) are dropped.
    min_box_size: int = 20
    mask_interpolation: str = "nearest"

    def __post_init__(self) -> None:
        for name in (
            "common_threshold",
            "person_threshold",
            "nms_iou_threshold",
            "box_iou_threshold",
            "mask_iou_threshold",
            "overlap_threshold",
        ):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be in [0, 1] (got {value})")
        if self.eps <= 0:
            raise ValueError("eps must be > 0")
        if self.min_box_size < 0:
            raise ValueError("min_box_size must be >= 0")
        if self.mask_interpolation not in MASK_INTERPOLATIONS:
            raise ValueError(f"mask_interpolation must be one of {MASK_INTERPOLATIONS}")

    def merge_config(self) -> MergeConfig:
        return MergeConfig(
            box_iou_threshold=self.box_iou_threshold,
            mask_iou_threshold=self.mask_iou_threshold,
            overlap_threshold=self.overlap_threshold,
            eps=self.eps,
        )


class SegPostprocessor:
    """
    Turns RTMDet-Ins outputs into deduplicated detections in original image coordinates.

    Expected outputs (per image), index-aligned:
    - boxes_and_scores: (n, 5) [x1, y1, x2, y2, score] on the S x S grid
    - class_ids: (n,)
    - masks: (n, S, S) bytes

    Stages: decode -> confidence filter/clamp -> (optional class NMS) -> merge
    -> remap + size guard -> mask raster + label lookup.
    """

    def __init__(self, cfg: SegPostConfig, class_names: Mapping[int, str]):
        self.cfg = cfg
        self.class_names: Dict[int, str] = dict(class_names)

    def process(
        self,
        outputs: Sequence[np.ndarray],
        *,
        orig_size: Tuple[int, int],
        pad: Tuple[int, int],
        infer_size: int,
    ) -> List[FinalDetection]:
        """
        Args:
            outputs: (boxes_and_scores, class_ids, masks)
            orig_size: (width, height) of the original image
            pad: (pad_x, pad_y) left/top letterbox padding
            infer_size: S
        """

        if len(outputs) != 3:
            raise InvalidInputError(
                f"Expected 3 outputs (boxes_and_scores, class_ids, masks), got {len(outputs)}", stage="decode"
            )
        boxes_and_scores, class_ids, masks = outputs
        dets = decode_outputs(boxes_and_scores, class_ids, masks, infer_size)
        if not dets:
            return []

        dets = self.reduce(dets, pad=pad, infer_size=infer_size)
        return self.finalize(dets, orig_size=orig_size, pad=pad, infer_size=infer_size)

    def reduce(self, dets: Sequence[RawDetection], *, pad: Tuple[int, int], infer_size: int) -> List[RawDetection]:
        """
        Filter, clamp and merge on the inference grid.
        """

        n_in = len(dets)
        dets = filter_detections(
            dets,
            common_threshold=self.cfg.common_threshold,
            person_threshold=self.cfg.person_threshold,
            person_class_id=self.cfg.person_class_id,
            pad=pad,
            infer_size=infer_size,
        )
        n_filtered = len(dets)
        # NMS sees clamped boxes, so overlap inside the padding does not count
        if self.cfg.class_nms:
            dets = class_nms(dets, self.cfg.nms_iou_threshold)
        dets = merge_detections(dets, self.cfg.merge_config())
        logger.debug("decoded=%d filtered=%d merged=%d", n_in, n_filtered, len(dets))
        return dets

    def finalize(
        self,
        dets: Sequence[RawDetection],
        *,
        orig_size: Tuple[int, int],
        pad: Tuple[int, int],
        infer_size: int,
    ) -> List[FinalDetection]:
        results: List[FinalDetection] = []
        for det in dets:
            grid_box = det.as_xyxy()
            box = remap_box(grid_box, pad, infer_size, orig_size)
            if is_too_small(box, self.cfg.min_box_size):
                continue
            label = self.label_for(det.class_id)
            mask = rasterize_mask(det.mask, grid_box, box, interpolation=self.cfg.mask_interpolation)
            results.append(
                FinalDetection(
                    x1=box[0],
                    y1=box[1],
                    x2=box[2],
                    y2=box[3],
                    score=det.score,
                    label=label,
                    class_id=det.class_id,
                    mask=mask,
                )
            )
        logger.debug("final=%d (size guard dropped %d)", len(results), len(dets) - len(results))
        return results

    def label_for(self, class_id: int) -> str:
        try:
            return self.class_names[class_id]
        except KeyError:
            raise UnknownClassError(class_id) from None
