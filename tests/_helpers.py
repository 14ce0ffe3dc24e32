from typing import Optional, Tuple

import numpy as np

from rtmdet_kit.types import RawDetection


def make_det(
    box: Tuple[int, int, int, int],
    score: float,
    class_id: int = 0,
    size: int = 64,
    mask_box: Optional[Tuple[int, int, int, int]] = None,
) -> RawDetection:
    """
    RawDetection whose mask is a filled rectangle (inclusive), `box` by default.
    """

    x1, y1, x2, y2 = mask_box if mask_box is not None else box
    mask = np.zeros((size, size), dtype=np.uint8)
    mask[y1 : y2 + 1, x1 : x2 + 1] = 1
    return RawDetection(x1=box[0], y1=box[1], x2=box[2], y2=box[3], score=score, class_id=class_id, mask=mask)


def make_outputs(dets, size: int = 64):
    """
    Stack RawDetections back into (boxes_and_scores, class_ids, masks) model outputs.
    """

    if not dets:
        return (
            np.zeros((0, 5), dtype=np.float32),
            np.zeros((0,), dtype=np.int64),
            np.zeros((0, size, size), dtype=np.uint8),
        )
    boxes = np.array([[d.x1, d.y1, d.x2, d.y2, d.score] for d in dets], dtype=np.float64)
    class_ids = np.array([d.class_id for d in dets], dtype=np.int64)
    masks = np.stack([d.mask for d in dets])
    return boxes, class_ids, masks
