from typing import List, Sequence

from .merge import box_iou
from .types import RawDetection


def keep_by_score(
    det: RawDetection,
    common_threshold: float,
    person_threshold: float,
    person_class_id: int = 0,
) -> bool:
    if det.score >= common_threshold:
        return True
    return det.class_id == person_class_id and det.score >= person_threshold


def clamp_box(det: RawDetection, pad: Sequence[int], infer_size: int) -> None:
    """
    Clamp the box in place into the unpadded region [pad, S - 1 - pad] of each axis.
    """

    pad_x, pad_y = pad
    det.x1 = min(max(pad_x, det.x1), infer_size - 1 - pad_x)
    det.y1 = min(max(pad_y, det.y1), infer_size - 1 - pad_y)
    det.x2 = min(max(pad_x, det.x2), infer_size - 1 - pad_x)
    det.y2 = min(max(pad_y, det.y2), infer_size - 1 - pad_y)


def filter_detections(
    dets: Sequence[RawDetection],
    *,
    common_threshold: float,
    person_threshold: float,
    person_class_id: int,
    pad: Sequence[int],
    infer_size: int,
) -> List[RawDetection]:
    """
    Drop low-confidence detections, clamp the rest and drop degenerate boxes.

    The person class gets its own (usually lower) threshold.
    """

    kept: List[RawDetection] = []
    for det in dets:
        if not keep_by_score(det, common_threshold, person_threshold, person_class_id):
            continue
        clamp_box(det, pad, infer_size)
        if det.x1 >= det.x2 or det.y1 >= det.y2:
            continue
        kept.append(det)
    return kept


def class_nms(dets: Sequence[RawDetection], iou_threshold: float) -> List[RawDetection]:
    """
    Strict same-class NMS in index order. The lower score is suppressed; on ties the later one.
    """

    n = len(dets)
    suppressed = [False] * n
    for i in range(n):
        if suppressed[i]:
            continue
        for j in range(i + 1, n):
            if suppressed[j] or dets[i].class_id != dets[j].class_id:
                continue
            if box_iou(dets[i].as_xyxy(), dets[j].as_xyxy()) > iou_threshold:
                if dets[i].score >= dets[j].score:
                    suppressed[j] = True
                else:
                    suppressed[i] = True
                    break
    return [d for d, s in zip(dets, suppressed) if not s]
