from typing import List

import numpy as np

from .errors import InvalidInputError
from .types import RawDetection


def _drop_batch(a: np.ndarray, name: str, inner_ndim: int) -> np.ndarray:
    # (n, 1) class ids carry a trailing singleton axis, (1, ...) exports a leading batch axis.
    if a.ndim > inner_ndim and a.shape[-1] == 1:
        a = a[..., 0]
    if a.ndim > inner_ndim and a.shape[0] == 1:
        a = a[0]
    if a.ndim > inner_ndim:
        raise InvalidInputError(
            f"Batch > 1 is not supported for {name} (got shape {a.shape}). Pass one image at a time.",
            stage="decode",
        )
    return a


def _per_instance(a: np.ndarray, name: str, inner: int) -> np.ndarray:
    flat = a.reshape(-1)
    if inner and flat.size % inner != 0:
        raise InvalidInputError(
            f"{name} has {flat.size} values, not a multiple of {inner}", stage="decode"
        )
    return flat.reshape(-1, inner) if inner > 1 else flat


def decode_outputs(
    boxes_and_scores: np.ndarray,
    class_ids: np.ndarray,
    masks: np.ndarray,
    infer_size: int,
) -> List[RawDetection]:
    """
    Reinterpret the three raw model outputs as index-aligned `RawDetection`s.

    Args:
        boxes_and_scores: (n, 5) or flat [x1, y1, x2, y2, score, ...] in grid pixels
        class_ids: (n,) integer class ids
        masks: (n, S, S) or flat n*S*S bytes/logits
        infer_size: S
    """

    dets = _drop_batch(np.asarray(boxes_and_scores), "boxes_and_scores", 2)
    labels = _drop_batch(np.asarray(class_ids), "class_ids", 1)
    m = _drop_batch(np.asarray(masks), "masks", 3)

    dets = _per_instance(dets, "boxes_and_scores", 5)
    labels = _per_instance(labels, "class_ids", 1)
    m = _per_instance(m, "masks", infer_size * infer_size)

    n = dets.shape[0]
    if labels.shape[0] != n or m.shape[0] != n:
        raise InvalidInputError(
            f"Instance count mismatch: boxes={n}, class_ids={labels.shape[0]}, masks={m.shape[0]}",
            stage="decode",
        )
    if n == 0:
        return []

    boxes = np.trunc(dets[:, :4].astype(np.float64)).astype(np.int64)
    scores = dets[:, 4].astype(np.float64)
    m = np.clip(np.rint(m.astype(np.float32)), 0, 255).astype(np.uint8)
    m = m.reshape(n, infer_size, infer_size)

    return [
        RawDetection(
            x1=int(x1),
            y1=int(y1),
            x2=int(x2),
            y2=int(y2),
            score=float(score),
            class_id=int(cls_id),
            mask=mask.copy(),  # own buffer so absorbed masks can be freed individually
        )
        for (x1, y1, x2, y2), score, cls_id, mask in zip(boxes, scores, labels, m)
    ]
