from __future__ import annotations

from typing import Iterable, Tuple

import numpy as np

from .types import FinalDetection


def _color_for_class_id(class_id: int) -> Tuple[int, int, int]:
    """
    Deterministic BGR color for a class id (OpenCV expects BGR).
    """

    # Small deterministic palette, then fallback to a seeded RNG for larger IDs.
    palette = [
        (255, 56, 56),
        (255, 157, 151),
        (255, 112, 31),
        (255, 178, 29),
        (207, 210, 49),
        (72, 249, 10),
        (146, 204, 23),
        (61, 219, 134),
        (26, 147, 52),
        (0, 212, 187),
        (44, 153, 168),
        (0, 194, 255),
        (52, 69, 147),
        (100, 115, 255),
        (0, 24, 236),
        (132, 56, 255),
        (82, 0, 133),
        (203, 56, 255),
        (255, 149, 200),
        (255, 55, 199),
    ]
    if 0 <= class_id < len(palette):
        return palette[class_id]

    rng = np.random.default_rng(int(class_id))
    bgr = rng.integers(0, 256, size=3, dtype=np.uint8)
    return int(bgr[0]), int(bgr[1]), int(bgr[2])


def draw_detections(
    image_bgr: np.ndarray,
    detections: Iterable[FinalDetection],
    *,
    mask_opacity: float = 0.5,
    show_score: bool = True,
    box_thickness: int = 2,
    font_scale: float = 0.5,
    font_thickness: int = 1,
) -> np.ndarray:
    """
    Draw mask overlays, boxes and labels on an OpenCV BGR image and return a copy.

    Each mask raster is placed at its box's top-left corner; non-zero cells are tinted.
    """

    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for draw_detections(). Install with `pip install opencv-python`.") from e

    if image_bgr is None or not hasattr(image_bgr, "shape"):
        raise TypeError("image_bgr must be a NumPy array (BGR).")
    if image_bgr.ndim != 3 or image_bgr.shape[2] != 3:
        raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image_bgr, 'shape', None)}")
    if not 0.0 <= mask_opacity <= 1.0:
        raise ValueError("mask_opacity must be in [0, 1]")

    out = image_bgr.copy()
    h, w = out.shape[:2]

    for det in detections:
        color = _color_for_class_id(det.class_id)

        # Clip the raster to the image; boxes can touch the far edge.
        x1, y1 = max(det.x1, 0), max(det.y1, 0)
        x2 = min(det.x1 + det.mask.shape[1], w)
        y2 = min(det.y1 + det.mask.shape[0], h)
        if x2 > x1 and y2 > y1:
            fg = det.mask[y1 - det.y1 : y2 - det.y1, x1 - det.x1 : x2 - det.x1] > 0
            region = out[y1:y2, x1:x2]
            tint = np.array(color, dtype=np.float32)
            blended = region[fg].astype(np.float32) * (1.0 - mask_opacity) + tint * mask_opacity
            region[fg] = blended.astype(np.uint8)

        bx1 = int(np.clip(det.x1, 0, w - 1))
        by1 = int(np.clip(det.y1, 0, h - 1))
        bx2 = int(np.clip(det.x2, 0, w - 1))
        by2 = int(np.clip(det.y2, 0, h - 1))
        cv2.rectangle(out, (bx1, by1), (bx2, by2), color, thickness=box_thickness)

        label = det.label
        if show_score:
            label = f"{label} {det.score:.2f}"

        (tw, th), baseline = cv2.getTextSize(label, cv2.FONT_HERSHEY_SIMPLEX, font_scale, font_thickness)
        # Place label above the box if possible, else inside.
        y_text_top = by1 - th - baseline
        if y_text_top < 0:
            y_text_top = by1

        x_text_right = min(bx1 + tw, w - 1)
        y_text_bottom = min(y_text_top + th + baseline, h - 1)

        cv2.rectangle(out, (bx1, y_text_top), (x_text_right, y_text_bottom), color, thickness=-1)
        cv2.putText(
            out,
            label,
            (bx1, min(y_text_top + th, h - 1)),
            cv2.FONT_HERSHEY_SIMPLEX,
            font_scale,
            (255, 255, 255),
            thickness=font_thickness,
            lineType=cv2.LINE_AA,
        )

    return out
