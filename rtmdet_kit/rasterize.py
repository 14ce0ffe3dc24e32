from typing import Sequence

import numpy as np


MASK_INTERPOLATIONS = ("nearest", "bilinear")


def crop_mask(mask: np.ndarray, box: Sequence[int]) -> np.ndarray:
    x1, y1, x2, y2 = box
    return mask[y1:y2, x1:x2]


def rasterize_mask(
    mask: np.ndarray,
    grid_box: Sequence[int],
    final_box: Sequence[int],
    interpolation: str = "nearest",
) -> np.ndarray:
    """
    Crop `mask` to `grid_box` and rescale it to the size of `final_box`.

    Nearest keeps mask edges pixel-exact; bilinear gives smoother edges.

    Returns:
        uint8 raster shaped (y2 - y1, x2 - x1) of `final_box`
    """

    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for rasterize_mask(). Install with `pip install opencv-python`.") from e

    if interpolation not in MASK_INTERPOLATIONS:
        raise ValueError(f"Unsupported mask interpolation: {interpolation!r}")
    flag = cv2.INTER_NEAREST if interpolation == "nearest" else cv2.INTER_LINEAR

    fx1, fy1, fx2, fy2 = final_box
    out_w, out_h = fx2 - fx1, fy2 - fy1

    crop = crop_mask(mask, grid_box)
    if out_w <= 0 or out_h <= 0 or crop.size == 0:
        return np.zeros((max(out_h, 0), max(out_w, 0)), dtype=np.uint8)

    resized = cv2.resize(np.ascontiguousarray(crop), (out_w, out_h), interpolation=flag)
    return resized.astype(np.uint8, copy=False)
