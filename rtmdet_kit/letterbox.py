from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np


@dataclass(frozen=True)
class LetterboxResult:
    image: np.ndarray
    pad: Tuple[int, int]  # (pad_x, pad_y) left/top
    resized_size: Tuple[int, int]  # (w, h) before padding


def resize_keep_ratio(image: np.ndarray, max_size: int) -> np.ndarray:
    """
    Scale so the longer side equals `max_size`. Images that already fit are returned as-is.
    """
    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for letterbox(). Install with `pip install opencv-python`.") from e

    h, w = image.shape[:2]
    if w <= max_size and h <= max_size:
        return image

    new_w, new_h = max_size, max_size
    if w > h:
        new_h = int(max_size * h / w)
    else:
        new_w = int(max_size * w / h)

    return cv2.resize(image, (new_w, new_h), interpolation=cv2.INTER_LINEAR)


def letterbox(image: np.ndarray, infer_size: int = 640, pad_value: int = 114) -> LetterboxResult:
    """
    Aspect-preserving resize, then center on an `infer_size` square canvas.

    Returns:
        LetterboxResult with the padded image and the left/top padding. Odd
        remainders go to the right/bottom edge.
    """

    resized = resize_keep_ratio(image, infer_size)
    h, w = resized.shape[:2]
    if w >= infer_size and h >= infer_size:
        return LetterboxResult(image=resized, pad=(0, 0), resized_size=(w, h))

    pad_x = (infer_size - w) // 2
    pad_y = (infer_size - h) // 2

    canvas_shape = (infer_size, infer_size) + resized.shape[2:]
    canvas = np.full(canvas_shape, pad_value, dtype=resized.dtype)
    canvas[pad_y : pad_y + h, pad_x : pad_x + w] = resized

    return LetterboxResult(image=canvas, pad=(pad_x, pad_y), resized_size=(w, h))


def normalize_image(
    image_bgr: np.ndarray,
    mean: Sequence[float],
    std: Sequence[float],
    layout: str = "nchw",
) -> np.ndarray:
    """
    BGR uint8 (H, W, 3) -> float32 batched blob, normalized per RGB channel.
    """

    if layout not in ("nchw", "nhwc"):
        raise ValueError(f"Unsupported layout: {layout!r}")

    rgb = image_bgr[:, :, ::-1].astype(np.float32)
    blob = (rgb - np.asarray(mean, dtype=np.float32)) / np.asarray(std, dtype=np.float32)
    if layout == "nchw":
        blob = np.transpose(blob, (2, 0, 1))
    return np.ascontiguousarray(blob[None, ...])
