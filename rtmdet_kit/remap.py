from typing import Sequence, Tuple

Box = Tuple[int, int, int, int]


def remap_coord(coord: int, pad: int, infer_size: int, dimension: int) -> int:
    return int((coord - pad) / float(infer_size - 2 * pad) * dimension)


def remap_box(
    box: Sequence[int],
    pad: Sequence[int],
    infer_size: int,
    orig_size: Sequence[int],
) -> Box:
    """
    Map an inference-grid box back to the original image by undoing the letterbox.

    Args:
        box: (x1, y1, x2, y2) on the S x S grid
        pad: (pad_x, pad_y) left/top padding of the letterbox
        infer_size: S
        orig_size: (width, height) of the original image
    """

    x1, y1, x2, y2 = box
    pad_x, pad_y = pad
    orig_w, orig_h = orig_size
    return (
        remap_coord(x1, pad_x, infer_size, orig_w),
        remap_coord(y1, pad_y, infer_size, orig_h),
        remap_coord(x2, pad_x, infer_size, orig_w),
        remap_coord(y2, pad_y, infer_size, orig_h),
    )


def is_too_small(box: Sequence[int], min_box_size: int) -> bool:
    x1, y1, x2, y2 = box
    return (x2 - x1 + 1) + (y2 - y1 + 1) < min_box_size
