from dataclasses import dataclass
from typing import Tuple

import numpy as np


@dataclass(eq=False)
class RawDetection:
    """
    One model instance on the inference grid.

    The box is mutated in place by clamping (filter stage) and by box union
    (merge stage); the mask only grows during merge.
    """

    x1: int
    y1: int
    x2: int
    y2: int
    score: float
    class_id: int
    mask: np.ndarray  # (S, S) uint8

    def as_xyxy(self) -> Tuple[int, int, int, int]:
        return self.x1, self.y1, self.x2, self.y2


@dataclass(eq=False)
class FinalDetection:
    """
    Detection in original image coordinates. `mask` has shape (y2 - y1, x2 - x1).
    """

    x1: int
    y1: int
    x2: int
    y2: int
    score: float
    label: str
    class_id: int
    mask: np.ndarray

    def as_xyxy(self) -> Tuple[int, int, int, int]:
        return self.x1, self.y1, self.x2, self.y2
