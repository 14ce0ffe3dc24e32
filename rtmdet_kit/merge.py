from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Set, Tuple

import numpy as np

from .types import RawDetection


Box = Tuple[int, int, int, int]


@dataclass(frozen=True)
class MergeConfig:
    box_iou_threshold: float = 0.7
    mask_iou_threshold: float = 0.7
    overlap_threshold: float = 0.8
    eps: float = 1e-6


@dataclass(frozen=True)
class PairMetrics:
    box_iou: float
    mask_iou: float
    overlap_a: float
    overlap_b: float


def box_iou(a: Box, b: Box) -> float:
    """
    IoU of two xyxy boxes with pixel-inclusive extents, i.e. area = (x2 - x1 + 1) * (y2 - y1 + 1).
    """

    ix1 = max(a[0], b[0])
    iy1 = max(a[1], b[1])
    ix2 = min(a[2], b[2])
    iy2 = min(a[3], b[3])
    inter = max(0, ix2 - ix1 + 1) * max(0, iy2 - iy1 + 1)
    if inter == 0:
        return 0.0
    area_a = (a[2] - a[0] + 1) * (a[3] - a[1] + 1)
    area_b = (b[2] - b[0] + 1) * (b[3] - b[1] + 1)
    return inter / float(area_a + area_b - inter)


def pair_metrics(a: RawDetection, b: RawDetection, eps: float = 1e-6) -> PairMetrics:
    """
    Box IoU plus mask IoU/overlap ratios inside the union box of `a` and `b`.

    Masks are read as {0, 1} (any non-zero cell is foreground). Read-only, so
    pairs can be evaluated concurrently.
    """

    x1 = min(a.x1, b.x1)
    y1 = min(a.y1, b.y1)
    x2 = max(a.x2, b.x2)
    y2 = max(a.y2, b.y2)

    ma = a.mask[y1:y2, x1:x2] > 0
    mb = b.mask[y1:y2, x1:x2] > 0
    area_a = float(np.count_nonzero(ma))
    area_b = float(np.count_nonzero(mb))
    inter = float(np.count_nonzero(ma & mb))

    return PairMetrics(
        box_iou=box_iou(a.as_xyxy(), b.as_xyxy()),
        mask_iou=inter / (area_a + area_b - inter + eps),
        overlap_a=inter / (area_a + eps),
        overlap_b=inter / (area_b + eps),
    )


def should_merge(a: RawDetection, b: RawDetection, cfg: MergeConfig) -> bool:
    m = pair_metrics(a, b, cfg.eps)
    if m.box_iou > cfg.box_iou_threshold and m.mask_iou > cfg.mask_iou_threshold:
        return True
    # Small same-class fragment mostly inside a larger instance.
    return a.class_id == b.class_id and max(m.overlap_a, m.overlap_b) > cfg.overlap_threshold


@dataclass
class MergeGroups:
    """
    Groups of detection indices judged to be one object.

    `groups` maps a representative to the indices it absorbed, in absorption order.
    """

    skipped: Set[int] = field(default_factory=set)
    groups: Dict[int, List[int]] = field(default_factory=dict)

    def absorb(self, winner: int, loser: int) -> None:
        self.skipped.add(loser)
        members = self.groups.setdefault(winner, [])
        members.append(loser)
        members.extend(self.groups.pop(loser, []))

    def is_skipped(self, idx: int) -> bool:
        return idx in self.skipped

    def members(self, rep: int) -> List[int]:
        return self.groups.get(rep, [])


def group_detections(dets: Sequence[RawDetection], cfg: MergeConfig) -> MergeGroups:
    """
    Single greedy pass over pairs (i < j) in ascending order.

    The higher score wins; on an exact tie `j` is absorbed. Once `i` is absorbed
    its remaining pairs are not visited.
    """

    state = MergeGroups()
    n = len(dets)
    for i in range(n):
        if state.is_skipped(i):
            continue
        for j in range(i + 1, n):
            if state.is_skipped(j):
                continue
            if not should_merge(dets[i], dets[j], cfg):
                continue
            if dets[i].score >= dets[j].score:
                state.absorb(i, j)
            else:
                state.absorb(j, i)
                break
    return state


def merge_into(rep: RawDetection, member: RawDetection) -> None:
    rep.x1 = min(rep.x1, member.x1)
    rep.y1 = min(rep.y1, member.y1)
    rep.x2 = max(rep.x2, member.x2)
    rep.y2 = max(rep.y2, member.y2)

    # member box is inclusive on both ends
    ys = slice(member.y1, member.y2 + 1)
    xs = slice(member.x1, member.x2 + 1)
    np.maximum(rep.mask[ys, xs], member.mask[ys, xs], out=rep.mask[ys, xs])


def fold_groups(dets: Sequence[RawDetection], state: MergeGroups) -> List[RawDetection]:
    """
    Apply one grouping pass: union each representative with its members, drop the absorbed.
    """

    survivors: List[RawDetection] = []
    for idx, det in enumerate(dets):
        if state.is_skipped(idx):
            continue
        for member in state.members(idx):
            merge_into(det, dets[member])
        survivors.append(det)
    return survivors


def merge_detections(dets: Sequence[RawDetection], cfg: MergeConfig = MergeConfig()) -> List[RawDetection]:
    """
    Cluster overlapping detections and fold each cluster into its representative.

    The first round is a single ordered pass over the input. A grown box or mask
    can overlap a survivor it was already compared against, so rounds repeat on
    the survivors until one absorbs nothing; the result has no mergeable pair left.
    Representatives are returned in their original order with unioned boxes and
    masks; absorbed detections are dropped.
    """

    survivors = list(dets)
    while True:
        state = group_detections(survivors, cfg)
        if not state.skipped:
            return survivors
        survivors = fold_groups(survivors, state)
