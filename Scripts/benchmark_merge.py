from __future__ import annotations

import argparse
import statistics
import time
from dataclasses import dataclass
from typing import List, Tuple

import numpy as np

from rtmdet_kit import SegPostConfig, SegPostprocessor


@dataclass(frozen=True)
class TimingSummary:
    n: int
    mean_ms: float
    p50_ms: float
    p90_ms: float
    p95_ms: float


def _percentile(sorted_values: List[float], q: float) -> float:
    if not sorted_values:
        raise ValueError("No values provided.")
    if q < 0.0 or q > 100.0:
        raise ValueError("q must be in [0, 100].")
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    # Linear interpolation between closest ranks.
    pos = (q / 100.0) * (len(sorted_values) - 1)
    lo = int(np.floor(pos))
    hi = int(np.ceil(pos))
    if lo == hi:
        return float(sorted_values[lo])
    t = pos - lo
    return float(sorted_values[lo] * (1.0 - t) + sorted_values[hi] * t)


def _summarize_ms(values_s: List[float]) -> TimingSummary:
    ms = [v * 1000.0 for v in values_s]
    ms_sorted = sorted(ms)
    return TimingSummary(
        n=len(ms_sorted),
        mean_ms=float(statistics.fmean(ms_sorted)) if ms_sorted else 0.0,
        p50_ms=_percentile(ms_sorted, 50.0) if ms_sorted else 0.0,
        p90_ms=_percentile(ms_sorted, 90.0) if ms_sorted else 0.0,
        p95_ms=_percentile(ms_sorted, 95.0) if ms_sorted else 0.0,
    )


def _format_summary(label: str, s: TimingSummary) -> str:
    return (
        f"{label}: n={s.n} mean={s.mean_ms:.3f}ms p50={s.p50_ms:.3f}ms "
        f"p90={s.p90_ms:.3f}ms p95={s.p95_ms:.3f}ms"
    )


def _synthetic_outputs(n: int, n_classes: int, size: int, seed: int = 0) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    n random boxes with filled rectangular masks, roughly a third of them near-duplicates.
    """

    rng = np.random.default_rng(seed)
    x1y1 = rng.uniform(0, size * 0.8, size=(n, 2))
    wh = rng.uniform(8, size * 0.2, size=(n, 2))
    dup = rng.random(n) < 0.33
    for i in np.where(dup)[0][1:]:
        x1y1[i] = x1y1[i - 1] + rng.uniform(-3, 3, size=2)
        wh[i] = wh[i - 1]
    x2y2 = np.minimum(x1y1 + wh, size - 1)
    x1y1 = np.maximum(x1y1, 0)
    scores = rng.uniform(0.3, 1.0, size=(n, 1))
    dets = np.concatenate([x1y1, x2y2, scores], axis=1).astype(np.float32)
    class_ids = rng.integers(0, n_classes, size=n, dtype=np.int64)

    masks = np.zeros((n, size, size), dtype=np.uint8)
    for i, (x1, y1, x2, y2) in enumerate(dets[:, :4].astype(int)):
        masks[i, y1:y2, x1:x2] = 1
    return dets, class_ids, masks


def main() -> int:
    parser = argparse.ArgumentParser(description="Benchmark the box+mask merge postprocess on synthetic outputs.")
    parser.add_argument("--boxes", type=int, default=100, help="Number of synthetic instances.")
    parser.add_argument("--classes", type=int, default=3, help="Number of classes.")
    parser.add_argument("--imgsz", type=int, default=640, help="Inference size S.")
    parser.add_argument("--class-nms", action="store_true", help="Also time with the same-class NMS pre-pass.")
    parser.add_argument("--warmup", type=int, default=3, help="Warmup runs to discard.")
    parser.add_argument("--repeats", type=int, default=20, help="Recorded runs.")
    args = parser.parse_args()

    if args.boxes < 1:
        raise ValueError("--boxes must be >= 1")
    if args.classes < 1:
        raise ValueError("--classes must be >= 1")
    if args.imgsz < 32:
        raise ValueError("--imgsz must be >= 32")
    if args.warmup < 0:
        raise ValueError("--warmup must be >= 0")
    if args.repeats < 1:
        raise ValueError("--repeats must be >= 1")

    size = int(args.imgsz)
    outputs = _synthetic_outputs(int(args.boxes), int(args.classes), size)
    names = {i: f"class_{i}" for i in range(int(args.classes))}
    post = SegPostprocessor(SegPostConfig(common_threshold=0.0, class_nms=bool(args.class_nms)), names)

    timings: List[float] = []
    kept = 0
    for run in range(int(args.warmup) + int(args.repeats)):
        # Decoded masks are merged in place, so every run decodes fresh copies.
        t0 = time.perf_counter()
        result = post.process(outputs, orig_size=(size, size), pad=(0, 0), infer_size=size)
        t1 = time.perf_counter()
        if run >= int(args.warmup):
            timings.append(t1 - t0)
        kept = len(result)

    print(f"instances={args.boxes} classes={args.classes} imgsz={size} kept={kept}")
    print(_format_summary("postprocess", _summarize_ms(timings)))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
