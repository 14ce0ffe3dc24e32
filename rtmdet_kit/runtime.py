from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from .letterbox import letterbox, normalize_image
from .metadata import load_class_names
from .postprocess import SegPostConfig, SegPostprocessor
from .types import FinalDetection

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]
InferFn = Callable[[np.ndarray], Sequence[np.ndarray]]


def find_project_root(
    start: Optional[PathLike] = None,
    markers: Sequence[str] = ("pyproject.toml", "setup.py", ".git", "requirements.txt"),
) -> Path:
    """
    Best-effort project root discovery.

    Useful when `rtmdet_kit` is vendored as `A/rtmdet_kit` and models live in `A/models`.
    """

    p = Path(start) if start is not None else Path.cwd()
    p = p.resolve()

    # If a file is provided, start from its directory.
    if p.is_file():
        p = p.parent

    for parent in (p, *p.parents):
        for m in markers:
            if (parent / m).exists():
                return parent
    return p


def resolve_path(path: PathLike, root: Optional[PathLike] = "auto") -> Path:
    """
    Resolve `path` to an absolute Path.

    - Absolute paths are returned as-is.
    - Relative paths are resolved against:
      - `root` if provided
      - project root (auto) otherwise
    """

    p = Path(path)
    if p.is_absolute():
        return p

    if root == "auto" or root is None:
        base = find_project_root()
    else:
        base = Path(root).resolve()

    return (base / p).resolve()


@dataclass(frozen=True)
class PreprocessConfig:
    infer_size: int = 640
    pad_value: int = 114
    # Per-channel (RGB order) normalization of the padded canvas.
    mean: Tuple[float, float, float] = (103.53, 116.28, 123.675)
    std: Tuple[float, float, float] = (57.375, 57.12, 58.395)
    layout: str = "nchw"

    def __post_init__(self) -> None:
        if self.infer_size < 32:
            raise ValueError("infer_size must be >= 32")
        if not 0 <= self.pad_value <= 255:
            raise ValueError("pad_value must be in [0, 255]")
        if len(self.mean) != 3 or len(self.std) != 3:
            raise ValueError("mean and std must have 3 values")
        if any(s <= 0 for s in self.std):
            raise ValueError("std values must be > 0")
        if self.layout not in ("nchw", "nhwc"):
            raise ValueError("layout must be 'nchw' or 'nhwc'")


@dataclass(frozen=True)
class PreprocessResult:
    blob: np.ndarray
    orig_size: Tuple[int, int]
    pad: Tuple[int, int]
    infer_size: int


class SegPipeline:
    """
    Plug-and-play pipeline: letterbox + normalize -> inference -> postprocess.

    The pipeline expects BGR images (OpenCV-style) as `np.ndarray` and returns
    a list of `FinalDetection` in original image coordinates. `infer_fn` must
    return `(boxes_and_scores, class_ids, masks)`.
    """

    def __init__(
        self,
        infer_fn: InferFn,
        class_names: Mapping[int, str],
        *,
        backend: Optional[object] = None,
        backend_name: Optional[str] = None,
        preprocess_cfg: PreprocessConfig = PreprocessConfig(),
        post_cfg: SegPostConfig = SegPostConfig(),
    ):
        self._infer_fn = infer_fn
        self.backend = backend
        self.backend_name = backend_name
        self.preprocess_cfg = preprocess_cfg
        self.post = SegPostprocessor(post_cfg, class_names)

    def preprocess(self, image_bgr: np.ndarray) -> PreprocessResult:
        if image_bgr is None or not hasattr(image_bgr, "shape"):
            raise TypeError("image_bgr must be a NumPy array (BGR).")
        if image_bgr.ndim != 3 or image_bgr.shape[2] != 3:
            raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image_bgr, 'shape', None)}")

        cfg = self.preprocess_cfg
        orig_h, orig_w = image_bgr.shape[:2]
        boxed = letterbox(image_bgr, infer_size=cfg.infer_size, pad_value=cfg.pad_value)
        blob = normalize_image(boxed.image, cfg.mean, cfg.std, layout=cfg.layout)

        return PreprocessResult(blob=blob, orig_size=(orig_w, orig_h), pad=boxed.pad, infer_size=cfg.infer_size)

    def __call__(self, image_bgr: np.ndarray) -> List[FinalDetection]:
        t0 = time.perf_counter()
        prep = self.preprocess(image_bgr)
        t1 = time.perf_counter()
        outputs = self._infer_fn(prep.blob)
        t2 = time.perf_counter()
        detections = self.post.process(
            outputs, orig_size=prep.orig_size, pad=prep.pad, infer_size=prep.infer_size
        )
        t3 = time.perf_counter()
        logger.debug(
            "preprocess=%.1fms inference=%.1fms postprocess=%.1fms total=%.1fms",
            (t1 - t0) * 1000.0,
            (t2 - t1) * 1000.0,
            (t3 - t2) * 1000.0,
            (t3 - t0) * 1000.0,
        )
        return detections


def load_pipeline(
    model_path: PathLike,
    labels_path: PathLike,
    *,
    backend: Optional[str] = None,
    root: Optional[PathLike] = "auto",
    preprocess_cfg: PreprocessConfig = PreprocessConfig(),
    post_cfg: SegPostConfig = SegPostConfig(),
    onnx_providers: Optional[Sequence[str]] = None,
    onnx_output_names: Optional[Sequence[str]] = None,
    torch_device: str = "cpu",
    torch_output_indices: Sequence[int] = (0, 1, 2),
    warmup: bool = True,
) -> SegPipeline:
    """
    Create a plug-and-play pipeline for a model on disk.

    Typical usage when `rtmdet_kit` is vendored into another repo:
        pipe = load_pipeline("models/rtmdetins_s_640.onnx", "models/classes.txt")

    Args:
        model_path: path to model file; relative paths resolve against project root by default
        labels_path: class names file (one per line, or a `names:` mapping)
        backend: "onnxruntime" / "torchscript", or None to infer from extension
        root: base directory for resolving relative paths ("auto" uses best-effort project root)
    """

    resolved = resolve_path(model_path, root=root)
    class_names = load_class_names(resolve_path(labels_path, root=root))

    chosen = backend
    if chosen is None:
        suffix = resolved.suffix.lower()
        if suffix == ".onnx":
            chosen = "onnxruntime"
        elif suffix in {".torchscript", ".ts", ".pt", ".pth", ".ptl"}:
            chosen = "torchscript"
        else:
            raise ValueError(
                f"Could not infer backend from extension '{suffix}'. Pass backend=... explicitly."
            )

    chosen = chosen.lower()
    blob_shape = (
        (1, 3, preprocess_cfg.infer_size, preprocess_cfg.infer_size)
        if preprocess_cfg.layout == "nchw"
        else (1, preprocess_cfg.infer_size, preprocess_cfg.infer_size, 3)
    )

    if chosen == "onnxruntime":
        from .backends.onnxruntime_backend import OnnxRuntimeBackend, OnnxRuntimeBackendConfig

        ort_backend = OnnxRuntimeBackend(
            resolved,
            OnnxRuntimeBackendConfig(providers=onnx_providers, output_names=onnx_output_names),
        )
        if warmup:
            ort_backend.warmup(blob_shape)
        return SegPipeline(
            ort_backend.infer,
            class_names,
            backend=ort_backend,
            backend_name="onnxruntime",
            preprocess_cfg=preprocess_cfg,
            post_cfg=post_cfg,
        )

    if chosen == "torchscript":
        from .backends.torchscript_backend import TorchScriptBackend, TorchScriptBackendConfig

        ts_backend = TorchScriptBackend(
            resolved,
            TorchScriptBackendConfig(device=torch_device, output_indices=tuple(torch_output_indices)),
        )
        if warmup:
            ts_backend.warmup(blob_shape)
        return SegPipeline(
            ts_backend.infer,
            class_names,
            backend=ts_backend,
            backend_name="torchscript",
            preprocess_cfg=preprocess_cfg,
            post_cfg=post_cfg,
        )

    raise ValueError(f"Unsupported backend: {backend!r}")
