from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence, Tuple, Union

import numpy as np

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass(frozen=True)
class TorchScriptBackendConfig:
    """
    Configuration for TorchScript inference.

    - device: "cpu" or "cuda" (if available)
    - output_indices: positions of (boxes_and_scores, class_ids, masks) in the model's output tuple
    """

    device: str = "cpu"
    output_indices: Sequence[int] = (0, 1, 2)


class TorchScriptBackend:
    """
    Minimal TorchScript backend using `torch.jit.load`.

    Covers mobile (`.ptl`) exports too, which load the same way on desktop.
    """

    def __init__(self, model_path: PathLike, cfg: TorchScriptBackendConfig = TorchScriptBackendConfig()):
        try:
            import torch  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError("torch is required for the TorchScript backend. Install with `pip install torch`.") from e

        if len(cfg.output_indices) != 3:
            raise ValueError("output_indices must name 3 outputs")

        self._torch = torch
        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise FileNotFoundError(str(self.model_path))

        self.device = torch.device(cfg.device)
        self.output_indices = tuple(cfg.output_indices)

        model = torch.jit.load(str(self.model_path), map_location=self.device)
        model.eval()
        self.model = model
        logger.info("TorchScript model %s on %s", self.model_path.name, self.device)

    def warmup(self, blob_shape: Tuple[int, ...]) -> None:
        self.infer(np.zeros(blob_shape, dtype=np.float32))

    def infer(self, blob: np.ndarray) -> Tuple[np.ndarray, ...]:
        torch = self._torch
        x = torch.as_tensor(blob, device=self.device).float().contiguous()

        with torch.no_grad():
            y = self.model(x)

        if not isinstance(y, (tuple, list)):
            raise RuntimeError(f"Expected a tuple of outputs from {self.model_path.name}, got {type(y).__name__}")

        outputs = []
        for idx in self.output_indices:
            t = y[idx]
            if hasattr(t, "detach"):
                t = t.detach()
            outputs.append(t.to("cpu").numpy())
        return tuple(outputs)
