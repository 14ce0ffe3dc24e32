from __future__ import annotations

import json
from dataclasses import fields
from pathlib import Path
from typing import Any, Dict, Tuple, Type, TypeVar, Union

from .postprocess import SegPostConfig
from .runtime import PreprocessConfig

T = TypeVar("T")


def _require_int(payload: Dict[str, Any], key: str) -> int:
    if key not in payload:
        raise ValueError(f"Missing required key: {key}")
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer")
    return int(value)


def _coerce(value: Any, default: Any, key: str) -> Any:
    if isinstance(default, bool):
        if not isinstance(value, bool):
            raise ValueError(f"{key} must be a boolean")
        return value
    if isinstance(default, int):
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"{key} must be an integer")
        return value
    if isinstance(default, float):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"{key} must be a number")
        return float(value)
    if isinstance(default, tuple):
        if not isinstance(value, list) or any(isinstance(v, bool) or not isinstance(v, (int, float)) for v in value):
            raise ValueError(f"{key} must be a list of numbers")
        return tuple(float(v) for v in value)
    if isinstance(default, str):
        if not isinstance(value, str):
            raise ValueError(f"{key} must be a string")
        return value
    raise ValueError(f"Unsupported config key: {key}")


def _build(cls: Type[T], payload: Any, section: str) -> T:
    if not isinstance(payload, dict):
        raise ValueError(f"'{section}' must be a JSON object")
    defaults = cls()
    allowed = {f.name for f in fields(cls)}
    unknown = sorted(set(payload.keys()) - allowed)
    if unknown:
        raise ValueError(f"Unknown {section} keys: {unknown}")
    kwargs = {
        key: _coerce(value, getattr(defaults, key), f"{section}.{key}")
        for key, value in payload.items()
    }
    return cls(**kwargs)


def load_run_config(path: Union[str, Path]) -> Tuple[PreprocessConfig, SegPostConfig]:
    """
    Load preprocessing + postprocessing settings from a JSON file:

        {
          "schema_version": 1,
          "preprocess": {"infer_size": 640, "pad_value": 114},
          "postprocess": {"common_threshold": 0.325, "person_threshold": 0.2}
        }

    Omitted keys keep their defaults.
    """

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Run config not found: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid run config JSON: {path}") from exc
    if not isinstance(payload, dict):
        raise ValueError("Run config must be a JSON object")

    allowed = {"schema_version", "preprocess", "postprocess"}
    unknown = sorted(set(payload.keys()) - allowed)
    if unknown:
        raise ValueError(f"Unknown run config keys: {unknown}")

    if _require_int(payload, "schema_version") != 1:
        raise ValueError("run config schema_version must be 1")

    pre_cfg = _build(PreprocessConfig, payload.get("preprocess", {}), "preprocess")
    post_cfg = _build(SegPostConfig, payload.get("postprocess", {}), "postprocess")
    return pre_cfg, post_cfg
