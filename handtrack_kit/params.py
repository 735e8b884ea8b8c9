from __future__ import annotations

import json
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional


@dataclass(frozen=True)
class ModelParameters:
    """
    Runtime options for the detection pipeline.

    Replaced wholesale between `detect` calls (see `merge_parameters`).
    """

    flip_horizontal: bool = True
    output_stride: int = 16
    image_scale_factor: float = 0.7
    max_num_boxes: int = 20
    iou_threshold: float = 0.5
    score_threshold: float = 0.99
    model_type: str = "MobilenetV2"

    def __post_init__(self) -> None:
        if not isinstance(self.flip_horizontal, bool):
            raise ValueError("flip_horizontal must be a boolean")
        if isinstance(self.output_stride, bool) or not isinstance(self.output_stride, int):
            raise ValueError("output_stride must be an integer")
        if self.output_stride < 1:
            raise ValueError("output_stride must be >= 1")
        if not 0.0 < self.image_scale_factor <= 1.0:
            raise ValueError("image_scale_factor must be in (0, 1]")
        if isinstance(self.max_num_boxes, bool) or not isinstance(self.max_num_boxes, int):
            raise ValueError("max_num_boxes must be an integer")
        if self.max_num_boxes < 1:
            raise ValueError("max_num_boxes must be >= 1")
        if not 0.0 <= self.iou_threshold <= 1.0:
            raise ValueError("iou_threshold must be in [0, 1]")
        if not 0.0 <= self.score_threshold <= 1.0:
            raise ValueError("score_threshold must be in [0, 1]")
        if not isinstance(self.model_type, str) or not self.model_type.strip():
            raise ValueError("model_type must be a non-empty string")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


DEFAULT_PARAMS = ModelParameters()

# handtrack.js option names, accepted so existing configs keep working.
_CAMEL_ALIASES = {
    "flipHorizontal": "flip_horizontal",
    "outputStride": "output_stride",
    "imageScaleFactor": "image_scale_factor",
    "maxNumBoxes": "max_num_boxes",
    "iouThreshold": "iou_threshold",
    "scoreThreshold": "score_threshold",
    "modelType": "model_type",
}

_FIELD_NAMES = {f.name for f in fields(ModelParameters)}


def _normalize_keys(partial: Mapping[str, Any]) -> Dict[str, Any]:
    normalized: Dict[str, Any] = {}
    unknown = []
    for key, value in partial.items():
        name = _CAMEL_ALIASES.get(key, key)
        if name not in _FIELD_NAMES:
            unknown.append(key)
            continue
        normalized[name] = value
    if unknown:
        raise ValueError(f"Unknown model parameter keys: {sorted(unknown)}")
    return normalized


def _coerce_numbers(values: Dict[str, Any]) -> Dict[str, Any]:
    # JSON has no float/int distinction: `1` is a valid threshold.
    out = dict(values)
    for key in ("image_scale_factor", "iou_threshold", "score_threshold"):
        if key not in out:
            continue
        value = out[key]
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"{key} must be a number")
        out[key] = float(value)
    return out


def merge_parameters(
    base: Optional[ModelParameters] = None,
    partial: Optional[Mapping[str, Any]] = None,
    **overrides: Any,
) -> ModelParameters:
    """
    Shallow-merge `partial` (and keyword overrides) into `base`, returning a new instance.

    Keys may be snake_case field names or the camelCase handtrack.js option names.
    """

    merged: Dict[str, Any] = {}
    if partial:
        merged.update(_normalize_keys(partial))
    if overrides:
        merged.update(_normalize_keys(overrides))
    base = base if base is not None else DEFAULT_PARAMS
    if not merged:
        return base
    return replace(base, **_coerce_numbers(merged))


def load_model_params(path: Path, base: Optional[ModelParameters] = None) -> ModelParameters:
    """
    Load model parameters from a JSON object file, merged over `base` (defaults if None).
    """

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Model parameters file not found: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid model parameters JSON: {path}") from exc
    if not isinstance(payload, dict):
        raise ValueError("Model parameters file must be a JSON object")
    return merge_parameters(base, payload)
