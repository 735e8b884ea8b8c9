from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import numpy as np

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

_ORT_DTYPES = {
    "tensor(float)": np.float32,
    "tensor(float16)": np.float16,
    "tensor(double)": np.float64,
    "tensor(uint8)": np.uint8,
    "tensor(int32)": np.int32,
}


@dataclass(frozen=True)
class OnnxRuntimeBackendConfig:
    """
    Configuration for ONNX Runtime inference.

    - providers: ORT execution providers (e.g., ["CUDAExecutionProvider", "CPUExecutionProvider"])
    - input_name: override the auto-selected input name
    - output_names: (scores, boxes) output names; defaults to the first two session outputs
    """

    providers: Optional[Sequence[str]] = None
    input_name: Optional[str] = None
    output_names: Optional[Sequence[str]] = None


class OnnxRuntimeBackend:
    """
    Minimal ONNX Runtime backend for SSD-style hand detectors.

    Expects an NHWC blob shaped (1, H, W, 3). The blob is cast to the dtype the
    model declares (TF object-detection exports usually take uint8).
    Returns [scores, boxes] as NumPy arrays.
    """

    def __init__(self, model_path: PathLike, cfg: OnnxRuntimeBackendConfig = OnnxRuntimeBackendConfig()):
        try:
            import onnxruntime as ort  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError(
                "onnxruntime is required for the ONNX backend. Install it with `pip install onnxruntime` "
                "(or `onnxruntime-gpu`)."
            ) from e

        self._ort = ort
        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise FileNotFoundError(str(self.model_path))

        sess_opts = ort.SessionOptions()
        providers = list(cfg.providers) if cfg.providers is not None else None
        self.session = ort.InferenceSession(str(self.model_path), sess_options=sess_opts, providers=providers)

        model_input = self.session.get_inputs()[0]
        self.input_name = cfg.input_name or model_input.name
        self.input_dtype = _ORT_DTYPES.get(model_input.type, np.float32)

        if cfg.output_names is not None:
            self.output_names = list(cfg.output_names)
        else:
            self.output_names = [o.name for o in self.session.get_outputs()[:2]]
        if len(self.output_names) != 2:
            raise ValueError(f"Expected 2 outputs (scores, boxes), model exposes {self.output_names}.")
        logger.info("ONNX Runtime session on %s, outputs=%s", self.providers_in_use, self.output_names)

    @property
    def providers_in_use(self) -> Sequence[str]:
        # ORT returns providers in priority order for this session.
        return tuple(self.session.get_providers())

    @property
    def available_providers(self) -> Sequence[str]:
        return tuple(self._ort.get_available_providers())

    def infer(self, blob: np.ndarray, extra_inputs: Optional[Dict[str, Any]] = None) -> List[np.ndarray]:
        x = np.asarray(blob)
        if x.dtype != self.input_dtype:
            if np.issubdtype(self.input_dtype, np.integer):
                x = np.clip(np.rint(x), 0, 255)
            x = x.astype(self.input_dtype)
        inputs: Dict[str, Any] = {self.input_name: x}
        if extra_inputs:
            inputs.update(extra_inputs)
        return list(self.session.run(self.output_names, inputs))

    def close(self) -> None:
        # ORT frees the session when the last reference goes away.
        self.session = None
