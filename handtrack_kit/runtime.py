from __future__ import annotations

import enum
import logging
import time
from pathlib import Path
from typing import Any, Callable, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from .errors import InvalidStateError, ModelLoadError
from .params import DEFAULT_PARAMS, ModelParameters, merge_parameters
from .postprocess import HandPostprocessor
from .resolution import frame_dimensions, preprocess_frame, valid_resolution
from .types import Detection, RawInferenceOutput

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

# NHWC input the packaged SSD models were exported with.
WARMUP_SHAPE: Tuple[int, ...] = (1, 300, 300, 3)
MODEL_DIR = "models"


def find_project_root(
    start: Optional[PathLike] = None,
    markers: Sequence[str] = ("pyproject.toml", "setup.py", ".git", "requirements.txt"),
) -> Path:
    """
    Best-effort project root discovery.

    Useful when `handtrack_kit` is vendored as `A/handtrack_kit` and models live in `A/models`.
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


def default_model_path(model_type: str) -> Path:
    """Relative location of the packaged model for `model_type`."""
    return Path(MODEL_DIR) / f"{model_type}.onnx"


class PipelineState(enum.Enum):
    UNLOADED = "unloaded"
    LOADING = "loading"
    READY = "ready"
    DISPOSED = "disposed"
    LOAD_FAILED = "load_failed"


class HandDetectionPipeline:
    """
    preprocess (flip + stride-aligned resize) -> inference -> postprocess.

    The pipeline expects BGR images (OpenCV-style) as `np.ndarray` by default and
    returns a list of `Detection` in original image coordinates.

    `loader` is called once by `load()` and must return a backend exposing
    `infer(blob) -> Sequence[np.ndarray]` (scores first, boxes second) and `close()`.
    Calls are not thread-safe; serialize `detect` invocations.
    """

    def __init__(
        self,
        loader: Callable[[], Any],
        *,
        params: Optional[ModelParameters] = None,
        backend_name: Optional[str] = None,
        bgr_input: bool = True,
        warmup_shape: Sequence[int] = WARMUP_SHAPE,
    ):
        self._loader = loader
        self._params = params if params is not None else DEFAULT_PARAMS
        self.backend_name = backend_name
        self.bgr_input = bgr_input
        self.warmup_shape = tuple(int(s) for s in warmup_shape)
        self.backend: Optional[Any] = None
        self.post = HandPostprocessor()
        self._state = PipelineState.UNLOADED
        self._fps = 0

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def fps(self) -> int:
        return self._fps

    def get_fps(self) -> int:
        return self._fps

    def get_parameters(self) -> ModelParameters:
        return self._params

    def set_parameters(self, partial: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> ModelParameters:
        self._params = merge_parameters(self._params, partial, **kwargs)
        return self._params

    def load(self) -> "HandDetectionPipeline":
        if self._state is not PipelineState.UNLOADED:
            raise InvalidStateError(f"load() requires state UNLOADED, pipeline is {self._state.name}.")

        self._state = PipelineState.LOADING
        backend = None
        try:
            backend = self._loader()
            logger.info("Warming up %s model with input %s", self.backend_name or "inference", self.warmup_shape)
            warmup = backend.infer(np.zeros(self.warmup_shape, dtype=np.float32))
            del warmup
        except Exception as exc:
            self._state = PipelineState.LOAD_FAILED
            logger.error("Model load failed: %s", exc)
            if backend is not None and hasattr(backend, "close"):
                try:
                    backend.close()
                except Exception as close_exc:
                    logger.warning("Backend close after failed load raised: %s", close_exc)
            raise ModelLoadError(f"Failed to load model: {exc}") from exc

        self.backend = backend
        self._fps = 0
        self._state = PipelineState.READY
        logger.info("Model ready (backend=%s)", self.backend_name)
        return self

    def detect(self, frame: Any) -> List[Detection]:
        if self._state is not PipelineState.READY:
            raise InvalidStateError(f"detect() requires state READY, pipeline is {self._state.name}.")

        params = self._params
        time_begin = time.perf_counter()

        height, width = frame_dimensions(frame)
        resized_h = valid_resolution(height, params.image_scale_factor, params.output_stride)
        resized_w = valid_resolution(width, params.image_scale_factor, params.output_stride)

        batched = preprocess_frame(
            frame,
            resized_h,
            resized_w,
            flip_horizontal=params.flip_horizontal,
            bgr_input=self.bgr_input,
        )
        outputs = None
        try:
            outputs = self.backend.infer(batched)
            raw = RawInferenceOutput.from_outputs(outputs)
        finally:
            # Outputs were copied into `raw`; drop the blob and backend buffers on every path.
            del batched, outputs

        detections = self.post.process(raw, orig_size=(width, height), params=params)

        elapsed_ms = (time.perf_counter() - time_begin) * 1000.0
        self._fps = int(round(1000.0 / max(elapsed_ms, 1.0)))
        logger.debug(
            "Detected %d hand(s) in %dx%d frame (resized %dx%d, %.1f ms)",
            len(detections),
            width,
            height,
            resized_w,
            resized_h,
            elapsed_ms,
        )
        return detections

    def __call__(self, frame: Any) -> List[Detection]:
        return self.detect(frame)

    def dispose(self) -> None:
        if self._state is PipelineState.READY:
            if self.backend is not None and hasattr(self.backend, "close"):
                self.backend.close()
            self.backend = None
            self._state = PipelineState.DISPOSED
            logger.info("Model disposed (backend=%s)", self.backend_name)
        elif self._state is PipelineState.UNLOADED:
            self._state = PipelineState.DISPOSED

    def __enter__(self) -> "HandDetectionPipeline":
        if self._state is PipelineState.UNLOADED:
            self.load()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.dispose()


def load_pipeline(
    model_path: Optional[PathLike] = None,
    *,
    params: Optional[ModelParameters] = None,
    backend: Optional[str] = None,
    root: Optional[PathLike] = "auto",
    bgr_input: bool = True,
    onnx_providers: Optional[Sequence[str]] = None,
    onnx_input_name: Optional[str] = None,
    onnx_output_names: Optional[Sequence[str]] = None,
    torch_device: str = "cpu",
    torch_half: bool = False,
    torch_output_indices: Tuple[int, int] = (0, 1),
    trt_device: str = "cuda",
    trt_input_name: Optional[str] = None,
    trt_output_names: Optional[Sequence[str]] = None,
) -> HandDetectionPipeline:
    """
    Create and load a detection pipeline for a model on disk.

    Typical usage:
        pipe = load_pipeline()  # models/MobilenetV2.onnx under the project root
        pipe = load_pipeline("models/hands.engine", params=ModelParameters(score_threshold=0.8))

    Args:
        model_path: path to the model file; None uses `models/<params.model_type>.onnx`
        backend: "onnxruntime", "torchscript", "tensorrt" or None to infer from extension
        root: base directory for resolving relative model paths ("auto" uses best-effort project root)

    Raises:
        ModelLoadError: the backend could not be created or the warm-up inference failed.
    """

    params = params if params is not None else DEFAULT_PARAMS
    if model_path is None:
        model_path = default_model_path(params.model_type)
    resolved = resolve_path(model_path, root=root)

    chosen = backend
    if chosen is None:
        suffix = resolved.suffix.lower()
        if suffix == ".onnx":
            chosen = "onnxruntime"
        elif suffix in {".engine", ".plan"}:
            chosen = "tensorrt"
        elif suffix in {".torchscript", ".ts", ".pt"}:
            chosen = "torchscript"
        else:
            raise ValueError(
                f"Could not infer backend from extension '{suffix}'. Pass backend=... explicitly."
            )

    chosen = chosen.lower()
    if chosen == "onnxruntime":

        def loader() -> Any:
            from .backends.onnxruntime_backend import OnnxRuntimeBackend, OnnxRuntimeBackendConfig

            return OnnxRuntimeBackend(
                resolved,
                OnnxRuntimeBackendConfig(
                    providers=onnx_providers,
                    input_name=onnx_input_name,
                    output_names=onnx_output_names,
                ),
            )

    elif chosen == "torchscript":

        def loader() -> Any:
            from .backends.torchscript_backend import TorchScriptBackend, TorchScriptBackendConfig

            return TorchScriptBackend(
                resolved,
                TorchScriptBackendConfig(device=torch_device, half=torch_half, output_indices=torch_output_indices),
            )

    elif chosen == "tensorrt":

        def loader() -> Any:
            from .backends.tensorrt_backend import TensorRTBackend, TensorRTBackendConfig

            return TensorRTBackend(
                resolved,
                TensorRTBackendConfig(
                    device=trt_device,
                    input_name=trt_input_name,
                    output_names=trt_output_names,
                ),
            )

    else:
        raise ValueError(f"Unsupported backend: {backend!r}")

    logger.info("Loading %s model from %s", chosen, resolved)
    pipeline = HandDetectionPipeline(loader, params=params, backend_name=chosen, bgr_input=bgr_input)
    return pipeline.load()
