from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass(frozen=True)
class TensorRTBackendConfig:
    """
    Configuration for TensorRT engine inference.

    Notes:
    - TensorRT engines require a CUDA-capable environment.
    - Device buffers are Torch CUDA tensors (no PyCUDA).
    - output_names: (scores, boxes); defaults to the engine's first two outputs.
    """

    device: str = "cuda"
    input_name: Optional[str] = None
    output_names: Optional[Sequence[str]] = None


def _torch_dtype_from_trt(trt_dtype) -> "object":
    import torch  # type: ignore

    # Compare by name so tensorrt types are not needed at import time.
    name = getattr(trt_dtype, "name", str(trt_dtype)).lower()
    if "float16" in name or "half" in name:
        return torch.float16
    if name in ("float", "float32", "fp32"):
        return torch.float32
    if "uint8" in name:
        return torch.uint8
    if "int8" in name:
        return torch.int8
    if "int32" in name:
        return torch.int32
    if "bool" in name:
        return torch.bool
    return torch.float32


class TensorRTBackend:
    """
    Minimal TensorRT engine runner returning [scores, boxes].

    Supports both the tensor-name API (set_tensor_address + execute_async_v3) and the
    classic binding API (execute_async_v2), depending on the installed TensorRT.
    """

    def __init__(self, engine_path: PathLike, cfg: TensorRTBackendConfig = TensorRTBackendConfig()):
        try:
            import tensorrt as trt  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError(
                "tensorrt is required for the TensorRT backend. Install NVIDIA TensorRT Python bindings."
            ) from e

        try:
            import torch  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError("torch is required for the TensorRT backend buffers. Install with `pip install torch`.") from e

        self._trt = trt
        self._torch = torch

        self.engine_path = Path(engine_path)
        if not self.engine_path.exists():
            raise FileNotFoundError(str(self.engine_path))

        self.device = torch.device(cfg.device)
        if self.device.type != "cuda":
            raise ValueError("TensorRTBackend requires a CUDA device (device='cuda').")
        if not torch.cuda.is_available():  # pragma: no cover
            raise RuntimeError("CUDA is not available in this torch install, but TensorRT requires CUDA.")

        trt_logger = trt.Logger(trt.Logger.WARNING)
        runtime = trt.Runtime(trt_logger)
        engine = runtime.deserialize_cuda_engine(self.engine_path.read_bytes())
        if engine is None:
            raise RuntimeError(f"Failed to deserialize TensorRT engine: {self.engine_path}")

        self.engine = engine
        self.context = engine.create_execution_context()
        if self.context is None:
            raise RuntimeError("Failed to create TensorRT execution context.")

        self._use_io_tensors = hasattr(engine, "num_io_tensors")
        self.input_name, all_outputs = self._discover_io(cfg.input_name)
        self._all_outputs = all_outputs
        if cfg.output_names is not None:
            missing = [n for n in cfg.output_names if n not in all_outputs]
            if missing:
                raise ValueError(f"Output names {missing} not found. Available: {all_outputs}")
            self.output_names = list(cfg.output_names)
        else:
            self.output_names = all_outputs[:2]
        if len(self.output_names) != 2:
            raise ValueError(f"Expected 2 outputs (scores, boxes), engine exposes {all_outputs}.")
        logger.info("TensorRT engine loaded: input=%s outputs=%s", self.input_name, self.output_names)

    def _discover_io(self, preferred_input: Optional[str]) -> Tuple[str, List[str]]:
        trt = self._trt
        engine = self.engine

        if self._use_io_tensors:
            names = [engine.get_tensor_name(i) for i in range(engine.num_io_tensors)]
            inputs = [n for n in names if engine.get_tensor_mode(n) == trt.TensorIOMode.INPUT]
            outputs = [n for n in names if engine.get_tensor_mode(n) == trt.TensorIOMode.OUTPUT]
        else:
            # Older binding API
            inputs = []
            outputs = []
            for i in range(engine.num_bindings):
                name = engine.get_binding_name(i)
                if engine.binding_is_input(i):
                    inputs.append(name)
                else:
                    outputs.append(name)

        if not inputs:
            raise RuntimeError("TensorRT engine has no inputs.")
        if not outputs:
            raise RuntimeError("TensorRT engine has no outputs.")
        input_name = preferred_input or inputs[0]
        if input_name not in inputs:
            raise ValueError(f"Input name {input_name!r} not found. Available: {inputs}")
        return input_name, outputs

    def infer(self, blob: np.ndarray) -> List[np.ndarray]:
        torch = self._torch

        if blob is None:
            raise TypeError("blob must be a NumPy array.")

        input_shape = tuple(int(x) for x in np.asarray(blob).shape)
        if self._use_io_tensors:
            expected_dtype = self.engine.get_tensor_dtype(self.input_name)
        else:
            idx = self.engine.get_binding_index(self.input_name)
            expected_dtype = self.engine.get_binding_dtype(idx)
        torch_in_dtype = _torch_dtype_from_trt(expected_dtype)

        x = torch.as_tensor(np.asarray(blob), device=self.device)
        if torch_in_dtype == torch.uint8:
            x = x.round().clamp(0, 255)
        x = x.to(dtype=torch_in_dtype).contiguous()

        stream = torch.cuda.current_stream(device=self.device)
        stream_handle = int(stream.cuda_stream)

        if self._use_io_tensors:
            outputs = self._infer_io_tensors(x, input_shape, stream_handle)
        else:
            outputs = self._infer_bindings(x, input_shape, stream_handle)
        stream.synchronize()
        return [outputs[name].detach().float().to("cpu").numpy() for name in self.output_names]

    def _infer_io_tensors(self, x: "object", input_shape: Tuple[int, ...], stream_handle: int) -> Dict[str, "object"]:
        torch = self._torch
        ctx = self.context

        # Set shape (dynamic engines)
        if hasattr(ctx, "set_input_shape"):
            ctx.set_input_shape(self.input_name, input_shape)
        else:  # pragma: no cover
            bidx = self.engine.get_binding_index(self.input_name)
            ctx.set_binding_shape(bidx, input_shape)

        # Every output needs an address, even ones we do not read back.
        outputs: Dict[str, "object"] = {}
        for name in self._all_outputs:
            shape = tuple(int(s) for s in ctx.get_tensor_shape(name))
            dtype = _torch_dtype_from_trt(self.engine.get_tensor_dtype(name))
            outputs[name] = torch.empty(size=shape, dtype=dtype, device=self.device)

        ctx.set_tensor_address(self.input_name, int(x.data_ptr()))
        for name, t in outputs.items():
            ctx.set_tensor_address(name, int(t.data_ptr()))

        if not hasattr(ctx, "execute_async_v3"):
            raise RuntimeError("TensorRT context does not support execute_async_v3 with IO tensors.")

        ok = ctx.execute_async_v3(stream_handle)
        if not ok:  # pragma: no cover
            raise RuntimeError("TensorRT execute_async_v3 failed.")
        return outputs

    def _infer_bindings(self, x: "object", input_shape: Tuple[int, ...], stream_handle: int) -> Dict[str, "object"]:
        torch = self._torch
        ctx = self.context
        engine = self.engine

        input_idx = engine.get_binding_index(self.input_name)
        ctx.set_binding_shape(input_idx, input_shape)

        bindings: List[int] = [0] * engine.num_bindings
        bindings[input_idx] = int(x.data_ptr())

        outputs: Dict[str, "object"] = {}
        for i in range(engine.num_bindings):
            if engine.binding_is_input(i):
                continue
            name = engine.get_binding_name(i)
            shape = tuple(int(s) for s in ctx.get_binding_shape(i))
            dtype = _torch_dtype_from_trt(engine.get_binding_dtype(i))
            t = torch.empty(size=shape, dtype=dtype, device=self.device)
            outputs[name] = t
            bindings[i] = int(t.data_ptr())

        if not hasattr(ctx, "execute_async_v2"):
            raise RuntimeError("TensorRT context does not support execute_async_v2.")

        ok = ctx.execute_async_v2(bindings=bindings, stream_handle=stream_handle)
        if not ok:  # pragma: no cover
            raise RuntimeError("TensorRT execute_async_v2 failed.")
        return outputs

    def close(self) -> None:
        self.context = None
        self.engine = None
        self._torch.cuda.empty_cache()
