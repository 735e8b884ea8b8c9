from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Tuple, Union

import numpy as np

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass(frozen=True)
class TorchScriptBackendConfig:
    """
    Configuration for TorchScript inference.

    - device: "cpu" or "cuda" (if available)
    - half: cast input to float16 (only if the model expects it)
    - output_indices: positions of (scores, boxes) in the model's output tuple
    """

    device: str = "cpu"
    half: bool = False
    output_indices: Tuple[int, int] = (0, 1)


class TorchScriptBackend:
    """
    Minimal TorchScript backend using `torch.jit.load`.

    The scripted module must take the NHWC float blob and return a tuple/list that
    contains the score and box tensors.
    """

    def __init__(self, model_path: PathLike, cfg: TorchScriptBackendConfig = TorchScriptBackendConfig()):
        try:
            import torch  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError("torch is required for the TorchScript backend. Install with `pip install torch`.") from e

        self._torch = torch
        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise FileNotFoundError(str(self.model_path))

        self.device = torch.device(cfg.device)
        self.half = cfg.half
        self.output_indices = tuple(cfg.output_indices)

        model = torch.jit.load(str(self.model_path), map_location=self.device)
        model.eval()
        self.model = model
        logger.info("TorchScript model loaded on %s", self.device)

    def infer(self, blob: np.ndarray) -> List[np.ndarray]:
        torch = self._torch
        x = torch.as_tensor(blob, device=self.device)
        if self.half:
            x = x.half()
        else:
            x = x.float()
        x = x.contiguous()

        with torch.no_grad():
            y = self.model(x)

        if not isinstance(y, (tuple, list)):
            raise ValueError("TorchScript hand model must return a tuple of (scores, boxes).")

        outputs = []
        for idx in self.output_indices:
            t = y[idx]
            if hasattr(t, "detach"):
                t = t.detach()
            outputs.append(t.float().to("cpu").numpy())
        return outputs

    def close(self) -> None:
        self.model = None
        if self.device.type == "cuda":
            self._torch.cuda.empty_cache()
