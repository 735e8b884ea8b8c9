from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Sequence, Tuple

import numpy as np

from .errors import InferenceShapeError


@dataclass
class Detection:
    """
    A single hand detection in pixel coordinates of the original frame.
    """

    bbox: Tuple[float, float, float, float]  # x, y, width, height
    class_id: int
    score: float

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        x, y, w, h = self.bbox
        return x, y, x + w, y + h

    def to_dict(self) -> Dict[str, Any]:
        return {"bbox": [float(v) for v in self.bbox], "class": int(self.class_id), "score": float(self.score)}


@dataclass(frozen=True)
class RawInferenceOutput:
    """
    Score and box arrays read back from the network.

    scores: (1, num_boxes, num_classes)
    boxes: (1, num_boxes, 1, 4) or (1, num_boxes, 4), normalized (min_y, min_x, max_y, max_x)
    """

    scores: np.ndarray
    boxes: np.ndarray

    @property
    def num_boxes(self) -> int:
        return int(self.scores.shape[1])

    @property
    def num_classes(self) -> int:
        return int(self.scores.shape[2])

    def flat_scores(self) -> np.ndarray:
        return self.scores.reshape(-1)

    def box_rows(self) -> np.ndarray:
        """Boxes as a (num_boxes, 4) array."""
        return self.boxes.reshape(self.num_boxes, 4)

    @classmethod
    def from_outputs(cls, outputs: Sequence[Any]) -> "RawInferenceOutput":
        if outputs is None or len(outputs) != 2:
            got = 0 if outputs is None else len(outputs)
            raise InferenceShapeError(f"Expected 2 outputs (scores, boxes), got {got}.")

        scores = np.array(outputs[0], dtype=np.float32)
        boxes = np.array(outputs[1], dtype=np.float32)

        if scores.ndim != 3 or scores.shape[0] != 1:
            raise InferenceShapeError(f"Expected scores shape (1, N, C), got {scores.shape}.")
        if boxes.ndim == 4:
            ok = boxes.shape[0] == 1 and boxes.shape[2] == 1 and boxes.shape[3] == 4
        elif boxes.ndim == 3:
            ok = boxes.shape[0] == 1 and boxes.shape[2] == 4
        else:
            ok = False
        if not ok:
            raise InferenceShapeError(f"Expected boxes shape (1, N, 1, 4) or (1, N, 4), got {boxes.shape}.")
        if boxes.shape[1] != scores.shape[1]:
            raise InferenceShapeError(
                f"Scores describe {scores.shape[1]} boxes but boxes output has {boxes.shape[1]}."
            )
        return cls(scores=scores, boxes=boxes)
