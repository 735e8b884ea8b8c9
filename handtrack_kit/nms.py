from dataclasses import dataclass

import numpy as np

from .errors import InferenceShapeError


@dataclass(frozen=True)
class NMSConfig:
    iou_threshold: float = 0.5
    score_threshold: float = 0.99
    max_detections: int = 20


def nms(boxes: np.ndarray, scores: np.ndarray, cfg: NMSConfig) -> np.ndarray:
    """
    Greedy NumPy NMS. Expects corner boxes shape (N,4) and scores shape (N,).

    Any consistent corner order works ((y1, x1, y2, x2) or (x1, y1, x2, y2)).
    Returns indices of kept boxes in selection order (descending score, ties by index).
    """

    boxes = np.asarray(boxes, dtype=np.float64).reshape(-1, 4)
    scores = np.asarray(scores, dtype=np.float64).reshape(-1)
    if scores.shape[0] != boxes.shape[0]:
        raise InferenceShapeError(f"Got {boxes.shape[0]} boxes but {scores.shape[0]} scores.")

    if boxes.size == 0 or cfg.max_detections <= 0:
        return np.empty((0,), dtype=np.int32)

    a1 = np.minimum(boxes[:, 0], boxes[:, 2])
    b1 = np.minimum(boxes[:, 1], boxes[:, 3])
    a2 = np.maximum(boxes[:, 0], boxes[:, 2])
    b2 = np.maximum(boxes[:, 1], boxes[:, 3])
    areas = (a2 - a1) * (b2 - b1)

    candidates = np.where(scores > cfg.score_threshold)[0]
    order = candidates[np.argsort(-scores[candidates], kind="stable")]
    keep = []

    while order.size > 0 and len(keep) < cfg.max_detections:
        i = order[0]
        keep.append(i)

        aa1 = np.maximum(a1[i], a1[order[1:]])
        bb1 = np.maximum(b1[i], b1[order[1:]])
        aa2 = np.minimum(a2[i], a2[order[1:]])
        bb2 = np.minimum(b2[i], b2[order[1:]])

        w = np.maximum(0.0, aa2 - aa1)
        h = np.maximum(0.0, bb2 - bb1)
        inter = w * h
        union = areas[i] + areas[order[1:]] - inter
        # Degenerate (zero-area) pairs count as non-overlapping.
        iou = np.where(union > 0, inter / np.maximum(union, 1e-12), 0.0)

        inds = np.where(iou <= cfg.iou_threshold)[0]
        order = order[inds + 1]

    return np.array(keep, dtype=np.int32)
