from __future__ import annotations

from typing import List, Sequence, Tuple

import numpy as np

from .errors import InferenceShapeError
from .nms import NMSConfig, nms
from .params import ModelParameters
from .types import Detection, RawInferenceOutput

# Smallest positive float; a box keeps class -1 unless some class score exceeds it.
MIN_SCORE = float(np.nextafter(0.0, 1.0))
NO_CLASS = -1


def reduce_scores(scores: Sequence[float], num_boxes: int, num_classes: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    Best class (and its score) per box from a flat (num_boxes * num_classes) score buffer.

    Ties go to the lowest class index. Boxes with no score above `MIN_SCORE`
    (including num_classes == 0) get class -1 and score `MIN_SCORE`.
    """

    flat = np.asarray(scores, dtype=np.float64).reshape(-1)
    if flat.shape[0] != num_boxes * num_classes:
        raise InferenceShapeError(
            f"Score buffer has {flat.shape[0]} values, expected {num_boxes} x {num_classes}."
        )

    max_scores = np.full((num_boxes,), MIN_SCORE, dtype=np.float64)
    best_class = np.full((num_boxes,), NO_CLASS, dtype=np.int64)
    if num_boxes == 0 or num_classes == 0:
        return max_scores, best_class

    grid = flat.reshape(num_boxes, num_classes)
    # NaN never wins a ">" comparison; argmax returns the first occurrence of the max.
    grid = np.where(np.isnan(grid), -np.inf, grid)
    idx = np.argmax(grid, axis=1)
    best = grid[np.arange(num_boxes), idx]
    found = best > MIN_SCORE
    max_scores[found] = best[found]
    best_class[found] = idx[found]
    return max_scores, best_class


def to_pixel_box(
    normalized_box: Sequence[float],
    width: int,
    height: int,
    flip_horizontal: bool = False,
) -> Tuple[float, float, float, float]:
    """
    (min_y, min_x, max_y, max_x) in [0, 1] -> (x, y, w, h) in pixels.

    With `flip_horizontal` the box was predicted on a mirrored frame and is mapped back.
    No clamping: negative sizes from the network pass through.
    """

    min_y, min_x, max_y, max_x = (float(v) for v in normalized_box)
    left = min_x * width
    right = max_x * width
    y = min_y * height
    w = right - left
    h = max_y * height - y
    x = width - right if flip_horizontal else left
    return x, y, w, h


def build_detections(
    boxes: np.ndarray,
    max_scores: np.ndarray,
    classes: np.ndarray,
    indexes: Sequence[int],
    width: int,
    height: int,
    flip_horizontal: bool = False,
) -> List[Detection]:
    out: List[Detection] = []
    for i in indexes:
        i = int(i)
        out.append(
            Detection(
                bbox=to_pixel_box(boxes[i], width, height, flip_horizontal),
                class_id=int(classes[i]),
                score=float(max_scores[i]),
            )
        )
    return out


class HandPostprocessor:
    """
    Raw network outputs -> filtered detections in original frame coordinates.

    score reduction -> NMS -> pixel-space mapping.
    """

    def process(
        self,
        raw: RawInferenceOutput,
        orig_size: Tuple[int, int],
        params: ModelParameters,
    ) -> List[Detection]:
        """
        Arg:
            raw: validated model outputs for a single frame
            orig_size: (width, height) of the frame before resizing
            params: parameters snapshotted for this call
        """

        boxes = raw.box_rows()
        max_scores, classes = reduce_scores(raw.flat_scores(), raw.num_boxes, raw.num_classes)

        nms_cfg = NMSConfig(
            iou_threshold=params.iou_threshold,
            score_threshold=params.score_threshold,
            max_detections=params.max_num_boxes,
        )
        indexes = nms(boxes, max_scores, nms_cfg)

        width, height = orig_size
        return build_detections(boxes, max_scores, classes, indexes, width, height, params.flip_horizontal)
