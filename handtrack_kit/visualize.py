from __future__ import annotations

from typing import Iterable, Optional, Tuple

import numpy as np

from .types import Detection

# #0063FF in BGR
BOX_COLOR: Tuple[int, int, int] = (255, 99, 0)
LABEL_BG: Tuple[int, int, int] = (255, 255, 255)
LABEL_ALPHA = 0.6
LABEL_HEIGHT = 17


def render_predictions(
    image_bgr: np.ndarray,
    predictions: Iterable[Detection],
    *,
    fps: Optional[int] = None,
    flip_horizontal: bool = False,
    label: str = "hand",
    font_scale: float = 0.4,
) -> np.ndarray:
    """
    Draw predictions on an OpenCV BGR image and return a copy.

    Args:
        image_bgr: input frame (H, W, 3), as passed to `detect`.
        predictions: detections in that frame's pixel coordinates.
        fps: if given, written at the top left.
        flip_horizontal: show a mirrored (selfie) view; boxes are mirrored to match.
    """

    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for render_predictions(). Install with `pip install opencv-python`.") from e

    if image_bgr is None or not hasattr(image_bgr, "shape"):
        raise TypeError("image_bgr must be a NumPy array (BGR).")
    if image_bgr.ndim != 3 or image_bgr.shape[2] != 3:
        raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image_bgr, 'shape', None)}")

    out = cv2.flip(image_bgr, 1) if flip_horizontal else image_bgr.copy()
    h, w = out.shape[:2]

    for det in predictions:
        x, y, bw, bh = det.bbox
        if flip_horizontal:
            x = w - x - bw
        x1i = int(np.clip(round(x), 0, w - 1))
        y1i = int(np.clip(round(y), 0, h - 1))
        x2i = int(np.clip(round(x + bw), 0, w - 1))
        y2i = int(np.clip(round(y + bh), 0, h - 1))

        # Translucent strip above the box for the label.
        strip_top = max(y1i - LABEL_HEIGHT, 0)
        if x2i > x1i and y1i > strip_top:
            region = out[strip_top:y1i, x1i:x2i]
            bg = np.empty_like(region)
            bg[:] = LABEL_BG
            out[strip_top:y1i, x1i:x2i] = cv2.addWeighted(region, 1.0 - LABEL_ALPHA, bg, LABEL_ALPHA, 0)

        cv2.rectangle(out, (x1i, y1i), (x2i, y2i), BOX_COLOR, thickness=1)

        cx = int(round(x + bw / 2))
        cy = int(round(y + bh / 2))
        cv2.rectangle(out, (cx, cy), (cx + 5, cy + 5), BOX_COLOR, thickness=-1)

        text = f"{det.score:.3f} | {label}"
        text_y = y1i - 5 if y1i > 10 else 10
        cv2.putText(out, text, (x1i + 5, text_y), cv2.FONT_HERSHEY_SIMPLEX, font_scale, BOX_COLOR, 1, cv2.LINE_AA)

    if fps is not None:
        cv2.putText(out, f"[FPS]: {fps}", (10, 20), cv2.FONT_HERSHEY_SIMPLEX, 0.5, BOX_COLOR, 2, cv2.LINE_AA)

    return out
