from __future__ import annotations

import math
from typing import Any, Tuple

import numpy as np

from .errors import InputDimensionError


def valid_resolution(dimension: int, scale_factor: float, stride: int) -> int:
    """
    Scale `dimension` and snap it down so the result is congruent to 1 modulo `stride`.

    The network's downsampling stages only divide evenly for such sizes.
    """

    if dimension <= 0:
        raise InputDimensionError(f"dimension must be > 0, got {dimension}")
    if stride < 1:
        raise ValueError(f"stride must be >= 1, got {stride}")
    if not 0.0 < scale_factor <= 1.0:
        raise ValueError(f"scale_factor must be in (0, 1], got {scale_factor}")

    even = dimension * scale_factor - 1
    # fmod: truncated remainder, so small frames (even in (-1, 0)) still map to 1.
    return int(even - math.fmod(even, stride) + 1)


def frame_dimensions(frame: Any) -> Tuple[int, int]:
    """
    Return (height, width) for a NumPy-like array or an object with `height`/`width` attributes.
    """

    shape = getattr(frame, "shape", None)
    if shape is not None:
        if len(shape) < 2:
            raise InputDimensionError(f"Expected a frame shaped (H, W[, C]), got {tuple(shape)}")
        return int(shape[0]), int(shape[1])
    if hasattr(frame, "height") and hasattr(frame, "width"):
        return int(frame.height), int(frame.width)
    raise TypeError("frame must expose `shape` or `height`/`width`.")


def preprocess_frame(
    frame: Any,
    target_height: int,
    target_width: int,
    *,
    flip_horizontal: bool = False,
    bgr_input: bool = True,
) -> np.ndarray:
    """
    Frame -> float32 RGB batch shaped (1, target_height, target_width, 3).

    Pixel values stay in [0, 255]; the network does its own normalization.
    """

    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for preprocess_frame(). Install with `pip install opencv-python`.") from e

    image = np.asarray(frame)
    if image.ndim == 2:
        image = image[:, :, None]
    if image.ndim != 3:
        raise ValueError(f"Expected image shape (H, W, C), got {image.shape}")

    channels = image.shape[2]
    if channels == 1:
        image = np.repeat(image, 3, axis=2)
    elif channels == 4:
        image = image[:, :, :3]
    elif channels != 3:
        raise ValueError(f"Expected 1, 3 or 4 channels, got {channels}")

    if bgr_input:
        image = image[:, :, ::-1]
    image = image.astype(np.float32)

    if flip_horizontal:
        image = cv2.flip(image, 1)

    h, w = image.shape[:2]
    if (w, h) != (target_width, target_height):
        image = cv2.resize(image, (target_width, target_height), interpolation=cv2.INTER_LINEAR)

    return np.ascontiguousarray(image)[None, ...]
