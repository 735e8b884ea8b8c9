from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterator, Optional, Union

import numpy as np

logger = logging.getLogger(__name__)

DEFAULT_WIDTH = 640
# 4:3 fallback keeps older webcams from picking an unsupported mode.
DEFAULT_ASPECT = 3 / 4


@dataclass
class VideoHandle:
    """
    An open capture. Pass it to `stop_video` when done; nothing is kept globally.
    """

    source: Union[int, str]
    width: int
    height: int
    capture: Any = field(repr=False, default=None)

    @property
    def is_open(self) -> bool:
        return self.capture is not None and bool(self.capture.isOpened())

    def read(self) -> Optional[np.ndarray]:
        if self.capture is None:
            return None
        ok, frame = self.capture.read()
        if not ok or frame is None:
            return None
        return frame

    def frames(self) -> Iterator[np.ndarray]:
        while True:
            frame = self.read()
            if frame is None:
                return
            yield frame


def start_video(
    source: Union[int, str] = 0,
    *,
    width: Optional[int] = None,
    height: Optional[int] = None,
) -> VideoHandle:
    """
    Open a webcam index, video file or stream URL.

    Requested size defaults to 640 wide and 3/4 of the width high.
    """

    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for start_video(). Install with `pip install opencv-python`.") from e

    width = int(width or DEFAULT_WIDTH)
    height = int(height or width * DEFAULT_ASPECT)

    cap = cv2.VideoCapture(source)
    if not cap.isOpened():
        cap.release()
        raise RuntimeError(f"Failed to open video source: {source!r}")

    if isinstance(source, int):
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, height)

    actual_w = int(cap.get(cv2.CAP_PROP_FRAME_WIDTH)) or width
    actual_h = int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT)) or height
    logger.info("Opened video source %r at %dx%d", source, actual_w, actual_h)
    return VideoHandle(source=source, width=actual_w, height=actual_h, capture=cap)


def stop_video(handle: VideoHandle) -> bool:
    """
    Release the capture behind `handle`. Returns False if it was already stopped.
    """

    if handle.capture is None:
        return False
    handle.capture.release()
    handle.capture = None
    logger.info("Stopped video source %r", handle.source)
    return True
