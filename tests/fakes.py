from __future__ import annotations

from typing import List, Optional, Sequence

import numpy as np

# 4 boxes, 2 classes. Box 1 overlaps box 0 and wins; box 2 is below the default
# 0.99 threshold; box 3 is a tie between classes and does not overlap box 1.
SCORES = np.array(
    [
        [
            [0.995, 0.2],
            [0.3, 0.999],
            [0.5, 0.4],
            [0.992, 0.992],
        ]
    ],
    dtype=np.float32,
)
BOXES = np.array(
    [
        [
            [[0.1, 0.1, 0.5, 0.5]],
            [[0.12, 0.12, 0.52, 0.52]],
            [[0.6, 0.6, 0.9, 0.9]],
            [[0.5, 0.6, 0.9, 0.8]],
        ]
    ],
    dtype=np.float32,
)


class FakeBackend:
    """In-memory stand-in for an inference runtime."""

    def __init__(self, outputs: Optional[Sequence[np.ndarray]] = None, fail_on_call: Optional[int] = None):
        self.outputs = list(outputs) if outputs is not None else [SCORES, BOXES]
        self.fail_on_call = fail_on_call
        self.blobs: List[np.ndarray] = []
        self.closed = False

    def infer(self, blob: np.ndarray) -> List[np.ndarray]:
        self.blobs.append(np.array(blob))
        if self.fail_on_call is not None and len(self.blobs) == self.fail_on_call:
            raise RuntimeError("inference exploded")
        return [np.array(o) for o in self.outputs]

    def close(self) -> None:
        self.closed = True
