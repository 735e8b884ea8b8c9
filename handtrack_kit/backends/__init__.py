"""
Optional inference backends for handtrack_kit.

Backends are kept in a separate module so core functionality (pre/post-processing)
stays lightweight and can be used without installing inference runtimes.

Every backend exposes `infer(blob) -> List[np.ndarray]` with scores first and boxes
second, plus `close()`.
"""

from __future__ import annotations

__all__ = []
