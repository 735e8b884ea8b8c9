import unittest

import numpy as np

from handtrack_kit.video import VideoHandle, stop_video


class _FakeCapture:
    def __init__(self, frames):
        self._frames = list(frames)
        self.released = False

    def isOpened(self):
        return not self.released

    def read(self):
        if not self._frames:
            return False, None
        return True, self._frames.pop(0)

    def release(self):
        self.released = True


class TestVideoHandle(unittest.TestCase):
    def test_frames_until_end(self) -> None:
        frames = [np.full((4, 4, 3), i, dtype=np.uint8) for i in range(3)]
        handle = VideoHandle(source="clip.mp4", width=4, height=4, capture=_FakeCapture(frames))
        got = list(handle.frames())
        self.assertEqual([int(f[0, 0, 0]) for f in got], [0, 1, 2])
        self.assertIsNone(handle.read())

    def test_stop_releases_once(self) -> None:
        cap = _FakeCapture([])
        handle = VideoHandle(source=0, width=640, height=480, capture=cap)
        self.assertTrue(handle.is_open)
        self.assertTrue(stop_video(handle))
        self.assertTrue(cap.released)
        self.assertFalse(handle.is_open)
        self.assertFalse(stop_video(handle))
        self.assertIsNone(handle.read())


if __name__ == "__main__":
    unittest.main()
