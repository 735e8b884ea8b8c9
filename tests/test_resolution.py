import unittest
from types import SimpleNamespace

import numpy as np

from handtrack_kit.errors import InputDimensionError
from handtrack_kit.resolution import frame_dimensions, preprocess_frame, valid_resolution


class TestValidResolution(unittest.TestCase):
    def test_known_values(self) -> None:
        self.assertEqual(valid_resolution(300, 0.7, 16), 209)
        self.assertEqual(valid_resolution(640, 0.7, 16), 433)
        self.assertEqual(valid_resolution(480, 0.7, 16), 321)
        self.assertEqual(valid_resolution(480, 1.0, 8), 473)

    def test_always_one_mod_stride(self) -> None:
        for stride in (1, 2, 8, 16, 32):
            for scale in (0.1, 0.25, 0.5, 0.7, 0.93, 1.0):
                for dim in (1, 2, 3, 17, 99, 240, 300, 481, 720, 1080, 1921):
                    r = valid_resolution(dim, scale, stride)
                    self.assertIsInstance(r, int)
                    self.assertEqual(r % stride, 1 % stride, msg=f"dim={dim} scale={scale} stride={stride}")
                    self.assertGreaterEqual(r, 1)

    def test_tiny_dimension_maps_to_one(self) -> None:
        # 1 * 0.7 - 1 is negative; truncated remainder keeps the result at 1.
        self.assertEqual(valid_resolution(1, 0.7, 16), 1)

    def test_rejects_degenerate_inputs(self) -> None:
        with self.assertRaises(InputDimensionError):
            valid_resolution(0, 0.7, 16)
        with self.assertRaises(InputDimensionError):
            valid_resolution(-5, 0.7, 16)
        with self.assertRaises(ValueError):
            valid_resolution(300, 0.7, 0)
        with self.assertRaises(ValueError):
            valid_resolution(300, 0.0, 16)
        with self.assertRaises(ValueError):
            valid_resolution(300, 1.5, 16)


class TestFrameDimensions(unittest.TestCase):
    def test_array_shape(self) -> None:
        self.assertEqual(frame_dimensions(np.zeros((120, 160, 3), dtype=np.uint8)), (120, 160))

    def test_height_width_attributes(self) -> None:
        self.assertEqual(frame_dimensions(SimpleNamespace(height=480, width=640)), (480, 640))

    def test_unknown_input(self) -> None:
        with self.assertRaises(TypeError):
            frame_dimensions(object())


class TestPreprocessFrame(unittest.TestCase):
    def test_shape_and_dtype(self) -> None:
        frame = np.zeros((300, 300, 3), dtype=np.uint8)
        blob = preprocess_frame(frame, 209, 209)
        self.assertEqual(blob.shape, (1, 209, 209, 3))
        self.assertEqual(blob.dtype, np.float32)

    def test_bgr_to_rgb(self) -> None:
        frame = np.zeros((32, 32, 3), dtype=np.uint8)
        frame[:, :, 0] = 255  # blue in BGR
        blob = preprocess_frame(frame, 17, 17, bgr_input=True)
        self.assertTrue(np.allclose(blob[0, :, :, 2], 255.0))
        self.assertTrue(np.allclose(blob[0, :, :, 0], 0.0))

        rgb = preprocess_frame(frame, 17, 17, bgr_input=False)
        self.assertTrue(np.allclose(rgb[0, :, :, 0], 255.0))

    def test_flip_mirrors_columns(self) -> None:
        frame = np.zeros((40, 40, 3), dtype=np.uint8)
        frame[:, :20] = 255
        plain = preprocess_frame(frame, 40, 40, flip_horizontal=False)
        flipped = preprocess_frame(frame, 40, 40, flip_horizontal=True)
        self.assertTrue(np.allclose(plain[0, :, 0], 255.0))
        self.assertTrue(np.allclose(flipped[0, :, 0], 0.0))
        self.assertTrue(np.allclose(flipped[0, :, -1], 255.0))

    def test_grayscale_expands_to_three_channels(self) -> None:
        frame = np.full((20, 30), 7, dtype=np.uint8)
        blob = preprocess_frame(frame, 17, 17)
        self.assertEqual(blob.shape, (1, 17, 17, 3))
        self.assertTrue(np.allclose(blob, 7.0))


if __name__ == "__main__":
    unittest.main()
