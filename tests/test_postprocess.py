import unittest

import numpy as np

from handtrack_kit.errors import InferenceShapeError
from handtrack_kit.params import ModelParameters
from handtrack_kit.postprocess import MIN_SCORE, HandPostprocessor, build_detections, reduce_scores, to_pixel_box
from handtrack_kit.types import RawInferenceOutput

from fakes import BOXES, SCORES


class TestReduceScores(unittest.TestCase):
    def test_two_boxes_three_classes(self) -> None:
        max_scores, classes = reduce_scores([0.1, 0.9, 0.2, 0.5, 0.5, 0.3], 2, 3)
        self.assertTrue(np.allclose(max_scores, [0.9, 0.5]))
        # Tie on the second box goes to the lowest class index.
        self.assertEqual(classes.tolist(), [1, 0])

    def test_zero_classes_keep_sentinels(self) -> None:
        max_scores, classes = reduce_scores([], 2, 0)
        self.assertEqual(classes.tolist(), [-1, -1])
        self.assertEqual(max_scores.tolist(), [MIN_SCORE, MIN_SCORE])

    def test_all_zero_scores_keep_sentinels(self) -> None:
        max_scores, classes = reduce_scores([0.0, 0.0, 0.4, 0.0], 2, 2)
        self.assertEqual(classes.tolist(), [-1, 0])
        self.assertEqual(max_scores[0], MIN_SCORE)
        self.assertAlmostEqual(float(max_scores[1]), 0.4)

    def test_buffer_size_mismatch(self) -> None:
        with self.assertRaises(InferenceShapeError):
            reduce_scores([0.1, 0.2, 0.3], 2, 2)

    def test_nan_scores_never_win(self) -> None:
        max_scores, classes = reduce_scores([float("nan"), 0.9, float("nan"), float("nan")], 2, 2)
        self.assertEqual(classes.tolist(), [1, -1])
        self.assertAlmostEqual(float(max_scores[0]), 0.9)
        self.assertEqual(max_scores[1], MIN_SCORE)


class TestToPixelBox(unittest.TestCase):
    def test_plain_mapping(self) -> None:
        x, y, w, h = to_pixel_box([0.1, 0.2, 0.6, 0.8], width=100, height=200)
        self.assertAlmostEqual(x, 20.0)
        self.assertAlmostEqual(y, 20.0)
        self.assertAlmostEqual(w, 60.0)
        self.assertAlmostEqual(h, 100.0)

    def test_flip_maps_back_to_unmirrored_frame(self) -> None:
        x, y, w, h = to_pixel_box([0.0, 0.1, 0.5, 0.3], width=200, height=100, flip_horizontal=True)
        self.assertAlmostEqual(x, 140.0)
        self.assertAlmostEqual(y, 0.0)
        self.assertAlmostEqual(w, 40.0)
        self.assertAlmostEqual(h, 50.0)

    def test_negative_sizes_pass_through(self) -> None:
        _, _, w, h = to_pixel_box([0.6, 0.5, 0.4, 0.2], width=100, height=100)
        self.assertAlmostEqual(w, -30.0)
        self.assertAlmostEqual(h, -20.0)


class TestBuildDetections(unittest.TestCase):
    def test_keeps_index_order(self) -> None:
        boxes = np.array([[0.0, 0.0, 0.5, 0.5], [0.5, 0.5, 1.0, 1.0]])
        dets = build_detections(boxes, np.array([0.7, 0.9]), np.array([0, 0]), [1, 0], 10, 10)
        self.assertEqual(len(dets), 2)
        self.assertAlmostEqual(dets[0].score, 0.9)
        self.assertEqual(dets[0].bbox, (5.0, 5.0, 5.0, 5.0))
        self.assertEqual(dets[1].bbox, (0.0, 0.0, 5.0, 5.0))


class TestHandPostprocessor(unittest.TestCase):
    def test_reduce_suppress_map(self) -> None:
        raw = RawInferenceOutput.from_outputs([SCORES, BOXES])
        params = ModelParameters(flip_horizontal=False)
        dets = HandPostprocessor().process(raw, orig_size=(300, 300), params=params)

        self.assertEqual([d.class_id for d in dets], [1, 0])
        self.assertAlmostEqual(dets[0].score, 0.999, places=5)
        self.assertAlmostEqual(dets[1].score, 0.992, places=5)
        for got, want in zip(dets[0].bbox, (36.0, 36.0, 120.0, 120.0)):
            self.assertAlmostEqual(got, want, places=3)
        for got, want in zip(dets[1].bbox, (180.0, 150.0, 60.0, 120.0)):
            self.assertAlmostEqual(got, want, places=3)

    def test_raw_output_validation(self) -> None:
        with self.assertRaises(InferenceShapeError):
            RawInferenceOutput.from_outputs([SCORES])
        with self.assertRaises(InferenceShapeError):
            RawInferenceOutput.from_outputs([SCORES, BOXES[:, :3]])
        with self.assertRaises(InferenceShapeError):
            RawInferenceOutput.from_outputs([SCORES[0], BOXES])
        with self.assertRaises(InferenceShapeError):
            RawInferenceOutput.from_outputs([SCORES, BOXES, np.zeros(3, dtype=np.float32)])

    def test_squeezed_box_layout_is_accepted(self) -> None:
        raw = RawInferenceOutput.from_outputs([SCORES, BOXES.reshape(1, 4, 4)])
        self.assertEqual(raw.num_boxes, 4)
        self.assertEqual(raw.num_classes, 2)
        self.assertEqual(raw.box_rows().shape, (4, 4))


if __name__ == "__main__":
    unittest.main()
