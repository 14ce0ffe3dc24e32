import unittest

from rtmdet_kit.filters import class_nms, clamp_box, filter_detections, keep_by_score

from tests._helpers import make_det


class TestConfidenceFilter(unittest.TestCase):
    def _filter(self, dets, pad=(0, 0), size=64):
        return filter_detections(
            dets,
            common_threshold=0.5,
            person_threshold=0.2,
            person_class_id=0,
            pad=pad,
            infer_size=size,
        )

    def test_person_has_lower_threshold(self) -> None:
        self.assertTrue(keep_by_score(make_det((0, 0, 9, 9), 0.3, class_id=0), 0.5, 0.2, 0))
        self.assertFalse(keep_by_score(make_det((0, 0, 9, 9), 0.3, class_id=1), 0.5, 0.2, 0))
        self.assertFalse(keep_by_score(make_det((0, 0, 9, 9), 0.1, class_id=0), 0.5, 0.2, 0))
        # threshold is inclusive
        self.assertTrue(keep_by_score(make_det((0, 0, 9, 9), 0.5, class_id=1), 0.5, 0.2, 0))

    def test_low_score_dropped(self) -> None:
        dets = [make_det((0, 0, 9, 9), 0.9, class_id=1), make_det((0, 0, 9, 9), 0.4, class_id=1)]
        kept = self._filter(dets)
        self.assertEqual(len(kept), 1)
        self.assertIs(kept[0], dets[0])

    def test_clamp_into_unpadded_region(self) -> None:
        det = make_det((2, 3, 70, 40), 0.9, class_id=1)
        clamp_box(det, (8, 0), 64)
        self.assertEqual(det.as_xyxy(), (8, 3, 55, 40))

    def test_box_in_padding_becomes_degenerate_and_is_dropped(self) -> None:
        det = make_det((0, 10, 5, 20), 0.9, class_id=1)
        self.assertEqual(self._filter([det], pad=(8, 0)), [])

    def test_inverted_box_dropped(self) -> None:
        det = make_det((20, 10, 20, 30), 0.9, class_id=1)
        det.x2 = 10
        self.assertEqual(self._filter([det]), [])


class TestClassNms(unittest.TestCase):
    def test_same_class_overlap_suppressed(self) -> None:
        a = make_det((10, 10, 40, 40), 0.6, class_id=1)
        b = make_det((11, 11, 41, 41), 0.8, class_id=1)
        c = make_det((11, 11, 41, 41), 0.7, class_id=2)
        kept = class_nms([a, b, c], iou_threshold=0.6)
        self.assertEqual(kept, [b, c])

    def test_tie_keeps_earlier(self) -> None:
        a = make_det((10, 10, 40, 40), 0.8, class_id=1)
        b = make_det((10, 10, 40, 40), 0.8, class_id=1)
        kept = class_nms([a, b], iou_threshold=0.6)
        self.assertEqual(len(kept), 1)
        self.assertIs(kept[0], a)


if __name__ == "__main__":
    unittest.main()
