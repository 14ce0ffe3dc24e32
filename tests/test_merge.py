import unittest

import numpy as np

from rtmdet_kit.merge import MergeConfig, MergeGroups, box_iou, group_detections, merge_detections, pair_metrics

from tests._helpers import make_det


class TestBoxIoU(unittest.TestCase):
    def test_self_iou_is_one(self) -> None:
        for box in [(0, 0, 0, 0), (3, 4, 10, 20), (10, 10, 50, 50)]:
            self.assertEqual(box_iou(box, box), 1.0)

    def test_disjoint_is_zero(self) -> None:
        self.assertEqual(box_iou((0, 0, 9, 9), (20, 20, 30, 30)), 0.0)
        self.assertEqual(box_iou((0, 0, 9, 9), (10, 0, 19, 9)), 0.0)

    def test_pixel_inclusive_extents(self) -> None:
        # 5 x 10 overlap of two 10 x 10 boxes
        self.assertAlmostEqual(box_iou((0, 0, 9, 9), (5, 0, 14, 9)), 50.0 / 150.0)
        # shared edge column counts as overlap
        self.assertGreater(box_iou((0, 0, 9, 9), (9, 0, 18, 9)), 0.0)


class TestPairMetrics(unittest.TestCase):
    def test_empty_masks_do_not_divide_by_zero(self) -> None:
        a = make_det((0, 0, 9, 9), 0.9)
        b = make_det((0, 0, 9, 9), 0.5)
        a.mask[:] = 0
        b.mask[:] = 0
        m = pair_metrics(a, b)
        self.assertEqual(m.mask_iou, 0.0)
        self.assertEqual(m.overlap_a, 0.0)
        self.assertEqual(m.overlap_b, 0.0)

    def test_contained_fragment_overlap(self) -> None:
        big = make_det((0, 0, 39, 39), 0.9)
        small = make_det((5, 5, 14, 14), 0.5)
        m = pair_metrics(big, small)
        self.assertAlmostEqual(m.overlap_b, 1.0, places=5)
        self.assertLess(m.overlap_a, 0.1)
        self.assertLess(m.box_iou, 0.1)

    def test_mask_values_are_binarized(self) -> None:
        a = make_det((0, 0, 9, 9), 0.9)
        b = make_det((0, 0, 9, 9), 0.5)
        a.mask *= 255
        m = pair_metrics(a, b)
        self.assertAlmostEqual(m.mask_iou, 1.0, places=5)


class TestMergeGroups(unittest.TestCase):
    def test_absorb_transfers_members(self) -> None:
        g = MergeGroups()
        g.absorb(0, 1)
        g.absorb(0, 3)
        g.absorb(2, 0)
        self.assertEqual(g.groups, {2: [0, 1, 3]})
        self.assertEqual(g.skipped, {0, 1, 3})
        self.assertEqual(g.members(2), [0, 1, 3])
        self.assertEqual(g.members(5), [])


class TestMergeDetections(unittest.TestCase):
    def test_contained_duplicate_merges_into_higher_score(self) -> None:
        a = make_det((10, 10, 50, 50), 0.9, class_id=1)
        b = make_det((12, 12, 48, 48), 0.5, class_id=1)
        out = merge_detections([a, b])
        self.assertEqual(len(out), 1)
        self.assertIs(out[0], a)
        self.assertEqual(out[0].score, 0.9)
        self.assertEqual(out[0].as_xyxy(), (10, 10, 50, 50))

    def test_fragment_merges_only_within_class(self) -> None:
        big = make_det((0, 0, 59, 59), 0.8, class_id=1)
        same = make_det((5, 5, 14, 14), 0.6, class_id=1)
        other = make_det((30, 30, 39, 39), 0.6, class_id=2)
        out = merge_detections([big, same, other])
        self.assertEqual(out, [big, other])

    def test_exact_tie_absorbs_later_index(self) -> None:
        a = make_det((10, 10, 40, 40), 0.7)
        b = make_det((10, 10, 40, 40), 0.7)
        out = merge_detections([a, b])
        self.assertEqual(len(out), 1)
        self.assertIs(out[0], a)

    def test_groups_are_transitive(self) -> None:
        a = make_det((0, 0, 29, 29), 0.9, class_id=1)
        fragment = make_det((2, 2, 9, 9), 0.5, class_id=1)
        c = make_det((1, 0, 30, 29), 0.95, class_id=1)
        dets = [a, fragment, c]
        state = group_detections(dets, MergeConfig())
        self.assertEqual(state.groups, {2: [0, 1]})
        self.assertEqual(state.skipped, {0, 1})

        out = merge_detections(dets)
        self.assertEqual(out, [c])
        self.assertEqual(c.as_xyxy(), (0, 0, 30, 29))

    def test_mask_union_is_limited_to_member_box(self) -> None:
        a = make_det((10, 10, 40, 40), 0.9, class_id=1, mask_box=(10, 10, 35, 40))
        b = make_det((10, 10, 40, 40), 0.5, class_id=1)
        b.mask[50, 50] = 1  # outside b's box
        merge_detections([a, b])
        self.assertTrue(np.all(a.mask[10:41, 36:41] == 1))
        self.assertEqual(int(a.mask[50, 50]), 0)
        self.assertEqual(int(a.mask[9, 9]), 0)

    def test_mask_union_takes_pixel_max(self) -> None:
        a = make_det((10, 10, 40, 40), 0.9, class_id=1)
        b = make_det((10, 10, 40, 40), 0.5, class_id=1)
        b.mask[20, 20] = 255
        merge_detections([a, b])
        self.assertEqual(int(a.mask[20, 20]), 255)
        self.assertEqual(int(a.mask[21, 21]), 1)

    def test_unrelated_detections_kept_in_order(self) -> None:
        dets = [
            make_det((0, 0, 9, 9), 0.3),
            make_det((20, 20, 29, 29), 0.9),
            make_det((40, 40, 49, 49), 0.5),
        ]
        self.assertEqual(merge_detections(dets), dets)

    def test_merge_is_idempotent(self) -> None:
        dets = [
            make_det((10, 10, 30, 30), 0.9, class_id=1),
            make_det((11, 11, 30, 30), 0.8, class_id=1),
            make_det((40, 40, 60, 60), 0.7, class_id=2),
            make_det((42, 42, 50, 50), 0.6, class_id=2),
        ]
        once = merge_detections(dets)
        boxes = [d.as_xyxy() for d in once]
        masks = [d.mask.copy() for d in once]
        twice = merge_detections(once)
        self.assertEqual([d.as_xyxy() for d in twice], boxes)
        self.assertEqual(len(twice), 2)
        for d, m in zip(twice, masks):
            self.assertTrue(np.array_equal(d.mask, m))

    def test_grown_representative_absorbs_earlier_survivor(self) -> None:
        def chain():
            return [
                make_det((0, 0, 39, 39), 0.9, class_id=1),
                make_det((31, 0, 41, 39), 0.8, class_id=1),
                make_det((35, 0, 42, 39), 0.7, class_id=1),
            ]

        # a single ordered pass only absorbs the middle one
        state = group_detections(chain(), MergeConfig())
        self.assertEqual(state.skipped, {1})

        dets = chain()
        once = merge_detections(dets)
        self.assertEqual(once, [dets[0]])
        self.assertEqual(once[0].as_xyxy(), (0, 0, 42, 39))
        self.assertTrue(np.all(once[0].mask[0:40, 0:43] == 1))
        self.assertEqual(int(once[0].mask[0:40, 43].sum()), 0)

        mask = once[0].mask.copy()
        twice = merge_detections(once)
        self.assertEqual(twice, once)
        self.assertEqual(twice[0].as_xyxy(), (0, 0, 42, 39))
        self.assertTrue(np.array_equal(twice[0].mask, mask))


    def test_output_never_larger_than_input(self) -> None:
        rng = np.random.default_rng(7)
        for _ in range(5):
            dets = []
            for _ in range(12):
                x1, y1 = (int(v) for v in rng.integers(0, 40, size=2))
                w, h = (int(v) for v in rng.integers(2, 20, size=2))
                dets.append(
                    make_det(
                        (x1, y1, min(x1 + w, 63), min(y1 + h, 63)),
                        float(rng.uniform(0.1, 1.0)),
                        class_id=int(rng.integers(0, 3)),
                    )
                )
            out = merge_detections(dets)
            self.assertLessEqual(len(out), len(dets))
            self.assertGreaterEqual(len(out), 1)


if __name__ == "__main__":
    unittest.main()
