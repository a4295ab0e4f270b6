import unittest

from compasshud.hud import IconSlot, OverflowResolver, SlotAssignmentError, SlotPool
from compasshud.poi import POIType, PointOfInterest, Row


def _poi(name: str, poi_type: str = "Vendor") -> PointOfInterest:
    return PointOfInterest(poi_type, (0.0, 0.0, 10.0), poi_id=name)


class SlotPoolTests(unittest.TestCase):
    def setUp(self) -> None:
        self.resolver = OverflowResolver(50.0, -50.0)
        self.pool = SlotPool.build(2, 2, overflow=self.resolver)

    def test_acquire_returns_first_unbound_slot_in_pool_order(self) -> None:
        first = self.pool.acquire(Row.BELOW)
        self.assertEqual(first.name, "below_0")
        self.pool.bind(_poi("a"), first)
        self.assertEqual(self.pool.acquire(Row.BELOW).name, "below_1")
        self.assertEqual(self.pool.acquire(Row.ABOVE).name, "above_0")

    def test_full_row_returns_none(self) -> None:
        for name in ("a", "b"):
            self.pool.bind(_poi(name), self.pool.acquire(Row.BELOW))
        self.assertIsNone(self.pool.acquire(Row.BELOW))
        self.assertIsNotNone(self.pool.acquire(Row.ABOVE))

    def test_destroyed_slot_is_skipped(self) -> None:
        self.pool.row_slots(Row.ABOVE)[0].destroy()
        self.assertEqual(self.pool.acquire(Row.ABOVE).name, "above_1")

    def test_bind_is_idempotent_per_poi(self) -> None:
        poi = _poi("a")
        slot0, slot1 = self.pool.row_slots(Row.BELOW)
        self.assertIs(self.pool.bind(poi, slot0), slot0)
        self.assertIs(self.pool.bind(poi, slot1), slot0)
        self.assertFalse(self.pool.is_assigned(slot1))
        self.assertEqual(len(self.pool), 1)

    def test_slot_cannot_serve_two_pois(self) -> None:
        slot = self.pool.row_slots(Row.BELOW)[0]
        self.pool.bind(_poi("a"), slot)
        with self.assertRaises(SlotAssignmentError):
            self.pool.bind(_poi("b"), slot)

    def test_release_clears_visuals_and_frees_slot(self) -> None:
        poi = _poi("a", "QuestGiver|Vendor")
        slot = self.pool.acquire(Row.ABOVE)
        slot.initialize("icons/quest.png")
        slot.set_active(True)
        self.pool.bind(poi, slot)
        self.pool.assign_secondary(slot, POIType.VENDOR, "icons/vendor.png")
        slot.activate_sub_icon(POIType.VENDOR)

        self.assertIs(self.pool.release(poi), slot)
        self.assertFalse(slot.active)
        self.assertFalse(slot.main_visible)
        self.assertIsNone(slot.main_image)
        self.assertEqual(slot.assigned_sub_icon_types(), [])
        self.assertTrue(all(sub.image is None and not sub.active for sub in slot.sub_icons))
        self.assertFalse(self.pool.is_assigned(slot))
        self.assertIsNone(self.pool.bound(poi))
        self.assertIs(self.pool.acquire(Row.ABOVE), slot)
        self.assertIsNone(self.pool.release(poi))

    def test_release_drops_displacement_record(self) -> None:
        left, right = self.pool.row_slots(Row.BELOW)
        a, b = _poi("a"), _poi("b")
        self.pool.bind(a, left)
        self.pool.bind(b, right)
        left.set_position(100.0)
        right.set_position(110.0)
        self.resolver.resolve([left, right])
        self.assertTrue(self.resolver.is_displaced(right))

        self.pool.release(b)
        self.assertFalse(self.resolver.is_displaced(right))
        self.assertEqual(right.y, -40.0)

    def test_owner_and_row_lookup(self) -> None:
        poi = _poi("a")
        slot = self.pool.acquire(Row.BELOW)
        self.pool.bind(poi, slot)
        self.assertIs(self.pool.owner(slot), poi)
        self.assertIs(self.pool.row_of(slot), Row.BELOW)
        self.assertIsNone(self.pool.row_of(IconSlot("stray")))

    def test_snapshot_names_owner(self) -> None:
        slot = self.pool.acquire(Row.BELOW)
        self.pool.bind(_poi("smith"), slot)
        snap = self.pool.snapshot()
        self.assertEqual(snap["below"][0]["poi"], "smith")
        self.assertIsNone(snap["below"][1]["poi"])
        self.assertEqual(len(snap["above"]), 2)


class SecondaryIconTests(unittest.TestCase):
    def setUp(self) -> None:
        self.pool = SlotPool.build(1, 0, sub_icon_count=2)
        self.slot = self.pool.acquire(Row.ABOVE)

    def test_distinct_flags_get_distinct_sub_icons(self) -> None:
        self.assertTrue(self.pool.assign_secondary(self.slot, POIType.VENDOR, "v.png"))
        self.assertTrue(self.pool.assign_secondary(self.slot, POIType.LANDMARK, "l.png"))
        vendor = self.slot.sub_icon_for(POIType.VENDOR)
        landmark = self.slot.sub_icon_for(POIType.LANDMARK)
        self.assertIsNot(vendor, landmark)
        self.assertEqual(vendor.image, "v.png")
        self.assertEqual(landmark.image, "l.png")

    def test_reassigning_a_flag_updates_in_place(self) -> None:
        self.pool.assign_secondary(self.slot, POIType.VENDOR, "v.png")
        sub = self.slot.sub_icon_for(POIType.VENDOR)
        self.assertTrue(self.pool.assign_secondary(self.slot, POIType.VENDOR, "v2.png", (1, 2, 3, 4)))
        self.assertIs(self.slot.sub_icon_for(POIType.VENDOR), sub)
        self.assertEqual(sub.image, "v2.png")
        self.assertEqual(sub.tint, (1, 2, 3, 4))
        self.assertEqual(len(self.slot.assigned_sub_icon_types()), 1)

    def test_extra_flags_are_dropped(self) -> None:
        self.pool.assign_secondary(self.slot, POIType.VENDOR, "v.png")
        self.pool.assign_secondary(self.slot, POIType.LANDMARK, "l.png")
        self.assertFalse(self.pool.assign_secondary(self.slot, POIType.RESOURCE, "r.png"))
        self.assertIsNone(self.slot.sub_icon_for(POIType.RESOURCE))

    def test_activation_is_per_flag(self) -> None:
        self.pool.assign_secondary(self.slot, POIType.VENDOR, "v.png")
        self.slot.activate_sub_icon(POIType.VENDOR)
        self.assertTrue(self.slot.is_sub_icon_active(POIType.VENDOR))
        self.slot.deactivate_sub_icon(POIType.VENDOR)
        self.assertFalse(self.slot.is_sub_icon_active(POIType.VENDOR))
        self.assertFalse(self.slot.is_sub_icon_active(POIType.PLAYER))


class IconSlotTests(unittest.TestCase):
    def test_small_moves_do_not_write_position(self) -> None:
        slot = IconSlot("s", x=10.0)
        self.assertFalse(slot.set_position(10.5, threshold=1.0))
        self.assertEqual(slot.x, 10.0)
        self.assertTrue(slot.set_position(12.0, threshold=1.0))
        self.assertEqual(slot.x, 12.0)

    def test_sub_threshold_drift_does_not_accumulate(self) -> None:
        slot = IconSlot("s", x=0.0)
        for x in (0.4, 0.8, 0.9):
            slot.set_position(x, threshold=1.0)
        self.assertEqual(slot.x, 0.0)

    def test_destroyed_slot_ignores_calls(self) -> None:
        slot = IconSlot("s", x=0.0, y=5.0)
        slot.destroy()
        slot.initialize("a.png")
        slot.set_active(True)
        slot.set_y(99.0)
        self.assertFalse(slot.set_position(50.0))
        self.assertFalse(slot.active)
        self.assertIsNone(slot.main_image)
        self.assertEqual(slot.y, 5.0)
        self.assertFalse(slot.assign_sub_icon(POIType.VENDOR, "v.png"))

    def test_elevation_arrow(self) -> None:
        slot = IconSlot("s")
        slot.set_elevation_arrow(True, False)
        self.assertEqual(slot.snapshot()["elevation"], "down")
        slot.set_elevation_arrow(False, True)
        self.assertIsNone(slot.snapshot()["elevation"])


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
