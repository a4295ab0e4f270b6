import math
import unittest

from compasshud.hud import IconSlot, OverflowResolver


def _slot(name: str, x: float, y: float = -40.0, width: float = 40.0) -> IconSlot:
    slot = IconSlot(name, x=x, y=y, width=width)
    slot.set_active(True)
    return slot


class OverflowResolverTests(unittest.TestCase):
    def setUp(self) -> None:
        self.resolver = OverflowResolver(min_icon_spacing=50.0, overflow_y_offset=-50.0)

    def test_well_spaced_icons_are_untouched(self) -> None:
        left, right = _slot("l", 0.0), _slot("r", 90.0)
        self.assertEqual(self.resolver.resolve([left, right]), [])
        self.assertEqual(self.resolver.displaced_slots(), [])
        self.assertEqual((left.y, right.y), (-40.0, -40.0))

    def test_right_icon_of_close_pair_is_displaced(self) -> None:
        left, right = _slot("l", 100.0), _slot("r", 110.0)
        displaced = self.resolver.resolve([left, right])
        self.assertEqual(displaced, [right])
        self.assertEqual(left.y, -40.0)
        self.assertEqual(right.y, -90.0)
        self.assertEqual(self.resolver.original_y(right), -40.0)

    def test_input_order_does_not_matter(self) -> None:
        left, right = _slot("l", 100.0), _slot("r", 110.0)
        self.assertEqual(self.resolver.resolve([right, left]), [right])
        self.assertEqual(left.y, -40.0)

    def test_repeated_passes_do_not_stack_offsets(self) -> None:
        left, right = _slot("l", 100.0), _slot("r", 110.0)
        for _ in range(3):
            self.resolver.resolve([left, right])
        self.assertEqual(right.y, -90.0)
        self.assertEqual(self.resolver.original_y(right), -40.0)
        self.assertEqual(len(self.resolver.displaced_slots()), 1)

    def test_restored_once_spacing_returns(self) -> None:
        left, right = _slot("l", 100.0), _slot("r", 110.0)
        self.resolver.resolve([left, right])
        right.set_position(300.0)
        self.assertEqual(self.resolver.resolve([left, right]), [])
        self.assertEqual(right.y, -40.0)
        self.assertFalse(self.resolver.is_displaced(right))

    def test_fewer_than_two_slots_restores_everything(self) -> None:
        left, right = _slot("l", 100.0), _slot("r", 110.0)
        self.resolver.resolve([left, right])
        self.assertEqual(self.resolver.resolve([left]), [])
        self.assertEqual(right.y, -40.0)
        self.assertEqual(self.resolver.displaced_slots(), [])
        # idempotent with nothing pending
        self.resolver.resolve([])
        self.assertEqual(right.y, -40.0)

    def test_exact_tie_keeps_pool_order(self) -> None:
        first, second = _slot("first", 50.0), _slot("second", 50.0)
        self.assertEqual(self.resolver.resolve([first, second]), [second])
        self.resolver.restore_all()
        self.assertEqual(self.resolver.resolve([second, first]), [first])

    def test_gap_exactly_at_required_spacing_is_fine(self) -> None:
        left, right = _slot("l", 0.0), _slot("r", 90.0)
        self.resolver.resolve([left, right])
        self.assertFalse(self.resolver.is_displaced(right))

    def test_chain_of_three_displaces_each_right_neighbour(self) -> None:
        a, b, c = _slot("a", 0.0), _slot("b", 20.0), _slot("c", 40.0)
        self.assertEqual(self.resolver.resolve([a, b, c]), [b, c])
        self.assertEqual(a.y, -40.0)
        self.assertEqual(b.y, -90.0)
        self.assertEqual(c.y, -90.0)

    def test_half_widths_come_from_each_slot(self) -> None:
        narrow, wide = _slot("n", 0.0, width=10.0), _slot("w", 70.0, width=60.0)
        # 5 + 30 + 50 = 85 > 70
        self.assertEqual(self.resolver.resolve([narrow, wide]), [wide])

    def test_malformed_slots_are_skipped(self) -> None:
        broken = _slot("broken", 105.0)
        broken.rect = None
        nan = _slot("nan", math.nan)
        left, right = _slot("l", 100.0), _slot("r", 110.0)
        self.assertEqual(self.resolver.resolve([left, broken, None, nan, right]), [right])
        self.assertFalse(self.resolver.is_displaced(nan))

    def test_destroyed_slot_record_is_dropped(self) -> None:
        left, right = _slot("l", 100.0), _slot("r", 110.0)
        self.resolver.resolve([left, right])
        right.destroy()
        self.resolver.resolve([left, right])
        self.assertEqual(self.resolver.displaced_slots(), [])

    def test_destroyed_slot_record_is_dropped_with_other_live_slots(self) -> None:
        a, b, c = _slot("a", 0.0), _slot("b", 500.0), _slot("c", 510.0)
        self.assertEqual(self.resolver.resolve([a, b, c]), [c])
        c.destroy()
        self.assertEqual(self.resolver.resolve([a, b, c]), [])
        self.assertEqual(self.resolver.displaced_slots(), [])
        self.assertEqual(c.y, -90.0)

    def test_discard_restores_y(self) -> None:
        left, right = _slot("l", 100.0), _slot("r", 110.0)
        self.resolver.resolve([left, right])
        self.resolver.discard(right)
        self.assertEqual(right.y, -40.0)
        self.resolver.discard(right)
        self.assertFalse(self.resolver.is_displaced(right))


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
