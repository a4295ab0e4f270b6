from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from compasshud.core.logging import get_logger
from compasshud.hud.slots import IconSlot

logger = get_logger("hud.overflow")


class OverflowResolver:
    """Moves crowded icons of a row to an alternate y and puts them back when there is room.

    Pairs are checked left to right after sorting by x; only the right icon of a colliding
    pair is displaced, so the left one stays put as an anchor. This is a pairwise rule, not a
    layout solver: in a chain of three or more close icons a displaced icon can still overlap
    a third one.
    """

    def __init__(self, min_icon_spacing: float = 50.0, overflow_y_offset: float = -50.0) -> None:
        self.min_icon_spacing = float(min_icon_spacing)
        self.overflow_y_offset = float(overflow_y_offset)
        # slot -> y it had before being displaced
        self._original_y: Dict[IconSlot, float] = {}

    def is_displaced(self, slot: IconSlot) -> bool:
        return slot in self._original_y

    def original_y(self, slot: IconSlot) -> Optional[float]:
        return self._original_y.get(slot)

    def displaced_slots(self) -> List[IconSlot]:
        return list(self._original_y)

    def resolve(self, slots: Sequence[Optional[IconSlot]]) -> List[IconSlot]:
        """Run one pass over the active slots of a row; return the slots displaced after it."""
        for slot in [s for s in self._original_y if s.destroyed]:
            self._restore(slot)

        live = [s for s in slots if s is not None and not s.destroyed]
        if len(live) < 2:
            self.restore_all()
            return []

        measured = [s for s in live if s.rect is not None and s.rect.is_valid()]
        # sorted() is stable, so exact ties keep pool order
        ordered = sorted(measured, key=lambda s: s.rect.x)

        crowded = set()
        for left, right in zip(ordered, ordered[1:]):
            required = left.rect.half_width + right.rect.half_width + self.min_icon_spacing
            gap = abs(right.rect.x - left.rect.x)
            if gap < required:
                crowded.add(right)

        for slot in measured:
            if slot in crowded:
                self._displace(slot)
            elif slot in self._original_y:
                self._restore(slot)
        return [s for s in ordered if s in crowded]

    def restore_all(self) -> None:
        for slot in list(self._original_y):
            self._restore(slot)

    def discard(self, slot: IconSlot) -> None:
        """Forget a slot that is being released, putting it back at its original y first."""
        if slot in self._original_y:
            self._restore(slot)

    def clear(self) -> None:
        self._original_y.clear()

    def _displace(self, slot: IconSlot) -> None:
        if slot not in self._original_y:
            self._original_y[slot] = slot.rect.y
            logger.debug("overflow_displace | slot=%s x=%.1f y=%.1f", slot.name, slot.rect.x, slot.rect.y)
        slot.set_y(self._original_y[slot] + self.overflow_y_offset)

    def _restore(self, slot: IconSlot) -> None:
        original = self._original_y.pop(slot)
        if slot.destroyed or slot.rect is None:
            return
        slot.set_y(original)
        logger.debug("overflow_restore | slot=%s y=%.1f", slot.name, original)
