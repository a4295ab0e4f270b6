from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, TYPE_CHECKING

from compasshud.core.logging import get_logger
from compasshud.poi.settings import WHITE, Tint
from compasshud.poi.types import POIType, Row, flag_label

if TYPE_CHECKING:  # pragma: no cover
    from compasshud.hud.overflow import OverflowResolver
    from compasshud.poi.registry import PointOfInterest

logger = get_logger("hud")


class SlotAssignmentError(RuntimeError):
    """A slot was bound to a second POI. The driver never does this; it indicates a bug."""


@dataclass
class SlotRect:
    """Local position of the slot centre on the band plus its rendered size (pixels)."""

    x: float = 0.0
    y: float = 0.0
    width: float = 40.0
    height: float = 40.0

    @property
    def half_width(self) -> float:
        return self.width * 0.5

    def is_valid(self) -> bool:
        return (
            math.isfinite(self.x)
            and math.isfinite(self.y)
            and math.isfinite(self.width)
            and self.width >= 0.0
        )


class SubIcon:
    """Secondary visual element of a slot."""

    def __init__(self) -> None:
        self.image: Optional[str] = None
        self.tint: Tint = WHITE
        self.active = False

    def set_art(self, image: Optional[str], tint: Tint) -> None:
        self.image = image
        self.tint = tint

    def clear(self) -> None:
        self.image = None
        self.tint = WHITE
        self.active = False


class IconSlot:
    """A reusable icon instance on the band: main icon, elevation arrow, distance text, sub-icons.

    This is the surface the presentation layer renders from; the compass core only calls
    the setters. A slot destroyed by its host ignores every call.
    """

    def __init__(
        self,
        name: str = "",
        *,
        x: float = 0.0,
        y: float = 0.0,
        width: float = 40.0,
        height: float = 40.0,
        sub_icon_count: int = 3,
    ) -> None:
        self.name = name
        self.rect: Optional[SlotRect] = SlotRect(x, y, width, height)
        self.active = False
        self.destroyed = False
        self.main_image: Optional[str] = None
        self.main_tint: Tint = WHITE
        self.main_visible = False
        self.distance_text = ""
        self.distance_visible = False
        self.elevation_shown = False
        self.elevation_up = True
        self.sub_icons: List[SubIcon] = [SubIcon() for _ in range(max(0, sub_icon_count))]
        self._assigned_sub_icons: Dict[POIType, SubIcon] = {}
        self._last_x = x

    # -- Geometry ----------------------------------------------------------
    @property
    def x(self) -> Optional[float]:
        return self.rect.x if self.rect is not None else None

    @property
    def y(self) -> Optional[float]:
        return self.rect.y if self.rect is not None else None

    def set_position(self, x: float, threshold: float = 0.0) -> bool:
        """Move horizontally unless the change is below `threshold` pixels; return True when written."""
        if self.destroyed or self.rect is None:
            return False
        if threshold > 0.0 and abs(x - self._last_x) < threshold:
            return False
        self.rect.x = float(x)
        self._last_x = float(x)
        return True

    def set_y(self, y: float) -> None:
        if self.destroyed or self.rect is None:
            return
        self.rect.y = float(y)

    # -- Visuals -----------------------------------------------------------
    def initialize(self, image: Optional[str], tint: Tint = WHITE) -> None:
        if self.destroyed or not image:
            return
        self.main_image = image
        self.main_tint = tint
        self.main_visible = True
        self.set_elevation_arrow(False, True)

    def set_distance_text(self, text: str) -> None:
        if self.destroyed:
            return
        self.distance_text = text
        self.distance_visible = True

    def set_elevation_arrow(self, show: bool, is_up: bool) -> None:
        if self.destroyed:
            return
        if show:
            self.elevation_up = is_up
        self.elevation_shown = show

    def set_active(self, active: bool) -> None:
        if self.destroyed:
            return
        self.active = bool(active)

    def clear_main_icon(self) -> None:
        self.main_image = None
        self.main_tint = WHITE
        self.main_visible = False

    # -- Sub icons ---------------------------------------------------------
    def assign_sub_icon(self, flag: POIType, image: Optional[str], tint: Tint = WHITE) -> bool:
        """Put a secondary flag's art on a sub-icon; False when every sub-icon is taken."""
        if self.destroyed or not image:
            return False
        existing = self._assigned_sub_icons.get(flag)
        if existing is not None:
            existing.set_art(image, tint)
            return True
        taken = {id(sub) for sub in self._assigned_sub_icons.values()}
        for sub in self.sub_icons:
            if id(sub) in taken:
                continue
            sub.set_art(image, tint)
            self._assigned_sub_icons[flag] = sub
            return True
        return False

    def sub_icon_for(self, flag: POIType) -> Optional[SubIcon]:
        return self._assigned_sub_icons.get(flag)

    def assigned_sub_icon_types(self) -> List[POIType]:
        return list(self._assigned_sub_icons)

    def activate_sub_icon(self, flag: POIType) -> None:
        sub = self._assigned_sub_icons.get(flag)
        if sub is not None and not self.destroyed:
            sub.active = True

    def deactivate_sub_icon(self, flag: POIType) -> None:
        sub = self._assigned_sub_icons.get(flag)
        if sub is not None and not self.destroyed:
            sub.active = False

    def is_sub_icon_active(self, flag: POIType) -> bool:
        sub = self._assigned_sub_icons.get(flag)
        return sub is not None and sub.active

    def clear_sub_icons(self) -> None:
        for sub in self._assigned_sub_icons.values():
            sub.clear()
        self._assigned_sub_icons.clear()

    def destroy(self) -> None:
        self.destroyed = True

    def snapshot(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "active": self.active,
            "x": self.x,
            "y": self.y,
            "image": self.main_image if self.main_visible else None,
            "distance": self.distance_text if self.distance_visible else None,
            "elevation": ("up" if self.elevation_up else "down") if self.elevation_shown else None,
            "sub_icons": {
                flag_label(flag): sub.image for flag, sub in self._assigned_sub_icons.items() if sub.active
            },
        }

    def __repr__(self) -> str:
        return f"IconSlot({self.name!r}, x={self.x}, y={self.y}, active={self.active})"


class SlotPool:
    """Two fixed rows of icon slots and the POI -> slot binding table.

    The pool is the only owner of the bindings; nothing outside mutates them.
    """

    def __init__(
        self,
        above: Sequence[IconSlot],
        below: Sequence[IconSlot],
        *,
        overflow: Optional["OverflowResolver"] = None,
    ) -> None:
        self._rows: Dict[Row, Tuple[IconSlot, ...]] = {Row.ABOVE: tuple(above), Row.BELOW: tuple(below)}
        self._bindings: Dict["PointOfInterest", IconSlot] = {}
        self._owners: Dict[int, "PointOfInterest"] = {}
        self._overflow = overflow
        for row, slots in self._rows.items():
            if not slots:
                logger.warning("slot_row_empty | row=%s", row.value)

    @classmethod
    def build(
        cls,
        above_count: int,
        below_count: int,
        *,
        width: float = 40.0,
        height: float = 40.0,
        above_y: float = 40.0,
        below_y: float = -40.0,
        sub_icon_count: int = 3,
        overflow: Optional["OverflowResolver"] = None,
    ) -> "SlotPool":
        above = [
            IconSlot(f"above_{i}", y=above_y, width=width, height=height, sub_icon_count=sub_icon_count)
            for i in range(above_count)
        ]
        below = [
            IconSlot(f"below_{i}", y=below_y, width=width, height=height, sub_icon_count=sub_icon_count)
            for i in range(below_count)
        ]
        return cls(above, below, overflow=overflow)

    # -- Queries -----------------------------------------------------------
    def row_slots(self, row: Row) -> Tuple[IconSlot, ...]:
        return self._rows[row]

    def capacity(self, row: Row) -> int:
        return len(self._rows[row])

    def row_of(self, slot: IconSlot) -> Optional[Row]:
        for row, slots in self._rows.items():
            if any(s is slot for s in slots):
                return row
        return None

    def is_assigned(self, slot: IconSlot) -> bool:
        return id(slot) in self._owners

    def bound(self, poi: "PointOfInterest") -> Optional[IconSlot]:
        return self._bindings.get(poi)

    def owner(self, slot: IconSlot) -> Optional["PointOfInterest"]:
        return self._owners.get(id(slot))

    def items(self) -> List[Tuple["PointOfInterest", IconSlot]]:
        return list(self._bindings.items())

    def active_slots(self, row: Row) -> List[IconSlot]:
        """Active, bound, live slots of a row in pool order."""
        return [s for s in self._rows[row] if s.active and not s.destroyed and self.is_assigned(s)]

    def __contains__(self, poi: object) -> bool:
        return poi in self._bindings

    def __len__(self) -> int:
        return len(self._bindings)

    def __iter__(self) -> Iterator["PointOfInterest"]:
        return iter(list(self._bindings))

    # -- Mutation ----------------------------------------------------------
    def acquire(self, row: Row) -> Optional[IconSlot]:
        for slot in self._rows[row]:
            if slot.destroyed:
                continue
            if not self.is_assigned(slot):
                return slot
        return None

    def bind(self, poi: "PointOfInterest", slot: IconSlot) -> IconSlot:
        """Bind `poi` to `slot`. A POI that is already bound keeps its slot."""
        current = self._bindings.get(poi)
        if current is not None:
            return current
        owner = self._owners.get(id(slot))
        if owner is not None:
            raise SlotAssignmentError(f"slot {slot.name!r} is already bound to {owner!r}")
        self._bindings[poi] = slot
        self._owners[id(slot)] = poi
        return slot

    def release(self, poi: "PointOfInterest") -> Optional[IconSlot]:
        slot = self._bindings.pop(poi, None)
        if slot is None:
            return None
        self._owners.pop(id(slot), None)
        slot.set_active(False)
        slot.clear_main_icon()
        slot.clear_sub_icons()
        if self._overflow is not None:
            self._overflow.discard(slot)
        return slot

    def assign_secondary(self, slot: IconSlot, flag: POIType, image: Optional[str], tint: Tint = WHITE) -> bool:
        assigned = slot.assign_sub_icon(flag, image, tint)
        if not assigned:
            logger.debug("sub_icon_dropped | slot=%s flag=%s", slot.name, flag_label(flag))
        return assigned

    def snapshot(self) -> Dict[str, Any]:
        return {
            row.value: [
                {**slot.snapshot(), "poi": (self.owner(slot).poi_id if self.is_assigned(slot) else None)}
                for slot in slots
            ]
            for row, slots in self._rows.items()
        }
