from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Set

import numpy as np

from compasshud.core.hysteresis import MovementGate
from compasshud.core.logging import get_logger
from compasshud.core.timeline import Timeline
from compasshud.hud.overflow import OverflowResolver
from compasshud.hud.slots import IconSlot, SlotPool
from compasshud.navigation.compass import CompassBand, HeadingTracker
from compasshud.navigation.geometry import as_vector, bearing_from_north, format_distance, screen_offset
from compasshud.poi.registry import POIRegistry, PointOfInterest
from compasshud.poi.settings import IconDatabase, POISettings
from compasshud.poi.types import POIType, Row, flag_label, primary_flag

# Rows whose icons may be pushed to the overflow position.
OVERFLOW_ROWS = (Row.BELOW,)


class CompassPOIManager:
    """Binds visible POIs to icon slots and places them on the band every cycle.

    Call `update(player_position)` once per frame after the heading tracker ran.
    Membership is re-synced only after the player moved `position_change_threshold`;
    positions, distances and elevation arrows are refreshed every cycle.
    """

    def __init__(
        self,
        tracker: HeadingTracker,
        registry: POIRegistry,
        settings: POISettings,
        icons: IconDatabase,
        pool: SlotPool,
        resolver: OverflowResolver,
        band: CompassBand,
        *,
        timeline: Optional[Timeline] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.tracker = tracker
        self.registry = registry
        self.settings = settings
        self.icons = icons
        self.pool = pool
        self.resolver = resolver
        self.band = band
        self.timeline = timeline if timeline is not None else Timeline()
        self.logger = logger or get_logger("hud")
        self._sync_gate = MovementGate(settings.position_change_threshold)
        self._visible: Set[PointOfInterest] = set()
        self.cycles = 0
        self.syncs = 0

    # -- Cycle -------------------------------------------------------------
    def update(self, player_position: Sequence[float]) -> bool:
        """Run one cycle; return True when membership was re-synced."""
        position = as_vector(player_position)
        synced = False
        if self._sync_gate.offer(position):
            self.sync(position)
            synced = True
        self.refresh(position)
        self.cycles += 1
        return synced

    def force_sync(self) -> None:
        """Make the next update re-query visibility regardless of player movement."""
        self._sync_gate.reset()

    # -- Phase A: membership -----------------------------------------------
    def sync(self, player_position: Sequence[float]) -> None:
        position = as_vector(player_position)
        visible = self.registry.get_visible_pois(position, self.settings.max_display_distance)
        self._visible = set(visible)
        self.syncs += 1

        for poi in visible:
            if poi is None:
                continue
            if poi not in self.pool:
                self._create_icon(poi)
            slot = self.pool.bound(poi)
            if slot is None:
                continue
            if not slot.active:
                slot.set_active(True)
            for flag in slot.assigned_sub_icon_types():
                if not slot.is_sub_icon_active(flag):
                    slot.activate_sub_icon(flag)

        evicted: List[PointOfInterest] = []
        for poi, slot in self.pool.items():
            if not self.registry.is_registered(poi):
                evicted.append(poi)
                continue
            if poi not in self._visible:
                if slot.active:
                    slot.set_active(False)
                for flag in slot.assigned_sub_icon_types():
                    slot.deactivate_sub_icon(flag)

        for poi in evicted:
            slot = self.pool.release(poi)
            self.logger.info("poi_evicted | id=%s slot=%s", poi.poi_id, slot.name if slot else None)
            self.timeline.add("info", "evicted", poi=poi.poi_id)

    def _create_icon(self, poi: PointOfInterest) -> Optional[IconSlot]:
        poi_type = poi.poi_type
        first = primary_flag(poi_type)
        if first == POIType.NONE:
            self._warn("no_flags", "POI has no type flags set; cannot determine row", poi)
            return None

        row = self.settings.row_for_type(first)
        if row is None:
            row = self.settings.row_for_type(poi_type)
        if row is None:
            self._warn("unmapped_row", f"type {flag_label(first)} is not mapped to a row", poi)
            return None

        entries = list(self.icons.icon_entries(poi_type))
        main_entry = next((e for e in entries if e.poi_type == first), None)
        if main_entry is None:
            self._warn("missing_art", f"no icon art for primary type {flag_label(first)}", poi)
            return None

        slot = self.pool.acquire(row)
        if slot is None:
            slots = self.pool.row_slots(row)
            active = sum(1 for s in slots if s.active)
            self._warn(
                "row_full",
                f"row {row.value} is full ({active}/{len(slots)} slots active)",
                poi,
                row=row.value,
            )
            return None

        slot.initialize(main_entry.image, main_entry.tint)
        # starts hidden; the visibility pass activates it
        slot.set_active(False)
        self.pool.bind(poi, slot)
        for entry in entries:
            if entry is main_entry:
                continue
            self.pool.assign_secondary(slot, entry.poi_type, entry.image, entry.tint)
        self.logger.debug(
            "poi_bound | id=%s type=%s row=%s slot=%s", poi.poi_id, flag_label(poi_type), row.value, slot.name
        )
        return slot

    def _warn(self, label: str, message: str, poi: PointOfInterest, **data: Any) -> None:
        self.logger.warning("%s | id=%s type=%s %s", label, poi.poi_id, flag_label(poi.poi_type), message)
        self.timeline.add("warning", label, poi=poi.poi_id, type=flag_label(poi.poi_type), message=message, **data)

    # -- Phase B: placement ------------------------------------------------
    def refresh(self, player_position: Sequence[float]) -> None:
        position = as_vector(player_position)
        north = self.tracker.north_direction
        heading = self.tracker.heading
        threshold = self.settings.icon_position_threshold

        for poi, slot in self.pool.items():
            if slot.destroyed or not slot.active:
                continue
            bearing = bearing_from_north(north, position, poi.world_position)
            x = screen_offset(bearing, heading, self.band.width, self.band.uv_width)

            distance = float(np.linalg.norm(poi.world_position - position))
            text = format_distance(distance, self.settings.distance_decimal_places)

            # base, not centre, so tall objects are not flagged as elevated
            vertical = float(poi.base_position[1] - position[1])
            show_arrow = abs(vertical) > self.settings.elevation_threshold

            slot.set_position(x, threshold)
            slot.set_distance_text(text)
            slot.set_elevation_arrow(show_arrow, vertical > 0.0)

        for row in OVERFLOW_ROWS:
            self.resolver.resolve(self.pool.active_slots(row))

    # -- Introspection -----------------------------------------------------
    @property
    def visible(self) -> Set[PointOfInterest]:
        return set(self._visible)

    def snapshot(self) -> Dict[str, Any]:
        return {
            "cycles": self.cycles,
            "syncs": self.syncs,
            "bound": len(self.pool),
            "visible": sorted(p.poi_id for p in self._visible),
            "displaced": sorted(s.name for s in self.resolver.displaced_slots()),
            "rows": self.pool.snapshot(),
        }
