from __future__ import annotations

import logging
import os
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from compasshud.core.config import Config, get_config
from compasshud.core.logging import init_logging
from compasshud.core.timeline import Timeline
from compasshud.hud import CompassPOIManager, IconSlot, OverflowResolver, SlotPool
from compasshud.navigation import CompassBand, CompassSettings, HeadingTracker
from compasshud.navigation.geometry import as_vector
from compasshud.poi import IconDatabase, POIRegistry, POISettings, PointOfInterest

Vector = Tuple[float, float, float]


@dataclass
class FrameInput:
    """What the host hands over once per frame."""

    player_position: Vector
    player_forward: Vector = (0.0, 0.0, 1.0)
    camera_forward: Optional[Vector] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FrameInput":
        position = data.get("position") or data.get("player_position")
        if position is None:
            raise ValueError("frame needs a position")
        forward = data.get("forward") or data.get("player_forward") or (0.0, 0.0, 1.0)
        camera = data.get("camera_forward")
        return cls(
            tuple(float(v) for v in as_vector(position)),  # type: ignore[arg-type]
            tuple(float(v) for v in as_vector(forward)),  # type: ignore[arg-type]
            tuple(float(v) for v in as_vector(camera)) if camera is not None else None,  # type: ignore[arg-type]
        )


@dataclass
class RuntimeStatus:
    running: bool = False
    paused: bool = False
    cycles: int = 0
    last_error: Optional[str] = None
    last_frame: Optional[Dict[str, Any]] = None
    compass: Dict[str, Any] = field(default_factory=dict)
    hud: Dict[str, Any] = field(default_factory=dict)


def build_slot_rows(slots_cfg: Mapping[str, Any]) -> Tuple[List[IconSlot], List[IconSlot]]:
    """Create the above/below slot rows from slots.yml data."""
    sub_icons = int(slots_cfg.get("sub_icons", 3))
    rows: Dict[str, List[IconSlot]] = {}
    for name, default_y in (("above", 40.0), ("below", -40.0)):
        cfg = slots_cfg.get(name) or {}
        count = int(cfg.get("count", 6))
        if count < 0:
            raise ValueError(f"slots.{name}.count must be >= 0")
        rows[name] = [
            IconSlot(
                f"{name}_{i}",
                y=float(cfg.get("y", default_y)),
                width=float(cfg.get("width", 40.0)),
                height=float(cfg.get("height", 40.0)),
                sub_icon_count=sub_icons,
            )
            for i in range(count)
        ]
    return rows["above"], rows["below"]


def scene_pois(scene: Mapping[str, Any]) -> List[PointOfInterest]:
    pois: List[PointOfInterest] = []
    for item in scene.get("pois") or []:
        if "type" not in item or "position" not in item:
            raise ValueError(f"Invalid scene POI: {item!r}")
        pois.append(
            PointOfInterest(
                item["type"],
                item["position"],
                base_position=item.get("base"),
                height=item.get("height"),
                poi_id=item.get("id"),
            )
        )
    return pois


def scene_frames(scene: Mapping[str, Any]) -> List[FrameInput]:
    return [FrameInput.from_dict(f) for f in scene.get("frames") or []]


class CompassRuntime:
    """Wires the compass pipeline from config and runs it once per frame.

    `tick()` runs one full cycle to completion. `start()` runs cycles on one background
    thread, pulling frames from a source callable; everything the pipeline mutates is
    only touched from inside a cycle, and readers get copies via `snapshot()`.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        *,
        registry: Optional[POIRegistry] = None,
        timeline: Optional[Timeline] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.logger = logger or init_logging(level=os.environ.get("LOG_LEVEL", "INFO"))
        config = config or get_config()
        self.compass_settings = CompassSettings.from_dict(config.load_compass())
        self.poi_settings = POISettings.from_dict(config.load_poi())
        self.icons = IconDatabase.from_dict(config.load_icons())
        above, below = build_slot_rows(config.load_slots())

        self.timeline = timeline if timeline is not None else Timeline()
        self.band = CompassBand.from_settings(self.compass_settings)
        self.tracker = HeadingTracker(self.compass_settings, self.band)
        self.resolver = OverflowResolver(self.poi_settings.min_icon_spacing, self.poi_settings.overflow_y_offset)
        self.pool = SlotPool(above, below, overflow=self.resolver)
        self.registry = registry if registry is not None else POIRegistry()
        self.manager = CompassPOIManager(
            self.tracker,
            self.registry,
            self.poi_settings,
            self.icons,
            self.pool,
            self.resolver,
            self.band,
            timeline=self.timeline,
            logger=self.logger.getChild("hud"),
        )
        self.status = RuntimeStatus()
        self._thread: Optional[threading.Thread] = None
        self._stop_evt = threading.Event()
        # serializes cycles against registry edits and snapshot reads
        self._lock = threading.Lock()
        default_loop_sleep = 1.0 / 60.0
        try:
            env_loop = os.environ.get("COMPASSHUD_LOOP_SLEEP")
            self._loop_sleep = float(env_loop) if env_loop else default_loop_sleep
        except (TypeError, ValueError):
            self._loop_sleep = default_loop_sleep
        self.logger.info(
            "Runtime ready | slots=%d/%d icons=%d max_distance=%.1f",
            len(above),
            len(below),
            len(self.icons),
            self.poi_settings.max_display_distance,
        )

    # -- POI registry --------------------------------------------------------
    def register_poi(self, poi: PointOfInterest) -> None:
        with self._lock:
            self.registry.register(poi)
            # new POIs should show up without waiting for the player to move
            self.manager.force_sync()

    def register_poi_unique(self, poi: PointOfInterest) -> bool:
        """Register unless a POI with the same id exists; False on a duplicate id."""
        with self._lock:
            if self.registry.find(poi.poi_id) is not None:
                return False
            self.registry.register(poi)
            self.manager.force_sync()
            return True

    def unregister_poi(self, poi: PointOfInterest) -> None:
        with self._lock:
            self.registry.unregister(poi)
            self.manager.force_sync()

    def unregister_poi_id(self, poi_id: str) -> bool:
        with self._lock:
            poi = self.registry.find(poi_id)
            if poi is None:
                return False
            self.registry.unregister(poi)
            self.manager.force_sync()
            return True

    def pois(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [poi.to_dict() for poi in self.registry]

    def load_scene(self, scene: Mapping[str, Any]) -> List[FrameInput]:
        for poi in scene_pois(scene):
            self.register_poi(poi)
        return scene_frames(scene)

    # -- Cycle -----------------------------------------------------------------
    def tick(self, frame: FrameInput) -> Dict[str, Any]:
        """Run one full cycle; never raises, errors are logged and reported in the status."""
        with self._lock:
            forward = frame.player_forward
            if self.compass_settings.use_camera_direction and frame.camera_forward is not None:
                forward = frame.camera_forward
            try:
                self.tracker.update_heading(forward)
                self.manager.update(frame.player_position)
                self.status.last_error = None
            except Exception as exc:
                self.status.last_error = str(exc)
                self.logger.exception("runtime cycle failed")
                self.timeline.add("error", "cycle_failed", error=str(exc))
            self.status.cycles += 1
            self.status.last_frame = {
                "position": list(frame.player_position),
                "forward": list(forward),
            }
            self.status.compass = self.tracker.snapshot()
            self.status.hud = self.manager.snapshot()
            return self._status_dict()

    def run_frames(self, frames: Sequence[FrameInput]) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        for frame in frames:
            result = self.tick(frame)
        return result

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return self._status_dict()

    def _status_dict(self) -> Dict[str, Any]:
        return {
            "running": self.status.running,
            "paused": self.status.paused,
            "cycles": self.status.cycles,
            "last_error": self.status.last_error,
            "frame": dict(self.status.last_frame) if self.status.last_frame else None,
            "compass": dict(self.status.compass),
            "hud": dict(self.status.hud),
            "band": {"uv_x": self.band.uv_x, "writes": self.band.writes},
        }

    # -- Background loop -------------------------------------------------------
    def start(self, source: Callable[[], Optional[FrameInput]]) -> None:
        if self.status.running:
            self.status.paused = False
            return
        self.status.running = True
        self.status.paused = False
        self._stop_evt.clear()
        self._thread = threading.Thread(target=self._run_loop, args=(source,), daemon=True)
        self._thread.start()
        self.logger.info("Runtime started | loop_sleep=%.4f", self._loop_sleep)

    def pause(self) -> None:
        if self.status.running:
            self.status.paused = True
            self.logger.info("Runtime paused")

    def stop(self, timeout: float = 2.0) -> None:
        self._stop_evt.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        self._thread = None
        self.status.running = False
        self.status.paused = False
        self.logger.info("Runtime stopped")

    def _run_loop(self, source: Callable[[], Optional[FrameInput]]) -> None:
        while not self._stop_evt.is_set():
            if self.status.paused:
                time.sleep(0.1)
                continue
            try:
                frame = source()
            except Exception:
                self.logger.exception("frame source failed")
                frame = None
            if frame is not None:
                self.tick(frame)
            time.sleep(self._loop_sleep)
