from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

import numpy as np

from compasshud.core.hysteresis import ThresholdGate
from compasshud.core.logging import get_logger
from compasshud.navigation.geometry import (
    DEGREES_IN_CIRCLE,
    as_vector,
    project_to_horizontal,
    signed_angle,
    wrap01,
)

UV_UPDATE_THRESHOLD = 0.001

logger = get_logger("compass")


@dataclass
class CompassSettings:
    always_point_north: bool = False
    use_camera_direction: bool = False
    north_direction: Tuple[float, float, float] = (0.0, 0.0, 1.0)
    # UV x where 'N' is painted on the band texture (512px / 4096px -> 0.125)
    north_texture_offset: float = 0.0
    band_width: float = 800.0
    uv_width: float = 0.25

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "CompassSettings":
        data = data or {}
        settings = cls()
        if "always_point_north" in data:
            settings.always_point_north = bool(data["always_point_north"])
        if "use_camera_direction" in data:
            settings.use_camera_direction = bool(data["use_camera_direction"])
        north = data.get("north_direction")
        if north is not None:
            if not isinstance(north, (list, tuple)) or len(north) != 3:
                raise ValueError(f"north_direction must have 3 components, got {north!r}")
            settings.north_direction = tuple(float(v) for v in north)  # type: ignore[assignment]
        settings.north_texture_offset = float(data.get("north_texture_offset", settings.north_texture_offset))
        settings.band_width = float(data.get("band_width", settings.band_width))
        settings.uv_width = float(data.get("uv_width", settings.uv_width))
        settings.validate()
        return settings

    def validate(self) -> None:
        if not 0.0 <= self.north_texture_offset <= 1.0:
            raise ValueError("north_texture_offset must be within [0, 1]")
        if self.band_width <= 0:
            raise ValueError("band_width must be > 0")
        if not 0.0 < self.uv_width <= 1.0:
            raise ValueError("uv_width must be within (0, 1]")


class CompassBand:
    """The scrolling band surface. Counts writes so redundant redraws are observable."""

    def __init__(self, width: float = 800.0, uv_width: float = 0.25) -> None:
        self.width = float(width)
        self.uv_width = float(uv_width)
        self.uv_x = 0.0
        self.writes = 0

    @classmethod
    def from_settings(cls, settings: CompassSettings) -> "CompassBand":
        return cls(settings.band_width, settings.uv_width)

    def set_uv_offset(self, offset: float) -> None:
        self.uv_x = float(offset)
        self.writes += 1


class HeadingTracker:
    """Derives the viewer heading in turns and scrolls the band when it moved enough."""

    def __init__(self, settings: Optional[CompassSettings] = None, band: Optional[CompassBand] = None) -> None:
        self.settings = settings or CompassSettings()
        self.band = band
        self.heading = 0.0
        self._gate = ThresholdGate(UV_UPDATE_THRESHOLD)
        # north used by the last update_heading; bearings must be measured from the same one
        self._north: Optional[np.ndarray] = None

    @property
    def last_offset(self) -> Optional[float]:
        return self._gate.last

    @property
    def north_direction(self) -> np.ndarray:
        if self._north is not None:
            return self._north.copy()
        return as_vector(self.settings.north_direction)

    def update_heading(
        self,
        reference_forward: Sequence[float],
        north: Optional[Sequence[float]] = None,
        north_texture_offset: Optional[float] = None,
        always_point_north: Optional[bool] = None,
    ) -> bool:
        """Recompute the heading; return True when the band offset was written."""
        if north is None:
            north = self.settings.north_direction
        if north_texture_offset is None:
            north_texture_offset = self.settings.north_texture_offset
        if always_point_north is None:
            always_point_north = self.settings.always_point_north

        forward = project_to_horizontal(reference_forward)
        horizontal_north = project_to_horizontal(north)
        self._north = as_vector(north).copy()
        angle = signed_angle(horizontal_north, forward)
        if always_point_north:
            angle = -angle

        # heading is kept current even when the band write is suppressed
        self.heading = angle / DEGREES_IN_CIRCLE
        offset = wrap01(self.heading + north_texture_offset)
        if not self._gate.offer(offset):
            return False
        if self.band is not None:
            self.band.set_uv_offset(offset)
        logger.debug("band_offset | heading=%.4f offset=%.4f", self.heading, offset)
        return True

    def reset(self) -> None:
        self.heading = 0.0
        self._north = None
        self._gate.reset()

    def snapshot(self) -> Dict[str, Any]:
        return {
            "heading": self.heading,
            "heading_deg": self.heading * DEGREES_IN_CIRCLE,
            "band_offset": self.last_offset,
        }


class CompassDrag:
    """Pointer-drag scrolling of a band, for previewing UV wrapping without a viewer."""

    def __init__(self, band: CompassBand, *, sensitivity: float = 1.0) -> None:
        self.band = band
        self.sensitivity = float(sensitivity)
        self._dragging = False
        self._last_x = 0.0
        self._uv_offset = band.uv_x

    @property
    def dragging(self) -> bool:
        return self._dragging

    def begin_drag(self, pointer_x: float) -> None:
        self._dragging = True
        self._last_x = float(pointer_x)

    def drag(self, pointer_x: float) -> None:
        if not self._dragging:
            return
        delta_px = float(pointer_x) - self._last_x
        # dragging right moves the band left
        self._uv_offset = wrap01(self._uv_offset - (delta_px / self.band.width) * self.sensitivity)
        self.band.set_uv_offset(self._uv_offset)
        self._last_x = float(pointer_x)

    def end_drag(self) -> None:
        self._dragging = False

    def set_angle(self, angle_deg: float) -> None:
        self._uv_offset = wrap01(angle_deg / DEGREES_IN_CIRCLE)
        self.band.set_uv_offset(self._uv_offset)

    def angle(self) -> float:
        return self._uv_offset * DEGREES_IN_CIRCLE
