"""Navigation helpers (heading tracking, compass band geometry)."""

from .compass import CompassBand, CompassDrag, CompassSettings, HeadingTracker, UV_UPDATE_THRESHOLD
from .geometry import bearing_from_north, format_distance, project_to_horizontal, screen_offset

__all__ = [
    "CompassBand",
    "CompassDrag",
    "CompassSettings",
    "HeadingTracker",
    "UV_UPDATE_THRESHOLD",
    "bearing_from_north",
    "format_distance",
    "project_to_horizontal",
    "screen_offset",
]
