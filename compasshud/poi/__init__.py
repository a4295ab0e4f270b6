"""Points of interest: type flags, registry and display settings."""

from .registry import POIRegistry, PointOfInterest
from .settings import IconDatabase, IconEntry, POISettings, RowMapping
from .types import FLAG_ORDER, POIType, Row, primary_flag, secondary_flags

__all__ = [
    "FLAG_ORDER",
    "IconDatabase",
    "IconEntry",
    "POIRegistry",
    "POISettings",
    "POIType",
    "PointOfInterest",
    "Row",
    "RowMapping",
    "primary_flag",
    "secondary_flags",
]
