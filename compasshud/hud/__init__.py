"""Icon slots, overflow resolution and the per-cycle compass POI driver."""

from .manager import OVERFLOW_ROWS, CompassPOIManager
from .overflow import OverflowResolver
from .slots import IconSlot, SlotAssignmentError, SlotPool, SlotRect, SubIcon

__all__ = [
    "OVERFLOW_ROWS",
    "CompassPOIManager",
    "IconSlot",
    "OverflowResolver",
    "SlotAssignmentError",
    "SlotPool",
    "SlotRect",
    "SubIcon",
]
