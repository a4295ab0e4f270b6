"""Cycle runtime wiring the compass pipeline together."""

from .service import CompassRuntime

__all__ = ["CompassRuntime"]
