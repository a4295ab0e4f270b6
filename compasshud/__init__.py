"""Compass HUD: projects points of interest onto a rotating compass band."""

__version__ = "0.1.0"
