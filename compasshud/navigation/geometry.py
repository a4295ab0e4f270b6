"""Pure compass geometry: horizontal projection, bearings, band offsets.

World vectors are Y-up (x east/west, y up, z forward). Angles are degrees,
headings and UV offsets are in full turns.
"""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np

DEGREES_IN_CIRCLE = 360.0
HORIZONTAL_EPSILON = 0.001

UP = np.array([0.0, 1.0, 0.0])
FORWARD = np.array([0.0, 0.0, 1.0])


def as_vector(value: Sequence[float]) -> np.ndarray:
    vec = np.asarray(value, dtype=float).reshape(-1)
    if vec.shape != (3,):
        raise ValueError(f"expected a 3-component vector, got shape {vec.shape}")
    return vec


def project_to_horizontal(direction: Sequence[float]) -> np.ndarray:
    """Project a direction onto the XZ plane and normalize it.

    A (near) vertical direction has no horizontal component, so forward is used instead.
    """
    projected = as_vector(direction).copy()
    projected[1] = 0.0
    if float(np.dot(projected, projected)) < HORIZONTAL_EPSILON:
        projected = FORWARD.copy()
    return projected / np.linalg.norm(projected)


def signed_angle(from_dir: Sequence[float], to_dir: Sequence[float]) -> float:
    """Signed angle in degrees about +Y; north (+Z) to east (+X) is +90."""
    a = as_vector(from_dir)
    b = as_vector(to_dir)
    cross_up = float(np.dot(UP, np.cross(a, b)))
    return math.degrees(math.atan2(cross_up, float(np.dot(a, b))))


def bearing_from_north(north: Sequence[float], from_pos: Sequence[float], to_pos: Sequence[float]) -> float:
    """Bearing in [0, 360) from `from_pos` to `to_pos`, clockwise from north."""
    direction = project_to_horizontal(as_vector(to_pos) - as_vector(from_pos))
    horizontal_north = project_to_horizontal(north)
    angle = signed_angle(horizontal_north, direction)
    if angle < 0.0:
        angle += DEGREES_IN_CIRCLE
    if angle >= DEGREES_IN_CIRCLE:
        angle = 0.0
    return angle


def format_distance(meters: float, decimal_places: int) -> str:
    places = max(0, int(decimal_places))
    return f"{meters:.{places}f}m"


def repeat(value: float, length: float = 1.0) -> float:
    """Wrap `value` into [0, length)."""
    wrapped = value - math.floor(value / length) * length
    if wrapped >= length or wrapped < 0.0:
        return 0.0
    return wrapped


def wrap01(value: float) -> float:
    return repeat(value, 1.0)


def wrap_half(value: float) -> float:
    """Wrap a turn difference into [-0.5, 0.5), the shortest path around the circle."""
    return repeat(value + 0.5, 1.0) - 0.5


def uv_scale(uv_width: float) -> float:
    """Pixels-per-turn multiplier for a band showing `uv_width` of a full turn (0.25 -> 90 degrees)."""
    if uv_width <= 0.0:
        raise ValueError("uv_width must be > 0")
    return 1.0 / uv_width


def screen_offset(bearing_deg: float, heading: float, band_width: float, uv_width: float) -> float:
    """Horizontal pixel offset of a target on the band, 0 at the band centre.

    The band scrolls opposite to the world bearing, hence the negation.
    """
    relative = wrap_half(bearing_deg / DEGREES_IN_CIRCLE - heading)
    return -relative * band_width * uv_scale(uv_width)
