from __future__ import annotations

from typing import Optional, Sequence

import numpy as np


class ThresholdGate:
    """Passes a scalar only when it moved at least `threshold` from the last passed value.

    The first value always passes. This does NOT compute anything downstream; it only
    decides whether a write is worth doing.
    """

    def __init__(self, threshold: float) -> None:
        self.threshold = float(threshold)
        self.last: Optional[float] = None

    def should_emit(self, value: float) -> bool:
        if self.last is None:
            return True
        return abs(value - self.last) >= self.threshold

    def offer(self, value: float) -> bool:
        if not self.should_emit(value):
            return False
        self.last = float(value)
        return True

    @property
    def has_emitted(self) -> bool:
        return self.last is not None

    def reset(self) -> None:
        self.last = None


class MovementGate:
    """Vector version of ThresholdGate: passes once the tracked point moved `threshold` world units."""

    def __init__(self, threshold: float) -> None:
        self.threshold = float(threshold)
        self.last: Optional[np.ndarray] = None

    def should_emit(self, position: Sequence[float]) -> bool:
        if self.last is None:
            return True
        delta = np.asarray(position, dtype=float) - self.last
        return float(np.linalg.norm(delta)) >= self.threshold

    def offer(self, position: Sequence[float]) -> bool:
        if not self.should_emit(position):
            return False
        self.last = np.array(position, dtype=float)
        return True

    def reset(self) -> None:
        self.last = None
