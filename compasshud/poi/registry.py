from __future__ import annotations

import itertools
from typing import Any, Dict, Iterator, List, Optional, Sequence

import numpy as np

from compasshud.core.logging import get_logger
from compasshud.navigation.geometry import as_vector
from compasshud.poi.types import POIType, flag_label, parse_poi_type, primary_flag, secondary_flags

logger = get_logger("poi")

_ids = itertools.count(1)


class PointOfInterest:
    """A world entity shown on the compass.

    Identity is the object itself (hash/eq by identity), so two POIs at the same
    position are still two POIs. `base_position` is the ground point used for
    elevation; tall objects would otherwise read as elevated.
    """

    def __init__(
        self,
        poi_type: POIType | str | Sequence[str] | int,
        world_position: Sequence[float],
        *,
        base_position: Optional[Sequence[float]] = None,
        height: Optional[float] = None,
        poi_id: Optional[str] = None,
    ) -> None:
        self.poi_type = parse_poi_type(poi_type)
        self.world_position = as_vector(world_position)
        self.poi_id = poi_id or f"poi-{next(_ids)}"
        if base_position is not None:
            self._base_position: Optional[np.ndarray] = as_vector(base_position)
        else:
            self._base_position = None
        # bounds height centred on world_position, like a collider
        self.height = height

    @property
    def base_position(self) -> np.ndarray:
        if self._base_position is not None:
            return self._base_position
        base = self.world_position.copy()
        if self.height:
            base[1] -= float(self.height) * 0.5
        return base

    def move_to(self, world_position: Sequence[float], base_position: Optional[Sequence[float]] = None) -> None:
        self.world_position = as_vector(world_position)
        if base_position is not None:
            self._base_position = as_vector(base_position)

    def primary_flag(self) -> POIType:
        return primary_flag(self.poi_type)

    def secondary_flags(self) -> List[POIType]:
        return secondary_flags(self.poi_type)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.poi_id,
            "type": flag_label(self.poi_type),
            "position": [float(v) for v in self.world_position],
            "base": [float(v) for v in self.base_position],
        }

    def __repr__(self) -> str:
        return f"PointOfInterest({self.poi_id!r}, {flag_label(self.poi_type)})"


class POIRegistry:
    """Registry of POIs plus the spatial visibility query the compass consumes."""

    def __init__(self) -> None:
        # dict keeps registration order, so query results are deterministic
        self._registered: Dict[PointOfInterest, None] = {}

    def register(self, poi: Optional[PointOfInterest]) -> None:
        if poi is None:
            return
        self._registered[poi] = None
        logger.debug("poi_register | id=%s type=%s", poi.poi_id, flag_label(poi.poi_type))

    def unregister(self, poi: Optional[PointOfInterest]) -> None:
        if poi is None:
            return
        if poi in self._registered:
            del self._registered[poi]
            logger.debug("poi_unregister | id=%s", poi.poi_id)

    def is_registered(self, poi: Optional[PointOfInterest]) -> bool:
        return poi is not None and poi in self._registered

    def find(self, poi_id: str) -> Optional[PointOfInterest]:
        for poi in self._registered:
            if poi.poi_id == poi_id:
                return poi
        return None

    def get_pois_in_range(self, position: Sequence[float], max_distance: float) -> List[PointOfInterest]:
        origin = as_vector(position)
        max_distance_sqr = float(max_distance) * float(max_distance)
        results: List[PointOfInterest] = []
        for poi in self._registered:
            offset = poi.world_position - origin
            if float(np.dot(offset, offset)) <= max_distance_sqr:
                results.append(poi)
        return results

    def get_visible_pois(self, position: Sequence[float], max_distance: float) -> List[PointOfInterest]:
        return self.get_pois_in_range(position, max_distance)

    def distance_to(self, poi: Optional[PointOfInterest], from_position: Sequence[float]) -> float:
        if poi is None:
            return float("inf")
        return float(np.linalg.norm(poi.world_position - as_vector(from_position)))

    def __iter__(self) -> Iterator[PointOfInterest]:
        return iter(list(self._registered))

    def __len__(self) -> int:
        return len(self._registered)

    def __contains__(self, poi: object) -> bool:
        return poi in self._registered
