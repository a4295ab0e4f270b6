"""POI display settings: row assignment per type and icon art per type flag."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from compasshud.core.logging import get_logger
from compasshud.poi.types import (
    FLAG_ORDER,
    POIType,
    Row,
    flag_label,
    iter_flags,
    parse_poi_type,
    parse_row,
)

logger = get_logger("poi")

Tint = Tuple[int, int, int, int]
WHITE: Tint = (255, 255, 255, 255)


@dataclass
class RowMapping:
    poi_type: POIType
    row: Row


@dataclass
class POISettings:
    max_display_distance: float = 1000.0
    elevation_threshold: float = 5.0
    distance_decimal_places: int = 0
    # world units the player must move before visibility is re-queried
    position_change_threshold: float = 1.0
    # pixels an icon must move before its position is written
    icon_position_threshold: float = 1.0
    min_icon_spacing: float = 50.0
    overflow_y_offset: float = -50.0
    row_mappings: List[RowMapping] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "POISettings":
        data = data or {}
        settings = cls()
        for key in (
            "max_display_distance",
            "elevation_threshold",
            "position_change_threshold",
            "icon_position_threshold",
            "min_icon_spacing",
            "overflow_y_offset",
        ):
            if key in data:
                setattr(settings, key, float(data[key]))
        if "distance_decimal_places" in data:
            settings.distance_decimal_places = int(data["distance_decimal_places"])
        mappings = data.get("row_mappings") or []
        if isinstance(mappings, Mapping):
            mappings = [{"type": k, "row": v} for k, v in mappings.items()]
        for entry in mappings:
            if not isinstance(entry, Mapping) or "type" not in entry or "row" not in entry:
                raise ValueError(f"Invalid row mapping: {entry!r}")
            settings.row_mappings.append(RowMapping(parse_poi_type(entry["type"]), parse_row(entry["row"])))
        if settings.max_display_distance < 0:
            raise ValueError("max_display_distance must be >= 0")
        settings.validate_row_mappings()
        return settings

    def validate_row_mappings(self) -> List[int]:
        """Warn about mappings reusing a flag already mapped by an earlier entry; return their indices."""
        seen = set()
        duplicates: List[int] = []
        for index, mapping in enumerate(self.row_mappings):
            for flag in iter_flags(mapping.poi_type):
                if flag in seen:
                    if index not in duplicates:
                        duplicates.append(index)
                else:
                    seen.add(flag)
        for index in duplicates:
            mapping = self.row_mappings[index]
            logger.warning(
                "row_mapping_duplicate | index=%d type=%s (flags already mapped by an earlier entry)",
                index,
                flag_label(mapping.poi_type),
            )
        return duplicates

    def row_for_type(self, poi_type: POIType) -> Optional[Row]:
        """Exact match first, then the first mapping sharing any flag, else None (unmapped)."""
        for mapping in self.row_mappings:
            if mapping.poi_type == poi_type:
                return mapping.row
        for mapping in self.row_mappings:
            if poi_type & mapping.poi_type != POIType.NONE:
                return mapping.row
        return None


@dataclass
class IconEntry:
    poi_type: POIType
    image: Optional[str]
    tint: Tint = WHITE


def parse_tint(value: Any) -> Tint:
    if value is None:
        return WHITE
    if isinstance(value, str):
        text = value.strip().lstrip("#")
        if len(text) not in (6, 8):
            raise ValueError(f"Invalid tint: {value!r}")
        if len(text) == 6:
            text += "ff"
        return tuple(int(text[i : i + 2], 16) for i in range(0, 8, 2))  # type: ignore[return-value]
    if isinstance(value, (list, tuple)) and len(value) in (3, 4):
        channels = [max(0, min(255, int(v))) for v in value]
        if len(channels) == 3:
            channels.append(255)
        return tuple(channels)  # type: ignore[return-value]
    raise ValueError(f"Invalid tint: {value!r}")


class IconDatabase:
    """Icon art (image reference + tint) per single type flag."""

    def __init__(self, entries: Optional[List[IconEntry]] = None) -> None:
        self._entries: List[IconEntry] = list(entries or [])

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "IconDatabase":
        data = data or {}
        icons = data.get("icons", data)
        entries: List[IconEntry] = []
        if isinstance(icons, Mapping):
            items = [{"type": k, **(v if isinstance(v, Mapping) else {"image": v})} for k, v in icons.items()]
        else:
            items = list(icons or [])
        for item in items:
            if not isinstance(item, Mapping) or "type" not in item:
                raise ValueError(f"Invalid icon entry: {item!r}")
            entries.append(IconEntry(parse_poi_type(item["type"]), item.get("image"), parse_tint(item.get("tint"))))
        return cls(entries)

    def add(self, poi_type: POIType, image: Optional[str], tint: Tint = WHITE) -> IconEntry:
        entry = IconEntry(poi_type, image, tint)
        self._entries.append(entry)
        return entry

    def icon_entry(self, poi_type: POIType) -> Optional[IconEntry]:
        for entry in self._entries:
            if entry.poi_type == poi_type:
                return entry
        return None

    def icon_entries(self, poi_type: POIType) -> Iterator[IconEntry]:
        """Entries for every flag in a composite type, in FLAG_ORDER; flags without an image are skipped."""
        for flag in FLAG_ORDER:
            if poi_type & flag != flag:
                continue
            entry = self.icon_entry(flag)
            if entry is not None and entry.image:
                yield entry

    def __len__(self) -> int:
        return len(self._entries)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "icons": [
                {"type": flag_label(e.poi_type), "image": e.image, "tint": list(e.tint)} for e in self._entries
            ]
        }
