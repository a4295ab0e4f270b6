from __future__ import annotations

import enum
from typing import Iterable, Iterator, List, Tuple, Union


class POIType(enum.IntFlag):
    NONE = 0
    QUEST_GIVER = 1 << 0
    VENDOR = 1 << 1
    LANDMARK = 1 << 2
    RESOURCE = 1 << 3
    PLAYER = 1 << 4


# Priority order of the single flags: the first present flag is the primary type,
# which picks both the main icon and the row.
FLAG_ORDER: Tuple[POIType, ...] = (
    POIType.QUEST_GIVER,
    POIType.VENDOR,
    POIType.LANDMARK,
    POIType.RESOURCE,
    POIType.PLAYER,
)

FLAG_LABELS = {
    POIType.QUEST_GIVER: "QuestGiver",
    POIType.VENDOR: "Vendor",
    POIType.LANDMARK: "Landmark",
    POIType.RESOURCE: "Resource",
    POIType.PLAYER: "Player",
}


class Row(enum.Enum):
    ABOVE = "above"
    BELOW = "below"


def iter_flags(poi_type: POIType) -> Iterator[POIType]:
    """Yield the single flags set in `poi_type`, in FLAG_ORDER."""
    for flag in FLAG_ORDER:
        if poi_type & flag == flag:
            yield flag


def primary_flag(poi_type: POIType) -> POIType:
    for flag in iter_flags(poi_type):
        return flag
    return POIType.NONE


def secondary_flags(poi_type: POIType) -> List[POIType]:
    return list(iter_flags(poi_type))[1:]


def flag_label(flag: POIType) -> str:
    if flag in FLAG_LABELS:
        return FLAG_LABELS[flag]
    labels = [FLAG_LABELS[f] for f in iter_flags(flag)]
    return "|".join(labels) if labels else "None"


def _normalize(name: str) -> str:
    return name.replace("_", "").replace("-", "").replace(" ", "").lower()


_BY_NAME = {_normalize(label): flag for flag, label in FLAG_LABELS.items()}
_BY_NAME["none"] = POIType.NONE


def parse_poi_type(value: Union[str, int, Iterable[str], POIType, None]) -> POIType:
    """Parse a type from config: 'QuestGiver|Vendor', ['quest_giver', 'vendor'], an int, or a POIType."""
    if value is None:
        return POIType.NONE
    if isinstance(value, POIType):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Invalid POI type: {value!r}")
    if isinstance(value, int):
        return POIType(value)
    if isinstance(value, str):
        parts = [p for p in value.replace(",", "|").split("|") if p.strip()]
    else:
        parts = [str(p) for p in value]
    result = POIType.NONE
    for part in parts:
        key = _normalize(part.strip())
        if key not in _BY_NAME:
            raise ValueError(f"Unknown POI type flag: {part!r}")
        result |= _BY_NAME[key]
    return result


def parse_row(value: Union[str, Row]) -> Row:
    if isinstance(value, Row):
        return value
    try:
        return Row(str(value).strip().lower())
    except ValueError:
        raise ValueError(f"Unknown compass row: {value!r}") from None
