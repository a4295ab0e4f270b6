from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Any, Deque, Dict, List


@dataclass
class Event:
    ts: str
    level: str  # info|warning|error
    label: str  # row_full|unmapped_row|missing_art|no_flags|evicted|...
    data: Dict[str, Any]


class Timeline:
    """Bounded buffer of out-of-band diagnostics, readable from the status API thread."""

    def __init__(self, maxlen: int = 200) -> None:
        self._buf: Deque[Event] = deque(maxlen=maxlen)
        self._lock = threading.Lock()

    def add(self, level: str, label: str, **data: Any) -> None:
        ts = datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
        evt = Event(ts=ts, level=level, label=label, data=data)
        with self._lock:
            self._buf.append(evt)

    def last(self, n: int = 50) -> List[Dict[str, Any]]:
        with self._lock:
            items = list(self._buf)[-n:] if n > 0 else []
        return [asdict(e) for e in items]

    def labels(self) -> List[str]:
        with self._lock:
            return [e.label for e in self._buf]

    def clear(self) -> None:
        with self._lock:
            self._buf.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._buf)
