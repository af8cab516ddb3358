from __future__ import annotations

import threading

from ..models import DestinationKey, Event


class OverflowStore:
    """
    Events held back from an oversize batch, by destination.

    Holds at most one ordered slice per key; deferring to a key that already
    has a slice appends to it.
    """

    def __init__(self):
        self._batches: dict[DestinationKey, list[Event]] = {}
        self._lock = threading.Lock()

    def defer(self, key: DestinationKey, events: list[Event]) -> None:
        if not events:
            return
        with self._lock:
            self._batches.setdefault(key, []).extend(events)

    def pop(self, key: DestinationKey) -> list[Event]:
        """
        Remove and return the slice for `key`, empty if there is none.
        """
        with self._lock:
            return self._batches.pop(key, [])

    def pop_all(self) -> dict[DestinationKey, list[Event]]:
        with self._lock:
            batches = self._batches
            self._batches = {}
            return batches

    def get(self, key: DestinationKey) -> list[Event]:
        with self._lock:
            return list(self._batches.get(key, []))

    def __len__(self) -> int:
        with self._lock:
            return len(self._batches)

    def __bool__(self) -> bool:
        return len(self) > 0
