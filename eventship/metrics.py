"""
Counters for the transmission engine.
"""

from __future__ import annotations

import threading
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


# Counter names
EVENTS_QUEUED = "events_queued"
QUEUE_OVERFLOWS = "queue_overflows"
RESPONSES_DROPPED = "responses_dropped"
EVENTS_TOO_LARGE = "events_too_large"
ENCODING_ERRORS = "encoding_errors"
BATCHES_SENT = "batches_sent"
EVENTS_SENT = "events_sent"
EVENTS_OVERFLOWED = "events_overflowed"
SEND_ERRORS = "send_errors"
SEND_RETRIES = "send_retries"
RESPONSE_DECODE_ERRORS = "response_decode_errors"
AGGREGATION_PASSES = "aggregation_passes"


@dataclass
class TransmissionMetrics:
    """
    Thread-safe counters shared by the front end, the aggregator and the sender.
    """

    counters: Counter = field(default_factory=Counter)
    queue_high_water_mark: int = 0
    last_pass_at: datetime | None = None
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def increment(self, name: str, amount: int = 1) -> None:
        with self._lock:
            self.counters[name] += amount

    def observe_queue_depth(self, depth: int) -> None:
        with self._lock:
            self.queue_high_water_mark = max(depth, self.queue_high_water_mark)

    def mark_pass(self, when: datetime) -> None:
        with self._lock:
            self.counters[AGGREGATION_PASSES] += 1
            self.last_pass_at = when

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return {
                **self.counters,
                "queue_high_water_mark": self.queue_high_water_mark,
                "last_pass_at": self.last_pass_at,
            }
