"""
Aggregation passes: group pending events by destination, send, defer overflow.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING

from ..clock import Clock, SystemClock
from ..constants import (
    API_MAX_BATCH_BYTES,
    API_MAX_EVENT_BYTES,
    DEFAULT_MAX_CONCURRENT_BATCHES,
)
from ..encoding import build_batch
from ..errors import EventTooLargeError, TransmissionError
from ..log_codes import (
    BATCH_FIRED,
    BATCH_GROUP_FAILED,
    BATCH_OVERFLOWED,
    EVENT_ENCODING_FAILED,
    EVENT_TOO_LARGE,
)
from ..metrics import (
    ENCODING_ERRORS,
    EVENTS_OVERFLOWED,
    EVENTS_TOO_LARGE,
    TransmissionMetrics,
)
from ..models import DestinationKey, Event, Response
from .overflow import OverflowStore

if TYPE_CHECKING:
    from ..platform.http import BatchSender
    from ..queue import ResponseQueue


logger = logging.getLogger(__name__)


def group_by_destination(events: list[Event]) -> dict[DestinationKey, list[Event]]:
    """
    Group events by destination, keeping first-seen key order and event order.
    """
    groups: dict[DestinationKey, list[Event]] = {}
    for event in events:
        groups.setdefault(event.destination_key, []).append(event)
    return groups


class BatchAggregator:
    """
    Runs aggregation passes over pending events.

    Passes never overlap. Inside a pass, each destination group is sent on its
    own worker thread; a failing group never affects the others.
    """

    def __init__(
        self,
        sender: BatchSender,
        responses: ResponseQueue,
        overflow: OverflowStore | None = None,
        metrics: TransmissionMetrics | None = None,
        clock: Clock | None = None,
        max_concurrent_batches: int = DEFAULT_MAX_CONCURRENT_BATCHES,
        max_event_bytes: int = API_MAX_EVENT_BYTES,
        max_batch_bytes: int = API_MAX_BATCH_BYTES,
    ):
        self.sender = sender
        self.responses = responses
        self.overflow = overflow if overflow is not None else OverflowStore()
        self.metrics = metrics or TransmissionMetrics()
        self.clock = clock or SystemClock()
        self.max_concurrent_batches = max_concurrent_batches
        self.max_event_bytes = max_event_bytes
        self.max_batch_bytes = max_batch_bytes

        self._pass_lock = threading.Lock()
        self._pool: ThreadPoolExecutor | None = None

    def fire(self, events: list[Event]) -> None:
        """
        Run one aggregation pass.

        Deferred events go ahead of `events` for their destination. The pass
        keeps going until the overflow store is empty.
        """
        with self._pass_lock:
            groups = self._merge_overflow(group_by_destination(events))

            while groups:
                logger.debug(
                    BATCH_FIRED,
                    extra={"groups": len(groups), "events": sum(map(len, groups.values()))},
                )
                self._fire_groups(groups)
                groups = self.overflow.pop_all()

            self.metrics.mark_pass(self.clock.now())

    def fire_batch(self, events: list[Event]) -> None:
        """
        Build and send a single batch for events sharing one destination.

        Unsendable events are failed locally. Whatever does not fit under the
        batch ceiling is deferred to the overflow store for the next pass. An
        unexpected failure answers every unresolved event with an error.
        """
        if not events:
            return

        key = events[0].destination_key
        try:
            batch = build_batch(
                events,
                max_event_bytes=self.max_event_bytes,
                max_batch_bytes=self.max_batch_bytes,
            )
        except Exception as e:
            self._fail_events(key, events, e)
            return

        for event, err in batch.rejected:
            if isinstance(err, EventTooLargeError):
                self.metrics.increment(EVENTS_TOO_LARGE)
                logger.warning(
                    EVENT_TOO_LARGE, extra={"destination": str(key), "size": err.size}
                )
            else:
                self.metrics.increment(ENCODING_ERRORS)
                logger.warning(
                    EVENT_ENCODING_FAILED, extra={"destination": str(key), "error": str(err)}
                )
            self.responses.deliver(Response(metadata=event.metadata, err=err))

        if batch.remainder:
            self.metrics.increment(EVENTS_OVERFLOWED, len(batch.remainder))
            logger.debug(
                BATCH_OVERFLOWED,
                extra={"destination": str(key), "deferred": len(batch.remainder)},
            )
            self.overflow.defer(key, batch.remainder)

        if not batch.events:
            return

        try:
            responses = self.sender.send(key, batch.events, batch.body)
        except Exception as e:
            self._fail_events(key, batch.events, e)
            return

        for response in responses:
            self.responses.deliver(response)

    def _fail_events(
        self, key: DestinationKey, events: list[Event], error: Exception
    ) -> None:
        logger.exception(BATCH_GROUP_FAILED, extra={"destination": str(key)})
        err = TransmissionError(info=str(error))
        for event in events:
            self.responses.deliver(Response(metadata=event.metadata, err=err))

    def close(self) -> None:
        with self._pass_lock:
            if self._pool:
                self._pool.shutdown(wait=True)
                self._pool = None

    def _merge_overflow(
        self, groups: dict[DestinationKey, list[Event]]
    ) -> dict[DestinationKey, list[Event]]:
        merged = self.overflow.pop_all()
        for key, events in groups.items():
            merged.setdefault(key, []).extend(events)
        return merged

    def _fire_groups(self, groups: dict[DestinationKey, list[Event]]) -> None:
        if len(groups) == 1:
            (events,) = groups.values()
            self.fire_batch(events)
            return

        if self._pool is None:
            self._pool = ThreadPoolExecutor(
                max_workers=self.max_concurrent_batches,
                thread_name_prefix="eventship-batch",
            )

        futures = [self._pool.submit(self.fire_batch, events) for events in groups.values()]
        for future in futures:
            future.result()
