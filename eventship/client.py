"""
Batching transmission front end.
"""

from __future__ import annotations

import logging
import threading
from typing import Any

import httpx

from .batch import BatchAggregator, OverflowStore
from .clock import Clock, SystemClock
from .config import TransmissionConfig
from .constants import RESPONSE_POLL_INTERVAL
from .errors import QueueOverflowError
from .log_codes import NOT_RUNNING, QUEUE_OVERFLOW, STARTED, STOPPED
from .metrics import (
    EVENTS_QUEUED,
    QUEUE_OVERFLOWS,
    RESPONSES_DROPPED,
    TransmissionMetrics,
)
from .models import Event, Response
from .platform import BatchSender
from .queue import BoundedQueue, ResponseQueue

logger = logging.getLogger(__name__)


class Transmission:
    """
    Ships events to the ingestion API from a background dispatcher thread.

    `add` hands events to a bounded work queue and returns at once. The
    dispatcher runs an aggregation pass every `batch_timeout` seconds, when
    the queue holds `max_batch_size` events, on `flush()` and on `stop()`.
    Every accepted event produces exactly one Response on `responses()`.

    Several Transmissions can run side by side; they share nothing.
    """

    def __init__(
        self,
        config: TransmissionConfig | None = None,
        http_client: httpx.Client | None = None,
        clock: Clock | None = None,
    ):
        """
        Args:
            config: Transmission settings, defaults when omitted.
            http_client: Client used for batch requests. When omitted one is
                created on start and closed on stop.
            clock: Time source for durations.
        """
        self.config = config or TransmissionConfig()
        self.clock = clock or SystemClock()
        self.metrics = TransmissionMetrics()

        self._http_client = http_client
        self._owns_http_client = http_client is None

        self._work: BoundedQueue[Event] | None = None
        self._responses: ResponseQueue | None = None
        self._aggregator: BatchAggregator | None = None

        # Thread management
        self._running = False
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()
        self._adds_idle = threading.Condition(self._lock)
        self._adds_in_flight = 0
        self._wakeup = threading.Event()
        self._stopping = threading.Event()

        # Pass accounting for flush()
        self._passes = threading.Condition()
        self._passes_started = 0
        self._passes_completed = 0

    def __enter__(self) -> "Transmission":
        self.start()
        return self

    def __exit__(self, *exc) -> None:
        self.stop()

    def start(self) -> None:
        """
        Allocate the queues and start the dispatcher thread.
        """
        with self._lock:
            if self._running:
                return

            self._responses = ResponseQueue(
                self.config.response_queue_size,
                block_on_responses=self.config.block_on_responses,
                on_drop=lambda _: self.metrics.increment(RESPONSES_DROPPED),
            )
            self._work = BoundedQueue(self.config.pending_work_capacity)

            if self._http_client is None:
                self._http_client = httpx.Client(timeout=self.config.timeout)

            sender = BatchSender(
                self._http_client,
                clock=self.clock,
                metrics=self.metrics,
                user_agent_addition=self.config.user_agent_addition,
                disable_compression=self.config.disable_compression,
            )
            self._aggregator = BatchAggregator(
                sender,
                self._responses,
                overflow=OverflowStore(),
                metrics=self.metrics,
                clock=self.clock,
                max_concurrent_batches=self.config.max_concurrent_batches,
                max_event_bytes=self.config.max_event_bytes,
                max_batch_bytes=self.config.max_batch_bytes,
            )

            self._stopping.clear()
            self._wakeup.clear()
            self._running = True
            self._thread = threading.Thread(
                target=self._run,
                args=(self._work, self._aggregator),
                name="eventship-dispatcher",
                daemon=True,
            )
            self._thread.start()

        logger.info(STARTED, extra={"config": self.config.as_dict()})

    def stop(self, timeout: float | None = None) -> bool:
        """
        Send everything still pending, then release the background resources.

        Events from `add` calls that were already under way when `stop` began
        are still sent. The response queue is closed: iterating it ends once it
        is empty.

        Returns:
            bool: False if the dispatcher did not finish within `timeout`.
        """
        with self._lock:
            if not self._running:
                return True
            self._running = False
            self._stopping.set()
            self._wakeup.set()
            thread = self._thread
            work = self._work
            aggregator = self._aggregator
            responses = self._responses

        if thread is None or work is None or aggregator is None or responses is None:
            raise RuntimeError("Transmission was marked running without being started")

        thread.join(timeout)
        if thread.is_alive():
            logger.warning("Dispatcher did not stop within %s seconds", timeout)
            return False

        leftover = self._drain_pending(work)
        if leftover:
            aggregator.fire(leftover)

        aggregator.close()
        if self._owns_http_client and self._http_client is not None:
            self._http_client.close()
            self._http_client = None

        responses.close()
        self._thread = None
        logger.info(STOPPED, extra={"metrics": self.get_metrics()})
        return True

    def flush(self, timeout: float | None = None) -> bool:
        """
        Wait until a full aggregation pass started after this call has finished.

        Returns:
            bool: False if not running or the pass did not finish within `timeout`.
        """
        if not self._running:
            return False

        with self._passes:
            target = self._passes_started + 1
            self._wakeup.set()
            return self._passes.wait_for(
                lambda: self._passes_completed >= target, timeout
            )

    def add(self, event: Event) -> None:
        """
        Queue an event for sending. Never raises.

        When the work queue is full the event is either waited in
        (`block_on_send`) or answered right away with a "queue overflow"
        Response.
        """
        with self._lock:
            work = self._work
            accepted = self._running and work is not None
            if accepted:
                self._adds_in_flight += 1

        if not accepted or work is None:
            logger.warning(NOT_RUNNING, extra={"dataset": event.dataset})
            return

        try:
            self._enqueue(work, event)
        finally:
            with self._adds_idle:
                self._adds_in_flight -= 1
                if not self._adds_in_flight:
                    self._adds_idle.notify_all()

    def responses(self) -> ResponseQueue:
        """
        The queue of per-event outcomes.

        Raises:
            RuntimeError: If the transmission was never started.
        """
        if self._responses is None:
            raise RuntimeError("Transmission not started")
        return self._responses

    def send_response(self, response: Response) -> bool:
        """
        Deliver a response with the configured block-or-drop policy.

        Returns:
            bool: True if the response was dropped.
        """
        return self.responses().deliver(response)

    def get_metrics(self) -> dict[str, Any]:
        metrics = self.metrics.snapshot()
        metrics["current_queue_size"] = self._work.qsize() if self._work else 0
        metrics["overflow_destinations"] = (
            len(self._aggregator.overflow) if self._aggregator else 0
        )
        return metrics

    def _enqueue(self, work: BoundedQueue[Event], event: Event) -> None:
        if not work.try_put(event):
            if not self.config.block_on_send:
                self.metrics.increment(QUEUE_OVERFLOWS)
                logger.debug(QUEUE_OVERFLOW, extra={"capacity": work.capacity})
                self.send_response(
                    Response(metadata=event.metadata, err=QueueOverflowError())
                )
                return

            self._wakeup.set()
            work.put(event)

        self.metrics.increment(EVENTS_QUEUED)
        depth = work.qsize()
        self.metrics.observe_queue_depth(depth)
        if depth >= self.config.max_batch_size:
            self._wakeup.set()

    def _drain_pending(self, work: BoundedQueue[Event]) -> list[Event]:
        """
        Take what is left on the work queue once the dispatcher has exited.

        `add` calls admitted before `stop` may still be enqueueing; the queue
        is drained until they have all returned, which also frees room for
        producers blocked on a full queue.
        """
        events: list[Event] = []
        with self._adds_idle:
            while self._adds_in_flight:
                events.extend(work.drain())
                self._adds_idle.wait(RESPONSE_POLL_INTERVAL)
        events.extend(work.drain())
        return events

    def _run(self, work: BoundedQueue[Event], aggregator: BatchAggregator) -> None:
        while True:
            self._wakeup.wait(self.config.batch_timeout)
            self._wakeup.clear()
            stopping = self._stopping.is_set()

            self._run_pass(work, aggregator)

            if stopping:
                return

    def _run_pass(self, work: BoundedQueue[Event], aggregator: BatchAggregator) -> None:
        with self._passes:
            self._passes_started += 1

        try:
            events = work.drain()
            if events or aggregator.overflow:
                aggregator.fire(events)
        except Exception as e:
            logger.exception(f"Error during aggregation pass: {e}")
        finally:
            with self._passes:
                self._passes_completed += 1
                self._passes.notify_all()
