from __future__ import annotations

import logging
import queue
from typing import Callable, Generic, Iterator, TypeVar

from .constants import RESPONSE_POLL_INTERVAL
from .log_codes import RESPONSE_DROPPED
from .models import Response

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BoundedQueue(Generic[T]):
    """
    Thread-safe FIFO with a fixed capacity.

    `try_put` never blocks and reports fullness; `put` waits for room. A
    capacity of 0 refuses every `try_put`, while `put` uses a single hand-off
    slot.
    """

    def __init__(self, capacity: int):
        if capacity < 0:
            raise ValueError(f"Queue capacity must not be negative: {capacity}")
        self.capacity = capacity
        self._queue: queue.Queue = queue.Queue(maxsize=max(capacity, 1))

    def try_put(self, item: T) -> bool:
        if self.capacity == 0:
            return False
        try:
            self._queue.put_nowait(item)
        except queue.Full:
            return False
        return True

    def put(self, item: T, timeout: float | None = None) -> None:
        self._queue.put(item, block=True, timeout=timeout)

    def get(self, timeout: float | None = None) -> T:
        """
        Raises:
            queue.Empty: If nothing arrived within `timeout`.
        """
        return self._queue.get(block=True, timeout=timeout)

    def get_nowait(self) -> T:
        return self._queue.get_nowait()

    def drain(self) -> list[T]:
        """
        Take everything queued right now without waiting for more.
        """
        items: list[T] = []
        while True:
            try:
                items.append(self._queue.get_nowait())
            except queue.Empty:
                return items

    def qsize(self) -> int:
        return self._queue.qsize()

    def empty(self) -> bool:
        return self._queue.empty()


class ResponseQueue(BoundedQueue[Response]):
    """
    Outcome channel read by the application.

    Delivery either waits for room (`block_on_responses`) or drops the
    response when the queue is full.
    """

    def __init__(
        self,
        capacity: int,
        block_on_responses: bool = False,
        on_drop: Callable[[Response], None] | None = None,
    ):
        super().__init__(capacity)
        self.block_on_responses = block_on_responses
        self._on_drop = on_drop
        self._closed = False

    def deliver(self, response: Response) -> bool:
        """
        Push a response using the configured policy.

        Returns:
            bool: True if the response was dropped.
        """
        if self.block_on_responses:
            self.put(response)
            return False

        if self.try_put(response):
            return False

        logger.debug(RESPONSE_DROPPED, extra={"capacity": self.capacity})
        if self._on_drop:
            self._on_drop(response)
        return True

    def close(self) -> None:
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    def __iter__(self) -> Iterator[Response]:
        """
        Yield responses until the queue is closed and empty.
        """
        while True:
            try:
                yield self.get(timeout=RESPONSE_POLL_INTERVAL)
            except queue.Empty:
                if self._closed:
                    return
