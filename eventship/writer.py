from __future__ import annotations

import logging
import sys
import threading
from typing import TextIO

from .constants import DEFAULT_RESPONSE_QUEUE_SIZE
from .encoding import encode_event
from .errors import EventEncodingError
from .models import Event, Response
from .queue import ResponseQueue

logger = logging.getLogger(__name__)


class WriterSender:
    """
    Writes each event as one JSON line instead of sending it.

    Every event still gets a placeholder Response carrying its metadata, so
    code written against Transmission keeps working.
    """

    def __init__(
        self,
        output: TextIO | None = None,
        block_on_responses: bool = False,
        response_queue_size: int = DEFAULT_RESPONSE_QUEUE_SIZE,
    ):
        self.output = output
        self.block_on_responses = block_on_responses
        self.response_queue_size = response_queue_size
        self._responses: ResponseQueue | None = None
        self._lock = threading.Lock()

    def start(self) -> None:
        self._responses = self._new_response_queue()

    def stop(self) -> bool:
        if self._responses:
            self._responses.close()
        return True

    def flush(self) -> bool:
        with self._lock:
            if self.output is not None:
                self.output.flush()
        return True

    def add(self, event: Event) -> None:
        try:
            line = encode_event(event, include_dataset=True).decode("utf-8") + "\n"
        except EventEncodingError as e:
            logger.warning("Unable to write event: %s", e)
            self.send_response(Response(metadata=event.metadata, err=e))
            return

        with self._lock:
            if self.output is None:
                self.output = sys.stdout
            self.output.write(line)

        self.send_response(Response(metadata=event.metadata))

    def responses(self) -> ResponseQueue:
        if self._responses is None:
            self._responses = self._new_response_queue()
        return self._responses

    def send_response(self, response: Response) -> bool:
        return self.responses().deliver(response)

    def _new_response_queue(self) -> ResponseQueue:
        return ResponseQueue(
            self.response_queue_size, block_on_responses=self.block_on_responses
        )
