from typing import Protocol, runtime_checkable

from .models import Event, Response
from .queue import ResponseQueue


@runtime_checkable
class Sender(Protocol):
    def start(self) -> None: ...
    def stop(self) -> bool: ...
    def flush(self) -> bool: ...
    def add(self, event: Event) -> None: ...
    def responses(self) -> ResponseQueue: ...
    def send_response(self, response: Response) -> bool: ...
