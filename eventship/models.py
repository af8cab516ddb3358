from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, NamedTuple


class DestinationKey(NamedTuple):
    """
    Routing tuple shared by every event that may travel in the same batch.
    """

    api_host: str
    write_key: str
    dataset: str

    def __str__(self) -> str:
        return f"{self.api_host}_{self.write_key}_{self.dataset}"


@dataclass(frozen=True, eq=False)
class Event:
    """
    A single telemetry record, already built and sampled by the producer.

    `metadata` is never inspected; it is handed back on the Response.
    """

    api_host: str = ""
    write_key: str = ""
    dataset: str = ""
    sample_rate: int = 1
    timestamp: datetime | None = None
    metadata: Any = None
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def destination_key(self) -> DestinationKey:
        return DestinationKey(self.api_host, self.write_key, self.dataset)


@dataclass
class Response:
    """
    Outcome of one event.

    `status_code` is 0 and `body` is None when the event never reached the
    network. `duration` is in seconds.
    """

    status_code: int = 0
    body: bytes | None = None
    duration: float = 0.0
    metadata: Any = None
    err: Exception | None = None
