"""
Wire encoding for events and batches.
"""

from __future__ import annotations

import gzip
import json
from datetime import datetime, timezone
from typing import Any, NamedTuple

from pydantic_core import to_jsonable_python

from .constants import API_MAX_BATCH_BYTES, API_MAX_EVENT_BYTES
from .errors import EventEncodingError, EventTooLargeError
from .models import Event


class EncodedBatch(NamedTuple):
    """
    Result of packing one destination's events into a request body.

    Args:
        body (bytes): The JSON array to send, in event order.
        events (list[Event]): The events in `body`, positionally aligned.
        remainder (list[Event]): Events that did not fit under the batch ceiling.
        rejected (list[tuple[Event, Exception]]): Events that can never be sent.
    """

    body: bytes
    events: list[Event]
    remainder: list[Event]
    rejected: list[tuple[Event, Exception]]


def format_timestamp(timestamp: datetime) -> str:
    """
    Format a timestamp as RFC 3339; naive values are taken as UTC.

    Trailing zeros of the fractional second are dropped and UTC is written as
    `Z`, so `12:00:00.500000+00:00` becomes `12:00:00.5Z`.
    """
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    local = timestamp.replace(tzinfo=None).isoformat()
    offset = timestamp.isoformat()[len(local):]
    if timestamp.microsecond:
        local = local.rstrip("0")
    return local + ("Z" if offset == "+00:00" else offset)


def event_payload(event: Event, include_dataset: bool = False) -> dict[str, Any]:
    """
    Build the wire object for an event.

    Sample rate 1, a missing timestamp and an empty dataset are left out.
    """
    payload: dict[str, Any] = {"data": event.data}
    if event.sample_rate != 1:
        payload["samplerate"] = event.sample_rate
    if event.timestamp is not None:
        payload["time"] = format_timestamp(event.timestamp)
    if include_dataset and event.dataset:
        payload["dataset"] = event.dataset
    return payload


def encode_event(event: Event, include_dataset: bool = False) -> bytes:
    """
    Encode an event as compact JSON.

    Raises:
        EventEncodingError: If a field value has no JSON representation.
    """
    try:
        return json.dumps(
            event_payload(event, include_dataset=include_dataset),
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
            default=to_jsonable_python,
        ).encode("utf-8")
    except (TypeError, ValueError, RecursionError) as e:
        raise EventEncodingError(reason=str(e)) from e


def build_batch(
    events: list[Event],
    max_event_bytes: int = API_MAX_EVENT_BYTES,
    max_batch_bytes: int = API_MAX_BATCH_BYTES,
) -> EncodedBatch:
    """
    Pack events, in order, into a JSON array no larger than `max_batch_bytes`.

    Events that fail to encode or exceed `max_event_bytes` are rejected. The
    first event that would push the array past the ceiling starts the
    remainder. At least one sendable event is always packed.
    """
    packed: list[bytes] = []
    sent: list[Event] = []
    rejected: list[tuple[Event, Exception]] = []
    remainder: list[Event] = []

    size = 2  # the enclosing brackets

    for index, event in enumerate(events):
        try:
            encoded = encode_event(event)
        except EventEncodingError as e:
            rejected.append((event, e))
            continue

        if len(encoded) > max_event_bytes:
            rejected.append(
                (event, EventTooLargeError(max_size=max_event_bytes, size=len(encoded)))
            )
            continue

        added = len(encoded) + (1 if packed else 0)
        if packed and size + added > max_batch_bytes:
            remainder = events[index:]
            break

        packed.append(encoded)
        sent.append(event)
        size += added

    return EncodedBatch(
        body=b"[" + b",".join(packed) + b"]",
        events=sent,
        remainder=remainder,
        rejected=rejected,
    )


def compress(body: bytes) -> bytes:
    return gzip.compress(body)
