# -*- coding: utf-8 -*-
"""Batching client for shipping telemetry events to an ingestion API."""

from .base import Sender
from .client import Transmission
from .config import TransmissionConfig, get_transmission_config
from .errors import (
    BatchRejectedError,
    DeliveryError,
    EventEncodingError,
    EventRejectedError,
    EventTooLargeError,
    MalformedResponseError,
    QueueOverflowError,
    ResponseBodyReadError,
    TransmissionError,
)
from .models import DestinationKey, Event, Response
from .queue import ResponseQueue
from .writer import WriterSender

__all__ = [
    "Sender",
    "Transmission",
    "WriterSender",
    "TransmissionConfig",
    "get_transmission_config",
    "Event",
    "Response",
    "DestinationKey",
    "ResponseQueue",
    "TransmissionError",
    "QueueOverflowError",
    "EventTooLargeError",
    "EventEncodingError",
    "DeliveryError",
    "ResponseBodyReadError",
    "BatchRejectedError",
    "MalformedResponseError",
    "EventRejectedError",
]
