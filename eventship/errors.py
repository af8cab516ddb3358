from typing import Optional

from eventship.constants import API_MAX_EVENT_BYTES


class TransmissionError(Exception):
    """
    Base error for every outcome the engine reports through a Response.

    Args:
        message (str): The error message template.
        info (str): Additional information to include in the error message.
    """
    def __init__(self, message: str = "An unexpected error occurred while sending events: {info}",
                 info: str = ""):
        self.message = message.format(info=info)
        super().__init__(self.message)


class QueueOverflowError(TransmissionError):
    """
    Error reported when the pending work queue is full and submission does not block.
    """
    def __init__(self, message: str = "queue overflow"):
        self.message = message
        super().__init__(self.message)


class EventTooLargeError(TransmissionError):
    """
    Error reported for an event larger than the API accepts.

    Args:
        max_size (int): The per-event ceiling in bytes.
        size (Optional[int]): The encoded size of the rejected event.
    """
    def __init__(self, max_size: int = API_MAX_EVENT_BYTES, size: Optional[int] = None,
                 message: str = "event exceeds max event size of {max_size} bytes, "
                                "API will not accept this event"):
        self.max_size = max_size
        self.size = size
        self.message = message.format(max_size=max_size)
        super().__init__(self.message)


class EventEncodingError(TransmissionError):
    """
    Error reported for an event whose fields cannot be encoded as JSON.

    Args:
        reason (str): Why encoding failed.
    """
    def __init__(self, reason: str = "",
                 message: str = "Unable to encode event as JSON: {reason}"):
        self.message = message.format(reason=reason)
        super().__init__(self.message)


class DeliveryError(TransmissionError):
    """
    Error reported when the batch request never got an HTTP response.

    Args:
        reason (str): The transport error text.
    """
    def __init__(self, reason: str = "", message: str = "{reason}"):
        self.reason = reason
        self.message = message.format(reason=reason)
        super().__init__(self.message)


class ResponseBodyReadError(TransmissionError):
    """
    Error reported when an HTTP response arrived but its body could not be read.

    Args:
        reason (str): The underlying read failure.
        status_code (int): The HTTP status of the response.
    """
    def __init__(self, reason: str = "", status_code: int = 0,
                 message: str = "Got HTTP error code but couldn't read response body: {reason}"):
        self.status_code = status_code
        self.message = message.format(reason=reason)
        super().__init__(self.message)


class BatchRejectedError(TransmissionError):
    """
    Error reported to every event of a batch the API refused as a whole.

    Args:
        status_code (int): The HTTP status of the response.
        detail (Optional[str]): The response body text, if any.
    """
    def __init__(self, status_code: int = 0, detail: Optional[str] = None,
                 message: str = "Batch rejected with HTTP status {status_code}"):
        self.status_code = status_code
        self.detail = detail
        self.message = message.format(status_code=status_code)
        if detail:
            self.message += f": {detail}"
        super().__init__(self.message)


class MalformedResponseError(TransmissionError):
    """
    Error reported when a successful batch response cannot be mapped to its events.

    Args:
        reason (Optional[str]): The reason for the error.
    """
    def __init__(self, reason: Optional[str] = None,
                 message: str = "Unable to decode batch response from the API."):
        info = f" Details: {reason}" if reason else ""
        self.message = message + info
        super().__init__(self.message)


class EventRejectedError(TransmissionError):
    """
    Error reported for a single event the API refused inside an accepted batch.

    Args:
        status_code (int): The per-event status returned by the API.
        reason (Optional[str]): The per-event error returned by the API.
    """
    def __init__(self, status_code: int = 0, reason: Optional[str] = None):
        self.status_code = status_code
        self.message = reason or f"event rejected with status {status_code}"
        super().__init__(self.message)
