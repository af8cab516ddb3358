from __future__ import annotations

import json
import logging

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
)

from ..clock import Clock, SystemClock
from ..constants import (
    BATCH_ENDPOINT_PATH,
    CONTENT_ENCODING_GZIP,
    CONTENT_TYPE_JSON,
    SEND_ATTEMPTS_ON_TIMEOUT,
    WRITE_KEY_HEADER,
)
from ..encoding import compress
from ..errors import (
    BatchRejectedError,
    DeliveryError,
    EventRejectedError,
    MalformedResponseError,
    ResponseBodyReadError,
)
from ..log_codes import (
    RESPONSE_MALFORMED,
    SEND_FAILED,
    SEND_REJECTED,
    SEND_SUCCEEDED,
)
from ..meta import get_meta_http_headers
from ..metrics import (
    BATCHES_SENT,
    EVENTS_SENT,
    RESPONSE_DECODE_ERRORS,
    SEND_ERRORS,
    SEND_RETRIES,
    TransmissionMetrics,
)
from ..models import DestinationKey, Event, Response

logger = logging.getLogger(__name__)


def batch_url(api_host: str, dataset: str) -> httpx.URL:
    """
    Build the batch endpoint URL, keeping any path prefix of the API host.

    Raises:
        httpx.InvalidURL: If the API host is not an absolute http(s) URL.
    """
    url = httpx.URL(api_host)
    if url.scheme not in ("http", "https") or not url.host:
        raise httpx.InvalidURL(f"API host must be an absolute http(s) URL: {api_host!r}")

    path = f"{url.path.rstrip('/')}{BATCH_ENDPOINT_PATH}/{dataset}"
    return url.copy_with(path=path)


def _record_retry(retry_state) -> None:
    sender = retry_state.args[0]
    sender.metrics.increment(SEND_RETRIES)
    logger.warning(
        "Batch request timed out, retrying (attempt %s)", retry_state.attempt_number
    )


def map_batch_response(
    events: list[Event], status_code: int, body: bytes, duration: float
) -> list[Response]:
    """
    Turn one HTTP response into one Response per sent event.

    A 2xx body must be a JSON array of {"status", "error"?} objects aligned
    with `events`; anything else fails the whole batch.
    """

    def fail_all(err: Exception) -> list[Response]:
        return [
            Response(
                status_code=status_code,
                body=body,
                duration=duration,
                metadata=event.metadata,
                err=err,
            )
            for event in events
        ]

    if not 200 <= status_code < 300:
        detail = body.decode("utf-8", errors="replace").strip() or None
        return fail_all(BatchRejectedError(status_code=status_code, detail=detail))

    try:
        statuses = json.loads(body)
    except ValueError as e:
        return fail_all(MalformedResponseError(reason=str(e)))

    if not isinstance(statuses, list) or not all(
        isinstance(entry, dict) and isinstance(entry.get("status"), int)
        for entry in statuses
    ):
        return fail_all(
            MalformedResponseError(reason="expected a list of per-event status objects")
        )

    if len(statuses) != len(events):
        return fail_all(
            MalformedResponseError(
                reason=f"got {len(statuses)} statuses for {len(events)} events"
            )
        )

    responses = []
    for event, entry in zip(events, statuses):
        status = entry["status"]
        error = entry.get("error")
        err = None
        if error or not 200 <= status < 300:
            err = EventRejectedError(status_code=status, reason=error)
        responses.append(
            Response(
                status_code=status,
                duration=duration,
                metadata=event.metadata,
                err=err,
            )
        )
    return responses


class BatchSender:
    """Sync HTTP sender for one destination batch at a time."""

    def __init__(
        self,
        http_client: httpx.Client,
        clock: Clock | None = None,
        metrics: TransmissionMetrics | None = None,
        user_agent_addition: str = "",
        disable_compression: bool = False,
    ):
        self.client = http_client
        self.clock = clock or SystemClock()
        self.metrics = metrics or TransmissionMetrics()
        self.meta_headers = get_meta_http_headers(user_agent_addition)
        self.disable_compression = disable_compression

    def build_headers(self, write_key: str) -> dict[str, str]:
        headers = {
            "Content-Type": CONTENT_TYPE_JSON,
            WRITE_KEY_HEADER: write_key,
        }
        headers.update(self.meta_headers)
        if not self.disable_compression:
            headers["Content-Encoding"] = CONTENT_ENCODING_GZIP
        return headers

    def send(self, key: DestinationKey, events: list[Event], body: bytes) -> list[Response]:
        """
        POST an encoded batch and return one Response per event, in order.

        Never raises for transport or protocol failures; they are reported on
        the returned Responses.
        """
        start = self.clock.monotonic()

        try:
            url = batch_url(key.api_host, key.dataset)
        except httpx.InvalidURL as e:
            self.metrics.increment(SEND_ERRORS)
            err = DeliveryError(reason=f"Error parsing API URL: {e}")
            return [Response(metadata=event.metadata, err=err) for event in events]

        content = body if self.disable_compression else compress(body)

        try:
            response = self._post(url, content, self.build_headers(key.write_key))
        except httpx.HTTPError as e:
            duration = self.clock.monotonic() - start
            self.metrics.increment(SEND_ERRORS)
            logger.warning(
                SEND_FAILED, extra={"destination": str(key), "error": str(e)}
            )
            err = DeliveryError(reason=str(e) or e.__class__.__name__)
            return [
                Response(duration=duration, metadata=event.metadata, err=err)
                for event in events
            ]

        try:
            response_body = response.read()
        except (httpx.HTTPError, httpx.StreamError) as e:
            duration = self.clock.monotonic() - start
            self.metrics.increment(SEND_ERRORS)
            logger.warning(
                SEND_FAILED,
                extra={"destination": str(key), "status_code": response.status_code},
            )
            if response.is_success:
                err = MalformedResponseError(reason=f"couldn't read response body: {e}")
            else:
                err = ResponseBodyReadError(reason=str(e), status_code=response.status_code)
            return [
                Response(
                    status_code=response.status_code,
                    duration=duration,
                    metadata=event.metadata,
                    err=err,
                )
                for event in events
            ]
        finally:
            response.close()

        duration = self.clock.monotonic() - start
        responses = map_batch_response(
            events, response.status_code, response_body, duration
        )

        if not response.is_success:
            self.metrics.increment(SEND_ERRORS)
            logger.warning(
                SEND_REJECTED,
                extra={"destination": str(key), "status_code": response.status_code},
            )
        elif any(isinstance(r.err, MalformedResponseError) for r in responses):
            self.metrics.increment(RESPONSE_DECODE_ERRORS)
            logger.warning(RESPONSE_MALFORMED, extra={"destination": str(key)})
        else:
            self.metrics.increment(BATCHES_SENT)
            self.metrics.increment(EVENTS_SENT, len(events))
            logger.debug(
                SEND_SUCCEEDED,
                extra={"destination": str(key), "count": len(events), "duration": duration},
            )

        return responses

    @retry(
        stop=stop_after_attempt(SEND_ATTEMPTS_ON_TIMEOUT),
        retry=retry_if_exception_type(httpx.TimeoutException),
        before_sleep=_record_retry,
        reraise=True,
    )
    def _post(
        self, url: httpx.URL, content: bytes, headers: dict[str, str]
    ) -> httpx.Response:
        request = self.client.build_request("POST", url, content=content, headers=headers)
        return self.client.send(request, stream=True)
