import gzip
import json
from datetime import datetime, timezone

import httpx
import pytest


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without background threads")
    config.addinivalue_line(
        "markers", "integration: tests that run the background dispatcher"
    )


class FakeClock:
    """
    Clock whose monotonic time moves `step` seconds every time it is read.
    """

    def __init__(self, step: float = 10.0):
        self.step = step
        self._now = 0.0

    def now(self) -> datetime:
        return datetime(2024, 1, 1, tzinfo=timezone.utc)

    def monotonic(self) -> float:
        self._now += self.step
        return self._now


class FakeIngestAPI:
    """
    httpx.MockTransport handler standing in for the batch endpoint.

    By default answers every request with one 202 status per event it
    carried. `status_code`, `body`, `error` and `bodies` (keyed by
    (write key, url path)) change the answer.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.status_code = 200
        self.body: bytes | None = None
        self.bodies: dict[tuple[str, str], bytes] = {}
        self.error: Exception | None = None
        self.errors: list[Exception] = []
        self.stream: httpx.SyncByteStream | None = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        request.read()
        self.requests.append(request)

        if self.errors:
            raise self.errors.pop(0)
        if self.error is not None:
            raise self.error
        if self.stream is not None:
            return httpx.Response(self.status_code, stream=self.stream)

        key = (request.headers.get("X-Honeycomb-Team"), request.url.path)
        if key in self.bodies:
            return httpx.Response(self.status_code, content=self.bodies[key])
        if self.body is not None:
            return httpx.Response(self.status_code, content=self.body)

        statuses = [{"status": 202} for _ in self.payload(request)]
        return httpx.Response(self.status_code, content=json.dumps(statuses).encode())

    @staticmethod
    def raw_body(request: httpx.Request) -> bytes:
        if request.headers.get("Content-Encoding") == "gzip":
            return gzip.decompress(request.content)
        return request.content

    def payload(self, request: httpx.Request) -> list:
        return json.loads(self.raw_body(request))

    @property
    def call_count(self) -> int:
        return len(self.requests)


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def ingest_api():
    return FakeIngestAPI()


@pytest.fixture
def http_client(ingest_api):
    client = httpx.Client(transport=httpx.MockTransport(ingest_api))
    yield client
    client.close()


@pytest.fixture
def make_http_client():
    """
    Build extra (FakeIngestAPI, httpx.Client) pairs for tests needing more
    than one endpoint.
    """
    clients = []

    def factory():
        api = FakeIngestAPI()
        client = httpx.Client(transport=httpx.MockTransport(api))
        clients.append(client)
        return api, client

    yield factory

    for client in clients:
        client.close()
