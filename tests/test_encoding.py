import gzip
import json
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from eventship.encoding import (
    build_batch,
    compress,
    encode_event,
    event_payload,
    format_timestamp,
)
from eventship.errors import EventEncodingError, EventTooLargeError
from eventship.models import Event


@pytest.mark.unit
class TestEncodeEvent:
    """
    Wire form of single events.
    """

    def test_minimal_event(self):
        assert encode_event(Event()) == b'{"data":{}}'

    def test_full_event_with_dataset(self):
        event = Event(
            dataset="dataset",
            sample_rate=2,
            timestamp=datetime(1, 1, 1, 0, 0, 1, tzinfo=timezone.utc),
            data={"key": "val"},
        )

        assert encode_event(event, include_dataset=True) == (
            b'{"data":{"key":"val"},"samplerate":2,'
            b'"time":"0001-01-01T00:00:01Z","dataset":"dataset"}'
        )

    def test_dataset_left_out_of_batch_records(self):
        event = Event(dataset="dataset", data={"key": "val"})

        assert "dataset" not in event_payload(event)
        assert event_payload(event, include_dataset=True)["dataset"] == "dataset"

    def test_non_ascii_is_kept(self):
        assert encode_event(Event(data={"name": "żółw"})) == (
            '{"data":{"name":"żółw"}}'.encode("utf-8")
        )

    def test_rich_values_are_serialized(self):
        event = Event(
            data={
                "at": datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
                "amount": Decimal("1.5"),
                "tags": {"a"},
            }
        )

        payload = json.loads(encode_event(event))

        assert payload["data"]["at"] == "2024-05-01T12:00:00Z"
        assert payload["data"]["tags"] == ["a"]

    @pytest.mark.parametrize("value", [object(), float("nan")])
    def test_unencodable_values(self, value):
        with pytest.raises(EventEncodingError) as exc_info:
            encode_event(Event(data={"bad": value}))

        assert str(exc_info.value).startswith("Unable to encode event as JSON: ")

    def test_deeply_nested_data(self):
        data: dict = {}
        level = data
        for _ in range(100_000):
            level["a"] = {}
            level = level["a"]

        with pytest.raises(EventEncodingError):
            encode_event(Event(data=data))


@pytest.mark.unit
class TestFormatTimestamp:
    def test_utc_uses_z_suffix(self):
        assert (
            format_timestamp(datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc))
            == "2024-01-02T03:04:05Z"
        )

    @pytest.mark.parametrize(
        "microsecond, expected",
        [
            (6000, "2024-01-02T03:04:05.006Z"),
            (500000, "2024-01-02T03:04:05.5Z"),
            (123456, "2024-01-02T03:04:05.123456Z"),
        ],
    )
    def test_fraction_drops_trailing_zeros(self, microsecond, expected):
        timestamp = datetime(2024, 1, 2, 3, 4, 5, microsecond, tzinfo=timezone.utc)

        assert format_timestamp(timestamp) == expected

    def test_naive_is_utc(self):
        assert format_timestamp(datetime(2024, 1, 2, 3, 4, 5)) == "2024-01-02T03:04:05Z"

    def test_offset_is_kept(self):
        tz = timezone(timedelta(hours=2))
        assert (
            format_timestamp(datetime(2024, 1, 2, 3, 4, 5, 250000, tzinfo=tz))
            == "2024-01-02T03:04:05.25+02:00"
        )


@pytest.mark.unit
class TestBuildBatch:
    """
    Greedy packing of events under the byte ceilings.
    """

    def test_body_is_json_array_in_order(self):
        events = [Event(data={"n": i}) for i in range(3)]

        batch = build_batch(events)

        assert batch.body == b'[{"data":{"n":0}},{"data":{"n":1}},{"data":{"n":2}}]'
        assert batch.events == events
        assert batch.remainder == []
        assert batch.rejected == []

    def test_exact_fit_is_packed(self):
        events = [Event(data={"n": i}) for i in range(2)]
        # each record is 16 bytes: two records, one comma, two brackets
        batch = build_batch(events, max_batch_bytes=35)

        assert batch.events == events
        assert len(batch.body) == 35

    def test_remainder_starts_at_first_misfit(self):
        events = [Event(data={"n": i}) for i in range(4)]

        batch = build_batch(events, max_batch_bytes=35)

        assert batch.events == events[:2]
        assert batch.remainder == events[2:]

    def test_first_event_always_packed(self):
        events = [Event(data={"n": i}) for i in range(2)]

        batch = build_batch(events, max_batch_bytes=10)

        assert batch.events == events[:1]
        assert batch.remainder == events[1:]

    def test_large_and_unencodable_events_are_rejected(self):
        small = Event(data={"n": 1})
        big = Event(data={"s": "x" * 200})
        broken = Event(data={"o": object()})

        batch = build_batch([big, small, broken], max_event_bytes=100)

        assert batch.events == [small]
        assert [event for event, _ in batch.rejected] == [big, broken]
        too_large = batch.rejected[0][1]
        assert isinstance(too_large, EventTooLargeError)
        assert too_large.max_size == 100
        assert too_large.size == len(encode_event(big))
        assert isinstance(batch.rejected[1][1], EventEncodingError)

    def test_nothing_sendable(self):
        batch = build_batch([Event(data={"o": object()})])

        assert batch.events == []
        assert batch.body == b"[]"


@pytest.mark.unit
def test_compress_is_gzip():
    body = b'[{"data":{}}]'
    assert gzip.decompress(compress(body)) == body
