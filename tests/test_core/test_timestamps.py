"""Tests for codereel.core.timestamps module."""

from datetime import datetime, timezone

from codereel.core.timestamps import epoch_millis, isoformat, parse_datetime, to_jsonable


class TestParseDatetime:

    def test_iso_with_z(self):
        parsed = parse_datetime("2024-01-15T10:00:00.000Z")
        assert parsed == datetime(2024, 1, 15, 10, tzinfo=timezone.utc)

    def test_naive_assumed_utc(self):
        assert parse_datetime("2024-01-15T10:00:00").tzinfo == timezone.utc
        assert parse_datetime(datetime(2024, 1, 15)).tzinfo == timezone.utc

    def test_epoch_millis(self):
        assert parse_datetime(0) == datetime(1970, 1, 1, tzinfo=timezone.utc)

    def test_rejects_garbage(self):
        assert parse_datetime("yesterday") is None
        assert parse_datetime("") is None
        assert parse_datetime(True) is None
        assert parse_datetime(None) is None


def test_isoformat_millisecond_precision():
    value = datetime(2024, 1, 15, 10, 0, 0, 123456, tzinfo=timezone.utc)
    assert isoformat(value) == "2024-01-15T10:00:00.123Z"


def test_to_jsonable_recurses():
    value = datetime(2024, 1, 15, tzinfo=timezone.utc)
    assert to_jsonable({"a": [value], "b": (1, 2)}) == {"a": ["2024-01-15T00:00:00.000Z"], "b": [1, 2]}


def test_epoch_millis():
    assert epoch_millis(datetime(1970, 1, 1, 0, 0, 1, tzinfo=timezone.utc)) == 1000
