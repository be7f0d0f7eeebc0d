"""Unit tests for datetime helpers."""

from datetime import datetime, timedelta, timezone

import pytest

from issuestream.core.datetime_utils import (
    ensure_utc,
    format_iso,
    parse_iso,
    to_epoch_millis,
    utc_now,
)


def test_utc_now_is_aware():
    assert utc_now().tzinfo is not None
    assert utc_now().utcoffset() == timedelta(0)


def test_ensure_utc_treats_naive_as_utc():
    naive = datetime(2024, 11, 3, 10, 0, 0)

    assert ensure_utc(naive) == datetime(2024, 11, 3, 10, 0, 0, tzinfo=timezone.utc)


def test_ensure_utc_converts_offsets():
    cet = timezone(timedelta(hours=1))
    value = datetime(2024, 11, 3, 11, 0, 0, tzinfo=cet)

    converted = ensure_utc(value)

    assert converted.tzinfo == timezone.utc
    assert converted.hour == 10


def test_parse_iso_z_suffix():
    assert parse_iso("2024-11-03T10:00:00Z") == datetime(
        2024, 11, 3, 10, 0, 0, tzinfo=timezone.utc
    )


def test_parse_iso_rejects_garbage():
    with pytest.raises(ValueError):
        parse_iso("yesterday")


def test_format_iso_whole_seconds():
    value = datetime(2024, 11, 3, 10, 0, 1, tzinfo=timezone.utc)

    assert format_iso(value) == "2024-11-03T10:00:01Z"


def test_format_iso_keeps_microseconds():
    value = datetime(2024, 11, 3, 10, 0, 1, 500, tzinfo=timezone.utc)

    assert format_iso(value) == "2024-11-03T10:00:01.000500Z"
    assert parse_iso(format_iso(value)) == value


def test_to_epoch_millis():
    assert to_epoch_millis(datetime(1970, 1, 1, 0, 0, 1, tzinfo=timezone.utc)) == 1000
    assert to_epoch_millis(datetime(2024, 11, 3, 10, 0, 0, tzinfo=timezone.utc)) == 1730628000000
