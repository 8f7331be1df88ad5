"""Tests for the rich-value serialization envelope"""

import math
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from app.serialization import (
    SerializationError,
    deserialize,
    escape_key,
    parse_path,
    serialize,
)


def test_plain_json_has_no_meta():
    value = {"name": "Pizza", "price": 1499, "tags": ["hot", None], "active": True}
    json_value, meta = serialize(value)
    assert json_value == value
    assert meta is None


def test_date_round_trip():
    created = datetime(2024, 1, 15, 18, 30, 0, tzinfo=timezone.utc)
    value = {"id": "m1", "created_at": created, "restaurant": {"updated_at": created}}

    json_value, meta = serialize(value)

    assert json_value["created_at"] == "2024-01-15T18:30:00.000Z"
    assert meta == {"values": {"created_at": ["Date"], "restaurant.updated_at": ["Date"]}}
    assert deserialize(json_value, meta) == value


def test_naive_datetime_is_sent_as_utc():
    json_value, meta = serialize({"created_at": datetime(2024, 1, 15, 18, 30, 0, 123456)})
    assert json_value["created_at"] == "2024-01-15T18:30:00.123Z"
    assert meta == {"values": {"created_at": ["Date"]}}

    restored = deserialize(json_value, meta)["created_at"]
    assert restored == datetime(2024, 1, 15, 18, 30, 0, 123000, tzinfo=timezone.utc)


def test_aware_datetime_is_converted_to_utc():
    moment = datetime(2024, 1, 15, 20, 30, tzinfo=timezone(timedelta(hours=2)))
    json_value, meta = serialize(moment)
    assert json_value == "2024-01-15T18:30:00.000Z"
    assert meta == {"values": ["Date"]}
    assert deserialize(json_value, meta) == moment


def test_values_plain_json_would_lose():
    value = {
        "total": Decimal("12.50"),
        "big": 2 ** 60,
        "ratio": float("inf"),
        "tags": {"vegan"},
        "rows": [{"date": datetime(2024, 3, 1, tzinfo=timezone.utc)}],
    }
    json_value, meta = serialize(value)

    assert json_value["total"] == "12.50"
    assert json_value["big"] == str(2 ** 60)
    assert json_value["ratio"] == "Infinity"
    assert json_value["tags"] == ["vegan"]
    assert meta["values"]["total"] == [["custom", "Decimal"]]
    assert meta["values"]["rows.0.date"] == ["Date"]

    assert deserialize(json_value, meta) == value


def test_nan_round_trip():
    json_value, meta = serialize([float("nan")])
    restored = deserialize(json_value, meta)
    assert math.isnan(restored[0])


def test_set_of_dates_nests_annotations():
    value = {"slots": {datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)}}
    json_value, meta = serialize(value)
    assert meta == {"values": {"slots": ["set", {"0": ["Date"]}]}}
    assert deserialize(json_value, meta) == value


def test_keys_with_dots_are_escaped():
    value = {"a.b": datetime(2024, 1, 1, tzinfo=timezone.utc)}
    json_value, meta = serialize(value)
    assert list(meta["values"]) == ["a\\.b"]
    assert deserialize(json_value, meta) == value


def test_escape_and_parse_path():
    assert escape_key("a.b\\c") == "a\\.b\\\\c"
    assert parse_path("x.a\\.b.0") == ["x", "a.b", "0"]


def test_deserialize_without_meta_returns_input():
    assert deserialize({"q": 1}, None) == {"q": 1}


def test_unknown_annotation_is_rejected():
    with pytest.raises(SerializationError):
        deserialize({"a": 1}, {"values": {"a": ["regexp"]}})


def test_path_to_missing_key_is_rejected():
    with pytest.raises(SerializationError):
        deserialize({"a": 1}, {"values": {"b": ["Date"]}})


def test_invalid_date_is_rejected():
    with pytest.raises(SerializationError):
        deserialize({"a": "yesterday"}, {"values": {"a": ["Date"]}})
