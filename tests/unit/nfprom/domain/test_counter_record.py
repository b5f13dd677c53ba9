from __future__ import annotations

import pytest

from nfprom.domain import CounterRecord, LabelSchema, parse_counter
from nfprom.errors import ParseError


def test_label_order_is_sorted() -> None:
    record = CounterRecord(packets=1, bytes=2, fields={"proto": "tcp", "direction": "in", "b": "x"})

    assert record.label_order == ("b", "direction", "proto")


def test_record_fields_are_read_only() -> None:
    fields = {"proto": "tcp"}
    record = CounterRecord(packets=1, bytes=2, fields=fields)
    fields["proto"] = "udp"

    assert record.fields["proto"] == "tcp"
    with pytest.raises(TypeError):
        record.fields["proto"] = "udp"  # type: ignore[index]


def test_record_rejects_negative_counters() -> None:
    with pytest.raises(ValueError):
        CounterRecord(packets=-1, bytes=0)


def test_schema_is_sorted_union_of_field_keys() -> None:
    records = [
        CounterRecord(packets=1, bytes=1, fields={"proto": "tcp", "port": "22"}),
        CounterRecord(packets=1, bytes=1, fields={"direction": "in", "proto": "udp"}),
    ]

    schema = LabelSchema.from_records(records)

    assert schema.names == ("direction", "port", "proto")
    assert len(schema) == 3


def test_label_values_fill_missing_labels() -> None:
    schema = LabelSchema(("direction", "port", "proto"))
    record = CounterRecord(packets=1, bytes=1, fields={"proto": "tcp", "port": "22"})

    assert record.label_values(schema) == ("", "22", "tcp")
    assert record.label_values(schema, missing="none") == ("none", "22", "tcp")


def test_str_renders_fields_and_counters() -> None:
    record = CounterRecord(packets=7, bytes=900, fields={"proto": "tcp", "port": "22"})

    assert str(record) == "port=22;proto=tcp;By=900;Pk=7"


@pytest.mark.parametrize("text", ["", "abc", "-1", "1.5", "12a", "18446744073709551616"])
def test_parse_counter_rejects_invalid_values(text: str) -> None:
    with pytest.raises(ParseError):
        parse_counter(text)


def test_parse_counter_accepts_max_u64() -> None:
    assert parse_counter("18446744073709551615") == 2**64 - 1
