"""Unit tests for row normalization."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from models.records import ReadingRecord
from services.errors import InvalidValueError, SchemaError
from services.normalizer import FieldAliases, ReadingNormalizer, RowRejection, parse_timestamp

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def normalizer() -> ReadingNormalizer:
    return ReadingNormalizer()


def test_normalize_canonical_row(normalizer: ReadingNormalizer) -> None:
    record = normalizer.normalize(
        {"room_id": "Lab 1", "people_count": 4, "timestamp": "2024-05-01T12:00:00Z"}
    )

    assert record == ReadingRecord(room_id="Lab 1", count=4, observed_at=T0)


def test_person_count_alias_matches_people_count(normalizer: ReadingNormalizer) -> None:
    people = normalizer.normalize(
        {"room_id": "A", "people_count": 2, "timestamp": "2024-05-01T12:00:00+00:00"}
    )
    person = normalizer.normalize(
        {"room_id": "A", "person_count": 2, "timestamp": "2024-05-01T12:00:00+00:00"}
    )

    assert people == person


def test_room_id_is_trimmed_and_stringified(normalizer: ReadingNormalizer) -> None:
    assert normalizer.normalize({"room_id": "  B  ", "count": 1, "timestamp": T0}).room_id == "B"
    assert normalizer.normalize({"room": 101, "count": 1, "timestamp": T0}).room_id == "101"


@pytest.mark.parametrize(
    "row",
    [
        {"people_count": 1, "timestamp": "2024-05-01T12:00:00Z"},
        {"room_id": "   ", "people_count": 1, "timestamp": "2024-05-01T12:00:00Z"},
        {"room_id": None, "people_count": 1, "timestamp": "2024-05-01T12:00:00Z"},
        {"room_id": "A", "timestamp": "2024-05-01T12:00:00Z"},
        {"room_id": "A", "people_count": 1},
        {"room_id": "A", "people_count": 1, "timestamp": "yesterday"},
        {"room_id": "A", "people_count": 1, "timestamp": None},
    ],
)
def test_schema_errors(normalizer: ReadingNormalizer, row: dict) -> None:
    with pytest.raises(SchemaError):
        normalizer.normalize(row)


@pytest.mark.parametrize("count", [-1, "-3", "three", 2.5, None, True, [1]])
def test_invalid_counts_are_rejected_not_clamped(normalizer: ReadingNormalizer, count) -> None:
    with pytest.raises(InvalidValueError):
        normalizer.normalize({"room_id": "A", "people_count": count, "timestamp": T0})


def test_numeric_strings_and_integral_floats_are_accepted(normalizer: ReadingNormalizer) -> None:
    assert normalizer.normalize({"room_id": "A", "people_count": " 7 ", "timestamp": T0}).count == 7
    assert normalizer.normalize({"room_id": "A", "people_count": 3.0, "timestamp": T0}).count == 3
    assert normalizer.normalize({"room_id": "A", "people_count": 0, "timestamp": T0}).count == 0


def test_first_alias_wins_when_several_present(normalizer: ReadingNormalizer) -> None:
    record = normalizer.normalize(
        {"room_id": "A", "people_count": 5, "person_count": 9, "timestamp": T0}
    )

    assert record.count == 5


def test_custom_aliases() -> None:
    normalizer = ReadingNormalizer(
        FieldAliases(room_id=("space",), count=("heads",), timestamp=("seen",))
    )

    record = normalizer.normalize({"space": "Hall", "heads": "12", "seen": "2024-05-01T12:00:00Z"})

    assert record == ReadingRecord(room_id="Hall", count=12, observed_at=T0)
    with pytest.raises(SchemaError):
        normalizer.normalize({"room_id": "Hall", "heads": 1, "seen": T0})


def test_normalize_rows_collects_rejections_in_order(normalizer: ReadingNormalizer) -> None:
    rows = [
        {"room_id": "A", "people_count": 1, "timestamp": "2024-05-01T12:00:00Z"},
        {"room_id": "B", "people_count": -1, "timestamp": "2024-05-01T12:00:00Z"},
        {"room_id": "", "people_count": 2, "timestamp": "2024-05-01T12:00:00Z"},
        "not-a-row",
        {"room_id": "C", "people_count": 0, "timestamp": "2024-05-01T11:59:00Z"},
    ]

    report = normalizer.normalize_rows(rows)

    assert [record.room_id for record in report.records] == ["A", "C"]
    assert report.rejections == [
        RowRejection(row_number=2, reason="negative count", room_id="B"),
        RowRejection(row_number=3, reason="empty room_id"),
        RowRejection(row_number=4, reason="row is not a mapping"),
    ]


def test_parse_timestamp_variants() -> None:
    assert parse_timestamp("2024-05-01T12:00:00") == T0
    assert parse_timestamp("2024-05-01T14:00:00+02:00") == T0
    assert parse_timestamp(datetime(2024, 5, 1, 12, 0)) == T0
    assert parse_timestamp(T0.timestamp()) == T0
    assert parse_timestamp("2024-05-01T12:00:00.123456+00:00").microsecond == 123456

    with pytest.raises(ValueError):
        parse_timestamp("")
    with pytest.raises(ValueError):
        parse_timestamp(object())


def test_parse_timestamp_accepts_any_fraction_length() -> None:
    assert parse_timestamp("2024-05-01T12:00:00.12345+00:00").microsecond == 123450
    assert parse_timestamp("2024-05-01T12:00:00.5Z").microsecond == 500000
    assert parse_timestamp("2024-05-01T12:00:00.1234567+00:00").microsecond == 123456
    assert parse_timestamp("2024-05-01T12:00:00.12").replace(microsecond=0) == T0
