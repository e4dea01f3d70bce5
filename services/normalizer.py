"""Normalization of raw room_stats rows into ReadingRecord values."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from models.records import ReadingRecord
from services.errors import InvalidValueError, RowRejectedError, SchemaError
from settings import DEFAULT_COUNT_FIELDS, DEFAULT_ROOM_FIELDS, DEFAULT_TIMESTAMP_FIELDS

_MISSING = object()
# fromisoformat before 3.11 only takes 3 or 6 fractional digits; PostgREST
# trims trailing zeros.
_FRACTION = re.compile(r"(?<=\d\d:\d\d:\d\d)\.(\d+)")


@dataclass(frozen=True)
class FieldAliases:
    """Accepted column names per logical field, checked in order."""

    room_id: Tuple[str, ...] = DEFAULT_ROOM_FIELDS
    count: Tuple[str, ...] = DEFAULT_COUNT_FIELDS
    timestamp: Tuple[str, ...] = DEFAULT_TIMESTAMP_FIELDS


@dataclass(frozen=True)
class RowRejection:
    row_number: int
    reason: str
    room_id: Optional[str] = None


@dataclass
class NormalizationReport:
    records: List[ReadingRecord] = field(default_factory=list)
    rejections: List[RowRejection] = field(default_factory=list)


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 string, datetime or epoch seconds into an aware UTC datetime."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as exc:
            raise ValueError("Epoch timestamp out of range") from exc
    elif isinstance(value, str):
        candidate = value.strip()
        if not candidate:
            raise ValueError("Timestamp is empty.")

        if candidate.endswith("Z"):
            candidate = candidate[:-1] + "+00:00"

        candidate = _FRACTION.sub(lambda match: "." + (match.group(1) + "000000")[:6], candidate)

        try:
            parsed = datetime.fromisoformat(candidate)
        except ValueError as exc:
            raise ValueError("Invalid timestamp format") from exc
    else:
        raise ValueError(f"Unsupported timestamp type {type(value).__name__}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)

    return parsed.astimezone(timezone.utc)


def _lookup(raw: Mapping[str, Any], aliases: Iterable[str]) -> Tuple[Optional[str], Any]:
    for name in aliases:
        if name in raw:
            return name, raw[name]
    return None, _MISSING


class ReadingNormalizer:
    """Maps rows of varying shape onto the canonical reading triple."""

    def __init__(self, aliases: Optional[FieldAliases] = None) -> None:
        self.aliases = aliases or FieldAliases()

    def normalize(self, raw: Mapping[str, Any]) -> ReadingRecord:
        if not isinstance(raw, Mapping):
            raise SchemaError("row is not a mapping")
        room_id = self._room_id(raw)
        count = self._count(raw)
        observed_at = self._observed_at(raw)
        return ReadingRecord(room_id=room_id, count=count, observed_at=observed_at)

    def normalize_rows(self, rows: Iterable[Mapping[str, Any]]) -> NormalizationReport:
        """Normalize rows in order, collecting rejected rows instead of raising."""
        report = NormalizationReport()
        for row_number, raw in enumerate(rows, start=1):
            try:
                report.records.append(self.normalize(raw))
            except RowRejectedError as exc:
                report.rejections.append(
                    RowRejection(
                        row_number=row_number,
                        reason=exc.reason,
                        room_id=self._room_id_or_none(raw),
                    )
                )
        return report

    def _room_id_or_none(self, raw: Any) -> Optional[str]:
        if not isinstance(raw, Mapping):
            return None
        try:
            return self._room_id(raw)
        except SchemaError:
            return None

    def _room_id(self, raw: Mapping[str, Any]) -> str:
        # A present-but-null alias does not hide a later one.
        for name in self.aliases.room_id:
            value = raw.get(name)
            if value is None:
                continue
            room_id = str(value).strip()
            if not room_id:
                raise SchemaError(f"empty {name}", field=name)
            return room_id
        raise SchemaError("missing room identifier", field="room_id")

    def _count(self, raw: Mapping[str, Any]) -> int:
        name, value = _lookup(raw, self.aliases.count)
        if name is None:
            raise SchemaError("missing count", field="count")

        if isinstance(value, bool):
            raise InvalidValueError("count is not numeric", field=name)
        if isinstance(value, int):
            count = value
        elif isinstance(value, float) and value.is_integer():
            count = int(value)
        elif isinstance(value, str):
            try:
                count = int(value.strip())
            except ValueError as exc:
                raise InvalidValueError("count is not numeric", field=name) from exc
        else:
            raise InvalidValueError("count is not numeric", field=name)

        if count < 0:
            raise InvalidValueError("negative count", field=name)
        return count

    def _observed_at(self, raw: Mapping[str, Any]) -> datetime:
        name, value = _lookup(raw, self.aliases.timestamp)
        if name is None or value is None:
            raise SchemaError("missing timestamp", field="timestamp")
        try:
            return parse_timestamp(value)
        except ValueError as exc:
            raise SchemaError("invalid timestamp", field=name) from exc
