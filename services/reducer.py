"""Reduction of recent readings to the latest reading per room."""

from __future__ import annotations

from typing import Dict, Iterable

from models.records import ReadingRecord


class LatestPerRoomReducer:
    """Keeps the first reading seen for each room.

    Input must already be ordered newest first, which the fetch query
    guarantees; records are not re-sorted here. The returned mapping keeps
    the order in which rooms were first seen.
    """

    def reduce(self, records: Iterable[ReadingRecord]) -> Dict[str, ReadingRecord]:
        latest: Dict[str, ReadingRecord] = {}
        for record in records:
            if record.room_id not in latest:
                latest[record.room_id] = record
        return latest
