from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Any, Dict, List, Mapping, Optional

from services.errors import FailureKind, FetchError
from services.normalizer import parse_timestamp

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


class MockRoomStatsTable:
    """Local stand-in for the hosted room_stats table.

    Rows are stored exactly as written so that schema drift (alias columns,
    bad values) can be reproduced locally. When backed by a file, the file
    is re-read on every access so an external writer can append to it.
    """

    def __init__(
        self,
        name: str,
        persistence_path: Optional[Path] = None,
        timestamp_column: str = "timestamp",
    ) -> None:
        self.name = name
        self.timestamp_column = timestamp_column
        self._rows: List[Dict[str, Any]] = []
        self.persistence_path = persistence_path
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)

    def put_row(self, row: Mapping[str, Any]) -> None:
        with self._lock:
            self._load_from_disk()
            self._rows.append(dict(row))
            self._persist()

    def scan(self) -> list[Dict[str, Any]]:
        """Return copies of all stored rows in insertion order."""

        with self._lock:
            self._load_from_disk()
            return [dict(row) for row in self._rows]

    async def fetch_recent(self, limit: int) -> List[Mapping[str, Any]]:
        """Return up to ``limit`` rows, newest first."""
        rows = await asyncio.to_thread(self.scan)
        rows.sort(key=self._sort_key, reverse=True)
        return rows[:limit]

    async def aclose(self) -> None:
        return None

    def _sort_key(self, row: Mapping[str, Any]) -> datetime:
        try:
            return parse_timestamp(row.get(self.timestamp_column))
        except ValueError:
            return _OLDEST

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        self.persistence_path.write_text(json.dumps(self._rows, indent=2, default=str))

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "[]"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError) as exc:
            raise FetchError(
                FailureKind.malformed_response,
                f"Mock table {self.name!r} at {self.persistence_path} is unreadable.",
            ) from exc

        if not isinstance(data, list):
            raise FetchError(
                FailureKind.malformed_response,
                f"Mock table {self.name!r} must contain a JSON list of rows.",
            )
        self._rows = [dict(row) for row in data if isinstance(row, dict)]
