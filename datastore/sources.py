from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, List, Mapping, Protocol

from datastore.mock_room_stats import MockRoomStatsTable
from datastore.supabase_room_stats import SupabaseRoomStatsSource
from settings import Settings

logger = logging.getLogger(__name__)


class RoomStatsSource(Protocol):
    """Read-only query surface the refresh pipeline depends on."""

    async def fetch_recent(self, limit: int) -> List[Mapping[str, Any]]:
        """Return up to ``limit`` rows ordered by timestamp, newest first."""
        ...

    async def aclose(self) -> None:
        ...


def build_source(settings: Settings) -> RoomStatsSource:
    """Pick the hosted table when credentials are configured, else the local mock."""
    timestamp_column = settings.timestamp_fields[0]
    if settings.uses_supabase:
        assert settings.supabase_url is not None and settings.supabase_anon_key is not None
        logger.info("Using Supabase room_stats source")
        return SupabaseRoomStatsSource(
            url=settings.supabase_url,
            anon_key=settings.supabase_anon_key,
            table=settings.table_name,
            timestamp_column=timestamp_column,
            timeout=settings.fetch_timeout,
        )

    logger.info("Supabase credentials not configured; using local mock table")
    path = Path(settings.mock_table_path) if settings.mock_table_path else None
    return MockRoomStatsTable(
        name=settings.table_name,
        persistence_path=path,
        timestamp_column=timestamp_column,
    )
