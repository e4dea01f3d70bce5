from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Dict, Optional, Tuple


_SUPABASE_URL_ENV = "SUPABASE_URL"
_SUPABASE_KEY_ENV = "SUPABASE_ANON_KEY"
_TABLE_NAME_ENV = "ROOM_STATS_TABLE"
_FETCH_TIMEOUT_ENV = "SUPABASE_TIMEOUT_SECONDS"
_MOCK_TABLE_PATH_ENV = "MOCK_ROOM_STATS_PATH"
_ROW_LIMIT_ENV = "FETCH_ROW_LIMIT"
_STALE_AFTER_ENV = "STALE_AFTER_SECONDS"
_PROFILE_ENV = "OCCUPANCY_PROFILE"
_BOUNDARIES_ENV = "OCCUPANCY_BOUNDARIES"
_MODE_ENV = "OCCUPANCY_MODE"
_DEFAULT_CAPACITY_ENV = "DEFAULT_ROOM_CAPACITY"
_CAPACITIES_ENV = "ROOM_CAPACITIES"
_ROOM_FIELDS_ENV = "ROOM_ID_FIELDS"
_COUNT_FIELDS_ENV = "COUNT_FIELDS"
_TIMESTAMP_FIELDS_ENV = "TIMESTAMP_FIELDS"
_REFRESH_INTERVAL_ENV = "REFRESH_INTERVAL_SECONDS"
_DISPLAY_TZ_ENV = "DISPLAY_TIMEZONE"
_LOG_LEVEL_ENV = "LOG_LEVEL"

DEFAULT_ROOM_FIELDS = ("room_id", "room", "room_name", "roomId")
DEFAULT_COUNT_FIELDS = ("people_count", "person_count", "count", "occupancy")
DEFAULT_TIMESTAMP_FIELDS = ("timestamp", "observed_at", "created_at")


@dataclass(frozen=True)
class Settings:
    supabase_url: Optional[str]
    supabase_anon_key: Optional[str]
    table_name: str
    fetch_timeout: float
    mock_table_path: Optional[str]
    fetch_row_limit: int
    stale_after_seconds: float
    occupancy_profile: str
    tier_boundaries: Optional[Tuple[float, ...]]
    classification_mode: str
    default_capacity: int
    room_capacities: Dict[str, int] = field(default_factory=dict)
    room_id_fields: Tuple[str, ...] = DEFAULT_ROOM_FIELDS
    count_fields: Tuple[str, ...] = DEFAULT_COUNT_FIELDS
    timestamp_fields: Tuple[str, ...] = DEFAULT_TIMESTAMP_FIELDS
    refresh_interval_seconds: float = 0.0
    display_timezone: Optional[str] = None
    log_level: str = "INFO"

    @property
    def uses_supabase(self) -> bool:
        return bool(self.supabase_url and self.supabase_anon_key)


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_float(name: str, default: float, allow_zero: bool = False) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    if parsed > 0 or (allow_zero and parsed == 0):
        return parsed
    return default


def _read_boundaries() -> Optional[Tuple[float, ...]]:
    value = os.getenv(_BOUNDARIES_ENV)
    if value is None or not value.strip():
        return None
    try:
        return tuple(float(part) for part in value.split(",") if part.strip())
    except ValueError:
        return None


def _read_capacities() -> Dict[str, int]:
    value = os.getenv(_CAPACITIES_ENV)
    if value is None:
        return {}
    capacities: Dict[str, int] = {}
    for pair in value.split(","):
        room, sep, raw_capacity = pair.partition("=")
        room = room.strip()
        if not sep or not room:
            continue
        try:
            capacity = int(raw_capacity.strip())
        except ValueError:
            continue
        if capacity > 0:
            capacities[room] = capacity
    return capacities


def _read_fields(name: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    value = os.getenv(name)
    if value is None:
        return default
    fields = tuple(part.strip() for part in value.split(",") if part.strip())
    return fields or default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        supabase_url=_read_optional_env(_SUPABASE_URL_ENV, None),
        supabase_anon_key=_read_optional_env(_SUPABASE_KEY_ENV, None),
        table_name=_read_str_env(_TABLE_NAME_ENV, "room_stats"),
        fetch_timeout=_read_float(_FETCH_TIMEOUT_ENV, 30.0),
        mock_table_path=_read_optional_env(_MOCK_TABLE_PATH_ENV, "./tmp/room_stats.json"),
        fetch_row_limit=_read_positive_int(_ROW_LIMIT_ENV, 500),
        stale_after_seconds=_read_float(_STALE_AFTER_ENV, 300.0),
        occupancy_profile=_read_str_env(_PROFILE_ENV, "three_tier").lower(),
        tier_boundaries=_read_boundaries(),
        classification_mode=_read_str_env(_MODE_ENV, "absolute").lower(),
        default_capacity=_read_positive_int(_DEFAULT_CAPACITY_ENV, 10),
        room_capacities=_read_capacities(),
        room_id_fields=_read_fields(_ROOM_FIELDS_ENV, DEFAULT_ROOM_FIELDS),
        count_fields=_read_fields(_COUNT_FIELDS_ENV, DEFAULT_COUNT_FIELDS),
        timestamp_fields=_read_fields(_TIMESTAMP_FIELDS_ENV, DEFAULT_TIMESTAMP_FIELDS),
        refresh_interval_seconds=_read_float(_REFRESH_INTERVAL_ENV, 0.0, allow_zero=True),
        display_timezone=_read_optional_env(_DISPLAY_TZ_ENV, None),
        log_level=_read_log_level("INFO"),
    )
