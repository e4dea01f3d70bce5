"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class OccupancyTier(str, Enum):
    """Occupancy tiers across both deployment profiles."""

    empty = "empty"
    light = "light"
    moderate = "moderate"
    busy = "busy"
    full = "full"

    @property
    def rank(self) -> int:
        return _TIER_RANKS[self]


_TIER_RANKS = {
    OccupancyTier.empty: 0,
    OccupancyTier.light: 1,
    OccupancyTier.moderate: 2,
    OccupancyTier.busy: 3,
    OccupancyTier.full: 3,
}


@dataclass(frozen=True, slots=True)
class ReadingRecord:
    """A validated occupancy reading for one room."""

    room_id: str
    count: int
    observed_at: datetime


@dataclass(frozen=True, slots=True)
class RoomSnapshot:
    """Presentation-ready state of a room for a single refresh cycle."""

    room_id: str
    count: int
    tier: OccupancyTier
    observed_at: datetime
    is_stale: bool
    relative_label: str
    capacity: Optional[int] = None
