"""Aggregate figures derived from a set of room snapshots."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Sequence

from models.records import OccupancyTier, RoomSnapshot


@dataclass
class DashboardSummary:
    """Totals shown above the room cards."""

    room_count: int = 0
    total_occupancy: int = 0
    stale_count: int = 0
    tier_counts: Dict[OccupancyTier, int] = field(default_factory=dict)


class SnapshotSummarizer:
    """Counts rooms per tier and sums occupancy over a snapshot list."""

    def __init__(self, tiers: Sequence[OccupancyTier]) -> None:
        self.tiers = tuple(tiers)

    def summarize(self, snapshots: Iterable[RoomSnapshot]) -> DashboardSummary:
        summary = DashboardSummary(tier_counts={tier: 0 for tier in self.tiers})

        for snapshot in snapshots:
            summary.room_count += 1
            summary.total_occupancy += snapshot.count
            if snapshot.is_stale:
                summary.stale_count += 1
            summary.tier_counts[snapshot.tier] = summary.tier_counts.get(snapshot.tier, 0) + 1

        return summary
