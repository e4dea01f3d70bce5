"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from models.records import OccupancyTier, RoomSnapshot
from services.errors import FailureKind, FailureReason
from services.refresh import RefreshSession, RefreshStatus
from services.summary import DashboardSummary


class DashboardStatus(str, Enum):
    """What the dashboard should show for the current session."""

    pending = "pending"
    ok = "ok"
    empty = "empty"
    error = "error"


class RoomSnapshotModel(BaseModel):
    room_id: str
    count: int = Field(..., ge=0)
    tier: OccupancyTier
    observed_at: datetime
    is_stale: bool
    relative_label: str
    capacity: Optional[int] = Field(default=None, gt=0)

    @classmethod
    def from_snapshot(cls, snapshot: RoomSnapshot) -> "RoomSnapshotModel":
        return cls(
            room_id=snapshot.room_id,
            count=snapshot.count,
            tier=snapshot.tier,
            observed_at=snapshot.observed_at,
            is_stale=snapshot.is_stale,
            relative_label=snapshot.relative_label,
            capacity=snapshot.capacity,
        )


class SummaryModel(BaseModel):
    """Aggregate figures over the rooms currently displayed."""

    room_count: int = Field(..., ge=0)
    total_occupancy: int = Field(..., ge=0)
    stale_count: int = Field(..., ge=0)
    tier_counts: Dict[OccupancyTier, int] = Field(default_factory=dict)

    @classmethod
    def from_summary(cls, summary: DashboardSummary) -> "SummaryModel":
        return cls(
            room_count=summary.room_count,
            total_occupancy=summary.total_occupancy,
            stale_count=summary.stale_count,
            tier_counts=dict(summary.tier_counts),
        )


class FailureModel(BaseModel):
    kind: FailureKind
    message: str
    status_code: Optional[int] = None

    @classmethod
    def from_reason(cls, reason: FailureReason) -> "FailureModel":
        return cls(kind=reason.kind, message=reason.message, status_code=reason.status_code)


class DashboardResponse(BaseModel):
    """Current room cards plus refresh bookkeeping."""

    status: DashboardStatus
    rooms: List[RoomSnapshotModel] = Field(default_factory=list)
    summary: SummaryModel
    last_refreshed_at: Optional[datetime] = None
    last_attempted_at: Optional[datetime] = None
    failure: Optional[FailureModel] = None
    rejected_rows: int = Field(default=0, ge=0)
    in_flight: bool = False
    refresh_status: Optional[RefreshStatus] = Field(
        default=None, description="Set only on responses to POST /refresh."
    )


def dashboard_status(session: RefreshSession) -> DashboardStatus:
    if session.last_failure is not None:
        return DashboardStatus.error
    if session.last_result is None:
        return DashboardStatus.pending
    if not session.last_result:
        return DashboardStatus.empty
    return DashboardStatus.ok


def build_dashboard_response(
    session: RefreshSession,
    summary: DashboardSummary,
    refresh_status: Optional[RefreshStatus] = None,
) -> DashboardResponse:
    rooms = session.last_result or ()
    return DashboardResponse(
        status=dashboard_status(session),
        rooms=[RoomSnapshotModel.from_snapshot(room) for room in rooms],
        summary=SummaryModel.from_summary(summary),
        last_refreshed_at=session.last_refreshed_at,
        last_attempted_at=session.last_attempted_at,
        failure=FailureModel.from_reason(session.last_failure) if session.last_failure else None,
        rejected_rows=session.rejected_rows,
        in_flight=session.in_flight,
        refresh_status=refresh_status,
    )
